from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from novablick.config import Settings, settings
from novablick.db import create_async_engine_for_url, create_async_session_factory
from novablick.orchestrator.agents.supervisor import DataAnalystOrchestrator, EngineConfig
from novablick.orchestrator.llm.provider import create_provider
from novablick.services.chat_service import ChatService
from novablick.services.dataset_catalog import SqlAlchemyDatasetCatalog, SqlAlchemyQueryExecutor


class Container(containers.DeclarativeContainer):
    """Wires the dataset store, the LLM provider and the chat engine for the API."""

    wiring_config = containers.WiringConfiguration(packages=["novablick.routers"])

    config = providers.Configuration()
    app_settings = providers.Object(settings)

    async_engine = providers.Singleton(
        create_async_engine_for_url,
        database_url=config.database.async_url,
        echo=config.database.echo,
    )
    async_session_factory = providers.Singleton(
        create_async_session_factory,
        engine=async_engine,
    )

    dataset_catalog = providers.Singleton(SqlAlchemyDatasetCatalog, session_factory=async_session_factory)
    query_executor = providers.Singleton(SqlAlchemyQueryExecutor, session_factory=async_session_factory)

    llm_provider = providers.Singleton(create_provider, connection=config.llm)
    engine_config = providers.Singleton(EngineConfig.from_settings, app_settings)

    orchestrator = providers.Singleton(
        DataAnalystOrchestrator,
        llm=llm_provider,
        executor=query_executor,
        catalog=dataset_catalog,
        config=engine_config,
    )

    chat_service = providers.Factory(
        ChatService,
        orchestrator=orchestrator,
        datasets=dataset_catalog,
    )


def _build_config(settings_obj: Settings) -> dict[str, Any]:
    return {
        "database": {
            "async_url": settings_obj.SQLALCHEMY_ASYNC_DATABASE_URI,
            "echo": settings_obj.DATABASE_ECHO,
        },
        "llm": {
            "provider": settings_obj.LLM_PROVIDER,
            "model_name": settings_obj.NON_REASONING_MODEL,
            "api_key": settings_obj.LLM_API_KEY or None,
            "configuration": dict(settings_obj.LLM_CONFIGURATION),
        },
    }


def build_container(settings_obj: Settings = settings) -> Container:
    """Return a Container whose database and LLM configuration come from ``settings_obj``."""
    container = Container()
    container.app_settings.override(providers.Object(settings_obj))
    container.config.from_dict(_build_config(settings_obj))
    return container
