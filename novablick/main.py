import inspect
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.routing import APIRoute
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.middleware.cors import CORSMiddleware

from novablick.config import Settings, settings
from novablick.db import initialize_database
from novablick.ioc import Container, build_container
from novablick.middleware import ErrorMiddleware
from novablick.routers import api_router_v1
from novablick.utils.logger import setup_logging

load_dotenv()
logger = logging.getLogger(__name__)


def _operation_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}" if route.tags else route.name


def _lifespan_for(container: Container, app_settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = container.async_engine()
        if app_settings.ENVIRONMENT == "local":
            logger.info("Creating dataset tables at %s", app_settings.SQLALCHEMY_ASYNC_DATABASE_URI)
            await initialize_database(engine)
        logger.info(
            "Chat engine ready: provider=%s reasoning=%s non_reasoning=%s",
            app_settings.LLM_PROVIDER,
            app_settings.REASONING_MODEL,
            app_settings.NON_REASONING_MODEL,
        )
        app.state.container = container
        try:
            yield
        finally:
            pending = container.shutdown_resources()
            if inspect.isawaitable(pending):
                await pending
            await engine.dispose()

    return lifespan


def create_app(container: Container, app_settings: Settings = settings) -> FastAPI:
    """Assemble the HTTP surface around an already-built container."""
    application = FastAPI(
        title=app_settings.PROJECT_NAME,
        generate_unique_id_function=_operation_id,
        lifespan=_lifespan_for(container, app_settings),
    )
    application.add_middleware(ErrorMiddleware)
    if app_settings.CORS_ENABLED:
        # The chat stream is read with fetch(), so only JSON bodies need allowing.
        application.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.CORS_ORIGINS,
            allow_methods=["GET", "POST"],
            allow_headers=["Content-Type"],
        )
    application.include_router(api_router_v1, prefix=app_settings.API_V1_STR)
    FastAPIInstrumentor.instrument_app(application)
    return application


setup_logging(service_name=settings.PROJECT_NAME)
container = build_container(settings)
app = create_app(container)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "novablick.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "local",
    )
