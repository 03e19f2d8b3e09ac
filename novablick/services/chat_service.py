import logging
from typing import AsyncIterator, Optional, Protocol, Sequence

from pydantic import BaseModel

from novablick.errors.application_errors import InvalidRequest, ResourceNotFound
from novablick.orchestrator.agents.supervisor import DataAnalystOrchestrator
from novablick.orchestrator.contracts import ChatRequest


class DatasetLookup(Protocol):
    async def missing_ids(self, dataset_ids: Sequence[str]) -> list[str]: ...


class ChatService:
    """Validates an inbound chat turn and hands it to the orchestrator."""

    def __init__(
        self,
        orchestrator: DataAnalystOrchestrator,
        datasets: DatasetLookup,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._datasets = datasets
        self.logger = logger or logging.getLogger(__name__)

    async def start_chat(self, request: ChatRequest) -> AsyncIterator[BaseModel]:
        if request.messages[-1].role != "user":
            raise InvalidRequest("The last message of a chat request must come from the user.")

        dataset_ids = [dataset.id for dataset in request.datasets]
        if len(set(dataset_ids)) != len(dataset_ids):
            raise InvalidRequest("Each dataset may only be selected once.")

        missing = await self._datasets.missing_ids(dataset_ids) if dataset_ids else []
        if missing:
            raise ResourceNotFound(f"Datasets not found: {', '.join(missing)}")

        self.logger.info("Starting chat turn with %d messages and %d datasets", len(request.messages), len(dataset_ids))
        return self._orchestrator.stream(request)
