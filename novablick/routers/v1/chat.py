import json
from typing import AsyncIterator

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from novablick.ioc import Container
from novablick.orchestrator.contracts import ChatRequest, dump_event
from novablick.services.chat_service import ChatService

router = APIRouter(prefix="/chat", tags=["chat"])

DONE_SENTINEL = "[DONE]"


async def encode_sse(events: AsyncIterator[BaseModel]) -> AsyncIterator[str]:
    async for event in events:
        yield f"data: {json.dumps(dump_event(event))}\n\n"
    yield f"data: {DONE_SENTINEL}\n\n"


@router.post("")
@inject
async def chat(
    request: ChatRequest,
    chat_service: ChatService = Depends(Provide[Container.chat_service]),
) -> StreamingResponse:
    events = await chat_service.start_chat(request)
    return StreamingResponse(
        encode_sse(events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
