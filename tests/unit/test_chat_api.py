import json
import os

os.environ.setdefault("OTEL_TRACES_EXPORTER", "none")
os.environ.setdefault("OTEL_LOGS_EXPORTER", "none")
os.environ.setdefault("LLM_API_KEY", "sk-test")

from dependency_injector import providers
from fastapi.testclient import TestClient

from novablick.main import app, container
from novablick.orchestrator.contracts import ErrorEvent, TextDeltaEvent, TextEndEvent, TextStartEvent
from novablick.services.chat_service import ChatService

CHAT_BODY = {
    "messages": [{"role": "user", "content": "hi"}],
    "datasets": [{"id": "ds-1", "name": "Sales"}],
}


class FakeOrchestrator:
    def __init__(self, events):
        self.events = events
        self.requests = []

    async def stream(self, request):
        self.requests.append(request)
        for event in self.events:
            yield event


class FakeLookup:
    def __init__(self, missing=()):
        self.missing = list(missing)

    async def missing_ids(self, dataset_ids):
        return [dataset_id for dataset_id in dataset_ids if dataset_id in self.missing]


def _client_with(service: ChatService) -> TestClient:
    container.chat_service.override(providers.Object(service))
    return TestClient(app)


def _sse_payloads(body: str) -> list[str]:
    return [frame[len("data: "):] for frame in body.split("\n\n") if frame.startswith("data: ")]


def test_health() -> None:
    client = TestClient(app)
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json().get("status") == "ok"


def test_chat_streams_events_as_server_sent_events() -> None:
    orchestrator = FakeOrchestrator(
        [TextStartEvent(id="t1"), TextDeltaEvent(id="t1", delta="Hello"), TextEndEvent(id="t1")]
    )
    client = _client_with(ChatService(orchestrator=orchestrator, datasets=FakeLookup()))
    try:
        response = client.post("/api/v1/chat", json=CHAT_BODY)
    finally:
        container.chat_service.reset_override()

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    payloads = _sse_payloads(response.text)
    assert payloads[-1] == "[DONE]"
    assert [json.loads(payload) for payload in payloads[:-1]] == [
        {"type": "text-start", "id": "t1"},
        {"type": "text-delta", "id": "t1", "delta": "Hello"},
        {"type": "text-end", "id": "t1"},
    ]
    assert orchestrator.requests[0].datasets[0].id == "ds-1"


def test_error_event_is_streamed_before_done() -> None:
    orchestrator = FakeOrchestrator([ErrorEvent(error_text="planning decision: quota exceeded")])
    client = _client_with(ChatService(orchestrator=orchestrator, datasets=FakeLookup()))
    try:
        response = client.post("/api/v1/chat", json=CHAT_BODY)
    finally:
        container.chat_service.reset_override()

    payloads = _sse_payloads(response.text)
    assert json.loads(payloads[0]) == {"type": "error", "errorText": "planning decision: quota exceeded"}
    assert payloads[1] == "[DONE]"


def test_unknown_dataset_returns_404() -> None:
    client = _client_with(ChatService(orchestrator=FakeOrchestrator([]), datasets=FakeLookup(missing=["ds-1"])))
    try:
        response = client.post("/api/v1/chat", json=CHAT_BODY)
    finally:
        container.chat_service.reset_override()

    assert response.status_code == 404
    assert response.json() == {"error": "ResourceNotFound", "message": "Datasets not found: ds-1"}


def test_last_message_must_come_from_the_user() -> None:
    body = {"messages": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "Hello!"}]}
    client = _client_with(ChatService(orchestrator=FakeOrchestrator([]), datasets=FakeLookup()))
    try:
        response = client.post("/api/v1/chat", json=body)
    finally:
        container.chat_service.reset_override()

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRequest"


def test_empty_message_list_is_rejected_by_validation() -> None:
    client = _client_with(ChatService(orchestrator=FakeOrchestrator([]), datasets=FakeLookup()))
    try:
        response = client.post("/api/v1/chat", json={"messages": []})
    finally:
        container.chat_service.reset_override()

    assert response.status_code == 422
