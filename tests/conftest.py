import json
from urllib.parse import parse_qs

import httpx
import pytest

from chat_relay.core.config import RelayConfig

WEBHOOK_URL = "https://hook.test/first-contact"
TRIGGER_URL = "https://agents.test/latest/agents/trigger"
KNOWLEDGE_URL = "https://agents.test/latest/knowledge/list"


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeUpstream:
    """Routes requests by URL to queued responses and records what was sent."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.webhook: list[httpx.Response] = []
        self.trigger: list[httpx.Response] = []
        self.knowledge: list = []  # httpx.Response or Exception to raise

    @staticmethod
    def _next(queue):
        # The last queued item repeats forever
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, httpx.Response):
            return httpx.Response(item.status_code, headers=item.headers, content=item.content)
        return item

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == WEBHOOK_URL:
            return self._next(self.webhook)
        if url == TRIGGER_URL:
            return self._next(self.trigger)
        if url == KNOWLEDGE_URL:
            item = self._next(self.knowledge)
            if isinstance(item, Exception):
                raise item
            return item
        return httpx.Response(404)

    def sent_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def knowledge_entry(doc_id: str, role: str, content: str) -> dict:
    return {"document_id": doc_id, "data": {"message": {"role": role, "content": content}}}


def knowledge_page(*entries: dict) -> httpx.Response:
    return httpx.Response(200, json={"results": list(entries)})


def form_fields(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def json_body(request: httpx.Request):
    return json.loads(request.content)


@pytest.fixture
def config() -> RelayConfig:
    return RelayConfig(
        webhook_url=WEBHOOK_URL,
        trigger_url=TRIGGER_URL,
        knowledge_url=KNOWLEDGE_URL,
        agent_id="agent-123",
        api_key="test-key",
    )


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
