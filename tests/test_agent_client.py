import asyncio

import httpx
import pytest

from chat_relay.core.agent_client import AgentClient, collect_agent_ids, find_new_agent_reply
from chat_relay.core.config import RelayConfig
from chat_relay.core.outcome import OutcomeStatus

from tests.conftest import KNOWLEDGE_URL, TRIGGER_URL, json_body, knowledge_entry, knowledge_page

OLD_REPLY = knowledge_entry("d1", "agent", "Hola, en que te ayudo?")
USER_MSG = knowledge_entry("u2", "user", "Gracias")


def _continue(upstream, config, fake_sleep, message="Gracias", conversation_id="abc123"):
    async def go():
        async with upstream.client() as http:
            client = AgentClient(http, config, sleep=fake_sleep)
            return await client.continue_conversation(message, conversation_id)

    return asyncio.run(go())


def test_finds_new_reply_on_third_attempt(upstream, config, fake_sleep):
    upstream.trigger.append(httpx.Response(200, json={"job_info": {"studio_id": "x"}}))
    upstream.knowledge.extend(
        [
            knowledge_page(OLD_REPLY),  # baseline
            knowledge_page(USER_MSG, OLD_REPLY),
            knowledge_page(USER_MSG, OLD_REPLY),
            knowledge_page(knowledge_entry("d9", "agent", "De nada"), USER_MSG, OLD_REPLY),
        ]
    )

    outcome = _continue(upstream, config, fake_sleep)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.reply.message == "De nada"
    assert outcome.reply.conversation_id == "abc123"
    assert len(upstream.sent_to(KNOWLEDGE_URL)) == 4
    assert fake_sleep.calls == [config.poll_initial_delay_seconds, 0.5, 0.5]


def test_trigger_and_knowledge_payloads(upstream, config, fake_sleep):
    upstream.trigger.append(httpx.Response(200))
    upstream.knowledge.extend([knowledge_page(), knowledge_page(knowledge_entry("d9", "agent", "Listo"))])

    _continue(upstream, config, fake_sleep)

    (trigger,) = upstream.sent_to(TRIGGER_URL)
    assert json_body(trigger) == {
        "message": {"role": "user", "content": "Gracias"},
        "agent_id": "agent-123",
        "conversation_id": "abc123",
    }
    assert trigger.headers["authorization"] == "test-key"
    listing = upstream.sent_to(KNOWLEDGE_URL)[0]
    assert json_body(listing) == {"knowledge_set": "abc123", "page_size": 20, "sort": [{"insert_date_": "desc"}]}
    assert listing.headers["authorization"] == "test-key"


def test_missing_api_key_omits_authorization(upstream, fake_sleep):
    config = RelayConfig(webhook_url="", trigger_url=TRIGGER_URL, knowledge_url=KNOWLEDGE_URL, agent_id="a")
    upstream.trigger.append(httpx.Response(200))
    upstream.knowledge.extend([knowledge_page(), knowledge_page(knowledge_entry("d9", "agent", "Listo"))])

    outcome = _continue(upstream, config, fake_sleep)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert all("authorization" not in r.headers for r in upstream.requests)


def test_conflict_on_trigger_still_polls(upstream, config, fake_sleep):
    upstream.trigger.append(httpx.Response(409, json={"detail": "agent busy"}))
    upstream.knowledge.extend([knowledge_page(OLD_REPLY), knowledge_page(knowledge_entry("d9", "agent", "De nada"))])

    outcome = _continue(upstream, config, fake_sleep)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.reply.message == "De nada"


@pytest.mark.parametrize("status", [400, 401, 500, 503])
def test_other_trigger_errors_are_failures(upstream, config, fake_sleep, status):
    upstream.trigger.append(httpx.Response(status))
    upstream.knowledge.append(knowledge_page())

    outcome = _continue(upstream, config, fake_sleep)

    assert outcome.status is OutcomeStatus.FAILURE
    assert upstream.sent_to(KNOWLEDGE_URL) == []
    assert fake_sleep.calls == []


def test_timeout_when_only_seen_ids_come_back(upstream, config, fake_sleep):
    upstream.trigger.append(httpx.Response(200))
    upstream.knowledge.append(knowledge_page(OLD_REPLY, USER_MSG))

    outcome = _continue(upstream, config, fake_sleep)

    assert outcome.status is OutcomeStatus.DEGRADED
    assert outcome.reason == "timeout"
    assert outcome.reply.message == config.timeout_reply_text
    assert outcome.reply.conversation_id == "abc123"
    assert len(upstream.sent_to(KNOWLEDGE_URL)) == 1 + config.poll_max_attempts
    assert fake_sleep.calls == [1.0] + [0.5] * (config.poll_max_attempts - 1)


def test_baseline_failure_means_empty_filter(upstream, config, fake_sleep):
    upstream.trigger.append(httpx.Response(200))
    upstream.knowledge.extend([httpx.Response(502), knowledge_page(OLD_REPLY)])

    outcome = _continue(upstream, config, fake_sleep)

    # Without a baseline the older reply counts as new
    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.reply.message == OLD_REPLY["data"]["message"]["content"]


def test_failed_poll_attempts_are_misses(upstream, config, fake_sleep):
    upstream.trigger.append(httpx.Response(200))
    upstream.knowledge.extend(
        [
            knowledge_page(OLD_REPLY),
            httpx.ConnectError("boom"),
            httpx.Response(500),
            httpx.Response(200, text="not json"),
            knowledge_page(knowledge_entry("d9", "agent", "De nada"), OLD_REPLY),
        ]
    )

    outcome = _continue(upstream, config, fake_sleep)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.reply.message == "De nada"
    assert len(upstream.sent_to(KNOWLEDGE_URL)) == 5


def test_collect_agent_ids_ignores_user_entries():
    payload = {"results": [OLD_REPLY, USER_MSG, knowledge_entry("d3", "agent", ""), {"document_id": "x"}]}
    assert collect_agent_ids(payload) == {"d1", "d3"}
    assert collect_agent_ids({"unexpected": True}) == set()


def test_find_new_reply_skips_blank_and_seen_entries():
    payload = {
        "results": [
            knowledge_entry("d10", "agent", "   "),
            knowledge_entry("d1", "agent", "old"),
            knowledge_entry("u5", "user", "new but from user"),
            knowledge_entry("d9", "agent", "fresh"),
        ]
    }
    assert find_new_agent_reply(payload, {"d1"}) == "fresh"


def test_find_new_reply_none_when_everything_seen():
    payload = {"results": [knowledge_entry("d1", "agent", "a"), knowledge_entry("d2", "agent", "b")]}
    assert find_new_agent_reply(payload, {"d1", "d2"}) is None
    assert find_new_agent_reply({"results": []}, set()) is None
