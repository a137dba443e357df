"""
Continuation path: trigger the agent for an existing conversation, then poll the knowledge list until a reply
shows up that was not there before the trigger.

Steps, all sequential within one turn:
1. trigger (409 means the agent is mid-turn; keep going)
2. baseline snapshot of assistant document ids (failure -> empty baseline)
3. settle delay, then poll newest-first for the first unseen, non-blank assistant entry
"""
import asyncio
import logging
from typing import Any, Optional

import httpx

from chat_relay.core.config import LOG_BODY_LIMIT, RelayConfig
from chat_relay.core.normalizer import agent_message_content, is_agent_entry
from chat_relay.core.outcome import Outcome, Reply
from chat_relay.core.polling import SleepFunc, poll_until

logger = logging.getLogger(__name__)


def _document_id(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    doc_id = item.get("document_id")
    if isinstance(doc_id, str) and doc_id.strip():
        return doc_id
    return None


def _results(payload: Any) -> list:
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        return payload["results"]
    return []


def collect_agent_ids(payload: Any) -> set[str]:
    """Document ids of every assistant-authored entry in a knowledge list response."""
    ids = set()
    for item in _results(payload):
        doc_id = _document_id(item)
        if doc_id and is_agent_entry(item):
            ids.add(doc_id)
    return ids


def find_new_agent_reply(payload: Any, seen_ids: set[str]) -> Optional[str]:
    """
    First qualifying reply scanning results in order (the list is sorted newest first):
    assistant-authored, document id not in seen_ids, non-blank content. Blank or seen entries are skipped.
    """
    for item in _results(payload):
        if not is_agent_entry(item):
            continue
        doc_id = _document_id(item)
        if not doc_id:
            continue
        if doc_id in seen_ids:
            logger.debug("Skipping reply %s: present before trigger", doc_id)
            continue
        text = agent_message_content(item)
        if text:
            logger.info("New agent reply %s", doc_id)
            return text
        logger.debug("Skipping reply %s: blank content", doc_id)
    return None


class AgentClient:
    def __init__(self, http: httpx.AsyncClient, config: RelayConfig, sleep: SleepFunc = asyncio.sleep):
        self._http = http
        self._config = config
        self._sleep = sleep

    async def continue_conversation(self, message: str, conversation_id: str) -> Outcome:
        try:
            await self.trigger(message, conversation_id)
        except httpx.HTTPError as e:
            logger.error("Agent trigger failed for conversation %s: %s", conversation_id, e)
            return Outcome.failure(e)

        baseline = await self.snapshot_agent_ids(conversation_id)
        logger.info("Baseline: %d existing agent message(s)", len(baseline))

        async def attempt(n: int) -> Optional[str]:
            payload = await self.list_knowledge(conversation_id, log_body=(n == 1 or n % 5 == 0))
            return find_new_agent_reply(payload, baseline)

        cfg = self._config
        result = await poll_until(
            attempt,
            lambda text: text is not None,
            interval=cfg.poll_interval_seconds,
            max_attempts=cfg.poll_max_attempts,
            initial_delay=cfg.poll_initial_delay_seconds,
            sleep=self._sleep,
            label="knowledge poll",
        )
        if not result.found:
            logger.warning(
                "No new agent reply for conversation %s after %d attempts", conversation_id, result.attempts
            )
            return Outcome.degraded(Reply(cfg.timeout_reply_text, conversation_id), "timeout")
        return Outcome.success(Reply(result.value, conversation_id))

    async def trigger(self, message: str, conversation_id: str) -> None:
        """Start an agent turn. Raises httpx.HTTPStatusError on any non-2xx except 409."""
        payload = {
            "message": {"role": "user", "content": message},
            "agent_id": self._config.agent_id,
            "conversation_id": conversation_id,
        }
        resp = await self._http.post(self._config.trigger_url, json=payload, headers=self._config.auth_headers())
        logger.info("Agent trigger status=%s body=%s", resp.status_code, resp.text[:LOG_BODY_LIMIT])
        if resp.status_code == httpx.codes.CONFLICT:
            logger.warning("Agent busy (409) on conversation %s; polling anyway", conversation_id)
            return
        resp.raise_for_status()

    async def list_knowledge(self, conversation_id: str, log_body: bool = False) -> Any:
        payload = {
            "knowledge_set": conversation_id,
            "page_size": self._config.knowledge_page_size,
            "sort": [{"insert_date_": "desc"}],
        }
        resp = await self._http.post(self._config.knowledge_url, json=payload, headers=self._config.auth_headers())
        if log_body:
            logger.info("Knowledge list status=%s body=%s", resp.status_code, resp.text[:LOG_BODY_LIMIT])
        resp.raise_for_status()
        return resp.json()

    async def snapshot_agent_ids(self, conversation_id: str) -> set[str]:
        """Agent document ids already present. Any failure yields an empty set."""
        try:
            return collect_agent_ids(await self.list_knowledge(conversation_id))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Baseline snapshot failed for %s, continuing without filter: %s", conversation_id, e)
            return set()
