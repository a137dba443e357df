"""First-contact path: post a new message to the form-encoded webhook and normalize whatever comes back."""
import logging

import httpx

from chat_relay.core.config import LOG_BODY_LIMIT, RelayConfig
from chat_relay.core.normalizer import extract_reply, parse_body
from chat_relay.core.outcome import Outcome, Reply

logger = logging.getLogger(__name__)


class FirstContactClient:
    def __init__(self, http: httpx.AsyncClient, config: RelayConfig):
        self._http = http
        self._config = config

    async def start_conversation(self, message: str, restaurant_code: str, user_id: str) -> Outcome:
        form = {"mensaje": message, "codigo": restaurant_code, "user_id": user_id}
        logger.info("First contact: codigo=%s user_id=%s", restaurant_code, user_id)
        try:
            resp = await self._http.post(self._config.webhook_url, data=form)
            body = resp.text
            logger.info("First contact status=%s body=%s", resp.status_code, body[:LOG_BODY_LIMIT])
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("First-contact webhook failed: %s", e)
            return Outcome.failure(e)
        return self.parse_response(body)

    def parse_response(self, body: str) -> Outcome:
        placeholder = self._config.no_response_text
        value, is_json = parse_body(body)
        if not is_json:
            # Plain-text webhook replies are shown as-is
            text = body if body.strip() else placeholder
            return Outcome.degraded(Reply(text, ""), "non_json_body")
        if not isinstance(value, (dict, str)):
            # JSON numbers and arrays are relayed as the body text the webhook sent
            return Outcome.degraded(Reply(body.strip() or placeholder, ""), "non_object_body")
        normalized = extract_reply(value, placeholder=placeholder)
        reply = Reply(normalized.message, normalized.conversation_id)
        if not normalized.matched:
            return Outcome.degraded(reply, "no_reply_field")
        logger.info(
            "First contact reply via %s, conversation_id=%r", normalized.rule, normalized.conversation_id
        )
        return Outcome.success(reply)
