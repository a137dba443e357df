"""Chat orchestration: pick the first-contact or continuation path and build the uniform response."""
import logging
import random
import string
from datetime import datetime, timezone
from typing import Optional

from chat_relay.core.agent_client import AgentClient
from chat_relay.core.config import RelayConfig
from chat_relay.core.errors import ChatProcessingError
from chat_relay.core.outcome import Outcome, OutcomeStatus, Reply
from chat_relay.core.webhook_client import FirstContactClient
from chat_relay.models.schemas import ChatResponse

logger = logging.getLogger(__name__)

USER_ID_ALPHABET = string.ascii_lowercase + string.digits
USER_ID_LENGTH = 24


def generate_user_id(rng: Optional[random.Random] = None) -> str:
    """Anonymous 24-char [a-z0-9] id. Not a secret, so the non-crypto RNG is fine."""
    rng = rng or random
    return "".join(rng.choice(USER_ID_ALPHABET) for _ in range(USER_ID_LENGTH))


class ChatService:
    def __init__(
        self,
        first_contact: FirstContactClient,
        continuation: AgentClient,
        config: RelayConfig,
        rng: Optional[random.Random] = None,
    ):
        self.first_contact = first_contact
        self.continuation = continuation
        self.config = config
        self._rng = rng

    async def handle_message(
        self,
        message: str,
        restaurant_code: Optional[str] = None,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ChatResponse:
        """One chat turn. Raises ChatProcessingError when the chosen backend hard-fails."""
        user_id = user_id if user_id and user_id.strip() else generate_user_id(self._rng)
        restaurant_code = restaurant_code or self.config.default_restaurant_code
        is_first_message = not conversation_id

        if is_first_message:
            logger.info("First message for user %s: first-contact path", user_id)
            path = "first-contact"
            outcome = await self.first_contact.start_conversation(message, restaurant_code, user_id)
        else:
            logger.info("Follow-up in conversation %s: continuation path", conversation_id)
            path = "continuation"
            outcome = await self.continuation.continue_conversation(message, conversation_id)

        reply = self._unwrap(path, outcome)
        return ChatResponse(
            message=reply.message or self.config.no_response_text,
            conversation_id=reply.conversation_id or "",
            user_id=user_id,
            timestamp=datetime.now(timezone.utc),
            is_first_message=is_first_message,
        )

    @staticmethod
    def _unwrap(path: str, outcome: Outcome) -> Reply:
        if not outcome.ok or outcome.reply is None:
            raise ChatProcessingError(path, outcome.reason) from outcome.cause
        if outcome.status is OutcomeStatus.DEGRADED:
            logger.warning("%s path degraded: %s", path, outcome.reason)
        return outcome.reply
