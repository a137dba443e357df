"""
Reply normalization for upstream payloads of unknown shape.

Rules are data: an ordered tuple of (name, applies, extract). The first rule that applies and extracts a
non-blank string wins. Adding a new upstream shape means adding a rule, not another branch.
Everything here is pure: parse the body once, then inspect it as often as needed.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER = "No response"

# Roles that count as the assistant side of a conversation (the agent backend uses "agent")
ASSISTANT_ROLES = frozenset({"agent", "assistant"})

# Direct reply fields, highest priority first. "respuesta" is what the first-contact webhook sends.
REPLY_FIELDS: tuple[tuple[str, ...], ...] = (
    ("respuesta",),
    ("message",),
    ("response",),
    ("text",),
    ("answer",),
    ("output", "answer"),
)
ITEM_ARRAY_KEYS = ("results", "data", "items")
ITEM_FALLBACK_KEYS = ("answer", "respuesta", "response", "text", "content", "value")
GENERIC_KEYS = ("output", "content", "value", "reply")
CONVERSATION_ID_KEYS = ("conversation_id", "conversationId", "conv_id")


@dataclass(frozen=True)
class NormalizedReply:
    message: str
    conversation_id: str = ""
    rule: Optional[str] = None  # None: nothing matched, message is the placeholder

    @property
    def matched(self) -> bool:
        return self.rule is not None


@dataclass(frozen=True)
class Rule:
    name: str
    applies: Callable[[Any], bool]
    extract: Callable[[Any], Optional[str]]


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _dig(value: Any, path: tuple[str, ...]) -> Any:
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _is_object(value: Any) -> bool:
    return isinstance(value, dict)


def _role(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get("role"), str):
        return payload["role"].strip().lower()
    return None


def agent_message_content(item: Any) -> Optional[str]:
    """Content of item.data.message when it is tagged with an assistant role and non-blank; else None."""
    payload = _dig(item, ("data", "message"))
    if _role(payload) not in ASSISTANT_ROLES:
        return None
    return _text(payload.get("content"))


def is_agent_entry(item: Any) -> bool:
    """True when item.data.message carries an assistant role, whatever its content."""
    return _role(_dig(item, ("data", "message"))) in ASSISTANT_ROLES


def extract_item_text(item: Any) -> Optional[str]:
    """
    Text of one list entry. An assistant-role data.message wins; user-role entries are skipped.
    Entries without a message payload may still carry text under a fallback key.
    """
    if isinstance(item, str):
        return _text(item)
    if not isinstance(item, dict):
        return None
    content = agent_message_content(item)
    if content:
        return content
    if _role(_dig(item, ("data", "message"))) is not None:
        # Tagged with a non-assistant role (or blank assistant content): keep scanning
        return None
    role = _role(item)
    if role is not None and role not in ASSISTANT_ROLES:
        return None
    for key in ITEM_FALLBACK_KEYS:
        text = _text(item.get(key))
        if text:
            return text
    return None


def _first_item_text(items: list) -> Optional[str]:
    for item in items:
        text = extract_item_text(item)
        if text:
            return text
    return None


def _raw_text(value: Any) -> Optional[str]:
    """Non-object payloads (string, number, array) are taken as already-final text."""
    if isinstance(value, str):
        return _text(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list) and value:
        return json.dumps(value, ensure_ascii=False)
    return None


def _field_rule(path: tuple[str, ...]) -> Rule:
    return Rule(".".join(path), _is_object, lambda v: _text(_dig(v, path)))


def _items_rule(key: str) -> Rule:
    return Rule(
        f"{key}[]",
        lambda v: isinstance(v, dict) and isinstance(v.get(key), list),
        lambda v: _first_item_text(v[key]),
    )


RULES: tuple[Rule, ...] = (
    *(_field_rule(path) for path in REPLY_FIELDS),
    *(_items_rule(key) for key in ITEM_ARRAY_KEYS),
    *(_field_rule((key,)) for key in GENERIC_KEYS),
    Rule("raw", lambda v: not isinstance(v, dict), _raw_text),
)


def extract_conversation_id(value: Any) -> str:
    if not isinstance(value, dict):
        return ""
    for key in CONVERSATION_ID_KEYS:
        found = value.get(key)
        if isinstance(found, bool):
            continue
        if isinstance(found, (int, str)) and str(found).strip():
            return str(found).strip()
    return ""


def extract_reply(value: Any, placeholder: str = PLACEHOLDER, rules: tuple[Rule, ...] = RULES) -> NormalizedReply:
    """Reply text and conversation id from a parsed payload. Never raises; unmatched input yields the placeholder."""
    conversation_id = extract_conversation_id(value)
    for rule in rules:
        if not rule.applies(value):
            continue
        text = rule.extract(value)
        if text:
            logger.debug("Reply found via rule %r", rule.name)
            return NormalizedReply(text, conversation_id, rule.name)
    if isinstance(value, dict):
        logger.info("No reply field matched; keys=%s", sorted(value.keys())[:20])
    else:
        logger.info("No reply field matched; payload type=%s", type(value).__name__)
    return NormalizedReply(placeholder, conversation_id, None)


def parse_body(body: str) -> tuple[Any, bool]:
    """Parse a response body once. Returns (value, True) for JSON, (raw text, False) otherwise."""
    try:
        return json.loads(body), True
    except (ValueError, TypeError):
        return body, False
