"""Application settings from environment."""
import os
from dataclasses import dataclass
from functools import lru_cache

# Raw upstream bodies are logged up to this many characters
LOG_BODY_LIMIT = 2000


@lru_cache
def get_settings() -> "Settings":
    return Settings()


def _float_env(name: str, default: float, low: float, high: float) -> float:
    raw = os.getenv(name, str(default)).strip()
    try:
        return max(low, min(high, float(raw)))
    except ValueError:
        return default


def _int_env(name: str, default: int, low: int, high: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return max(low, min(high, int(raw)))
    except ValueError:
        return default


@dataclass(frozen=True)
class RelayConfig:
    """Snapshot of everything the submitters and the orchestrator need. Built once, injected at construction."""

    webhook_url: str
    trigger_url: str
    knowledge_url: str
    agent_id: str
    api_key: str = ""
    default_restaurant_code: str = "RES-010"
    knowledge_page_size: int = 20
    poll_max_attempts: int = 40
    poll_interval_seconds: float = 0.5
    poll_initial_delay_seconds: float = 1.0
    no_response_text: str = "No response"
    timeout_reply_text: str = "Connection lost. Please try again."

    def auth_headers(self) -> dict[str, str]:
        """Authorization header with the key used verbatim (no Bearer prefix). Empty key -> no header."""
        return {"Authorization": self.api_key} if self.api_key else {}


class Settings:
    """Central config. Load .env in main/run_api before using. Key settings are @property so they read env at access time."""

    # Upstream endpoints
    @property
    def webhook_url(self) -> str:
        return os.getenv(
            "FIRST_CONTACT_WEBHOOK_URL", "https://hook.us2.make.com/fffbdrcbztjwqgvfahq6ksbvzumi996t"
        ).strip()

    @property
    def trigger_url(self) -> str:
        return os.getenv(
            "AGENT_TRIGGER_URL", "https://api-bcbe5a.stack.tryrelevance.com/latest/agents/trigger"
        ).strip()

    @property
    def knowledge_url(self) -> str:
        return os.getenv(
            "KNOWLEDGE_LIST_URL", "https://api-bcbe5a.stack.tryrelevance.com/latest/knowledge/list"
        ).strip()

    @property
    def agent_id(self) -> str:
        return os.getenv("AGENT_ID", "0a764793-61bc-463c-8b15-563207def72e").strip()

    # Sent as-is in the Authorization header of trigger/knowledge calls
    @property
    def api_key(self) -> str:
        return os.getenv("RELEVANCE_API_KEY", "").strip()

    @property
    def default_restaurant_code(self) -> str:
        return os.getenv("DEFAULT_RESTAURANT_CODE", "RES-010").strip() or "RES-010"

    # Polling: 40 x 0.5s after a 1s settle delay is roughly 21s worst case
    @property
    def knowledge_page_size(self) -> int:
        return _int_env("KNOWLEDGE_PAGE_SIZE", 20, 1, 100)

    @property
    def poll_max_attempts(self) -> int:
        return _int_env("POLL_MAX_ATTEMPTS", 40, 1, 200)

    @property
    def poll_interval_seconds(self) -> float:
        return _float_env("POLL_INTERVAL_SECONDS", 0.5, 0.0, 10.0)

    @property
    def poll_initial_delay_seconds(self) -> float:
        return _float_env("POLL_INITIAL_DELAY_SECONDS", 1.0, 0.0, 30.0)

    @property
    def http_timeout_seconds(self) -> float:
        return _float_env("HTTP_TIMEOUT_SECONDS", 30.0, 1.0, 120.0)

    # User-visible fallback texts
    @property
    def no_response_text(self) -> str:
        return os.getenv("NO_RESPONSE_TEXT", "No response").strip() or "No response"

    @property
    def timeout_reply_text(self) -> str:
        default = "Connection lost. Please try again."
        return os.getenv("TIMEOUT_REPLY_TEXT", default).strip() or default

    # API
    @property
    def api_title(self) -> str:
        return os.getenv("API_TITLE", "Chat Relay API").strip()

    @property
    def api_version(self) -> str:
        return os.getenv("API_VERSION", "0.1.0").strip()

    # CORS: comma-separated origins (e.g. http://localhost:5173) or * for all
    @property
    def cors_origins(self) -> list[str]:
        raw = os.getenv("CORS_ORIGINS", "http://localhost:5173").strip()
        if not raw or raw == "*":
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]

    # Preview deployments live on per-branch subdomains
    @property
    def cors_origin_regex(self) -> str | None:
        raw = os.getenv("CORS_ORIGIN_REGEX", r"https://.*\.vercel\.app").strip()
        return raw or None

    def relay_config(self) -> RelayConfig:
        return RelayConfig(
            webhook_url=self.webhook_url,
            trigger_url=self.trigger_url,
            knowledge_url=self.knowledge_url,
            agent_id=self.agent_id,
            api_key=self.api_key,
            default_restaurant_code=self.default_restaurant_code,
            knowledge_page_size=self.knowledge_page_size,
            poll_max_attempts=self.poll_max_attempts,
            poll_interval_seconds=self.poll_interval_seconds,
            poll_initial_delay_seconds=self.poll_initial_delay_seconds,
            no_response_text=self.no_response_text,
            timeout_reply_text=self.timeout_reply_text,
        )
