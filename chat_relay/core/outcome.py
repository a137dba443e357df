"""Result of one upstream submission: success, degraded (usable reply, but not a real answer) or failure."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILURE = "failure"


@dataclass(frozen=True)
class Reply:
    message: str
    conversation_id: str = ""


@dataclass(frozen=True)
class Outcome:
    status: OutcomeStatus
    reply: Optional[Reply] = None
    reason: Optional[str] = None
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls, reply: Reply) -> "Outcome":
        return cls(OutcomeStatus.SUCCESS, reply=reply)

    @classmethod
    def degraded(cls, reply: Reply, reason: str) -> "Outcome":
        return cls(OutcomeStatus.DEGRADED, reply=reply, reason=reason)

    @classmethod
    def failure(cls, cause: BaseException) -> "Outcome":
        return cls(OutcomeStatus.FAILURE, reason=str(cause) or type(cause).__name__, cause=cause)

    @property
    def ok(self) -> bool:
        """True when there is a reply to show (success or degraded)."""
        return self.status is not OutcomeStatus.FAILURE
