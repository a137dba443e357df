"""Errors surfaced at the orchestration boundary."""
from typing import Optional


class ChatProcessingError(Exception):
    """An upstream backend hard-failed; the caller gets a generic processing error."""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        super().__init__(f"{path} path failed: {reason}" if reason else f"{path} path failed")
