"""Session-scoped state: modified files, activation history, cooldowns."""

from .state import DEFAULT_RETENTION_MS, SessionData, SessionStateStore

__all__ = [
    "DEFAULT_RETENTION_MS",
    "SessionData",
    "SessionStateStore",
]
