"""Per-session state store for skill activation.

Each session id owns one JSON record under the cache directory
(`.claude/cache/session-<id>.json` by default). The record tracks files
modified in the session, skills activated and when, and a tool-use counter
that drives periodic cleanup.

Every mutation is a read-modify-write of the whole record followed by an
atomic replace (temp file + os.replace), so readers never see a partial
file. Writers for one session are serialized with an exclusive flock on
`session-<id>.lock`, held from the read to the replace. The lock file is
removed on release; cleanup_old_sessions() deletes any left by a crash.

Session ids are encoded losslessly into file names: letters, digits and
`-` are kept, every other UTF-8 byte becomes `_xx` (lowercase hex).
"""

import fcntl
import json
import logging
import os
import re
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path(".claude") / "cache"
SESSION_PREFIX = "session-"
TEMP_PREFIX = ".session-"
TEMP_SUFFIX = ".tmp"
LOCK_SUFFIX = ".lock"

DEFAULT_RETENTION_MS = 24 * 60 * 60 * 1000
ORPHAN_TEMP_MS = 5 * 60 * 1000

_SAFE_ID_CHARS = re.compile(r"[A-Za-z0-9-]")


def encode_session_id(session_id: str) -> str:
    """File-name-safe, collision-free form of a session id ("default" if empty)."""
    if not session_id:
        return "default"
    return "".join(
        c if _SAFE_ID_CHARS.fullmatch(c) else "".join(f"_{b:02x}" for b in c.encode("utf-8"))
        for c in session_id
    )


def _append_unique(values: tuple[str, ...], value: str) -> tuple[str, ...]:
    if value in values:
        return values
    return values + (value,)


@dataclass(frozen=True)
class SessionData:
    """Snapshot of one session's record.

    Snapshots are never mutated in place; store operations build a new one
    with dataclasses.replace and persist it.
    """

    modified_files: tuple[str, ...] = ()
    active_domains: tuple[str, ...] = ()
    last_activated_skills: dict[str, int] = field(default_factory=dict)
    current_prompt_skills: tuple[str, ...] = ()
    tool_use_count: int = 0
    created_at: int = 0

    @property
    def activated_skills(self) -> tuple[str, ...]:
        """Skills of the current prompt first, then earlier activations."""
        names = self.current_prompt_skills
        for name in self.last_activated_skills:
            names = _append_unique(names, name)
        return names

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the on-disk (camelCase) keys."""
        return {
            "modifiedFiles": list(self.modified_files),
            "activeDomains": list(self.active_domains),
            "lastActivatedSkills": dict(self.last_activated_skills),
            "currentPromptSkills": list(self.current_prompt_skills),
            "toolUseCount": self.tool_use_count,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionData":
        """Build a snapshot from an on-disk record.

        Raises:
            ValueError: If a field has the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError("session record must be an object")

        def str_list(key: str) -> tuple[str, ...]:
            value = data.get(key, [])
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"{key} must be a list of strings")
            return tuple(dict.fromkeys(value))

        activations = data.get("lastActivatedSkills", {})
        if not isinstance(activations, dict):
            raise ValueError("lastActivatedSkills must be an object")
        last_activated: dict[str, int] = {}
        for name, stamp in activations.items():
            if isinstance(stamp, bool) or not isinstance(stamp, (int, float)):
                raise ValueError(f"invalid activation timestamp for {name!r}")
            last_activated[str(name)] = int(stamp)

        count = data.get("toolUseCount", 0)
        created = data.get("createdAt", 0)
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError("toolUseCount must be an integer")
        if isinstance(created, bool) or not isinstance(created, (int, float)):
            raise ValueError("createdAt must be a number")

        return cls(
            modified_files=str_list("modifiedFiles"),
            active_domains=str_list("activeDomains"),
            last_activated_skills=last_activated,
            current_prompt_skills=str_list("currentPromptSkills"),
            tool_use_count=count,
            created_at=int(created),
        )


class SessionStateStore:
    """Reads and writes session records under a cache directory."""

    def __init__(
        self,
        project_root: Union[str, Path],
        cache_directory: Union[str, Path] = DEFAULT_CACHE_DIR,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            project_root: Project directory
            cache_directory: Cache directory, relative to the project unless absolute
            clock: Source of the current time in seconds (time.time by default)
        """
        self.project_root = Path(project_root)
        cache = Path(cache_directory)
        self.cache_dir = cache if cache.is_absolute() else self.project_root / cache
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def session_path(self, session_id: str) -> Path:
        return self.cache_dir / f"{SESSION_PREFIX}{encode_session_id(session_id)}.json"

    def lock_path(self, session_id: str) -> Path:
        return self.session_path(session_id).with_suffix(LOCK_SUFFIX)

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self, session_id: str) -> SessionData:
        """Load a session snapshot.

        A missing, unreadable or corrupt record yields a fresh session.
        """
        path = self.session_path(session_id)
        if not path.exists():
            return SessionData(created_at=self.now_ms())

        try:
            with open(path, encoding="utf-8") as f:
                return SessionData.from_dict(json.load(f))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
            logger.warning("Session record %s unreadable, starting fresh: %s", path.name, e)
            return SessionData(created_at=self.now_ms())

    def save(self, session_id: str, data: SessionData) -> bool:
        """Atomically write a session snapshot.

        Returns:
            True if the record was written
        """
        path = self.session_path(session_id)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX)
        except OSError as e:
            logger.warning("Cannot write session record %s: %s", path.name, e)
            return False

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
            return True
        except OSError as e:
            logger.warning("Failed to save session record %s: %s", path.name, e)
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False

    @contextmanager
    def _locked(self, session_id: str) -> Iterator[None]:
        """Hold the session's exclusive lock for the duration of the block.

        If the lock cannot be taken (e.g. the cache directory is not
        writable) the block runs unlocked; the save will fail the same way.
        """
        path = self.lock_path(session_id)
        fd = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd = self._acquire_lock(path)
        except OSError as e:
            logger.warning("Cannot lock session record %s: %s", path.name, e)

        try:
            yield
        finally:
            if fd is not None:
                try:
                    path.unlink()
                except OSError as e:
                    logger.debug("Could not remove %s: %s", path.name, e)
                fcntl.flock(fd, fcntl.LOCK_UN)
                os.close(fd)

    @staticmethod
    def _acquire_lock(path: Path) -> int:
        """Open and flock the lock file, retrying if a releasing holder unlinked it."""
        while True:
            fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
                if os.fstat(fd).st_ino == os.stat(path).st_ino:
                    return fd
            except FileNotFoundError:
                pass
            except OSError:
                os.close(fd)
                raise
            os.close(fd)

    def update(self, session_id: str, mutate: Callable[[SessionData], SessionData]) -> SessionData:
        """Run one locked read-modify-write cycle and return the new snapshot."""
        with self._locked(session_id):
            current = self.load(session_id)
            updated = mutate(current)
            if updated != current or not self.session_path(session_id).exists():
                self.save(session_id, updated)
            return updated

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_modified_file(self, session_id: str, file_path: str) -> None:
        """Track a modified file (no-op if already tracked)."""
        self.update(
            session_id,
            lambda s: replace(s, modified_files=_append_unique(s.modified_files, file_path)),
        )

    def add_active_domain(self, session_id: str, domain: str) -> None:
        self.update(
            session_id,
            lambda s: replace(s, active_domains=_append_unique(s.active_domains, domain)),
        )

    def record_skill_activation(self, session_id: str, skill_name: str) -> None:
        """Stamp a skill as activated now and add it to the current prompt."""
        stamp = self.now_ms()

        def mutate(s: SessionData) -> SessionData:
            activations = dict(s.last_activated_skills)
            activations[skill_name] = stamp
            return replace(
                s,
                last_activated_skills=activations,
                current_prompt_skills=_append_unique(s.current_prompt_skills, skill_name),
            )

        self.update(session_id, mutate)

    def clear_current_prompt_skills(self, session_id: str) -> None:
        self.update(session_id, lambda s: replace(s, current_prompt_skills=()))

    def increment_tool_use_count(self, session_id: str) -> int:
        """Increment the tool-use counter.

        Returns:
            The new count
        """
        updated = self.update(session_id, lambda s: replace(s, tool_use_count=s.tool_use_count + 1))
        return updated.tool_use_count

    def prune_stale_activations(self, session_id: str, max_age_ms: int) -> int:
        """Drop activation stamps older than `max_age_ms`.

        Returns:
            Number of stamps removed
        """
        cutoff = self.now_ms() - max_age_ms
        removed = 0

        def mutate(s: SessionData) -> SessionData:
            nonlocal removed
            kept = {name: ts for name, ts in s.last_activated_skills.items() if ts >= cutoff}
            removed = len(s.last_activated_skills) - len(kept)
            return replace(s, last_activated_skills=kept)

        self.update(session_id, mutate)
        if removed:
            logger.debug("Pruned %d stale activations from session %s", removed, session_id)
        return removed

    # =========================================================================
    # Queries
    # =========================================================================

    def is_recently_activated(self, session_id: str, skill_name: str, window_ms: int) -> bool:
        """True if the skill was activated less than `window_ms` ago."""
        stamp = self.load(session_id).last_activated_skills.get(skill_name)
        return stamp is not None and self.now_ms() - stamp < window_ms

    def get_modified_files(self, session_id: str) -> list[str]:
        return list(self.load(session_id).modified_files)

    def get_active_domains(self, session_id: str) -> list[str]:
        return list(self.load(session_id).active_domains)

    def get_activated_skills(self, session_id: str) -> list[str]:
        return list(self.load(session_id).activated_skills)

    def get_tool_use_count(self, session_id: str) -> int:
        return self.load(session_id).tool_use_count

    # =========================================================================
    # Garbage collection
    # =========================================================================

    def cleanup_old_sessions(self, max_age_ms: Optional[int] = None, orphan_age_ms: int = ORPHAN_TEMP_MS) -> int:
        """Delete session records not modified within the retention window.

        Also removes temp and lock files left behind by interrupted writes.

        Args:
            max_age_ms: Retention window (defaults to 24 hours)
            orphan_age_ms: Age after which leftover temp and lock files are removed

        Returns:
            Number of session records removed
        """
        if max_age_ms is None:
            max_age_ms = DEFAULT_RETENTION_MS
        if not self.cache_dir.is_dir():
            return 0

        now = self.now_ms()
        removed = 0

        for path in self.cache_dir.glob(f"{SESSION_PREFIX}*.json"):
            if self._remove_if_older(path, now, max_age_ms):
                removed += 1

        for path in self.cache_dir.glob(f"{TEMP_PREFIX}*{TEMP_SUFFIX}"):
            self._remove_if_older(path, now, orphan_age_ms)

        for path in self.cache_dir.glob(f"{SESSION_PREFIX}*{LOCK_SUFFIX}"):
            self._remove_if_older(path, now, orphan_age_ms)

        if removed:
            logger.info("Removed %d expired session records from %s", removed, self.cache_dir)
        return removed

    def _remove_if_older(self, path: Path, now: int, max_age_ms: int) -> bool:
        try:
            age_ms = now - int(path.stat().st_mtime * 1000)
            if age_ms > max_age_ms:
                path.unlink()
                return True
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)
        return False
