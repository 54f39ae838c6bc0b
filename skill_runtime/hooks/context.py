"""Shared setup for hook invocations.

Every hook reads one JSON event from stdin, resolves the project
directory, loads the rule set and opens the session store. HookContext
bundles those so the per-event handlers stay small.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TextIO

from ..config import Settings, settings as default_settings
from ..logging_setup import DEBUG_LOG_NAME, enable_debug_log
from ..matching.matcher import RuleMatcher
from ..rules.loader import ConfigLoader
from ..rules.models import RuleSet
from ..session.state import SessionStateStore

logger = logging.getLogger(__name__)


@dataclass
class HookContext:
    """Per-invocation collaborators for a hook handler."""

    event: dict[str, Any]
    session_id: str
    project_dir: Path
    loader: ConfigLoader
    rule_set: RuleSet
    store: SessionStateStore
    settings: Settings = field(default_factory=lambda: default_settings)

    def matcher(self) -> RuleMatcher:
        return RuleMatcher(self.rule_set, self.project_dir, self.settings.max_content_bytes)


def init_hook_context(event: dict[str, Any], settings: Optional[Settings] = None) -> HookContext:
    """Build the context for one hook event.

    Args:
        event: Parsed hook input
        settings: Runtime settings (defaults to the global instance)

    Returns:
        HookContext with the rule set loaded and the session store ready
    """
    settings = settings or default_settings
    project_dir = settings.resolve_project_dir(event.get("working_directory") or event.get("cwd"))
    loader = ConfigLoader(project_dir)
    rule_set = loader.load()
    store = SessionStateStore(project_dir, rule_set.settings.cache_directory)

    if settings.debug_log or rule_set.settings.enable_debug_logging:
        enable_debug_log(store.cache_dir / DEBUG_LOG_NAME)

    session_id = str(event.get("session_id") or "default")
    logger.debug(
        "Hook context ready: session=%s project=%s skills=%d",
        session_id, project_dir, len(rule_set.skills),
    )
    return HookContext(
        event=event,
        session_id=session_id,
        project_dir=project_dir,
        loader=loader,
        rule_set=rule_set,
        store=store,
        settings=settings,
    )


def read_event(stream: TextIO) -> dict[str, Any]:
    """Read one hook event from a text stream.

    Raises:
        ValueError: If the input is not a JSON object
    """
    raw = stream.read()
    if not raw.strip():
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("hook input must be a JSON object")
    return data


def tool_input_text(tool_input: Any) -> str:
    """Flatten a tool_input payload for pattern matching.

    Shell-style tools carry their command line under `command`; other
    tools are matched against their JSON text.
    """
    if tool_input is None:
        return ""
    if isinstance(tool_input, str):
        return tool_input
    if isinstance(tool_input, dict) and isinstance(tool_input.get("command"), str):
        return tool_input["command"]
    return json.dumps(tool_input, ensure_ascii=False)
