"""Pattern helpers shared by the loader and the matcher.

Regexes come from user config, so compilation failures are expected and
reported as None instead of raising. Globs follow the usual `**` semantics:
`*` stays within one path segment, `**/` spans zero or more directories.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Optional, Union

logger = logging.getLogger(__name__)


# =============================================================================
# Regular expressions
# =============================================================================

@lru_cache(maxsize=1024)
def compile_pattern(pattern: str, ignore_case: bool = False) -> Optional[re.Pattern]:
    """Compile a config-supplied regex.

    Args:
        pattern: Regular expression source
        ignore_case: Compile with re.IGNORECASE

    Returns:
        Compiled pattern, or None if the source is not a valid regex
    """
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except (re.error, TypeError) as e:
        logger.debug("Skipping invalid regex %r: %s", pattern, e)
        return None


def is_valid_regex(pattern: str) -> bool:
    return compile_pattern(pattern) is not None


def regex_search(pattern: str, text: str, ignore_case: bool = False) -> bool:
    """True if `pattern` is valid and matches anywhere in `text`."""
    compiled = compile_pattern(pattern, ignore_case)
    return compiled is not None and compiled.search(text) is not None


# =============================================================================
# Globs
# =============================================================================

def _translate_glob(glob: str) -> str:
    """Translate a glob into a regex body (no anchors)."""
    out = []
    i, n = 0, len(glob)
    while i < n:
        c = glob[i]
        if c == "*":
            if glob.startswith("**", i):
                if glob.startswith("**/", i):
                    out.append("(?:.*/)?")
                    i += 3
                else:
                    out.append(".*")
                    i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = glob.find("]", i + 2 if glob.startswith("[!", i) or glob.startswith("[]", i) else i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = glob[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end + 1
                continue
        elif c == "{":
            end, parts = _split_braces(glob, i)
            if end == -1:
                out.append(re.escape(c))
            else:
                out.append("(?:" + "|".join(_translate_glob(p) for p in parts) + ")")
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def _split_braces(glob: str, start: int) -> tuple[int, list[str]]:
    """Find the brace group opened at `start`; return (close index, alternatives)."""
    depth = 0
    parts = []
    current = []
    for j in range(start, len(glob)):
        c = glob[j]
        if c == "{":
            depth += 1
            if depth == 1:
                continue
        elif c == "}":
            depth -= 1
            if depth == 0:
                parts.append("".join(current))
                return j, parts
        elif c == "," and depth == 1:
            parts.append("".join(current))
            current = []
            continue
        current.append(c)
    return -1, []


@lru_cache(maxsize=1024)
def compile_glob(glob: str) -> Optional[re.Pattern]:
    """Compile a glob to an anchored regex, or None if it cannot be translated."""
    try:
        return re.compile(r"\A" + _translate_glob(glob) + r"\Z")
    except (re.error, TypeError) as e:
        logger.debug("Skipping invalid glob %r: %s", glob, e)
        return None


def is_valid_glob(glob: str) -> bool:
    return compile_glob(glob) is not None


def glob_match(glob: str, path: str) -> bool:
    """Match a relative path against a glob.

    A glob without a slash also matches the path's basename, so `*.sql`
    selects SQL files in any directory.
    """
    compiled = compile_glob(glob)
    if compiled is None:
        return False
    path = to_posix(path)
    if compiled.match(path):
        return True
    if "/" not in glob:
        return compiled.match(PurePosixPath(path).name) is not None
    return False


# =============================================================================
# Paths
# =============================================================================

def to_posix(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def normalize_file_path(file_path: str, project_dir: Union[str, Path]) -> str:
    """Make a tool-reported path relative to the project directory.

    Paths outside the project are returned unchanged (in posix form).
    """
    candidate = Path(file_path)
    if candidate.is_absolute():
        try:
            return candidate.resolve().relative_to(Path(project_dir).resolve()).as_posix()
        except (ValueError, OSError):
            return candidate.as_posix()
    return to_posix(file_path)


def resolve_file_path(file_path: str, project_dir: Union[str, Path]) -> Path:
    """Absolute on-disk location of a (possibly relative) tracked path."""
    candidate = Path(file_path)
    if candidate.is_absolute():
        return candidate
    return Path(project_dir) / candidate
