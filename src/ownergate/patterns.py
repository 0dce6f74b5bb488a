"""CODEOWNERS path matching.

Normalises a CODEOWNERS pattern and matches it against a repo-relative path:

- brace sets expand first (``*.{js,ts}`` is ``*.js`` or ``*.ts``);
- one leading ``/`` is stripped (the pattern is then repo-root relative);
- a trailing ``/`` expands to ``/**`` (everything beneath the directory);
- a pattern without any ``/`` is tried as given, then with ``**/`` in front,
  so a bare file name matches at any depth.

Segments are matched with ``fnmatch.fnmatchcase`` (``*``, ``?``, ``[...]``,
no special handling of dot-files); ``[^...]`` is read as a negated class like
``[!...]``.  A ``**`` segment spans zero or more directory levels.  Matching
is case-sensitive.
"""

from __future__ import annotations

import fnmatch
from functools import lru_cache

_GLOBSTAR = "**"


@lru_cache(maxsize=1024)
def expand_braces(pattern: str) -> tuple[str, ...]:
    """Expand ``{a,b}`` alternatives, nested sets included.

    A brace pair without a top-level comma, or an unbalanced ``{``, is
    literal text.
    """
    start = pattern.find("{")
    while start != -1:
        depth = 0
        alternatives: list[str] = []
        last = start + 1
        end = -1
        for i in range(start, len(pattern)):
            c = pattern[i]
            if c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    alternatives.append(pattern[last:i])
                    end = i
                    break
            elif c == "," and depth == 1:
                alternatives.append(pattern[last:i])
                last = i + 1
        if end == -1:
            return (pattern,)
        if len(alternatives) > 1:
            prefix, suffix = pattern[:start], pattern[end + 1:]
            expanded: list[str] = []
            for alt in alternatives:
                for candidate in expand_braces(prefix + alt + suffix):
                    if candidate not in expanded:
                        expanded.append(candidate)
            return tuple(expanded)
        start = pattern.find("{", start + 1)
    return (pattern,)


@lru_cache(maxsize=1024)
def _segments(pattern: str) -> tuple[str, ...]:
    parts: list[str] = []
    for part in pattern.split("/"):
        # consecutive globstars collapse into one
        if part == _GLOBSTAR and parts and parts[-1] == _GLOBSTAR:
            continue
        parts.append(part.replace("[^", "[!"))
    return tuple(parts)


def glob_match(path: str, pattern: str) -> bool:
    """Match *path* against an already-normalised glob *pattern*."""
    path_parts = path.split("/")
    pat_parts = _segments(pattern)

    # states: set of path indices reachable after consuming pat_parts[:j]
    states = {0}
    for pat in pat_parts:
        nxt: set[int] = set()
        if pat == _GLOBSTAR:
            lo = min(states)
            nxt.update(range(lo, len(path_parts) + 1))
        else:
            for i in states:
                if i < len(path_parts) and fnmatch.fnmatchcase(path_parts[i], pat):
                    nxt.add(i + 1)
        if not nxt:
            return False
        states = nxt
    return len(path_parts) in states


def normalize_pattern(pattern: str) -> str:
    normalized = pattern[1:] if pattern.startswith("/") else pattern
    if normalized.endswith("/"):
        normalized += _GLOBSTAR
    return normalized


def _matches_one(path: str, pattern: str) -> bool:
    normalized = normalize_pattern(pattern)
    if "/" not in normalized and not normalized.startswith("**/"):
        if glob_match(path, normalized):
            return True
        normalized = "**/" + normalized
    return glob_match(path, normalized)


def matches(path: str, pattern: str) -> bool:
    """True when *path* is covered by the CODEOWNERS *pattern*."""
    return any(_matches_one(path, alt) for alt in expand_braces(pattern))
