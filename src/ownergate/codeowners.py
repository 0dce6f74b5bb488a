"""CODEOWNERS parsing, local loading, and the per-process rule cache."""

from __future__ import annotations

import logging
import os
import re
import threading
from pathlib import Path
from typing import Awaitable, Callable

from ownergate.defaults import RULE_FILE_CANDIDATES
from ownergate.models import OwnershipRule, RuleSet

log = logging.getLogger("ownergate.codeowners")

_WHITESPACE = re.compile(r"\s+")


class RuleFileNotFound(Exception):
    """Raised when no CODEOWNERS file exists at any candidate path."""

    def __init__(self, candidates: tuple[str, ...] | list[str] = RULE_FILE_CANDIDATES,
                 where: str = "") -> None:
        self.candidates = tuple(candidates)
        location = f" {where}" if where else ""
        super().__init__(
            f"CODEOWNERS file not found{location} in any of the expected locations: "
            + ", ".join(self.candidates)
        )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_rules(content: str) -> RuleSet:
    """Parse CODEOWNERS text into an ordered RuleSet.

    Malformed lines are skipped with a warning; parsing never fails.
    """
    rules: list[OwnershipRule] = []
    warnings: list[str] = []

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        parts = _WHITESPACE.split(stripped)
        if len(parts) < 2:
            msg = f"Invalid CODEOWNERS line: {line}"
            log.warning(msg)
            warnings.append(msg)
            continue

        pattern = parts[0]
        owners = [token for token in parts[1:] if token.strip()]

        if not owners:
            msg = f"No owners specified for pattern: {pattern}"
            log.warning(msg)
            warnings.append(msg)
            continue

        rules.append(OwnershipRule(pattern=pattern, owners=tuple(owners)))

    log.info("Parsed %d CODEOWNERS rules", len(rules))
    return RuleSet(rules=tuple(rules), raw_text=content, warnings=tuple(warnings))


def load_rules_from_directory(root: str | Path = ".") -> RuleSet:
    """Read the first CODEOWNERS candidate present under a local checkout."""
    base = Path(root)
    for candidate in RULE_FILE_CANDIDATES:
        p = base / candidate
        if p.is_file():
            log.info("Reading CODEOWNERS from %s", p)
            return parse_rules(p.read_text(encoding="utf-8"))
    raise RuleFileNotFound(where=f"under {base}")


def load_rules_from_file(path: str | Path) -> RuleSet:
    p = Path(path)
    if not p.is_file():
        raise RuleFileNotFound(candidates=[str(p)])
    return parse_rules(p.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

def fresh_rules_forced() -> bool:
    """True when OWNERGATE_FRESH_RULES asks for the rule file on every run."""
    return os.environ.get("OWNERGATE_FRESH_RULES", "0") == "1"


class RuleCache:
    """Parsed RuleSets keyed by rule-file identity (e.g. ``owner/repo@sha``).

    Each key is loaded and parsed at most once; the stored RuleSet is
    immutable.  ``invalidate`` drops entries when a fresh read is needed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RuleSet] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> RuleSet | None:
        with self._lock:
            return self._entries.get(key)

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[str]],
        *,
        fresh: bool = False,
    ) -> RuleSet:
        """Return the cached RuleSet for *key*, awaiting *loader* for the raw
        text on a miss.  ``fresh=True`` always reloads and replaces the entry.

        Concurrent misses may both load; the first stored entry wins.
        """
        if not fresh:
            cached = self.get(key)
            if cached is not None:
                log.info("Using cached CODEOWNERS data for %s", key)
                return cached

        parsed = parse_rules(await loader())
        with self._lock:
            if fresh:
                self._entries[key] = parsed
                return parsed
            return self._entries.setdefault(key, parsed)

    def put(self, key: str, text: str) -> RuleSet:
        parsed = parse_rules(text)
        with self._lock:
            return self._entries.setdefault(key, parsed)

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
