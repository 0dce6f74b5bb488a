"""File path -> owner resolution over a parsed CODEOWNERS RuleSet.

The last rule in the file that matches a path wins; there is no notion of
pattern specificity beyond declaration order.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from ownergate.defaults import LOG_FILE_PREVIEW, SUMMARY_TOP_OWNERS
from ownergate.models import OwnerRequirement, RuleSet
from ownergate.patterns import matches

log = logging.getLogger("ownergate.ownership")


def owners_for(file_path: str, rules: RuleSet) -> list[str]:
    """Owners of the last rule matching *file_path*, or ``[]``."""
    for rule in reversed(rules.rules):
        if matches(file_path, rule.pattern):
            return list(rule.owners)
    return []


def group_by_owner(paths: Iterable[str], rules: RuleSet) -> dict[str, list[str]]:
    """Map each owner handle to the paths it owns (first-seen order)."""
    mapping: dict[str, list[str]] = {}
    seen: dict[str, set[str]] = {}
    for path in paths:
        for owner in owners_for(path, rules):
            owned = seen.setdefault(owner, set())
            if path not in owned:
                owned.add(path)
                mapping.setdefault(owner, []).append(path)
    return mapping


def build_requirements(mapping: Mapping[str, list[str]]) -> list[OwnerRequirement]:
    """One requirement per owner group, sorted by handle for stable output."""
    requirements = [
        OwnerRequirement(owner=owner, files=list(files))
        for owner, files in mapping.items()
        if files
    ]
    requirements.sort(key=lambda r: (r.owner.lower(), r.owner))
    if requirements:
        log.info("Found %d owner groups that need to review changes", len(requirements))
        for req in requirements:
            log.info("  %s: %d files", req.owner, len(req.files))
    return requirements


def find_orphans(all_paths: Iterable[str], mapping: Mapping[str, list[str]]) -> list[str]:
    """Changed files that no owner group covers, in input order."""
    owned = {f for files in mapping.values() for f in files}
    orphans = [p for p in all_paths if p not in owned]

    if orphans:
        log.warning("Found %d files with no code owners", len(orphans))
        for path in orphans[:LOG_FILE_PREVIEW]:
            log.warning("  %s", path)
        if len(orphans) > LOG_FILE_PREVIEW:
            log.warning("  ... and %d more files", len(orphans) - LOG_FILE_PREVIEW)
    return orphans


def ownership_summary(
    all_paths: list[str],
    mapping: Mapping[str, list[str]],
) -> dict[str, Any]:
    """Summary statistics for an owner -> files mapping."""
    owned = {f for files in mapping.values() for f in files}
    top = sorted(
        ({"owner": owner, "file_count": len(files)} for owner, files in mapping.items()),
        key=lambda d: d["file_count"],
        reverse=True,
    )[:SUMMARY_TOP_OWNERS]
    return {
        "total_files": len(all_paths),
        "total_owners": len(mapping),
        "owners_with_most_files": top,
        "orphaned": [p for p in all_paths if p not in owned],
        "coverage": len([p for p in all_paths if p in owned]) / max(len(all_paths), 1),
    }
