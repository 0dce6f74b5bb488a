"""Check orchestration: rule file + changed files + reviews -> verdict.

``run_check`` is fail-closed: any error while resolving ownership or
approvals yields a failed outcome carrying the reason, never a pass.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ownergate import observability
from ownergate.approvals import evaluate_approvals
from ownergate.codeowners import RuleCache, fresh_rules_forced
from ownergate.context import PullRequestContext
from ownergate.defaults import BOT_FAILURE_MARKER, LOG_FILE_PREVIEW
from ownergate.integrations.github_publish import try_publish_result
from ownergate.membership import resolve_memberships
from ownergate.models import (
    ApprovalCheckResult,
    ChangedFile,
    ChangeStatus,
    CheckOutcome,
    RuleSet,
)
from ownergate.ownership import build_requirements, find_orphans, group_by_owner
from ownergate.ports import CodeHost

log = logging.getLogger("ownergate.engine")


def files_for_ownership_check(
    changed: Iterable[ChangedFile],
    *,
    include_deleted: bool = False,
    include_renamed: bool = True,
) -> list[str]:
    """Paths that need owner approval: removed files are dropped by default
    (they need no new approval), renamed ones kept; duplicates removed."""
    paths: list[str] = []
    for f in changed:
        if f.status == ChangeStatus.REMOVED and not include_deleted:
            continue
        if f.status == ChangeStatus.RENAMED and not include_renamed:
            continue
        paths.append(f.path)
    unique = list(dict.fromkeys(paths))

    log.info("%d files require ownership checks", len(unique))
    for path in unique[:LOG_FILE_PREVIEW]:
        log.info("  %s", path)
    if len(unique) > LOG_FILE_PREVIEW:
        log.info("  ... and %d more files", len(unique) - LOG_FILE_PREVIEW)
    return unique


async def load_rules(
    ctx: PullRequestContext,
    host: CodeHost,
    cache: RuleCache | None = None,
) -> RuleSet:
    ref = ctx.base_sha or ctx.head_sha
    cache = cache if cache is not None else RuleCache()
    return await cache.get_or_load(
        ctx.cache_key,
        lambda: host.fetch_rule_file_text(ref),
        fresh=fresh_rules_forced(),
    )


async def evaluate_pull_request(
    ctx: PullRequestContext,
    host: CodeHost,
    *,
    cache: RuleCache | None = None,
    include_deleted: bool = False,
) -> CheckOutcome:
    """Resolve owners and approvals for one PR.  Raises on failure."""
    log.info("Processing PR: %s (#%d) in %s", ctx.title, ctx.number, ctx.full_name)

    rules = await load_rules(ctx, host, cache)
    changed = await host.list_changed_files()
    paths = files_for_ownership_check(changed, include_deleted=include_deleted)

    mapping = group_by_owner(paths, rules)
    orphans = find_orphans(paths, mapping)
    requirements = build_requirements(mapping)
    required_owners = [r.owner for r in requirements]

    if not requirements:
        log.info("No code owners are required for this PR")
        return CheckOutcome(
            success=True,
            orphaned_files=orphans,
            result=ApprovalCheckResult(all_approved=True),
        )

    reviews = await host.list_reviews()
    memberships = await resolve_memberships(required_owners, host)
    result = evaluate_approvals(requirements, reviews, memberships)

    return CheckOutcome(
        success=result.all_approved,
        required_owners=required_owners,
        missing_approvals=list(result.missing),
        orphaned_files=orphans,
        result=result,
    )


async def run_check(
    ctx: PullRequestContext,
    host: CodeHost,
    *,
    cache: RuleCache | None = None,
    include_deleted: bool = False,
    publish: bool = True,
) -> CheckOutcome:
    """Evaluate a PR and publish the verdict.  Never raises."""
    try:
        outcome = await evaluate_pull_request(
            ctx, host, cache=cache, include_deleted=include_deleted,
        )
    except Exception as exc:
        log.error("Code owners check failed for %s#%d: %s",
                  ctx.full_name, ctx.number, exc, exc_info=True)
        outcome = CheckOutcome(
            success=False,
            missing_approvals=[BOT_FAILURE_MARKER],
            error=str(exc) or exc.__class__.__name__,
        )

    if publish:
        await try_publish_result(host, outcome)

    observability.record_check(outcome)
    log.info("Final result for %s#%d: %s",
             ctx.full_name, ctx.number, "SUCCESS" if outcome.success else "FAILURE")
    return outcome
