"""CLI command implementations."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

import httpx

from ownergate.cli._helpers import _out
from ownergate.codeowners import (
    RuleFileNotFound,
    load_rules_from_directory,
    load_rules_from_file,
)
from ownergate.context import NotAPullRequest, PullRequestContext, write_actions_outputs
from ownergate.integrations.github_app import api_url, auth_headers, ensure_client, resolve_token
from ownergate.integrations.github_host import check_pull_request
from ownergate.models import RuleSet
from ownergate.ownership import (
    build_requirements,
    find_orphans,
    group_by_owner,
    ownership_summary,
)

log = logging.getLogger("ownergate.cli")


def _load_rules(args: argparse.Namespace) -> RuleSet:
    if getattr(args, "rules", None):
        return load_rules_from_file(args.rules)
    return load_rules_from_directory(args.root)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

async def _context_from_api(repo: str, number: int) -> PullRequestContext:
    """Build a context for ``--repo/--pr`` by reading the pull request."""
    async with ensure_client(None) as client:
        token = await resolve_token(client)
        resp = await client.get(
            f"{api_url()}/repos/{repo}/pulls/{number}",
            headers=auth_headers(token),
        )
        resp.raise_for_status()
        pr = resp.json()
    return PullRequestContext.from_event("pull_request", {"pull_request": pr}, repository=repo)


def cmd_check(args: argparse.Namespace) -> int:
    try:
        if args.repo:
            if not args.pr:
                return _out({"error": "--pr is required with --repo"})
            ctx = asyncio.run(_context_from_api(args.repo, args.pr))
        else:
            ctx = PullRequestContext.from_actions_env()
    except NotAPullRequest as exc:
        log.info("%s", exc)
        return _out({"error": str(exc)})
    except (httpx.HTTPError, RuntimeError) as exc:
        return _out({"error": f"Cannot load pull request: {exc}"})

    outcome = asyncio.run(check_pull_request(
        ctx,
        include_deleted=args.include_deleted,
        publish=not args.no_publish,
    ))
    write_actions_outputs(outcome)
    _out(outcome.to_dict())
    return 0 if outcome.success else 1


# ---------------------------------------------------------------------------
# owners / lint
# ---------------------------------------------------------------------------

def cmd_owners(args: argparse.Namespace) -> int:
    try:
        rules = _load_rules(args)
    except RuleFileNotFound as exc:
        return _out({"error": str(exc)})

    files = list(dict.fromkeys(args.files))
    mapping = group_by_owner(files, rules)
    result: dict[str, Any] = {
        "owners": mapping,
        "requirements": [r.to_dict() for r in build_requirements(mapping)],
        "orphaned": find_orphans(files, mapping),
        "summary": ownership_summary(files, mapping),
    }
    return _out(result)


def cmd_lint(args: argparse.Namespace) -> int:
    try:
        rules = _load_rules(args)
    except RuleFileNotFound as exc:
        return _out({"error": str(exc)})
    _out({
        "rule_count": len(rules),
        **rules.to_dict(),
    })
    return 1 if rules.warnings else 0


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------

def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from ownergate.api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_config=None)
    return 0
