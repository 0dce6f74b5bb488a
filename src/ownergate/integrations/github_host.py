"""GitHub implementation of the ``CodeHost`` port.

One ``GitHubHost`` serves one pull request: it reads the CODEOWNERS file,
changed files, reviews and team rosters, and upserts the check run and the
PR comment.  API errors surface as ``httpx.HTTPStatusError``.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Sequence

import httpx

from ownergate.codeowners import RuleCache, RuleFileNotFound
from ownergate.context import PullRequestContext
from ownergate.defaults import (
    BOT_FAILURE_MARKER,
    CHANGED_FILES_MAX_PAGES,
    CHECK_NAME,
    GITHUB_PAGE_SIZE,
    RULE_FILE_CANDIDATES,
)
from ownergate.engine import run_check
from ownergate.integrations.github_app import (
    api_url,
    auth_headers,
    ensure_client,
    paginate,
    resolve_token,
)
from ownergate.models import ChangedFile, CheckOutcome, ReviewEvent

log = logging.getLogger("ownergate.github.host")


class GitHubHost:
    def __init__(
        self,
        ctx: PullRequestContext,
        token: str,
        client: httpx.AsyncClient,
        *,
        check_name: str = CHECK_NAME,
        rule_file_candidates: Sequence[str] = RULE_FILE_CANDIDATES,
    ) -> None:
        self.ctx = ctx
        self.token = token
        self.client = client
        self.check_name = check_name
        self.rule_file_candidates = tuple(rule_file_candidates)

    # -- helpers --

    def _repo_url(self, suffix: str) -> str:
        return f"{api_url()}/repos/{self.ctx.owner}/{self.ctx.repo}/{suffix}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        resp = await self.client.request(method, url, headers=auth_headers(self.token), **kwargs)
        resp.raise_for_status()
        return resp.json()

    # -- RuleFileSource --

    async def fetch_rule_file_text(self, ref: str | None = None) -> str:
        ref = ref or self.ctx.base_sha or self.ctx.head_sha
        for path in self.rule_file_candidates:
            log.info("Attempting to fetch CODEOWNERS from: %s", path)
            try:
                data = await self._send("GET", self._repo_url(f"contents/{path}"),
                                        params={"ref": ref} if ref else None)
            except httpx.HTTPError as exc:
                log.info("Failed to fetch %s: %s", path, exc)
                continue

            if isinstance(data, list) or "content" not in data:
                log.warning("%s is not a file or has no content", path)
                continue

            log.info("Fetched CODEOWNERS from: %s", path)
            return base64.b64decode(data["content"]).decode("utf-8")

        raise RuleFileNotFound(self.rule_file_candidates, where=f"in {self.ctx.full_name}")

    # -- ChangedFileSource --

    async def list_changed_files(self) -> list[ChangedFile]:
        log.info("Fetching changed files for PR #%d", self.ctx.number)
        raw = await paginate(
            self.client,
            self._repo_url(f"pulls/{self.ctx.number}/files"),
            self.token,
            per_page=GITHUB_PAGE_SIZE,
            max_pages=CHANGED_FILES_MAX_PAGES,
        )
        files = [ChangedFile.from_github(d) for d in raw]
        log.info("Found %d changed files in PR #%d", len(files), self.ctx.number)
        return files

    # -- ReviewSource --

    async def list_reviews(self) -> list[ReviewEvent]:
        raw = await paginate(
            self.client,
            self._repo_url(f"pulls/{self.ctx.number}/reviews"),
            self.token,
        )
        reviews: list[ReviewEvent] = []
        for item in raw:
            login = (item.get("user") or {}).get("login")
            state = item.get("state")
            submitted_at = item.get("submitted_at")
            if not (login and state and submitted_at):
                continue
            try:
                reviews.append(ReviewEvent.create(login, state, submitted_at))
            except ValueError:
                log.debug("Skipping review %s with state %r", item.get("id"), state)
        log.info("Found %d reviews on PR #%d", len(reviews), self.ctx.number)
        return reviews

    # -- TeamDirectory --

    async def list_team_members(self, org: str, team: str) -> list[str]:
        raw = await paginate(
            self.client,
            f"{api_url()}/orgs/{org}/teams/{team}/members",
            self.token,
        )
        return [m["login"] for m in raw if m.get("login")]

    # -- ResultSink --

    async def publish_status(
        self,
        *,
        success: bool,
        title: str,
        summary: str,
        details: str,
    ) -> None:
        """Create or update this app's check run on the PR head commit."""
        body: dict[str, Any] = {
            "name": self.check_name,
            "status": "completed",
            "conclusion": "success" if success else "failure",
            "output": {"title": title, "summary": summary, "text": details},
        }
        existing = await self._send(
            "GET",
            self._repo_url(f"commits/{self.ctx.head_sha}/check-runs"),
            params={"check_name": self.check_name, "per_page": 1},
        )
        runs = existing.get("check_runs", [])
        if runs:
            check_id = runs[0]["id"]
            await self._send("PATCH", self._repo_url(f"check-runs/{check_id}"), json=body)
            log.info("Updated existing check run #%s", check_id)
        else:
            body["head_sha"] = self.ctx.head_sha
            created = await self._send("POST", self._repo_url("check-runs"), json=body)
            log.info("Created new check run #%s", created.get("id"))

    async def publish_or_update_comment(self, body: str, marker: str) -> None:
        """Update the PR comment carrying *marker*, or create it."""
        comments = await paginate(
            self.client,
            self._repo_url(f"issues/{self.ctx.number}/comments"),
            self.token,
        )
        existing = next((c for c in comments if marker in (c.get("body") or "")), None)
        if existing:
            await self._send("PATCH", self._repo_url(f"issues/comments/{existing['id']}"),
                             json={"body": body})
            log.info("Updated existing PR comment #%s", existing["id"])
        else:
            created = await self._send("POST", self._repo_url(f"issues/{self.ctx.number}/comments"),
                                       json={"body": body})
            log.info("Created new PR comment #%s", created.get("id"))


async def check_pull_request(
    ctx: PullRequestContext,
    *,
    cache: RuleCache | None = None,
    client: httpx.AsyncClient | None = None,
    include_deleted: bool = False,
    publish: bool = True,
) -> CheckOutcome:
    """Run the code owners check for *ctx* against GitHub.  Never raises.

    Missing credentials fail closed without publishing.
    """
    async with ensure_client(client) as c:
        try:
            token = await resolve_token(c, ctx.installation_id)
        except Exception as exc:
            log.error("Cannot authenticate to GitHub for %s: %s", ctx.full_name, exc)
            return CheckOutcome(
                success=False,
                missing_approvals=[BOT_FAILURE_MARKER],
                error=str(exc),
            )
        host = GitHubHost(ctx, token, c)
        return await run_check(
            ctx, host, cache=cache, include_deleted=include_deleted, publish=publish,
        )
