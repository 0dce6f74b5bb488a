"""Pull-request context: where a check runs and what it reports on.

Built either from a webhook delivery or from the GitHub Actions environment
(GITHUB_EVENT_NAME, GITHUB_EVENT_PATH, GITHUB_REPOSITORY, GITHUB_OUTPUT).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any

from ownergate.models import CheckOutcome

log = logging.getLogger("ownergate.context")

PULL_REQUEST_EVENTS = frozenset({
    "pull_request",
    "pull_request_target",
    "pull_request_review",
})


class NotAPullRequest(Exception):
    """Raised when a check is requested outside a pull-request context."""
    pass


@dataclass(frozen=True)
class PullRequestContext:
    owner: str
    repo: str
    number: int
    head_sha: str
    base_sha: str = ""
    title: str = ""
    installation_id: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def cache_key(self) -> str:
        return f"{self.full_name}@{self.base_sha or self.head_sha}"

    @classmethod
    def from_event(
        cls,
        event_name: str,
        payload: dict[str, Any],
        repository: str | None = None,
    ) -> PullRequestContext:
        if event_name not in PULL_REQUEST_EVENTS:
            raise NotAPullRequest(
                f"Event {event_name!r} is not supported. Only pull request events are handled."
            )
        pr = payload.get("pull_request")
        if not pr:
            raise NotAPullRequest("Pull request payload is missing")

        full_name = repository or payload.get("repository", {}).get("full_name", "")
        parts = full_name.split("/", 1)
        if len(parts) != 2 or not all(parts):
            raise NotAPullRequest(f"Cannot determine repository from {full_name!r}")

        installation_id = payload.get("installation", {}).get("id")
        return cls(
            owner=parts[0],
            repo=parts[1],
            number=int(pr["number"]),
            head_sha=pr.get("head", {}).get("sha", ""),
            base_sha=pr.get("base", {}).get("sha", ""),
            title=pr.get("title", ""),
            installation_id=int(installation_id) if installation_id else None,
        )

    @classmethod
    def from_actions_env(cls) -> PullRequestContext:
        event_name = os.environ.get("GITHUB_EVENT_NAME", "")
        event_path = os.environ.get("GITHUB_EVENT_PATH", "")
        payload: dict[str, Any] = {}
        if event_path and os.path.isfile(event_path):
            with open(event_path) as f:
                payload = json.load(f)
        return cls.from_event(event_name, payload, os.environ.get("GITHUB_REPOSITORY"))


def write_actions_outputs(outcome: CheckOutcome) -> bool:
    """Append step outputs to $GITHUB_OUTPUT.  Returns False outside Actions."""
    output_path = os.environ.get("GITHUB_OUTPUT", "")
    if not output_path:
        return False
    lines = [
        f"result={'success' if outcome.success else 'failure'}",
        f"required_owners={json.dumps(outcome.required_owners)}",
        f"missing_approvals={json.dumps(outcome.missing_approvals)}",
    ]
    with open(output_path, "a") as f:
        f.write("\n".join(lines) + "\n")
    log.debug("Wrote action outputs to %s", output_path)
    return True
