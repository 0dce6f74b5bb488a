"""Shared fixtures for ownergate tests."""

import logging
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from ownergate.context import PullRequestContext
from ownergate.models import ChangedFile, ChangeStatus, ReviewEvent


# ---------------------------------------------------------------------------
# Auto-use fixtures: cleanup global state between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_globals():
    """Reset token cache and metrics after every test."""
    yield
    from ownergate import observability
    from ownergate.integrations.github_app import reset_token_cache
    reset_token_cache()
    observability.reset_metrics()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI runs reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _clean_github_env():
    """Keep ambient CI credentials and Actions variables out of tests."""
    keys = [k for k in os.environ if k.startswith(("OWNERGATE_", "GITHUB_"))]
    with patch.dict(os.environ, {}, clear=False):
        for k in keys:
            os.environ.pop(k, None)
        yield


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def review(login, state, minutes=0):
    """Shared test helper: a ReviewEvent submitted *minutes* after T0."""
    return ReviewEvent.create(login, state, T0 + timedelta(minutes=minutes))


def make_context(**kw):
    defaults = dict(
        owner="acme", repo="widgets", number=42,
        head_sha="head123", base_sha="base456", title="Add widgets",
    )
    defaults.update(kw)
    return PullRequestContext(**defaults)


class FakeHost:
    """In-memory CodeHost.

    Usage::

        from conftest import FakeHost
        host = FakeHost(rules="*.py @alice", files=["app.py"])
    """

    def __init__(self, rules="", files=(), reviews=(), teams=None, failing_teams=(),
                 removed=(), rule_error=None, status_error=None, comment_error=None):
        self.rules = rules
        self.files = [ChangedFile(path=f) for f in files]
        self.files += [ChangedFile(path=f, status=ChangeStatus.REMOVED) for f in removed]
        self.reviews = list(reviews)
        self.teams = teams or {}
        self.failing_teams = set(failing_teams)
        self.rule_error = rule_error
        self.status_error = status_error
        self.comment_error = comment_error
        self.rule_fetches = 0
        self.team_lookups = []
        self.statuses = []
        self.comments = []

    async def fetch_rule_file_text(self, ref=None):
        self.rule_fetches += 1
        if self.rule_error:
            raise self.rule_error
        return self.rules

    async def list_changed_files(self):
        return list(self.files)

    async def list_reviews(self):
        return list(self.reviews)

    async def list_team_members(self, org, team):
        self.team_lookups.append(f"{org}/{team}")
        if f"{org}/{team}" in self.failing_teams:
            raise RuntimeError(f"lookup failed for {org}/{team}")
        return list(self.teams.get(f"{org}/{team}", []))

    async def publish_status(self, *, success, title, summary, details):
        if self.status_error:
            raise self.status_error
        self.statuses.append({"success": success, "title": title,
                              "summary": summary, "details": details})

    async def publish_or_update_comment(self, body, marker):
        if self.comment_error:
            raise self.comment_error
        self.comments.append({"body": body, "marker": marker})


@pytest.fixture
def ctx():
    return make_context()
