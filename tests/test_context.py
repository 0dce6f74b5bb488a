"""Tests for pull-request context construction and Actions outputs."""

import json
import os
from unittest.mock import patch

import pytest

from ownergate.context import NotAPullRequest, PullRequestContext, write_actions_outputs
from ownergate.defaults import BOT_FAILURE_MARKER
from ownergate.models import CheckOutcome


PAYLOAD = {
    "action": "opened",
    "pull_request": {
        "number": 7,
        "title": "Fix bug",
        "head": {"sha": "h1"},
        "base": {"sha": "b1"},
    },
    "repository": {"full_name": "acme/widgets"},
    "installation": {"id": 555},
}


class TestFromEvent:
    def test_pull_request_event(self):
        ctx = PullRequestContext.from_event("pull_request", PAYLOAD)
        assert (ctx.owner, ctx.repo, ctx.number) == ("acme", "widgets", 7)
        assert ctx.head_sha == "h1" and ctx.base_sha == "b1"
        assert ctx.installation_id == 555
        assert ctx.full_name == "acme/widgets"
        assert ctx.cache_key == "acme/widgets@b1"

    def test_review_event_supported(self):
        ctx = PullRequestContext.from_event("pull_request_review", PAYLOAD)
        assert ctx.number == 7

    def test_repository_override(self):
        ctx = PullRequestContext.from_event("pull_request", PAYLOAD, "other/repo")
        assert ctx.full_name == "other/repo"

    def test_cache_key_falls_back_to_head(self):
        ctx = PullRequestContext(owner="a", repo="b", number=1, head_sha="h")
        assert ctx.cache_key == "a/b@h"

    def test_push_event_rejected(self):
        with pytest.raises(NotAPullRequest, match="not supported"):
            PullRequestContext.from_event("push", PAYLOAD)

    def test_missing_pull_request_rejected(self):
        with pytest.raises(NotAPullRequest, match="missing"):
            PullRequestContext.from_event("pull_request", {"repository": {"full_name": "a/b"}})

    def test_bad_repository_rejected(self):
        with pytest.raises(NotAPullRequest):
            PullRequestContext.from_event("pull_request", {"pull_request": PAYLOAD["pull_request"]})


class TestActionsEnvironment:
    def test_from_actions_env(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps(PAYLOAD))
        with patch.dict(os.environ, {
            "GITHUB_EVENT_NAME": "pull_request_target",
            "GITHUB_EVENT_PATH": str(event),
            "GITHUB_REPOSITORY": "acme/widgets",
        }):
            ctx = PullRequestContext.from_actions_env()
        assert ctx.number == 7

    def test_outside_pull_request(self):
        with patch.dict(os.environ, {"GITHUB_EVENT_NAME": "push"}):
            with pytest.raises(NotAPullRequest):
                PullRequestContext.from_actions_env()

    def test_write_outputs(self, tmp_path):
        out = tmp_path / "output"
        outcome = CheckOutcome(
            success=False,
            required_owners=["@alice", "@org/core"],
            missing_approvals=["@org/core"],
        )
        with patch.dict(os.environ, {"GITHUB_OUTPUT": str(out)}):
            assert write_actions_outputs(outcome) is True
        assert out.read_text().splitlines() == [
            "result=failure",
            'required_owners=["@alice", "@org/core"]',
            'missing_approvals=["@org/core"]',
        ]

    def test_write_outputs_failure_marker(self, tmp_path):
        out = tmp_path / "output"
        outcome = CheckOutcome(success=False, missing_approvals=[BOT_FAILURE_MARKER])
        with patch.dict(os.environ, {"GITHUB_OUTPUT": str(out)}):
            write_actions_outputs(outcome)
        assert f'missing_approvals=["{BOT_FAILURE_MARKER}"]' in out.read_text()

    def test_write_outputs_outside_actions(self):
        assert write_actions_outputs(CheckOutcome(success=True)) is False
