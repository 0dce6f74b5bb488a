"""Tests for review aggregation into per owner verdicts."""

from conftest import review
from ownergate.approvals import (
    build_result,
    evaluate_approvals,
    evaluate_owner,
    latest_reviews_by_member,
)
from ownergate.models import Membership, MembershipSource, OwnerRequirement, ReviewState


def _req(owner, *files):
    return OwnerRequirement(owner=owner, files=list(files) or ["f.py"])


class TestLatestReviews:
    def test_latest_per_member_wins(self):
        reviews = [
            review("alice", "APPROVED", 0),
            review("alice", "REQUEST_CHANGES", 10),
        ]
        latest = latest_reviews_by_member(["alice"], reviews)
        assert latest["alice"].state == ReviewState.REQUEST_CHANGES

    def test_input_order_does_not_matter(self):
        reviews = [
            review("alice", "APPROVED", 20),
            review("alice", "REQUEST_CHANGES", 10),
        ]
        latest = latest_reviews_by_member(["alice"], reviews)
        assert latest["alice"].state == ReviewState.APPROVED

    def test_tie_keeps_first_seen(self):
        reviews = [
            review("alice", "COMMENTED", 5),
            review("alice", "APPROVED", 5),
        ]
        latest = latest_reviews_by_member(["alice"], reviews)
        assert latest["alice"].state == ReviewState.COMMENTED

    def test_non_members_ignored(self):
        latest = latest_reviews_by_member(["alice"], [review("mallory", "APPROVED")])
        assert latest == {}

    def test_identity_case_insensitive(self):
        latest = latest_reviews_by_member(["Alice"], [review("ALICE", "APPROVED")])
        assert list(latest) == ["alice"]


class TestEvaluateOwner:
    def test_approved_after_changes_requested(self):
        status = evaluate_owner(
            _req("@alice"),
            ["alice"],
            [review("alice", "REQUEST_CHANGES", 0), review("alice", "APPROVED", 10)],
        )
        assert status.is_approved is True
        assert status.approved_by == ["alice"]

    def test_changes_requested_after_approval(self):
        status = evaluate_owner(
            _req("@alice"),
            ["alice"],
            [review("alice", "APPROVED", 0), review("alice", "REQUEST_CHANGES", 10)],
        )
        assert status.is_approved is False
        assert status.approved_by == []

    def test_later_comment_supersedes_approval(self):
        status = evaluate_owner(
            _req("@alice"),
            ["alice"],
            [review("alice", "APPROVED", 0), review("alice", "COMMENTED", 10)],
        )
        assert status.is_approved is False

    def test_dismissed_review_does_not_count(self):
        status = evaluate_owner(_req("@alice"), ["alice"], [review("alice", "DISMISSED")])
        assert status.is_approved is False

    def test_any_team_member_suffices(self):
        status = evaluate_owner(
            _req("@org/backend"),
            ["bob", "carol"],
            [review("bob", "REQUEST_CHANGES"), review("carol", "APPROVED", 1)],
        )
        assert status.is_approved is True
        assert status.approved_by == ["carol"]

    def test_approved_by_uses_lowercased_identity(self):
        status = evaluate_owner(_req("@Alice"), ["Alice"], [review("ALICE", "APPROVED")])
        assert status.is_approved is True
        assert status.approved_by == ["alice"]
        assert status.owner == "@Alice"

    def test_empty_roster_never_approves(self):
        status = evaluate_owner(_req("@org/ghosts"), [], [review("anyone", "APPROVED")])
        assert status.is_approved is False
        assert status.considered_reviews == []

    def test_files_carried_through(self):
        status = evaluate_owner(_req("@alice", "a.py", "b.py"), ["alice"], [])
        assert status.files == ["a.py", "b.py"]


class TestEvaluateApprovals:
    def test_vacuous_success(self):
        result = evaluate_approvals([], [], {})
        assert result.all_approved is True
        assert result.total_required == 0
        assert result.missing == []

    def test_mixed_outcome(self):
        reqs = [_req("@alice"), _req("@org/backend"), _req("@zed")]
        lookup = {
            "@alice": ["alice"],
            "@org/backend": Membership("@org/backend", ["bob"], MembershipSource.TEAM),
            "@zed": ["zed"],
        }
        result = evaluate_approvals(
            reqs,
            [review("alice", "APPROVED"), review("bob", "APPROVED")],
            lookup,
        )
        assert result.all_approved is False
        assert result.total_required == 3
        assert result.total_approved == 2
        assert result.missing == ["@zed"]
        assert [s.owner for s in result.statuses] == ["@alice", "@org/backend", "@zed"]

    def test_callable_lookup(self):
        result = evaluate_approvals(
            [_req("@alice")],
            [review("alice", "APPROVED")],
            lambda handle: [handle.lstrip("@")],
        )
        assert result.all_approved is True

    def test_unknown_handle_has_no_members(self):
        result = evaluate_approvals([_req("@ghost")], [review("ghost", "APPROVED")], {})
        assert result.missing == ["@ghost"]

    def test_build_result_counts(self):
        a = evaluate_owner(_req("@a"), ["a"], [review("a", "APPROVED")])
        b = evaluate_owner(_req("@b"), ["b"], [])
        result = build_result([a, b])
        assert (result.total_required, result.total_approved) == (2, 1)
        assert result.to_dict()["missing"] == ["@b"]
