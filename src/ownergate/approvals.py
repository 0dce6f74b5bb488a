"""Review aggregation: per owner group approval verdicts.

Each member's reviews collapse to their most recent one by ``submitted_at``;
a group is approved when at least one member's latest review approves.
Reviewer/member identities compare case-insensitively; owner handles are
reported exactly as written in CODEOWNERS.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping, Sequence, Union

from ownergate.models import (
    ApprovalCheckResult,
    Membership,
    OwnerApprovalStatus,
    OwnerRequirement,
    ReviewEvent,
    ReviewState,
)

log = logging.getLogger("ownergate.approvals")

MembershipLookup = Union[
    Mapping[str, Union[Membership, Sequence[str]]],
    Callable[[str], Union[Membership, Sequence[str], None]],
]


def latest_reviews_by_member(
    members: Iterable[str],
    reviews: Iterable[ReviewEvent],
) -> dict[str, ReviewEvent]:
    """Latest review per member, keyed by lower-cased identity.

    Timestamps are compared explicitly; on a tie the review seen first wins.
    """
    member_keys = {m.lower() for m in members}
    latest: dict[str, ReviewEvent] = {}
    for review in reviews:
        key = review.reviewer_login.lower()
        if key not in member_keys:
            continue
        existing = latest.get(key)
        if existing is None or review.submitted_at > existing.submitted_at:
            latest[key] = review
    return latest


def evaluate_owner(
    requirement: OwnerRequirement,
    members: Sequence[str],
    reviews: Sequence[ReviewEvent],
) -> OwnerApprovalStatus:
    """Approval verdict for one owner group."""
    latest = latest_reviews_by_member(members, reviews)
    approved_by = [
        identity for identity, review in latest.items()
        if review.state == ReviewState.APPROVED
    ]
    is_approved = bool(approved_by)

    log.info(
        "%s %s: %d approvals (%s) from %d members",
        "APPROVED" if is_approved else "PENDING",
        requirement.owner,
        len(approved_by),
        ", ".join(approved_by) or "none",
        len(members),
    )
    return OwnerApprovalStatus(
        owner=requirement.owner,
        is_approved=is_approved,
        approved_by=approved_by,
        files=list(requirement.files),
        considered_reviews=list(latest.values()),
    )


def _members_from(lookup: MembershipLookup, handle: str) -> list[str]:
    if callable(lookup):
        found = lookup(handle)
    else:
        found = lookup.get(handle)
    if found is None:
        return []
    if isinstance(found, Membership):
        return list(found.members)
    return list(found)


def build_result(statuses: list[OwnerApprovalStatus]) -> ApprovalCheckResult:
    total_required = len(statuses)
    total_approved = sum(1 for s in statuses if s.is_approved)
    missing = [s.owner for s in statuses if not s.is_approved]
    return ApprovalCheckResult(
        all_approved=all(s.is_approved for s in statuses),
        statuses=statuses,
        missing=missing,
        total_required=total_required,
        total_approved=total_approved,
    )


def evaluate_approvals(
    requirements: Sequence[OwnerRequirement],
    reviews: Sequence[ReviewEvent],
    membership_lookup: MembershipLookup,
) -> ApprovalCheckResult:
    """Evaluate every required owner group against the PR's reviews."""
    statuses = [
        evaluate_owner(req, _members_from(membership_lookup, req.owner), reviews)
        for req in requirements
    ]
    result = build_result(statuses)

    log.info(
        "Approval status: %d/%d owner groups approved",
        result.total_approved, result.total_required,
    )
    if result.missing:
        log.info("Missing approvals from: %s", ", ".join(result.missing))
    return result
