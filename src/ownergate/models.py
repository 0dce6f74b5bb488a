"""Core data types for ownergate."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a GitHub ISO-8601 timestamp (``...Z`` suffix allowed) as aware UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ReviewState(str, Enum):
    APPROVED = "APPROVED"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENTED = "COMMENTED"
    DISMISSED = "DISMISSED"

    @classmethod
    def parse(cls, raw: str) -> ReviewState:
        """Map a review state string to a member; GitHub spells one state
        ``CHANGES_REQUESTED``.  Raises ``ValueError`` for anything else
        (e.g. ``PENDING``)."""
        value = (raw or "").strip().upper()
        if value == "CHANGES_REQUESTED":
            return cls.REQUEST_CHANGES
        return cls(value)


class ChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @classmethod
    def parse(cls, raw: str) -> ChangeStatus:
        try:
            return cls((raw or "").lower())
        except ValueError:
            # copied / changed / unchanged carry content that still needs review
            return cls.MODIFIED


class MembershipSource(str, Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"
    FALLBACK = "fallback"
    INVALID = "invalid"


# ---------------------------------------------------------------------------
# Ownership rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OwnershipRule:
    pattern: str                     # CODEOWNERS glob, e.g. "/src/" or "*.js"
    owners: tuple[str, ...]          # handles in file order, e.g. "@org/team"

    def to_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "owners": list(self.owners)}


@dataclass(frozen=True)
class RuleSet:
    rules: tuple[OwnershipRule, ...] = ()
    raw_text: str = ""
    warnings: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.rules)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules": [r.to_dict() for r in self.rules],
            "warnings": list(self.warnings),
        }


@dataclass
class OwnerRequirement:
    owner: str
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner, "files": list(self.files)}


# ---------------------------------------------------------------------------
# Changed files and reviews
# ---------------------------------------------------------------------------

@dataclass
class ChangedFile:
    path: str
    status: ChangeStatus = ChangeStatus.MODIFIED
    additions: int = 0
    deletions: int = 0
    changes: int = 0

    @classmethod
    def from_github(cls, d: dict[str, Any]) -> ChangedFile:
        return cls(
            path=d["filename"],
            status=ChangeStatus.parse(d.get("status", "")),
            additions=int(d.get("additions", 0) or 0),
            deletions=int(d.get("deletions", 0) or 0),
            changes=int(d.get("changes", 0) or 0),
        )


@dataclass(frozen=True)
class ReviewEvent:
    reviewer_login: str
    state: ReviewState
    submitted_at: datetime

    def __post_init__(self) -> None:
        # naive timestamps are UTC, so every review orders against every other
        object.__setattr__(self, "submitted_at", parse_timestamp(self.submitted_at))

    @classmethod
    def create(cls, reviewer_login: str, state: str | ReviewState,
               submitted_at: str | datetime) -> ReviewEvent:
        return cls(
            reviewer_login=reviewer_login,
            state=state if isinstance(state, ReviewState) else ReviewState.parse(state),
            submitted_at=submitted_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "reviewer": self.reviewer_login,
            "state": self.state.value,
            "submitted_at": self.submitted_at.isoformat(),
        }


@dataclass
class Membership:
    """Resolved members of one owner handle.

    ``source`` tells the two outcomes apart: a real roster (``team`` /
    ``individual``) or a degraded one (``fallback`` / ``invalid``).
    """
    handle: str
    members: list[str] = field(default_factory=list)
    source: MembershipSource = MembershipSource.INDIVIDUAL

    @property
    def degraded(self) -> bool:
        return self.source in (MembershipSource.FALLBACK, MembershipSource.INVALID)

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle": self.handle,
            "members": list(self.members),
            "source": self.source.value,
        }


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------

@dataclass
class OwnerApprovalStatus:
    owner: str
    is_approved: bool
    approved_by: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    considered_reviews: list[ReviewEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "is_approved": self.is_approved,
            "approved_by": list(self.approved_by),
            "files": list(self.files),
            "considered_reviews": [r.to_dict() for r in self.considered_reviews],
        }


@dataclass
class ApprovalCheckResult:
    all_approved: bool
    statuses: list[OwnerApprovalStatus] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    total_required: int = 0
    total_approved: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "all_approved": self.all_approved,
            "statuses": [s.to_dict() for s in self.statuses],
            "missing": list(self.missing),
            "total_required": self.total_required,
            "total_approved": self.total_approved,
        }


@dataclass
class CheckOutcome:
    success: bool
    required_owners: list[str] = field(default_factory=list)
    missing_approvals: list[str] = field(default_factory=list)
    orphaned_files: list[str] = field(default_factory=list)
    result: ApprovalCheckResult | None = None
    error: str = ""
    checked_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "required_owners": list(self.required_owners),
            "missing_approvals": list(self.missing_approvals),
            "orphaned_files": list(self.orphaned_files),
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "checked_at": self.checked_at,
        }
