"""Code host port interfaces for ownergate.

Defines Protocol classes the I/O layer must implement.  The composite
``CodeHost`` is what the orchestration in ``ownergate.engine`` depends on.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ownergate.models import ChangedFile, ReviewEvent


# ---------------------------------------------------------------------------
# Individual ports
# ---------------------------------------------------------------------------

@runtime_checkable
class RuleFileSource(Protocol):
    async def fetch_rule_file_text(self, ref: str | None = None) -> str: ...


@runtime_checkable
class ChangedFileSource(Protocol):
    async def list_changed_files(self) -> list[ChangedFile]: ...


@runtime_checkable
class ReviewSource(Protocol):
    async def list_reviews(self) -> list[ReviewEvent]: ...


@runtime_checkable
class TeamDirectory(Protocol):
    async def list_team_members(self, org: str, team: str) -> Sequence[str]: ...


@runtime_checkable
class ResultSink(Protocol):
    async def publish_status(
        self,
        *,
        success: bool,
        title: str,
        summary: str,
        details: str,
    ) -> None: ...

    async def publish_or_update_comment(self, body: str, marker: str) -> None: ...


# ---------------------------------------------------------------------------
# Composite port
# ---------------------------------------------------------------------------

@runtime_checkable
class CodeHost(
    RuleFileSource,
    ChangedFileSource,
    ReviewSource,
    TeamDirectory,
    ResultSink,
    Protocol,
):
    """Everything a single pull-request check needs from the code host."""
