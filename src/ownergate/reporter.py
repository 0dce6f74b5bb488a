"""Render check outcomes as check-run text and PR comment markdown."""

from __future__ import annotations

from ownergate.defaults import (
    CHECK_DETAILS_ORPHAN_LIMIT,
    CHECK_OUTPUT_MAX_CHARS,
    COMMENT_FILES_PER_OWNER,
    COMMENT_MARKER,
)
from ownergate.models import ApprovalCheckResult, CheckOutcome


def _truncate(text: str, limit: int = CHECK_OUTPUT_MAX_CHARS) -> str:
    if len(text) <= limit:
        return text
    tail = "\n\n... (truncated)"
    return text[: limit - len(tail)] + tail


def _result_of(outcome: CheckOutcome) -> ApprovalCheckResult:
    return outcome.result or ApprovalCheckResult(all_approved=outcome.success)


def check_title(outcome: CheckOutcome) -> str:
    if outcome.error:
        return "Code owners check failed"
    result = _result_of(outcome)
    if result.all_approved:
        return (
            f"All required code owners have approved "
            f"({result.total_approved}/{result.total_required})"
        )
    return f"Missing approvals from {len(result.missing)} owner groups"


def check_summary(outcome: CheckOutcome) -> str:
    if outcome.error:
        return f"The code owners check could not be completed: {outcome.error}"
    result = _result_of(outcome)
    if result.total_required == 0:
        return "No code owners are required for the changes in this PR."
    if result.all_approved:
        return f"All {result.total_required} required code owner groups have approved this PR."
    pending = result.total_required - result.total_approved
    return (
        f"{result.total_approved}/{result.total_required} required code owner groups "
        f"have approved. {pending} still pending."
    )


def check_details(outcome: CheckOutcome) -> str:
    if outcome.error:
        return (
            "Merging is blocked until the check completes successfully.\n\n"
            f"Reason: {outcome.error}"
        )
    result = _result_of(outcome)
    if result.total_required == 0:
        return "This PR does not modify any files that require code owner approvals."

    lines = ["## Required Code Owner Approvals", ""]
    for status in result.statuses:
        icon = "✅" if status.is_approved else "❌"
        text = (
            f"approved by {', '.join(status.approved_by)}"
            if status.is_approved else "pending approval"
        )
        lines.append(f"{icon} **{status.owner}** - {text} ({len(status.files)} files)")

    if result.missing:
        lines += ["", "### Still needed:"]
        lines += [f"- {owner}" for owner in result.missing]

    if outcome.orphaned_files:
        lines += ["", f"### Files without code owners ({len(outcome.orphaned_files)}):"]
        lines += [f"- `{path}`" for path in outcome.orphaned_files[:CHECK_DETAILS_ORPHAN_LIMIT]]
        extra = len(outcome.orphaned_files) - CHECK_DETAILS_ORPHAN_LIMIT
        if extra > 0:
            lines.append(f"- ... and {extra} more files")
    return _truncate("\n".join(lines))


def comment_body(outcome: CheckOutcome, marker: str = COMMENT_MARKER) -> str:
    lines = [marker, "", "## Code Owners Approval Status", ""]

    if outcome.error:
        lines.append("❌ **The code owners check could not be completed.**")
        lines.append("")
        lines.append(f"Reason: {outcome.error}")
    else:
        result = _result_of(outcome)
        if result.total_required == 0:
            lines.append("✅ **No code owners are required for this PR.**")
            lines.append("")
            lines.append(
                "The files changed in this PR do not match any patterns in the CODEOWNERS file."
            )
        else:
            if result.all_approved:
                lines.append("✅ **All required code owners have approved this PR!**")
            else:
                lines.append(
                    f"⏳ **{result.total_approved}/{result.total_required} required code "
                    f"owner groups have approved.**"
                )
            lines += ["", "### Required Approvals:", ""]

            for status in result.statuses:
                if status.is_approved:
                    approvers = ", ".join(f"@{user}" for user in status.approved_by)
                    lines.append(f"- [x] **{status.owner}** (approved by {approvers})")
                else:
                    lines.append(f"- [ ] **{status.owner}** (pending)")

                for path in status.files[:COMMENT_FILES_PER_OWNER]:
                    lines.append(f"  - `{path}`")
                extra = len(status.files) - COMMENT_FILES_PER_OWNER
                if extra > 0:
                    lines.append(f"  - ... and {extra} more files")
                lines.append("")

    lines.append("---")
    lines.append("*This comment is automatically updated by ownergate*")
    return "\n".join(lines)
