"""Result publishing facade.

Single entry point for announcing a check outcome on the code host.  The
verdict is already decided by the time this runs, so failures here are
logged and swallowed: the caller's outcome never changes.
"""

from __future__ import annotations

import logging

from ownergate import reporter
from ownergate.defaults import COMMENT_MARKER
from ownergate.models import CheckOutcome
from ownergate.ports import ResultSink

log = logging.getLogger("ownergate.github.publish")


async def try_publish_result(
    sink: ResultSink,
    outcome: CheckOutcome,
    *,
    comment: bool = True,
) -> dict[str, bool]:
    """Best-effort publish of the check run and PR comment. Never raises.

    Returns which of the two sinks succeeded.
    """
    published = {"status": False, "comment": False}

    try:
        await sink.publish_status(
            success=outcome.success,
            title=reporter.check_title(outcome),
            summary=reporter.check_summary(outcome),
            details=reporter.check_details(outcome),
        )
        published["status"] = True
    except Exception:
        log.warning("Failed to update status check", exc_info=True)

    if comment:
        try:
            await sink.publish_or_update_comment(
                reporter.comment_body(outcome, COMMENT_MARKER),
                COMMENT_MARKER,
            )
            published["comment"] = True
        except Exception:
            log.warning("Failed to update PR comment", exc_info=True)

    return published
