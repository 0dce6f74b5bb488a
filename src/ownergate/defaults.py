"""Single source of truth for shared constants and configuration defaults.

Every magic number, name or default that appears in more than one module is
defined here.  Constants that are truly local to one module stay there.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Rule file
# ---------------------------------------------------------------------------

RULE_FILE_CANDIDATES: tuple[str, ...] = (
    ".github/CODEOWNERS",
    "CODEOWNERS",
    ".CODEOWNERS",
    "docs/CODEOWNERS",
)

# ---------------------------------------------------------------------------
# GitHub pagination
# ---------------------------------------------------------------------------

GITHUB_PAGE_SIZE = 100
CHANGED_FILES_MAX_PAGES = 30    # 30 * 100 = 3000 files, GitHub's hard limit
LIST_MAX_PAGES = 50             # reviews, comments, team members

# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------

CHECK_NAME = "code-owners-approval"
COMMENT_MARKER = "<!-- code-owners-bot -->"
COMMENT_FILES_PER_OWNER = 5
BOT_FAILURE_MARKER = "ERROR: Bot execution failed"
CHECK_DETAILS_ORPHAN_LIMIT = 20
CHECK_OUTPUT_MAX_CHARS = 65535  # GitHub rejects longer check-run output.text

# ---------------------------------------------------------------------------
# Logging display limits
# ---------------------------------------------------------------------------

LOG_FILE_PREVIEW = 10
SUMMARY_TOP_OWNERS = 5

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_WEBHOOK_MAX_BODY_BYTES = 1_048_576
