"""Board operation errors."""

from dataclasses import dataclass
from typing import Optional

# Precondition failures: deterministic, never worth retrying
NOT_FOUND = "not_found"
LANE_UNASSIGNED = "lane_unassigned"
FORBIDDEN = "forbidden"
MISSING_PR_URL = "missing_pr_url"
INVALID_LANE = "invalid_lane"
INVALID_STATUS = "invalid_status"
INVALID_PR_URL = "invalid_pr_url"
ISSUE_PLAN_NOT_FOUND = "issue_plan_not_found"
GITHUB_REPO_NOT_CONFIGURED = "github_repo_not_configured"
SESSION_NOT_FOUND = "session_not_found"

# External failures: the card is left untouched, the caller may retry
PROVISIONING_FAILED = "provisioning_failed"
SESSION_ERROR = "session_error"
GITHUB_ERROR = "github_error"

PRECONDITION_REASONS = frozenset({
    NOT_FOUND,
    LANE_UNASSIGNED,
    FORBIDDEN,
    MISSING_PR_URL,
    INVALID_LANE,
    INVALID_STATUS,
    INVALID_PR_URL,
    ISSUE_PLAN_NOT_FOUND,
    GITHUB_REPO_NOT_CONFIGURED,
    SESSION_NOT_FOUND,
})


@dataclass(eq=False)
class BoardError(Exception):
    """A board operation failed for a domain reason."""
    reason: str
    message: str
    details: Optional[dict] = None  # e.g. {"step": "worktree"} or {"errors": [...]}

    def __post_init__(self):
        super().__init__(self.reason, self.message, self.details)

    def __str__(self):
        return f"[{self.reason}] {self.message}"

    @property
    def is_precondition(self) -> bool:
        return self.reason in PRECONDITION_REASONS


def not_found(card_id: str) -> BoardError:
    return BoardError(NOT_FOUND, f"Card not found: {card_id}")
