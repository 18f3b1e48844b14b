"""
Card model.

A card is one unit of pipeline work. It is persisted as a flat JSON
document (see schemas/card.schema.json) and accumulates artifacts as it
moves through lanes.
"""

import re
import uuid
from dataclasses import dataclass, field, asdict, fields
from datetime import datetime, timezone
from typing import Optional

from squadboard.lib.constants import (
    SOFT_STATE_CLOSED,
    SOFT_STATE_OPEN,
    TITLE_MAX_LEN,
    UNTITLED,
)


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string, second precision."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_card_id() -> str:
    return uuid.uuid4().hex[:12]


_SAFE_ID = re.compile(r'^[A-Za-z0-9_-]+$')


def valid_card_id(card_id: str) -> bool:
    """True if the id is safe to use as a file name under the board home."""
    return bool(card_id) and _SAFE_ID.match(card_id) is not None


def derive_title(body: str) -> str:
    """Title is the first line of the body, trimmed and capped at 120 chars.

    Leading blank lines are skipped. An empty body yields "(untitled)".
    """
    for line in (body or "").splitlines():
        line = line.strip()
        if line:
            return line[:TITLE_MAX_LEN]
    return UNTITLED


@dataclass
class Card:
    id: str
    project_id: str
    squad_id: str
    body: str
    title: str = UNTITLED
    lane: str = "todo"
    position: int = 0

    prd_path: Optional[str] = None
    issue_plan: Optional[dict] = None
    issue_refs: Optional[list] = None  # [{repo, number, url, title, github_state, soft_state}]

    pr_url: Optional[str] = None
    pr_opened_at: Optional[str] = None

    plan_agent_id: Optional[str] = None
    plan_session_id: Optional[str] = None
    build_agent_id: Optional[str] = None
    build_session_id: Optional[str] = None
    review_agent_id: Optional[str] = None
    review_session_id: Optional[str] = None

    build_worktree_name: Optional[str] = None
    build_worktree_path: Optional[str] = None
    build_branch: Optional[str] = None
    base_branch: Optional[str] = None

    ai_review: Optional[dict] = None
    ai_review_session_id: Optional[str] = None

    human_review_status: Optional[str] = None  # pending | approved | changes_requested
    human_review_feedback: Optional[str] = None
    human_reviewed_at: Optional[str] = None

    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_dict(cls, data: dict) -> "Card":
        known = cls.field_names()
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)

    def session_id_for(self, lane: str) -> Optional[str]:
        return getattr(self, f"{lane}_session_id", None)

    @property
    def has_pr_url(self) -> bool:
        return bool(self.pr_url and self.pr_url.strip())


def issue_ref_from_tracker(repo: str, issue: dict) -> dict:
    """Build a card issue ref from a created tracker issue."""
    return {
        "repo": repo,
        "number": issue["number"],
        "url": issue.get("html_url"),
        "title": issue.get("title"),
        "github_state": issue.get("state"),
        "soft_state": SOFT_STATE_OPEN,
    }


def soft_close_issue_refs(issue_refs: Optional[list]) -> Optional[list]:
    """Mark every ref soft-closed, leaving the tracker-reported state alone."""
    if issue_refs is None:
        return None
    return [{**ref, "soft_state": SOFT_STATE_CLOSED} for ref in issue_refs]
