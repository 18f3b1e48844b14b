"""
Typed card patches.

Every card mutation the engine or sync makes is one of the variants below.
Each knows which card fields it writes; the store receives the merged dict
in a single atomic update. Adding a lane means adding a variant here.
"""

from dataclasses import dataclass
from typing import Optional, Union

from squadboard.board.card import soft_close_issue_refs
from squadboard.lib.constants import HUMAN_REVIEW_PENDING


# --- Lane preparation (computed before any side effect) ---

@dataclass(frozen=True)
class PlanPrep:
    prd_path: str
    lane: str = "plan"

    def to_patch(self) -> dict:
        return {"prd_path": self.prd_path}


@dataclass(frozen=True)
class BuildPrep:
    base_branch: str
    lane: str = "build"

    def to_patch(self) -> dict:
        return {"base_branch": self.base_branch}


@dataclass(frozen=True)
class ReviewPrep:
    base_branch: str
    lane: str = "review"

    def to_patch(self) -> dict:
        return {"base_branch": self.base_branch}


LanePrep = Union[PlanPrep, BuildPrep, ReviewPrep]


# --- Lane session (what the engine provisioned) ---

@dataclass(frozen=True)
class PlanSession:
    agent_id: str
    session_id: str

    def to_patch(self) -> dict:
        return {"plan_agent_id": self.agent_id, "plan_session_id": self.session_id}


@dataclass(frozen=True)
class BuildSession:
    agent_id: str
    session_id: str
    worktree_name: str
    worktree_path: str
    branch: str

    def to_patch(self) -> dict:
        return {
            "build_agent_id": self.agent_id,
            "build_session_id": self.session_id,
            "build_worktree_name": self.worktree_name,
            "build_worktree_path": self.worktree_path,
            "build_branch": self.branch,
        }


@dataclass(frozen=True)
class ReviewSession:
    agent_id: str
    session_id: str

    def to_patch(self) -> dict:
        # The review session is also where the AI review comes from
        return {
            "review_agent_id": self.agent_id,
            "review_session_id": self.session_id,
            "ai_review_session_id": self.session_id,
        }


LaneSession = Union[PlanSession, BuildSession, ReviewSession]


# --- Artifacts harvested by sync ---

@dataclass(frozen=True)
class IssuePlanFound:
    issue_plan: dict

    def to_patch(self) -> dict:
        return {"issue_plan": self.issue_plan}


@dataclass(frozen=True)
class PullRequestOpened:
    pr_url: str
    opened_at: str
    issue_refs: Optional[list] = None

    def to_patch(self) -> dict:
        patch = {"pr_url": self.pr_url, "pr_opened_at": self.opened_at}
        if self.issue_refs is not None:
            patch["issue_refs"] = soft_close_issue_refs(self.issue_refs)
        return patch


@dataclass(frozen=True)
class AiReviewFound:
    ai_review: dict

    def to_patch(self) -> dict:
        return {"ai_review": self.ai_review, "human_review_status": HUMAN_REVIEW_PENDING}


ArtifactPatch = Union[IssuePlanFound, PullRequestOpened, AiReviewFound]


def merge_patches(*parts) -> dict:
    """Merge typed patches (and plain dicts) left to right into one store patch."""
    merged: dict = {}
    for part in parts:
        if part is None:
            continue
        merged.update(part if isinstance(part, dict) else part.to_patch())
    return merged
