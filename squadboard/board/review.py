"""Human review gate and manual PR entry. Approval is the only way into done."""

import logging

from squadboard.board.card import Card, utc_now
from squadboard.board.context import BoardContext
from squadboard.board.errors import BoardError, FORBIDDEN, INVALID_PR_URL, INVALID_STATUS, MISSING_PR_URL
from squadboard.board.fsm import LaneFSM
from squadboard.board.patches import PullRequestOpened, merge_patches
from squadboard.lib.constants import HUMAN_REVIEW_APPROVED, HUMAN_REVIEW_CHANGES_REQUESTED

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = (HUMAN_REVIEW_APPROVED, HUMAN_REVIEW_CHANGES_REQUESTED)


def submit_human_review(ctx: BoardContext, card_id: str, status: str, feedback: str = "") -> Card:
    """Record a human review decision.

    changes_requested sends the card back to build; approved moves it to
    done and requires a PR URL.

    Raises:
        BoardError: invalid_status, not_found, missing_pr_url, forbidden
    """
    if status not in REVIEW_DECISIONS:
        raise BoardError(INVALID_STATUS, f"Invalid review status '{status}' (valid: {', '.join(REVIEW_DECISIONS)})")

    with ctx.lock(card_id):
        card = ctx.get_card(card_id)
        fsm = LaneFSM(card)

        if status == HUMAN_REVIEW_CHANGES_REQUESTED:
            fsm.request_changes()
        else:
            if not card.has_pr_url:
                raise BoardError(MISSING_PR_URL, f"Card {card.id} can't be approved without a PR URL")
            if not fsm.can("approve"):
                raise BoardError(FORBIDDEN, f"Card {card.id} is already {card.lane}")
            fsm.approve()

        logger.info(f"[REVIEW] {card.id}: {status}")
        return ctx.store.update(card, {
            "lane": fsm.state,
            "human_review_status": status,
            "human_review_feedback": feedback or "",
            "human_reviewed_at": utc_now(),
        })


def set_pr_url(ctx: BoardContext, card_id: str, pr_url: str) -> Card:
    """Record a PR URL by hand; soft-closes the card's issue refs.

    Raises:
        BoardError: invalid_pr_url, not_found
    """
    pr_url = (pr_url or "").strip()
    if not pr_url:
        raise BoardError(INVALID_PR_URL, "PR URL must not be empty")

    with ctx.lock(card_id):
        card = ctx.get_card(card_id)
        patch = PullRequestOpened(pr_url=pr_url, opened_at=utc_now(), issue_refs=card.issue_refs)
        logger.info(f"[REVIEW] {card.id}: PR {pr_url}")
        return ctx.store.update(card, merge_patches(patch))
