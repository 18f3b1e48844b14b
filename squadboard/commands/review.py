"""
sb approve / sb request-changes - Human review decisions.
"""

from squadboard.board.context import BoardContext
from squadboard.board.review import submit_human_review
from squadboard.lib.constants import HUMAN_REVIEW_APPROVED, HUMAN_REVIEW_CHANGES_REQUESTED


def cmd_approve(args, ctx: BoardContext) -> int:
    """Approve a card; requires a PR URL."""
    card = submit_human_review(ctx, args.card_id, HUMAN_REVIEW_APPROVED, args.feedback or "")
    print(f"Approved card {card.id} ({card.pr_url}), now {card.lane}")
    return 0


def cmd_request_changes(args, ctx: BoardContext) -> int:
    """Send a card back to build with feedback."""
    card = submit_human_review(ctx, args.card_id, HUMAN_REVIEW_CHANGES_REQUESTED, args.feedback or "")
    print(f"Requested changes on card {card.id}, back in {card.lane}")
    if not args.feedback:
        print("  (no feedback given - use --feedback to tell the build agent what to change)")
    return 0
