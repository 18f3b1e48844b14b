"""
sb pr / sb create-pr - Pull request handling.
"""

from squadboard.board.context import BoardContext
from squadboard.board.engine import request_create_pr
from squadboard.board.review import set_pr_url


def cmd_pr(args, ctx: BoardContext) -> int:
    """Record a PR URL by hand."""
    card = set_pr_url(ctx, args.card_id, args.url)
    print(f"Card {card.id}: PR {card.pr_url}")
    if card.issue_refs:
        print(f"  {len(card.issue_refs)} issue ref(s) soft-closed")
    return 0


def cmd_create_pr(args, ctx: BoardContext) -> int:
    """Ask the build agent to open the PR."""
    card = request_create_pr(ctx, args.card_id)
    print(f"Asked build session {card.build_session_id} to open a PR for card {card.id}")
    print("Run 'sb sync' afterwards to pick up the PR URL")
    return 0
