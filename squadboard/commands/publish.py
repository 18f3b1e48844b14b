"""
sb publish - Create GitHub issues from a card's issue plan.
"""

from squadboard.board.context import BoardContext
from squadboard.board.publish import publish_issues


def cmd_publish(args, ctx: BoardContext) -> int:
    card = publish_issues(ctx, args.card_id)
    print(f"Card {card.id}: {len(card.issue_refs or [])} issue(s)")
    for ref in card.issue_refs or []:
        print(f"  {ref.get('url') or ref.get('number')}  {ref.get('title')}")
    return 0
