"""
sb sync - Harvest artifacts from lane sessions.
"""

from squadboard.board.context import BoardContext
from squadboard.board.sync import sync_artifacts
from squadboard.workflow.flows import sync_board


def cmd_sync(args, ctx: BoardContext, project_id: str | None) -> int:
    if args.all:
        summary = sync_board(ctx, project_id)
        print(f"Synced {len(summary.synced)} card(s), {len(summary.changed)} changed")
        for card_id, error in summary.failed.items():
            print(f"  [FAIL] {card_id}: {error}")
        return 0 if summary.ok else 1

    if not args.card_id:
        print("ERROR: Specify a card id or --all")
        return 2

    before = ctx.get_card(args.card_id)
    card = sync_artifacts(ctx, args.card_id)
    if card == before:
        print(f"Card {card.id}: nothing new")
    else:
        print(f"Card {card.id}: artifacts updated")
    return 0
