"""
sb new - Create a card.
"""

import sys

from squadboard.board.context import BoardContext
from squadboard.board.engine import create_card


def cmd_new(args, ctx: BoardContext, project_id: str) -> int:
    """Create a card in todo from free text (argument or stdin)."""
    body = args.body if args.body is not None else sys.stdin.read()
    if not body.strip():
        print("ERROR: Card body is empty")
        return 2

    card = create_card(ctx, project_id, args.squad, body)
    print(f"Created card {card.id} in {project_id}/{card.squad_id}: {card.title}")
    return 0
