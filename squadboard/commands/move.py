"""
sb move - Move a card to a lane.
"""

from squadboard.board.context import BoardContext
from squadboard.board.engine import move_card


def cmd_move(args, ctx: BoardContext) -> int:
    card = move_card(ctx, args.card_id, args.lane)
    print(f"Moved card {card.id} to {card.lane}")
    session_id = card.session_id_for(card.lane)
    if session_id:
        print(f"  session: {session_id}")
        if card.lane == "build":
            print(f"  worktree: {card.build_worktree_path} [{card.build_branch}]")
        print("Prompt dispatched; waiting for the agent to respond...")
    return 0
