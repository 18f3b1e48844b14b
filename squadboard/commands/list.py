"""
sb list / sb summary - Board overview.
"""

from squadboard.board.context import BoardContext
from squadboard.board.engine import board_summary, list_board
from squadboard.lib.constants import LANES


def cmd_list(args, ctx: BoardContext, project_id: str) -> int:
    """List cards grouped by squad and lane."""
    board = list_board(ctx, project_id)
    cards = board["cards"]
    if args.squad:
        cards = [c for c in cards if c.squad_id == args.squad]

    squads = {s.id: s for s in board["squads"]}
    squad_ids = list(squads) + sorted({c.squad_id for c in cards} - set(squads))
    if args.squad:
        squad_ids = [args.squad]

    if not cards and not squads:
        print(f"No squads or cards for project '{project_id}'")
        return 0

    for squad_id in squad_ids:
        squad = squads.get(squad_id)
        print(f"{squad.name if squad else squad_id} ({squad_id})")
        print("-" * 60)
        if squad:
            assigned = ", ".join(f"{lane}={agent or '-'}" for lane, agent in squad.lanes.items())
            print(f"  lanes: {assigned or '(none assigned)'}")
        squad_cards = [c for c in cards if c.squad_id == squad_id]
        if not squad_cards:
            print("  (no cards)")
        for card in squad_cards:
            title = card.title[:44] + "..." if len(card.title) > 44 else card.title
            pr = " [PR]" if card.has_pr_url else ""
            print(f"  {card.id}  {card.lane:<7} {title}{pr}")
        print()
    return 0


def cmd_summary(args, ctx: BoardContext, project_id: str) -> int:
    """Card counts per lane."""
    counts = board_summary(ctx, project_id)
    print("  ".join(f"{lane}: {counts[lane]}" for lane in LANES))
    return 0
