"""
sb assign - Assign an agent to a squad lane.
"""

from squadboard.board.context import BoardContext
from squadboard.board.engine import upsert_lane_assignment


def cmd_assign(args, ctx: BoardContext, project_id: str) -> int:
    agent_id = None if args.clear else args.agent
    if agent_id is None and not args.clear:
        print("ERROR: Specify an agent id or --clear")
        return 2

    upsert_lane_assignment(ctx, project_id, args.squad, args.lane, agent_id)
    if agent_id:
        print(f"Assigned {agent_id} to {args.lane} for squad {args.squad}")
    else:
        print(f"Cleared {args.lane} assignment for squad {args.squad}")
    return 0
