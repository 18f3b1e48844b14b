"""
sb show - Show a card and its artifacts.
"""

import json

from squadboard.board.context import BoardContext


def cmd_show(args, ctx: BoardContext) -> int:
    card = ctx.get_card(args.card_id)

    if args.json:
        print(json.dumps(card.to_dict(), indent=2))
        return 0

    print(f"{card.title}")
    print("=" * 60)
    print(f"  id:       {card.id}")
    print(f"  project:  {card.project_id}  squad: {card.squad_id}")
    print(f"  lane:     {card.lane}")
    if card.prd_path:
        print(f"  prd:      {card.prd_path}")
    for lane in ("plan", "build", "review"):
        session_id = card.session_id_for(lane)
        if session_id:
            agent = getattr(card, f"{lane}_agent_id")
            print(f"  {lane + ':':<9} session {session_id} (agent {agent})")
    if card.build_worktree_path:
        print(f"  worktree: {card.build_worktree_path} [{card.build_branch}] base {card.base_branch}")
    if card.issue_plan:
        print(f"  plan:     {len(card.issue_plan.get('issues') or [])} issue(s) planned")
    for ref in card.issue_refs or []:
        print(f"  issue:    {ref.get('url') or ref.get('number')} ({ref.get('soft_state')})")
    if card.pr_url:
        print(f"  pr:       {card.pr_url} (opened {card.pr_opened_at})")
    if card.ai_review:
        print(f"  ai review: {card.ai_review.get('recommendation')} - {card.ai_review.get('summary', '')}")
    if card.human_review_status:
        print(f"  human review: {card.human_review_status}")
        if card.human_review_feedback:
            print(f"    {card.human_review_feedback}")
    print()
    print(card.body)
    return 0
