"""
Lane transition engine.

move_card() is the heart of the board. For plan/build/review it:
1. Resolves the lane's agent (lane_unassigned if none)
2. Computes the lane preparation (PRD path, base branch)
3. Provisions the worktree (build) and the agent session
4. Persists lane + preparation + session fields in ONE card write
5. Dispatches the lane prompt asynchronously, after the card lock is released

Any failure in 1-3 leaves the card untouched, so the caller can retry.
Dispatch failures are logged by the dispatcher and never reach the caller.
"""

import logging
from dataclasses import dataclass, replace

from squadboard.board import lane_prompts
from squadboard.board.card import Card, derive_title, new_card_id
from squadboard.board.context import BoardContext
from squadboard.board.errors import (
    BoardError,
    FORBIDDEN,
    INVALID_LANE,
    LANE_UNASSIGNED,
    PROVISIONING_FAILED,
    SESSION_ERROR,
    SESSION_NOT_FOUND,
)
from squadboard.board.fsm import LaneFSM, MOVE_TRIGGERS
from squadboard.board.patches import (
    BuildPrep,
    BuildSession,
    LanePrep,
    LaneSession,
    PlanPrep,
    PlanSession,
    ReviewPrep,
    ReviewSession,
    merge_patches,
)
from squadboard.board.prd import next_prd_path
from squadboard.git.worktree import WorktreeError, worktree_branch, worktree_name
from squadboard.lib.config import ProjectConfig
from squadboard.lib.constants import LANES, SESSION_LANES
from squadboard.lib.github import TrackerError
from squadboard.sessions.gateway import Session, SessionError, SessionNotFound

logger = logging.getLogger(__name__)


@dataclass
class LaneStart:
    """Result of starting a lane session under the card lock."""
    card: Card
    session: Session
    prompt: str

    def dispatch(self, ctx: BoardContext, *follow_ups: str) -> None:
        ctx.sessions.send_prompt_async(self.session, self.prompt, *follow_ups)


def create_card(ctx: BoardContext, project_id: str, squad_id: str, body: str) -> Card:
    """Create a card in todo, appended after the squad's existing todo cards."""
    ctx.project(project_id)
    card = Card(
        id=new_card_id(),
        project_id=project_id,
        squad_id=squad_id,
        body=body,
        title=derive_title(body),
        lane="todo",
        position=ctx.store.next_position(project_id, squad_id, "todo"),
    )
    ctx.store.insert(card)
    logger.info(f"[BOARD] Created card {card.id} in {project_id}/{squad_id}: {card.title}")
    return card


def move_card(ctx: BoardContext, card_id: str, lane: str) -> Card:
    """Move a card to a lane.

    Raises:
        BoardError: not_found, invalid_lane, forbidden, lane_unassigned,
            provisioning_failed
    """
    if lane not in LANES:
        raise BoardError(INVALID_LANE, f"Unknown lane '{lane}' (valid: {', '.join(LANES)})")

    with ctx.lock(card_id):
        card = ctx.get_card(card_id)

        if lane == "done":
            raise BoardError(FORBIDDEN, "Cards reach done only through human approval",
                             {"card_id": card_id})

        if lane == "todo":
            fsm = LaneFSM(card)
            fsm.to_todo()
            return ctx.store.update(card, {"lane": fsm.state})

        started = start_lane_session(ctx, card, lane)

    started.dispatch(ctx)
    return started.card


def request_create_pr(ctx: BoardContext, card_id: str) -> Card:
    """Ask the card's build session to open the PR.

    Starts the build lane first when the card has no build session yet.
    """
    with ctx.lock(card_id):
        card = ctx.get_card(card_id)
        create_pr = lane_prompts.create_pr_prompt(card.issue_refs)

        if card.build_session_id is None:
            started = start_lane_session(ctx, card, "build")
        else:
            started = None
            session = _fetch_session(ctx, card.build_session_id, "build")

    if started is not None:
        started.dispatch(ctx, create_pr)
        return started.card

    ctx.sessions.send_prompt_async(session, create_pr)
    return card


def start_lane_session(ctx: BoardContext, card: Card, lane: str) -> LaneStart:
    """Provision and persist a lane session. Caller holds the card lock.

    The returned prompt has not been dispatched yet.
    """
    if lane not in SESSION_LANES:
        raise BoardError(INVALID_LANE, f"Lane '{lane}' has no agent session")

    fsm = LaneFSM(card)
    trigger = MOVE_TRIGGERS[lane]
    if not fsm.can(trigger):
        raise BoardError(FORBIDDEN, f"Can't move card from {card.lane} to {lane}",
                         {"card_id": card.id, "from": card.lane, "to": lane})

    agent_id = lane_agent_id(ctx, card, lane)

    project = ctx.project(card.project_id)
    repo = _repo_or_empty(ctx, project)

    prep = prepare_lane(ctx, card, lane, project)
    prepared = replace(card, **prep.to_patch())

    lane_session, session = _create_lane_session(ctx, prepared, lane, agent_id, project)

    # Prompt is rendered from the card as it will be persisted, before committing
    squad = ctx.lanes.squad(card.project_id, card.squad_id)
    prompt = _lane_prompt(replace(prepared, **lane_session.to_patch()), lane,
                          squad.name if squad else None, repo)

    getattr(fsm, trigger)()
    updated = ctx.store.update(card, merge_patches({"lane": fsm.state}, prep, lane_session))
    return LaneStart(card=updated, session=session, prompt=prompt)


def lane_agent_id(ctx: BoardContext, card: Card, lane: str) -> str:
    agent_id = ctx.lanes.get(card.project_id, card.squad_id, lane)
    if not agent_id:
        raise BoardError(LANE_UNASSIGNED, f"No agent assigned to {lane} for squad {card.squad_id}",
                         {"lane": lane, "squad_id": card.squad_id})
    return agent_id


def prepare_lane(ctx: BoardContext, card: Card, lane: str, project: ProjectConfig) -> LanePrep:
    if lane == "plan":
        return PlanPrep(prd_path=card.prd_path or next_prd_path(project.repo_path, card.title or card.body))
    if lane == "build":
        return BuildPrep(base_branch=ctx.worktrees.default_branch(project))
    if lane == "review":
        return ReviewPrep(base_branch=card.base_branch or ctx.worktrees.default_branch(project))
    raise BoardError(INVALID_LANE, f"Lane '{lane}' has no preparation step")


def _reusable_session_id(card: Card, lane: str, agent_id: str) -> str | None:
    # A lane session is only reused by the agent that owns it
    if getattr(card, f"{lane}_agent_id") == agent_id:
        return card.session_id_for(lane)
    return None


def _create_lane_session(
    ctx: BoardContext,
    card: Card,
    lane: str,
    agent_id: str,
    project: ProjectConfig,
) -> tuple[LaneSession, Session]:
    session_id = _reusable_session_id(card, lane, agent_id)

    if lane == "build":
        slug = ctx.lanes.agent(card.project_id, agent_id).slug
        try:
            path = ctx.worktrees.ensure(project, slug, card.id)
        except WorktreeError as e:
            raise BoardError(PROVISIONING_FAILED, f"Worktree provisioning failed: {e}",
                             {"step": "worktree", "card_id": card.id}) from e
        branch = worktree_branch(slug, card.id)
        session = _open_session(ctx, agent_id, f"BUILD: {card.title}", str(path), branch, session_id)
        return BuildSession(
            agent_id=agent_id,
            session_id=session.id,
            worktree_name=worktree_name(slug, card.id),
            worktree_path=session.worktree_path or str(path),
            branch=session.branch or branch,
        ), session

    if lane == "review":
        worktree_path = card.build_worktree_path or str(project.repo_path)
        session = _open_session(ctx, agent_id, f"REVIEW: {card.title}",
                                worktree_path, card.build_branch or "", session_id)
        return ReviewSession(agent_id=agent_id, session_id=session.id), session

    session = _open_session(ctx, agent_id, f"PLAN: {card.title}", str(project.repo_path), None, session_id)
    return PlanSession(agent_id=agent_id, session_id=session.id), session


def _open_session(
    ctx: BoardContext,
    agent_id: str,
    title: str,
    worktree_path: str | None,
    branch: str | None,
    session_id: str | None,
) -> Session:
    try:
        return ctx.sessions.create_or_get(
            agent_id,
            title,
            worktree_path=worktree_path,
            branch=branch,
            session_id=session_id,
        )
    except SessionError as e:
        raise BoardError(PROVISIONING_FAILED, f"Session creation failed: {e}",
                         {"step": "session", "agent_id": agent_id}) from e


def _fetch_session(ctx: BoardContext, session_id: str, lane: str) -> Session:
    try:
        return ctx.sessions.fetch(session_id)
    except SessionNotFound:
        raise BoardError(SESSION_NOT_FOUND, f"{lane} session {session_id} not found",
                         {"lane": lane, "session_id": session_id}) from None
    except SessionError as e:
        raise BoardError(SESSION_ERROR, f"Failed to load {lane} session {session_id}: {e}",
                         {"lane": lane, "session_id": session_id}) from e


def _repo_or_empty(ctx: BoardContext, project: ProjectConfig) -> str:
    try:
        return ctx.tracker.resolve_repo(project)
    except TrackerError as e:
        logger.debug(f"[LANE] No GitHub repo for {project.id}: {e}")
        return ""


def _lane_prompt(card: Card, lane: str, squad_name: str | None, repo: str) -> str:
    if lane == "plan":
        return lane_prompts.plan_prompt(card, squad_name, card.prd_path, repo)
    if lane == "build":
        return lane_prompts.build_prompt(card, squad_name, card.build_worktree_path,
                                         card.build_branch, card.base_branch)
    return lane_prompts.review_prompt(card, squad_name, card.build_worktree_path,
                                      card.build_branch, card.base_branch)


def upsert_lane_assignment(
    ctx: BoardContext,
    project_id: str,
    squad_id: str,
    lane: str,
    agent_id: str | None,
) -> dict:
    ctx.project(project_id)
    try:
        ctx.lanes.upsert(project_id, squad_id, lane, agent_id)
    except ValueError as e:
        raise BoardError(INVALID_LANE, str(e), {"lane": lane}) from None
    return {"project_id": project_id, "squad_id": squad_id, "lane": lane, "agent_id": agent_id}


def list_board(ctx: BoardContext, project_id: str) -> dict:
    """Squads, lane assignments and cards (squad, lane order, position, newest first)."""
    squads = ctx.lanes.squads(project_id)
    assignments = [
        {"project_id": project_id, "squad_id": squad.id, "lane": lane, "agent_id": agent_id}
        for squad in squads
        for lane, agent_id in squad.lanes.items()
    ]
    return {
        "squads": squads,
        "assignments": assignments,
        "cards": ctx.store.list(project_id),
    }


def board_summary(ctx: BoardContext, project_id: str) -> dict[str, int]:
    """Card count per lane, zero for empty lanes."""
    counts = {lane: 0 for lane in LANES}
    for card in ctx.store.list(project_id):
        if card.lane in counts:
            counts[card.lane] += 1
    return counts
