"""Prefect flows and tasks for timer-driven board work.

sync_board() is meant to run on a schedule: it syncs every active card of a
project that has at least one lane session. Each card is its own task with
retries; a card that still fails is logged and reported in the summary
without stopping the rest of the board.
"""

import logging
from dataclasses import dataclass, field

from prefect import flow, task

from squadboard.board.card import Card
from squadboard.board.context import BoardContext
from squadboard.board.errors import BoardError
from squadboard.board.sync import sync_artifacts
from squadboard.lib.constants import SESSION_LANES
from squadboard.lib.locking import LockTimeout
from squadboard.sessions.gateway import SessionGateway

logger = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    """Outcome of one board sync."""
    synced: list[str] = field(default_factory=list)    # card ids checked
    changed: list[str] = field(default_factory=list)   # card ids that got new artifacts
    failed: dict[str, str] = field(default_factory=dict)  # card id -> error

    @property
    def ok(self) -> bool:
        return not self.failed


def needs_sync(card: Card) -> bool:
    return card.lane != "done" and any(card.session_id_for(lane) for lane in SESSION_LANES)


@task(
    retries=2,
    retry_delay_seconds=5,
    name="sync_card",
    description="Harvest new artifacts from a card's lane sessions"
)
def task_sync_card(ctx: BoardContext, card_id: str) -> Card:
    """Sync one card. Retries cover lock contention and transient transcript reads."""
    return sync_artifacts(ctx, card_id)


@task(
    retries=2,
    retry_delay_seconds=30,
    name="dispatch_prompt",
    description="Deliver a prompt to an agent session and wait for the response"
)
def task_dispatch_prompt(sessions: SessionGateway, session_id: str, text: str) -> None:
    """Tracked, retried alternative to send_prompt_async()."""
    session = sessions.fetch(session_id)
    sessions.send_prompt(session, text)


@flow(name="sync_board")
def sync_board(ctx: BoardContext, project_id: str) -> SyncSummary:
    """Sync all active cards of a project."""
    summary = SyncSummary()

    for card in ctx.store.list(project_id):
        if not needs_sync(card):
            continue
        try:
            updated = task_sync_card(ctx, card.id)
        except (BoardError, LockTimeout) as e:
            logger.warning(f"[SYNC] {card.id}: {e}")
            summary.failed[card.id] = str(e)
            continue
        except Exception as e:
            # One broken card must not stop the rest of the board
            logger.exception(f"[SYNC] {card.id}: unexpected error")
            summary.failed[card.id] = f"{type(e).__name__}: {e}"
            continue

        summary.synced.append(card.id)
        if updated != card:
            summary.changed.append(card.id)

    logger.info(
        f"[SYNC] {project_id}: {len(summary.synced)} synced, "
        f"{len(summary.changed)} changed, {len(summary.failed)} failed"
    )
    return summary
