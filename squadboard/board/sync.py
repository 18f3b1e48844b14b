"""
Artifact sync.

Re-reads each lane session's transcript, extracts that lane's artifact and
patches the card. Artifacts are first-write-wins: an issue plan, PR URL or
AI review already on the card is never replaced, so repeated syncs are
idempotent and safe to run on a timer.
"""

import logging
from typing import Callable, Iterable, Optional

from squadboard.board.card import Card, utc_now
from squadboard.board.context import BoardContext
from squadboard.board.errors import BoardError, SESSION_ERROR, SESSION_NOT_FOUND
from squadboard.board.extractors import (
    AI_REVIEW,
    BUILD_RESULT,
    ISSUE_PLAN,
    extract_ai_review,
    extract_build_result,
    extract_issue_plan,
)
from squadboard.board.patches import (
    AiReviewFound,
    ArtifactPatch,
    IssuePlanFound,
    PullRequestOpened,
    merge_patches,
)
from squadboard.sessions.gateway import SessionError, SessionNotFound

logger = logging.getLogger(__name__)

# Lane session -> (artifact kind, extractor)
LANE_ARTIFACTS = (
    ("plan", ISSUE_PLAN, extract_issue_plan),
    ("build", BUILD_RESULT, extract_build_result),
    ("review", AI_REVIEW, extract_ai_review),
)


def artifact_patches(card: Card, found: dict[str, Optional[dict]], now: str) -> list[ArtifactPatch]:
    """Patches for newly found artifacts, skipping anything the card already has."""
    patches: list[ArtifactPatch] = []

    plan = found.get(ISSUE_PLAN)
    if plan is not None and card.issue_plan is None:
        patches.append(IssuePlanFound(plan))

    result = found.get(BUILD_RESULT)
    pr_url = result.get("pr_url") if result else None
    if isinstance(pr_url, str) and pr_url.strip() and card.pr_url is None:
        patches.append(PullRequestOpened(pr_url=pr_url.strip(), opened_at=now, issue_refs=card.issue_refs))

    review = found.get(AI_REVIEW)
    if review is not None and card.ai_review is None:
        patches.append(AiReviewFound(review))

    return patches


def _lane_artifact(ctx: BoardContext, card: Card, lane: str, kind: str,
                   extractor: Callable[[Iterable], Optional[dict]]) -> Optional[dict]:
    session_id = card.session_id_for(lane)
    try:
        entries = ctx.sessions.fetch_transcript(session_id, ctx.settings.transcript_limit)
    except SessionNotFound:
        raise BoardError(SESSION_NOT_FOUND, f"{lane} session {session_id} not found",
                         {"card_id": card.id, "lane": lane, "session_id": session_id}) from None
    except SessionError as e:
        raise BoardError(SESSION_ERROR, f"Failed to read {lane} transcript: {e}",
                         {"card_id": card.id, "lane": lane, "session_id": session_id}) from e

    artifact = extractor(entries)
    logger.debug(f"[SYNC] {card.id}: {kind} {'found' if artifact else 'not found'} in {session_id}")
    return artifact


def sync_artifacts(ctx: BoardContext, card_id: str) -> Card:
    """Harvest new artifacts from the card's lane sessions.

    All transcripts are read before anything is written; the card is
    patched in one write, or not at all when nothing new was found.

    Raises:
        BoardError: not_found, session_not_found, session_error
    """
    with ctx.lock(card_id):
        card = ctx.get_card(card_id)

        found = {
            kind: _lane_artifact(ctx, card, lane, kind, extractor)
            for lane, kind, extractor in LANE_ARTIFACTS
            if card.session_id_for(lane)
        }

        patches = artifact_patches(card, found, utc_now())
        if not patches:
            return card

        logger.info(f"[SYNC] {card.id}: {', '.join(type(p).__name__ for p in patches)}")
        return ctx.store.update(card, merge_patches(*patches))
