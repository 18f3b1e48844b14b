"""
Issue publication.

Turns a card's issue plan into GitHub issues: missing labels are created
first, then one issue per planned issue. Issues whose title already has a
ref on the card are skipped, so publishing a fully published plan again
creates nothing.
"""

import logging

from squadboard.board.card import Card, issue_ref_from_tracker
from squadboard.board.context import BoardContext
from squadboard.board.errors import (
    BoardError,
    GITHUB_ERROR,
    GITHUB_REPO_NOT_CONFIGURED,
    ISSUE_PLAN_NOT_FOUND,
)
from squadboard.board.extractors import extract_issue_plan
from squadboard.lib.constants import DEFAULT_LABEL, DEFAULT_LABEL_COLOR
from squadboard.lib.github import IssueTracker, RepoNotConfigured, TrackerError
from squadboard.sessions.gateway import SessionError

logger = logging.getLogger(__name__)


def issue_labels(issue: dict) -> list[str]:
    return [name for name in (issue.get("labels") or [DEFAULT_LABEL]) if name]


def ensure_issue_plan(ctx: BoardContext, card: Card) -> dict:
    """The card's issue plan, or one freshly extracted from its plan session."""
    if isinstance(card.issue_plan, dict):
        return card.issue_plan

    if not card.plan_session_id:
        raise BoardError(ISSUE_PLAN_NOT_FOUND, f"Card {card.id} has no issue plan and no plan session")

    try:
        entries = ctx.sessions.fetch_transcript(card.plan_session_id, ctx.settings.transcript_limit)
    except SessionError as e:
        raise BoardError(ISSUE_PLAN_NOT_FOUND, f"Plan session unavailable: {e}",
                         {"session_id": card.plan_session_id}) from e

    plan = extract_issue_plan(entries)
    if plan is None:
        raise BoardError(ISSUE_PLAN_NOT_FOUND, f"No ISSUE_PLAN block in plan session {card.plan_session_id}")
    return plan


def ensure_labels(tracker: IssueTracker, repo: str, issues: list[dict]) -> list[str]:
    """Create any label the issues use that doesn't exist yet. Returns created names.

    Raises:
        TrackerError: On the first failed lookup or creation.
    """
    created = []
    wanted = list(dict.fromkeys(name for issue in issues for name in issue_labels(issue)))
    for name in wanted:
        if tracker.get_label(repo, name) is not None:
            continue
        tracker.create_label(repo, {"name": name, "color": DEFAULT_LABEL_COLOR, "description": ""})
        created.append(name)
    return created


def publish_issues(ctx: BoardContext, card_id: str) -> Card:
    """Create tracker issues for the card's issue plan.

    If any issue fails to be created the card is left unpatched and the
    errors are reported together.

    Raises:
        BoardError: not_found, issue_plan_not_found, github_repo_not_configured,
            github_error
    """
    with ctx.lock(card_id):
        card = ctx.get_card(card_id)
        plan = ensure_issue_plan(ctx, card)
        project = ctx.project(card.project_id)

        try:
            repo = ctx.tracker.resolve_repo(project)
        except RepoNotConfigured as e:
            raise BoardError(GITHUB_REPO_NOT_CONFIGURED, str(e), {"project_id": project.id}) from None
        except TrackerError as e:
            raise BoardError(GITHUB_ERROR, str(e), {"errors": [str(e)]}) from e

        existing = list(card.issue_refs or [])
        published = {ref.get("title") for ref in existing}
        pending = [issue for issue in plan.get("issues") or [] if issue.get("title") not in published]

        try:
            new_labels = ensure_labels(ctx.tracker, repo, pending)
        except TrackerError as e:
            raise BoardError(GITHUB_ERROR, f"Label setup failed: {e}", {"errors": [str(e)]}) from e

        refs, errors = [], []
        for issue in pending:
            attrs = {
                "title": issue["title"],
                "body": issue.get("body_md") or issue.get("body") or "",
                "labels": issue_labels(issue),
            }
            try:
                created = ctx.tracker.create_issue(repo, attrs)
            except TrackerError as e:
                errors.append(f"{issue['title']}: {e}")
                continue
            refs.append(issue_ref_from_tracker(repo, created))

        if errors:
            logger.error(f"[PUBLISH] {card.id}: {len(errors)} of {len(pending)} issues failed in {repo}")
            raise BoardError(GITHUB_ERROR, f"{len(errors)} issue(s) could not be created",
                             {"errors": errors, "created": refs})

        logger.info(f"[PUBLISH] {card.id}: {len(refs)} issue(s), {len(new_labels)} new label(s) in {repo}")
        return ctx.store.update(card, {"issue_plan": plan, "issue_refs": existing + refs})
