"""
Board context.

Everything a board operation touches is passed in explicitly through a
BoardContext: the card store, the lane registry and the three external
collaborators (sessions, worktrees, issue tracker).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from squadboard.board.card import Card, valid_card_id
from squadboard.board.errors import BoardError, NOT_FOUND, not_found
from squadboard.board.lanes import LaneRegistry
from squadboard.board.store import CardStore
from squadboard.git.worktree import GitWorktreeProvisioner, WorktreeProvisioner
from squadboard.lib.config import BoardSettings, ProjectConfig, load_board_settings, load_project
from squadboard.lib.github import GhIssueTracker, IssueTracker
from squadboard.lib.locking import card_lock
from squadboard.sessions.dispatch import PromptDispatcher
from squadboard.sessions.gateway import SessionGateway
from squadboard.sessions.local import LocalSessionGateway

logger = logging.getLogger(__name__)


@dataclass
class BoardContext:
    """Collaborators for one board (one squadboard home directory)."""
    home: Path
    settings: BoardSettings
    store: CardStore
    lanes: LaneRegistry
    sessions: SessionGateway
    worktrees: WorktreeProvisioner
    tracker: IssueTracker

    @classmethod
    def create(cls, home: Path, settings: BoardSettings | None = None) -> 'BoardContext':
        """Build a context with the local/git/gh collaborator implementations."""
        settings = settings or load_board_settings(home)
        lanes = LaneRegistry(home)
        sessions = LocalSessionGateway(
            home,
            command_for=lambda agent_id: lanes.find_agent(agent_id).command,
            timeout=settings.agent_timeout,
            dispatcher=PromptDispatcher(max_workers=settings.dispatch_workers),
        )
        return cls(
            home=home,
            settings=settings,
            store=CardStore(home),
            lanes=lanes,
            sessions=sessions,
            worktrees=GitWorktreeProvisioner(timeout=settings.git_timeout),
            tracker=GhIssueTracker(timeout=settings.gh_timeout),
        )

    @contextmanager
    def lock(self, card_id: str):
        """Serialize read-modify-write operations on one card.

        Raises:
            BoardError: not_found if the id can't name a card file
        """
        if not valid_card_id(card_id):
            raise not_found(card_id)
        with card_lock(self.home, card_id, timeout=self.settings.lock_timeout):
            yield

    def get_card(self, card_id: str) -> Card:
        card = self.store.get(card_id)
        if card is None:
            raise not_found(card_id)
        return card

    def project(self, project_id: str) -> ProjectConfig:
        try:
            return load_project(self.home, project_id)
        except (FileNotFoundError, KeyError, ValueError) as e:
            raise BoardError(NOT_FOUND, f"Project not found or misconfigured: {project_id}",
                             {"project_id": project_id, "error": str(e)}) from None

    def shutdown(self, wait: bool = True) -> None:
        """Wait for (or abandon) in-flight prompt dispatches."""
        if self.sessions.dispatcher is not None:
            self.sessions.dispatcher.shutdown(wait=wait)
