"""Session gateway contract.

A session is an external agent run bound to a card lane. The board only
stores session ids; everything else about a session belongs to the gateway.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional

from squadboard.lib.constants import TRANSCRIPT_LIMIT
from squadboard.sessions.dispatch import PromptDispatcher
from squadboard.sessions.transcript import TranscriptEntry

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """The agent runtime failed to create or drive a session."""
    pass


class SessionNotFound(SessionError):
    """No session with the given id."""
    pass


@dataclass
class Session:
    """Reference to an agent work-session."""
    id: str
    agent_id: str
    title: str
    worktree_path: Optional[str] = None
    branch: Optional[str] = None
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    def to_dict(self) -> dict:
        return asdict(self)


class SessionGateway(ABC):
    """Creates/fetches agent sessions and dispatches prompts to them."""

    def __init__(self, dispatcher: PromptDispatcher | None = None):
        self.dispatcher = dispatcher

    @abstractmethod
    def create_or_get(
        self,
        agent_id: str,
        title: str,
        worktree_path: str | None = None,
        branch: str | None = None,
        session_id: str | None = None,
    ) -> Session:
        """Return the session ``session_id`` if it still exists, else create one.

        Raises:
            SessionError: If a new session can't be created.
        """

    @abstractmethod
    def send_prompt(self, session: Session, text: str) -> None:
        """Deliver a prompt and block until the agent has responded."""

    @abstractmethod
    def fetch(self, session_id: str) -> Session:
        """Raises SessionNotFound if the session doesn't exist."""

    @abstractmethod
    def fetch_transcript(self, session_id: str, limit: int = TRANSCRIPT_LIMIT) -> list[TranscriptEntry]:
        """Return up to ``limit`` most recent transcript entries, oldest first.

        Raises:
            SessionNotFound: If the session doesn't exist.
        """

    def send_prompt_async(self, session: Session, *texts: str) -> None:
        """Fire-and-forget prompt delivery; never raises for delivery failures.

        Several prompts are delivered in order by one job, so a follow-up
        instruction never races the prompt before it.
        """
        if self.dispatcher is None:
            self.dispatcher = PromptDispatcher()
        logger.info(f"[SESSION] Dispatching {len(texts)} prompt(s) to {session.id}")
        self.dispatcher.submit(self._send_in_order, session, texts, description=f"prompt -> {session.id}")

    def _send_in_order(self, session: Session, texts: tuple[str, ...]) -> None:
        for text in texts:
            self.send_prompt(session, text)
