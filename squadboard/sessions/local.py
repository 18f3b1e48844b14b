"""
Local session gateway.

Sessions live under <home>/sessions/<session_id>/ (session.json +
transcript.json). Prompts are executed by the agent's CLI command in the
session's worktree; the prompt and the agent's output are appended to the
transcript, where the artifact sync later finds them.
"""

import json
import logging
import subprocess
import uuid
from pathlib import Path
from typing import Callable

from squadboard.lib.agents_config import build_agent_command
from squadboard.lib.constants import TRANSCRIPT_LIMIT
from squadboard.lib.locking import session_lock
from squadboard.sessions.dispatch import PromptDispatcher
from squadboard.sessions.gateway import Session, SessionError, SessionGateway, SessionNotFound
from squadboard.sessions.transcript import Role, Transcript, TranscriptEntry, TranscriptError

logger = logging.getLogger(__name__)


class LocalSessionGateway(SessionGateway):
    """File-backed sessions driven by agent CLI commands."""

    def __init__(
        self,
        home: Path,
        command_for: Callable[[str], str],
        timeout: int = 900,
        dispatcher: PromptDispatcher | None = None,
    ):
        super().__init__(dispatcher)
        self.sessions_dir = home / "sessions"
        self.home = home
        self.command_for = command_for
        self.timeout = timeout

    def _session_dir(self, session_id: str) -> Path:
        return self.sessions_dir / session_id

    def fetch(self, session_id: str) -> Session:
        meta_path = self._session_dir(session_id) / "session.json"
        if not meta_path.exists():
            raise SessionNotFound(f"Session {session_id} not found")
        try:
            return Session(**json.loads(meta_path.read_text()))
        except (json.JSONDecodeError, TypeError) as e:
            raise SessionError(f"Corrupt session record {meta_path}: {e}") from e

    def create_or_get(
        self,
        agent_id: str,
        title: str,
        worktree_path: str | None = None,
        branch: str | None = None,
        session_id: str | None = None,
    ) -> Session:
        if session_id:
            try:
                session = self.fetch(session_id)
                logger.debug(f"[SESSION] Reusing {session_id} for agent {agent_id}")
                return session
            except SessionNotFound:
                logger.info(f"[SESSION] {session_id} no longer exists, creating a new session")

        session = Session(
            id=uuid.uuid4().hex,
            agent_id=agent_id,
            title=title,
            worktree_path=worktree_path,
            branch=branch,
        )
        session_dir = self._session_dir(session.id)
        try:
            session_dir.mkdir(parents=True, exist_ok=False)
            (session_dir / "session.json").write_text(json.dumps(session.to_dict(), indent=2))
            Transcript(session_dir).save()
        except OSError as e:
            raise SessionError(f"Failed to create session for agent {agent_id}: {e}") from e

        logger.info(f"[SESSION] Created {session.id} for agent {agent_id}: {title}")
        return session

    def fetch_transcript(self, session_id: str, limit: int = TRANSCRIPT_LIMIT) -> list[TranscriptEntry]:
        session_dir = self._session_dir(session_id)
        if not session_dir.exists():
            raise SessionNotFound(f"Session {session_id} not found")
        return self._load_transcript(session_id).tail(limit)

    def _load_transcript(self, session_id: str) -> Transcript:
        transcript = Transcript(self._session_dir(session_id))
        try:
            transcript.load()
        except TranscriptError as e:
            raise SessionError(f"Session {session_id}: {e}") from e
        return transcript

    def _append(self, session_id: str, role: Role, text: str, **metadata) -> None:
        # An unreadable transcript is never overwritten
        with session_lock(self.home, session_id):
            transcript = self._load_transcript(session_id)
            transcript.record(role, text, **metadata)
            transcript.save()

    def send_prompt(self, session: Session, text: str) -> None:
        """Run the agent CLI with the prompt and record the exchange.

        Raises:
            SessionError: If the agent times out or exits non-zero.
        """
        self.fetch(session.id)
        self._append(session.id, Role.USER, text)

        cwd = session.worktree_path if session.worktree_path and Path(session.worktree_path).is_dir() else None
        command = build_agent_command(
            self.command_for(session.agent_id),
            {"prompt": text, "worktree": cwd or "", "session_id": session.id},
        )

        try:
            result = subprocess.run(
                command.cmd,
                input=command.get_stdin_input(text),
                capture_output=True,
                text=True,
                cwd=cwd,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            self._append(session.id, Role.SYSTEM, f"Agent timed out after {self.timeout}s")
            raise SessionError(f"Agent for session {session.id} timed out after {self.timeout}s") from None
        except FileNotFoundError as e:
            self._append(session.id, Role.SYSTEM, f"Agent command not found: {command.cmd[0]}")
            raise SessionError(f"Agent command not found: {command.cmd[0]}") from e

        if result.stdout.strip():
            self._append(session.id, Role.ASSISTANT, result.stdout, exit_code=result.returncode)

        if result.returncode != 0:
            self._append(session.id, Role.SYSTEM, f"Agent exited {result.returncode}: {result.stderr.strip()}")
            raise SessionError(f"Agent for session {session.id} exited {result.returncode}")

        logger.info(f"[SESSION] {session.id}: agent responded ({len(result.stdout)} chars)")
