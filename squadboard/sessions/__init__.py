"""Agent sessions: gateway contract, local implementation, transcripts, dispatch."""

from squadboard.sessions.gateway import Session, SessionError, SessionGateway, SessionNotFound
from squadboard.sessions.transcript import Role, Transcript, TranscriptEntry, TranscriptError
from squadboard.sessions.dispatch import PromptDispatcher

__all__ = [
    "Session",
    "SessionError",
    "SessionGateway",
    "SessionNotFound",
    "Role",
    "Transcript",
    "TranscriptEntry",
    "TranscriptError",
    "PromptDispatcher",
]
