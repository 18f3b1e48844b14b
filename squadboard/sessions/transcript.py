"""Session transcripts.

A transcript is the ordered message log of one agent session. The board
mines assistant messages for artifacts (issue plan, build result, AI review).
"""

import json
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class TranscriptError(Exception):
    """A transcript file exists but can't be read."""
    pass


class Role(Enum):
    """Who authored a transcript message."""
    USER = "user"            # Prompts sent by the board
    ASSISTANT = "assistant"  # Agent output
    SYSTEM = "system"        # Runtime notices (timeouts, failures)


@dataclass
class TranscriptEntry:
    """Single message in a session transcript."""
    position: int
    role: str            # Role enum value
    payload: dict        # {"parts": [{"type": "text", "text": "..."}], ...}
    occurred_at: str = ""
    message_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        return asdict(self)


def text_payload(text: str, **metadata) -> dict:
    """Build a message payload holding a single text part."""
    return {"parts": [{"type": "text", "text": text}], **metadata}


class Transcript:
    """
    File-backed transcript for one session.

    Usage:
        transcript = Transcript(session_dir)
        transcript.load()
        transcript.record(Role.USER, prompt_text)
        transcript.record(Role.ASSISTANT, response_text, exit_code=0)
        transcript.save()
    """

    def __init__(self, session_dir: Path):
        self.session_dir = session_dir
        self.entries: list[TranscriptEntry] = []
        self._file_path = session_dir / "transcript.json"

    def record(self, role: Role, text: str, **metadata) -> TranscriptEntry:
        """Append a text message to the transcript."""
        entry = TranscriptEntry(
            position=len(self.entries),
            role=role.value,
            payload=text_payload(text, **metadata),
            occurred_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        self.entries.append(entry)
        return entry

    def tail(self, limit: int) -> list[TranscriptEntry]:
        """Return the last ``limit`` entries, oldest first."""
        if limit <= 0:
            return []
        return list(self.entries[-limit:])

    def save(self) -> None:
        """Save transcript to JSON file."""
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": 1,
            "entries": [e.to_dict() for e in self.entries],
        }
        tmp_path = self._file_path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(self._file_path)

    def load(self) -> bool:
        """Load existing transcript if present. Returns True if loaded.

        Raises:
            TranscriptError: If the file exists but can't be parsed
        """
        if not self._file_path.exists():
            return False
        try:
            data = json.loads(self._file_path.read_text())
            self.entries = [
                TranscriptEntry(**e) for e in data.get("entries", [])
            ]
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            raise TranscriptError(f"Unreadable transcript {self._file_path}: {e}") from e
        return True

    def __len__(self) -> int:
        return len(self.entries)
