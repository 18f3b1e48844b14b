"""Shared fixtures: a board home on disk with in-memory collaborators."""

from pathlib import Path

import pytest

from squadboard.board.context import BoardContext
from squadboard.board.engine import create_card
from squadboard.board.lanes import LaneRegistry
from squadboard.board.store import CardStore
from squadboard.git.worktree import WorktreeError, WorktreeProvisioner, worktree_name
from squadboard.lib.config import BoardSettings, ProjectConfig
from squadboard.lib.constants import WORKTREES_DIR
from squadboard.lib.github import IssueTracker, RepoNotConfigured, TrackerError
from squadboard.sessions.gateway import Session, SessionError, SessionGateway, SessionNotFound
from squadboard.sessions.transcript import TranscriptEntry, text_payload

PROJECT_ID = "demo"
SQUAD_ID = "core"
AGENT_ID = "green-panda"
REPO = "acme/widgets"

SQUADS_YAML = f"""\
squads:
  {SQUAD_ID}:
    name: Core Squad
    agents:
      {AGENT_ID}:
        slug: {AGENT_ID}
        command: "echo {{prompt}}"
    lanes:
      plan: {AGENT_ID}
      build: {AGENT_ID}
      review: {AGENT_ID}
"""


def assistant_entry(text: str, position: int = 0) -> TranscriptEntry:
    return TranscriptEntry(position=position, role="assistant", payload=text_payload(text))


def user_entry(text: str, position: int = 0) -> TranscriptEntry:
    return TranscriptEntry(position=position, role="user", payload=text_payload(text))


def json_block(body: str) -> str:
    return f"Done.\n\n```json\n{body}\n```\n"


class FakeSessionGateway(SessionGateway):
    """In-memory sessions; async dispatch is recorded instead of run."""

    def __init__(self):
        super().__init__(dispatcher=None)
        self.sessions: dict[str, Session] = {}
        self.transcripts: dict[str, list[TranscriptEntry]] = {}
        self.created: list[Session] = []
        self.sent: list[tuple[str, str]] = []
        self.dispatched: list[tuple[str, tuple[str, ...]]] = []
        self.fail_create = False

    def create_or_get(self, agent_id, title, worktree_path=None, branch=None, session_id=None):
        if session_id and session_id in self.sessions:
            return self.sessions[session_id]
        if self.fail_create:
            raise SessionError("agent runtime unavailable")
        session = Session(
            id=f"sess-{len(self.created) + 1}",
            agent_id=agent_id,
            title=title,
            worktree_path=worktree_path,
            branch=branch,
        )
        self.sessions[session.id] = session
        self.transcripts[session.id] = []
        self.created.append(session)
        return session

    def send_prompt(self, session, text):
        self.sent.append((session.id, text))

    def send_prompt_async(self, session, *texts):
        self.dispatched.append((session.id, texts))

    def fetch(self, session_id):
        if session_id not in self.sessions:
            raise SessionNotFound(f"Session {session_id} not found")
        return self.sessions[session_id]

    def fetch_transcript(self, session_id, limit=500):
        if session_id not in self.transcripts:
            raise SessionNotFound(f"Session {session_id} not found")
        return self.transcripts[session_id][-limit:]

    def say(self, session_id: str, text: str) -> None:
        """Append an assistant message to a session transcript."""
        entries = self.transcripts[session_id]
        entries.append(assistant_entry(text, position=len(entries)))


class FakeWorktreeProvisioner(WorktreeProvisioner):

    def __init__(self, default_branch: str = "main"):
        self.calls: list[tuple[str, str, str]] = []
        self.branch = default_branch
        self.error: str | None = None

    def ensure(self, project: ProjectConfig, agent_slug: str, card_id: str) -> Path:
        self.calls.append((project.id, agent_slug, card_id))
        if self.error:
            raise WorktreeError(self.error)
        return project.repo_path / WORKTREES_DIR / worktree_name(agent_slug, card_id)

    def default_branch(self, project: ProjectConfig) -> str:
        return self.branch


class FakeTracker(IssueTracker):

    def __init__(self, repo: str | None = REPO):
        self.repo = repo
        self.labels: dict[str, dict] = {}
        self.created_labels: list[dict] = []
        self.issues: list[dict] = []
        self.fail_titles: set[str] = set()

    def resolve_repo(self, project):
        if not self.repo:
            raise RepoNotConfigured(f"No GitHub repository configured for project {project.id}")
        return self.repo

    def get_label(self, repo, name):
        return self.labels.get(name)

    def create_label(self, repo, attrs):
        label = dict(attrs)
        self.labels[attrs["name"]] = label
        self.created_labels.append(label)
        return label

    def create_issue(self, repo, attrs):
        if attrs["title"] in self.fail_titles:
            raise TrackerError(f"Failed to create issue '{attrs['title']}': HTTP 502")
        number = len(self.issues) + 1
        issue = {
            "number": number,
            "html_url": f"https://github.com/{repo}/issues/{number}",
            "title": attrs["title"],
            "state": "open",
            "labels": attrs["labels"],
        }
        self.issues.append(issue)
        return issue


@pytest.fixture
def repo_path(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def home(tmp_path, repo_path):
    """Board home with one project and one fully assigned squad."""
    home = tmp_path / "home"
    project_dir = home / "projects" / PROJECT_ID
    project_dir.mkdir(parents=True)
    (project_dir / "project.env").write_text(
        f'PROJECT_NAME="Demo"\nREPO_PATH="{repo_path}"\nGITHUB_REPO="{REPO}"\nDEFAULT_BRANCH="main"\n'
    )
    (project_dir / "squads.yaml").write_text(SQUADS_YAML)
    return home


@pytest.fixture
def sessions():
    return FakeSessionGateway()


@pytest.fixture
def worktrees():
    return FakeWorktreeProvisioner()


@pytest.fixture
def tracker():
    return FakeTracker()


@pytest.fixture
def ctx(home, sessions, worktrees, tracker):
    return BoardContext(
        home=home,
        settings=BoardSettings(lock_timeout=5),
        store=CardStore(home),
        lanes=LaneRegistry(home),
        sessions=sessions,
        worktrees=worktrees,
        tracker=tracker,
    )


@pytest.fixture
def card(ctx):
    return create_card(ctx, PROJECT_ID, SQUAD_ID, "Fix login bug\n\nDetails about the bug.")
