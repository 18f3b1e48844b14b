"""Shared constants for squadboard."""

import re

# Board lanes, in display order
LANES = ("todo", "plan", "build", "review", "done")

# Lanes that start an agent session when a card moves into them
SESSION_LANES = ("plan", "build", "review")

# Lanes that can carry an agent assignment (done is reached via human review only)
ASSIGNABLE_LANES = ("todo", "plan", "build", "review")

HUMAN_REVIEW_PENDING = "pending"
HUMAN_REVIEW_APPROVED = "approved"
HUMAN_REVIEW_CHANGES_REQUESTED = "changes_requested"

# Local soft state of an issue ref (independent of GitHub's own state)
SOFT_STATE_OPEN = "open"
SOFT_STATE_CLOSED = "soft_closed"

# Card titles
TITLE_MAX_LEN = 120
UNTITLED = "(untitled)"

# PRD allocation under the project repo
PRD_DIR = ".squads/prds"
PRD_SEQ_WIDTH = 3
PRD_SLUG_MAX_LEN = 48
PRD_SEQ_PATTERN = re.compile(r'^(\d{3})[-.]')

# Build worktrees under the project repo
WORKTREES_DIR = ".squads/worktrees"
BRANCH_PREFIX = "squads/"

# Issue publication
DEFAULT_LABEL = "squads"
DEFAULT_LABEL_COLOR = "ededed"

# Transcript entries read per session when mining artifacts
TRANSCRIPT_LIMIT = 500
