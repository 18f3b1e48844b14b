"""PRD path allocation.

Each planned card reserves a PRD file under <repo>/.squads/prds/ named
NNN-<slug>.md, where NNN is one past the highest sequence already present.
"""

import re
from pathlib import Path

from squadboard.lib.constants import PRD_DIR, PRD_SEQ_PATTERN, PRD_SEQ_WIDTH, PRD_SLUG_MAX_LEN


def slugify(text: str | None) -> str:
    slug = (text or "").lower()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug).strip("-")
    return slug[:PRD_SLUG_MAX_LEN] if slug else "card"


def next_prd_seq(prd_dir: Path) -> int:
    """Highest NNN- / NNN. prefix in the directory plus one (1 if none)."""
    if not prd_dir.is_dir():
        return 1
    seqs = [
        int(m.group(1))
        for m in (PRD_SEQ_PATTERN.match(p.name) for p in prd_dir.iterdir())
        if m
    ]
    return max(seqs, default=0) + 1


def next_prd_path(repo_path: Path, seed: str | None) -> str:
    """Allocate the next PRD path, relative to the repo root.

    Creates the PRD directory so the plan agent can write straight into it.
    """
    prd_dir = repo_path / PRD_DIR
    prd_dir.mkdir(parents=True, exist_ok=True)
    seq = next_prd_seq(prd_dir)
    return f"{PRD_DIR}/{seq:0{PRD_SEQ_WIDTH}d}-{slugify(seed)}.md"
