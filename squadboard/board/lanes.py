"""
Lane assignment registry.

Squads, their agents and lane -> agent assignments live in
projects/<project_id>/squads.yaml:

    squads:
      core:
        name: Core Squad
        agents:
          green-panda:
            slug: green-panda
            command: "claude --dangerously-skip-permissions -p {prompt}"
        lanes:
          plan: green-panda
          build: green-panda
          review: green-panda

The board only reads assignments; `upsert` exists for configuration tooling.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from squadboard.lib.agents_config import DEFAULT_AGENT_COMMAND
from squadboard.lib.config import project_dir
from squadboard.lib.constants import ASSIGNABLE_LANES

logger = logging.getLogger(__name__)

SQUADS_FILE = "squads.yaml"


@dataclass
class Agent:
    id: str
    slug: str
    command: str = DEFAULT_AGENT_COMMAND


@dataclass
class Squad:
    id: str
    name: str
    agents: dict[str, Agent] = field(default_factory=dict)
    lanes: dict[str, Optional[str]] = field(default_factory=dict)  # lane -> agent id


def _parse_agent(agent_id: str, raw) -> Agent:
    raw = raw or {}
    return Agent(
        id=agent_id,
        slug=str(raw.get("slug") or agent_id),
        command=str(raw.get("command") or DEFAULT_AGENT_COMMAND),
    )


def _parse_squad(squad_id: str, raw) -> Squad:
    raw = raw or {}
    return Squad(
        id=squad_id,
        name=str(raw.get("name") or squad_id),
        agents={aid: _parse_agent(aid, a) for aid, a in (raw.get("agents") or {}).items()},
        lanes={lane: agent for lane, agent in (raw.get("lanes") or {}).items()},
    )


class LaneRegistry:
    """YAML-backed (project, squad, lane) -> agent mapping."""

    def __init__(self, home: Path):
        self.home = home

    def _path(self, project_id: str) -> Path:
        return project_dir(self.home, project_id) / SQUADS_FILE

    def _load_raw(self, project_id: str) -> dict:
        path = self._path(project_id)
        if not path.exists():
            return {}
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def squads(self, project_id: str) -> list[Squad]:
        raw = self._load_raw(project_id).get("squads") or {}
        return [_parse_squad(sid, s) for sid, s in sorted(raw.items())]

    def squad(self, project_id: str, squad_id: str) -> Squad | None:
        for squad in self.squads(project_id):
            if squad.id == squad_id:
                return squad
        return None

    def get(self, project_id: str, squad_id: str, lane: str) -> str | None:
        """Agent id assigned to the lane, or None if unassigned."""
        squad = self.squad(project_id, squad_id)
        if squad is None:
            return None
        return squad.lanes.get(lane) or None

    def agent(self, project_id: str, agent_id: str) -> Agent:
        """Look up an agent in any squad of the project.

        Agents that aren't declared explicitly get a default definition
        (slug = id, default command).
        """
        for squad in self.squads(project_id):
            if agent_id in squad.agents:
                return squad.agents[agent_id]
        return _parse_agent(agent_id, None)

    def find_agent(self, agent_id: str) -> Agent:
        """Look up an agent across all projects under the home directory."""
        projects_dir = self.home / "projects"
        if projects_dir.exists():
            for d in sorted(p for p in projects_dir.iterdir() if p.is_dir()):
                agents = {aid: a for squad in self.squads(d.name) for aid, a in squad.agents.items()}
                if agent_id in agents:
                    return agents[agent_id]
        return _parse_agent(agent_id, None)

    def upsert(self, project_id: str, squad_id: str, lane: str, agent_id: str | None) -> Squad:
        """Set (or clear, with None) the agent for a squad lane.

        Raises:
            ValueError: If the lane can't carry an assignment.
        """
        if lane not in ASSIGNABLE_LANES:
            raise ValueError(f"Lane '{lane}' can't be assigned (valid: {', '.join(ASSIGNABLE_LANES)})")

        data = self._load_raw(project_id)
        squads = data.get("squads") or {}
        raw_squad = squads.get(squad_id) or {}
        lanes = raw_squad.get("lanes") or {}
        lanes[lane] = agent_id
        raw_squad["lanes"] = lanes
        squads[squad_id] = raw_squad
        data["squads"] = squads

        path = self._path(project_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".squads.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(data, f, sort_keys=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"[LANE] {project_id}/{squad_id}: {lane} -> {agent_id or '(unassigned)'}")
        return _parse_squad(squad_id, raw_squad)
