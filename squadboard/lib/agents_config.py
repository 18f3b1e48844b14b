"""
Agent command configuration.

Each agent in squads.yaml may declare a CLI command template used by the
local session gateway to run prompts:

    agents:
      green-panda:
        slug: green-panda
        command: "claude --dangerously-skip-permissions -p {prompt}"

Variable Handling:
- {prompt}: The prompt text. If present in the template, passed as a CLI
  arg. If absent, the prompt is passed via stdin.
- {worktree}: Directory the session runs in (build worktree or repo).
- {session_id}: The squadboard session id, for agents that keep their own
  per-session state.
"""

import logging
import re
import shlex
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_AGENT_COMMAND = "claude --dangerously-skip-permissions -p {prompt}"

_PROMPT_PLACEHOLDER = "__PROMPT_PLACEHOLDER__"


@dataclass
class AgentCommand:
    """Result of building an agent command."""
    cmd: list[str]  # Command ready for subprocess
    prompt_via_stdin: bool  # True if prompt should be passed via stdin

    def get_stdin_input(self, prompt: str) -> str | None:
        """Return prompt if it should be passed via stdin, else None."""
        return prompt if self.prompt_via_stdin else None


def build_agent_command(template: str, context: dict[str, str]) -> AgentCommand:
    """Build a command list from a template with variable substitution.

    Example:
        >>> result = build_agent_command("claude -p {prompt}", {"prompt": "do stuff"})
        >>> result.cmd
        ['claude', '-p', 'do stuff']
        >>> result.prompt_via_stdin
        False

    Raises:
        ValueError: If the template is empty.
    """
    if not template or not template.strip():
        raise ValueError("Agent command template is empty")

    prompt_via_stdin = "{prompt}" not in template

    # Swap the prompt out before shlex parsing to avoid quote issues
    prompt_value = context.get("prompt")
    cmd_template = template.replace("{prompt}", _PROMPT_PLACEHOLDER)

    for key, value in context.items():
        if key != "prompt":
            cmd_template = cmd_template.replace(f"{{{key}}}", shlex.quote(str(value)))

    remaining_vars = re.findall(r'\{(\w+)\}', cmd_template)
    if remaining_vars:
        logger.error(
            f"Agent command has unsubstituted variables: {remaining_vars}. "
            f"Template: {template}"
        )

    cmd = shlex.split(cmd_template)
    if prompt_value is not None:
        cmd = [prompt_value if arg == _PROMPT_PLACEHOLDER else arg for arg in cmd]

    return AgentCommand(cmd=cmd, prompt_via_stdin=prompt_via_stdin)
