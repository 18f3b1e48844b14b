"""
Lane instruction templates.

Templates live in prompts/<name>.md and use str.format() fields. {{ and }}
are literal braces, used by the JSON blocks agents are asked to echo back.
A leading HTML comment documents the template's variables and is stripped
before rendering.
"""

import logging
import re
import string
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = ["PromptError", "load_prompt", "render_prompt", "template_fields", "clear_cache", "PROMPTS_DIR"]

PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"

_HTML_COMMENT_PATTERN = re.compile(r'<!--.*?-->\s*', re.DOTALL)


class PromptError(Exception):
    """Raised when prompt loading or rendering fails."""
    pass


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """
    Load a template by name, comments stripped (cached).

    Raises:
        PromptError: If prompt file doesn't exist
    """
    prompt_path = PROMPTS_DIR / f"{name}.md"
    if not prompt_path.exists():
        raise PromptError(f"Prompt template '{name}' not found. Expected file: {prompt_path}")

    logger.debug(f"Loading prompt template: {name}")
    return _HTML_COMMENT_PATTERN.sub('', prompt_path.read_text()).lstrip()


def template_fields(template: str) -> set[str]:
    """Names of the {fields} a template needs."""
    return {field for _, field, _, _ in string.Formatter().parse(template) if field}


def render_prompt(name: str, **variables) -> str:
    """
    Raises:
        PromptError: If template not found or a variable is missing

    Example:
        render_prompt('create_pr', closing_section='')
    """
    template = load_prompt(name)
    missing = template_fields(template) - set(variables)
    if missing:
        raise PromptError(
            f"Missing variables {sorted(missing)} for prompt '{name}'. "
            f"Provided: {sorted(variables)}"
        )
    return template.format(**variables)


def clear_cache():
    load_prompt.cache_clear()
