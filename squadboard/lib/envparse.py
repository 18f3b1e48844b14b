"""
Safe .env file parser.

Parses KEY=value files (project.env, board.env) without shell execution.
Values containing shell metacharacters are rejected outright.
"""

import re
from pathlib import Path

FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
    r';',           # command chaining
    r'&&',          # AND chaining
    r'\|',          # pipes and OR chaining
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def parse_env(text: str) -> dict[str, str]:
    """
    Parse env-file content into a dict.

    Raises:
        ValueError: if syntax invalid or forbidden pattern found
    """
    result = {}

    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()

        if not line or line.startswith('#'):
            continue

        if line.startswith('export '):
            line = line[len('export '):].lstrip()

        if '=' not in line:
            raise ValueError(f"Line {lineno}: Invalid syntax (no '=')")

        key, _, value = line.partition('=')
        key = key.strip()
        value = value.strip()

        if not KEY_PATTERN.match(key):
            raise ValueError(f"Line {lineno}: Invalid key '{key}'")

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]

        for pattern in FORBIDDEN_PATTERNS:
            if re.search(pattern, value):
                raise ValueError(f"Line {lineno}: Forbidden pattern in value for {key}")

        result[key] = value

    return result


def load_env(filepath: Path, defaults: dict[str, str] | None = None) -> dict[str, str]:
    """
    Load an env file, layering its values over ``defaults``.

    Raises:
        FileNotFoundError: if the file doesn't exist and no defaults were given
        ValueError: if syntax invalid or forbidden pattern found
    """
    path = Path(filepath)
    result = dict(defaults or {})

    if not path.exists():
        if defaults is None:
            raise FileNotFoundError(f"Env file not found: {path}")
        return result

    result.update(parse_env(path.read_text()))
    return result
