"""
Artifact extraction from session transcripts.

Agents finish their lane work by printing a fenced JSON block (ISSUE_PLAN,
BUILD_RESULT or AI_REVIEW). Extraction walks assistant messages newest
first, takes the last JSON fence of each message, and returns the first
object that has the artifact's key field and passes its schema.

Pure functions over transcript data: no I/O. A miss is None, not an error.
"""

import json
import re
from typing import Iterable, Optional

from squadboard.lib.validate import is_valid

ISSUE_PLAN = "issue_plan"
BUILD_RESULT = "build_result"
AI_REVIEW = "ai_review"

# Artifact kind -> field that identifies the block
KIND_KEYS = {
    ISSUE_PLAN: "issues",
    BUILD_RESULT: "pr_url",
    AI_REVIEW: "recommendation",
}

FENCE = "```"
_LANGUAGE_TAG = re.compile(r'^[a-zA-Z0-9_-]+$')


def _field(entry, name: str):
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def text_from_payload(payload) -> str:
    """Join the text parts of a message payload.

    Payloads may be wrapped in "data" or "payload" keys by some runtimes.
    """
    if not isinstance(payload, dict):
        return ""
    parts = payload.get("parts")
    if isinstance(parts, list):
        texts = [
            p["text"] for p in parts
            if isinstance(p, dict) and isinstance(p.get("text"), str)
        ]
        return "\n".join(texts)
    for wrapper in ("data", "payload"):
        if isinstance(payload.get(wrapper), dict):
            return text_from_payload(payload[wrapper])
    return ""


def assistant_texts(entries: Iterable) -> list[str]:
    """Non-empty assistant message texts, newest first."""
    texts = [
        text_from_payload(_field(e, "payload"))
        for e in entries
        if _field(e, "role") == "assistant"
    ]
    return [t for t in reversed(texts) if t]


def fenced_blocks(text: str, language: str | None = None) -> list[str]:
    """Contents of ``` fences in text, in order.

    With a language, only fences tagged with it (case-insensitive) are
    returned, tag stripped. Without one, every fence is returned and a
    bare-word first line is treated as a tag and dropped.
    """
    blocks = []
    # Odd chunks are inside a fence
    for chunk in text.split(FENCE)[1::2]:
        content = chunk.strip()
        first, sep, rest = content.partition("\n")
        if language is not None:
            if sep and first.strip().lower() == language:
                blocks.append(rest.strip())
        elif sep and _LANGUAGE_TAG.match(first.strip()):
            blocks.append(rest.strip())
        else:
            blocks.append(content)
    return blocks


def last_json_object(text: str) -> Optional[dict]:
    """Decode the last ```json fence (or last fence of any kind) as an object."""
    blocks = fenced_blocks(text, "json") or fenced_blocks(text)
    if not blocks:
        return None
    try:
        obj = json.loads(blocks[-1])
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


def extract(kind: str, entries: Iterable) -> Optional[dict]:
    """Most recent well-formed artifact of ``kind`` in the transcript, or None.

    Raises:
        ValueError: If kind isn't a known artifact kind.
    """
    if kind not in KIND_KEYS:
        raise ValueError(f"Unknown artifact kind: {kind}")
    key = KIND_KEYS[kind]

    for text in assistant_texts(entries):
        obj = last_json_object(text)
        if obj is not None and key in obj and is_valid(obj, kind):
            return obj
    return None


def extract_issue_plan(entries: Iterable) -> Optional[dict]:
    return extract(ISSUE_PLAN, entries)


def extract_build_result(entries: Iterable) -> Optional[dict]:
    return extract(BUILD_RESULT, entries)


def extract_ai_review(entries: Iterable) -> Optional[dict]:
    return extract(AI_REVIEW, entries)
