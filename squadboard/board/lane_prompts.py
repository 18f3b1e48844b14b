"""Lane instructions sent to agent sessions."""

from squadboard.board.card import Card
from squadboard.lib.prompts import render_prompt

UNKNOWN_SQUAD = "(unknown squad)"

CLOSING_HEADER = (
    "PR description requirements:\n"
    "- Include the following lines verbatim somewhere in the PR description "
    "so GitHub auto-closes the issues when merged:"
)


def issue_closing_lines(issue_refs: list | None) -> list[str]:
    """`Closes owner/repo#N` (or `Closes <url>`) per ref, deduplicated, in order."""
    lines: list[str] = []
    for ref in issue_refs or []:
        repo, number, url = ref.get("repo"), ref.get("number"), ref.get("url")
        if isinstance(repo, str) and repo and isinstance(number, int):
            line = f"Closes {repo}#{number}"
        elif isinstance(url, str) and url:
            line = f"Closes {url}"
        else:
            continue
        if line not in lines:
            lines.append(line)
    return lines


def _closing_section(issue_refs: list | None) -> str:
    lines = issue_closing_lines(issue_refs)
    if not lines:
        return ""
    return "\n" + CLOSING_HEADER + "\n" + "\n".join(lines) + "\n"


def _issues_text(issue_refs: list | None) -> str:
    items = []
    for ref in issue_refs or []:
        if ref.get("url"):
            items.append(ref["url"])
        elif ref.get("repo") and ref.get("number") is not None:
            items.append(f"{ref['repo']}#{ref['number']}")
    return "\n".join(items)


def plan_prompt(card: Card, squad_name: str | None, prd_path: str, github_repo: str) -> str:
    return render_prompt(
        "plan",
        squad_name=squad_name or UNKNOWN_SQUAD,
        card_body=card.body or "",
        prd_path=prd_path or "",
        github_repo=github_repo or "",
    )


def build_prompt(card: Card, squad_name: str | None, worktree_path: str, branch: str, base_branch: str) -> str:
    existing_pr = f"- Existing PR: {card.pr_url}\n" if card.has_pr_url else ""
    return render_prompt(
        "build",
        squad_name=squad_name or UNKNOWN_SQUAD,
        prd_path=card.prd_path or "",
        issues_text=_issues_text(card.issue_refs),
        existing_pr=existing_pr,
        worktree_path=worktree_path or "",
        branch=branch or "",
        base_branch=base_branch or "main",
        closing_section=_closing_section(card.issue_refs),
    )


def review_prompt(card: Card, squad_name: str | None, worktree_path: str, branch: str, base_branch: str) -> str:
    return render_prompt(
        "review",
        squad_name=squad_name or UNKNOWN_SQUAD,
        pr_url=card.pr_url or "",
        prd_path=card.prd_path or "",
        worktree_path=worktree_path or "",
        branch=branch or "",
        base_branch=base_branch or "main",
    )


def create_pr_prompt(issue_refs: list | None) -> str:
    return render_prompt("create_pr", closing_section=_closing_section(issue_refs))
