#!/usr/bin/env python3
"""squadboard CLI entrypoint."""

import sys
import argparse
import logging

from squadboard.board.context import BoardContext
from squadboard.board.errors import BoardError
from squadboard.lib.config import get_home, list_projects
from squadboard.lib.constants import ASSIGNABLE_LANES, LANES
from squadboard.lib.locking import LockTimeout
from squadboard.commands import new as cmd_new_module
from squadboard.commands import list as cmd_list_module
from squadboard.commands import show as cmd_show_module
from squadboard.commands import move as cmd_move_module
from squadboard.commands import sync as cmd_sync_module
from squadboard.commands import publish as cmd_publish_module
from squadboard.commands import review as cmd_review_module
from squadboard.commands import pr as cmd_pr_module
from squadboard.commands import assign as cmd_assign_module


class UsageError(Exception):
    """CLI invocation can't be resolved (e.g. ambiguous project)."""
    pass


def get_project_id(args, ctx: BoardContext) -> str:
    """Project from --project, or the only configured project."""
    if args.project:
        return args.project

    projects = list_projects(ctx.home)
    if len(projects) == 0:
        raise UsageError(f"No projects configured. Create {ctx.home}/projects/<name>/project.env")
    if len(projects) > 1:
        names = "\n".join(f"  {p.id}" for p in projects)
        raise UsageError(f"Multiple projects found. Use --project to specify one:\n{names}")
    return projects[0].id


def cmd_new(args, ctx):
    return cmd_new_module.cmd_new(args, ctx, get_project_id(args, ctx))


def cmd_list(args, ctx):
    return cmd_list_module.cmd_list(args, ctx, get_project_id(args, ctx))


def cmd_summary(args, ctx):
    return cmd_list_module.cmd_summary(args, ctx, get_project_id(args, ctx))


def cmd_show(args, ctx):
    return cmd_show_module.cmd_show(args, ctx)


def cmd_move(args, ctx):
    return cmd_move_module.cmd_move(args, ctx)


def cmd_sync(args, ctx):
    project_id = get_project_id(args, ctx) if args.all else None
    return cmd_sync_module.cmd_sync(args, ctx, project_id)


def cmd_publish(args, ctx):
    return cmd_publish_module.cmd_publish(args, ctx)


def cmd_approve(args, ctx):
    return cmd_review_module.cmd_approve(args, ctx)


def cmd_request_changes(args, ctx):
    return cmd_review_module.cmd_request_changes(args, ctx)


def cmd_pr(args, ctx):
    return cmd_pr_module.cmd_pr(args, ctx)


def cmd_create_pr(args, ctx):
    return cmd_pr_module.cmd_create_pr(args, ctx)


def cmd_assign(args, ctx):
    return cmd_assign_module.cmd_assign(args, ctx, get_project_id(args, ctx))


def run_command(args, ctx: BoardContext) -> int:
    """Run a subcommand, mapping board errors to exit codes.

    Exit codes: 0 ok, 1 provisioning/external failure, 2 precondition/usage error.
    """
    try:
        return args.func(args, ctx)
    except BoardError as e:
        print(f"ERROR: {e}")
        for error in (e.details or {}).get("errors", []):
            print(f"  {error}")
        return 2 if e.is_precondition else 1
    except UsageError as e:
        print(f"ERROR: {e}")
        return 2
    except LockTimeout as e:
        print(f"ERROR: {e} (another sb command may be working on this card)")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sb', description='squadboard - agent lane board')
    parser.add_argument('--home', help='squadboard home directory (default: $SQUADBOARD_HOME or ~/.squadboard)')
    parser.add_argument('--project', '-p', help='Project id')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # sb new
    p_new = subparsers.add_parser('new', help='Create a card in todo')
    p_new.add_argument('squad', help='Squad id')
    p_new.add_argument('body', nargs='?', help='Card text (read from stdin if omitted)')
    p_new.set_defaults(func=cmd_new)

    # sb list
    p_list = subparsers.add_parser('list', help='List cards by squad and lane')
    p_list.add_argument('--squad', '-s', help='Only this squad')
    p_list.set_defaults(func=cmd_list)

    # sb summary
    p_summary = subparsers.add_parser('summary', help='Card counts per lane')
    p_summary.set_defaults(func=cmd_summary)

    # sb show
    p_show = subparsers.add_parser('show', help='Show a card')
    p_show.add_argument('card_id', help='Card ID')
    p_show.add_argument('--json', action='store_true', help='Print the raw card record')
    p_show.set_defaults(func=cmd_show)

    # sb move
    p_move = subparsers.add_parser('move', help='Move a card to a lane')
    p_move.add_argument('card_id', help='Card ID')
    p_move.add_argument('lane', choices=LANES, help='Target lane')
    p_move.set_defaults(func=cmd_move)

    # sb sync
    p_sync = subparsers.add_parser('sync', help='Harvest artifacts from lane sessions')
    p_sync.add_argument('card_id', nargs='?', help='Card ID')
    p_sync.add_argument('--all', action='store_true', help='Sync every active card of the project')
    p_sync.set_defaults(func=cmd_sync)

    # sb publish
    p_publish = subparsers.add_parser('publish', help='Create GitHub issues from the issue plan')
    p_publish.add_argument('card_id', help='Card ID')
    p_publish.set_defaults(func=cmd_publish)

    # sb approve
    p_approve = subparsers.add_parser('approve', help='Approve a card (moves it to done)')
    p_approve.add_argument('card_id', help='Card ID')
    p_approve.add_argument('--feedback', '-f', help='Review notes')
    p_approve.set_defaults(func=cmd_approve)

    # sb request-changes
    p_changes = subparsers.add_parser('request-changes', help='Send a card back to build')
    p_changes.add_argument('card_id', help='Card ID')
    p_changes.add_argument('--feedback', '-f', help='What needs to change')
    p_changes.set_defaults(func=cmd_request_changes)

    # sb pr
    p_pr = subparsers.add_parser('pr', help='Record a PR URL for a card')
    p_pr.add_argument('card_id', help='Card ID')
    p_pr.add_argument('url', help='Pull request URL')
    p_pr.set_defaults(func=cmd_pr)

    # sb create-pr
    p_create_pr = subparsers.add_parser('create-pr', help='Ask the build agent to open the PR')
    p_create_pr.add_argument('card_id', help='Card ID')
    p_create_pr.set_defaults(func=cmd_create_pr)

    # sb assign
    p_assign = subparsers.add_parser('assign', help='Assign an agent to a squad lane')
    p_assign.add_argument('squad', help='Squad id')
    p_assign.add_argument('lane', choices=ASSIGNABLE_LANES, help='Lane')
    p_assign.add_argument('agent', nargs='?', help='Agent id')
    p_assign.add_argument('--clear', action='store_true', help='Remove the assignment')
    p_assign.set_defaults(func=cmd_assign)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx = BoardContext.create(get_home(args.home))
    try:
        return run_command(args, ctx)
    finally:
        # Let dispatched prompts finish before the process exits
        ctx.shutdown(wait=True)


if __name__ == '__main__':
    sys.exit(main())
