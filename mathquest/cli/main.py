"""Admin CLI for the parent dashboard: multipliers, credits and user lookups."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import httpx

from mathquest.cli.client import AdminApiError, AdminClient
from mathquest.cli.config import CliConfig
from mathquest.constants.about import APP_VERSION
from mathquest.core.errors import QuizError
from mathquest.core.quiz_types import all_quiz_types, parse_quiz_type
from mathquest.utils.logging_config import configure_logging

_CREDIT_FLAGS = (
    ("earned", "earnedCredits"),
    ("claimed", "claimedCredits"),
    ("earned_delta", "earnedDelta"),
    ("claimed_delta", "claimedDelta"),
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mathquest-admin", description="Manage MathQuest users as a parent.")
    p.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    p.add_argument("--api-url", default=None, help="API base URL (env: API_URL)")
    p.add_argument("--username", default=None, help="Parent username (env: ADMIN_USERNAME)")
    p.add_argument("--password", default=None, help="Parent password (env: ADMIN_PASSWORD)")
    p.add_argument("--token", default=None, help="Existing bearer token (env: ADMIN_TOKEN)")
    p.add_argument("--verbose", action="store_true", default=None, help="Log every request")
    p.add_argument("--dry-run", action="store_true", default=None, help="Print changes without sending them")
    sub = p.add_subparsers(dest="cmd", required=True)

    mp = sub.add_parser("update-multiplier", help="Set a user's multiplier for one quiz type")
    mp.add_argument("--user", help="User id or username")
    mp.add_argument("--quiz-type", dest="quiz_type")
    mp.add_argument("--value", type=int, help="Whole number from 0 to 5")
    mp.add_argument("--list-types", action="store_true", help="List quiz types and exit")

    cp = sub.add_parser("update-credits", help="Set or adjust a user's credits")
    cp.add_argument("--user", required=True)
    cp.add_argument("--earned", type=int, default=None, help="New earned total")
    cp.add_argument("--claimed", type=int, default=None, help="New claimed total")
    cp.add_argument("--earned-delta", dest="earned_delta", type=int, default=None)
    cp.add_argument("--claimed-delta", dest="claimed_delta", type=int, default=None)

    lp = sub.add_parser("list-users", help="List users")
    lp.add_argument("--search", default=None, help="Exact id or username")
    lp.add_argument("--limit", type=int, default=None)
    lp.add_argument("--show-multipliers", action="store_true")
    lp.add_argument("--show-credits", action="store_true")

    gp = sub.add_parser("get-user", help="Show one user's credits and multipliers")
    gp.add_argument("--user", required=True)

    return p


def _authenticate(client: AdminClient, config: CliConfig) -> None:
    if config.admin_token:
        return
    if not (config.admin_username and config.admin_password):
        raise AdminApiError(
            "Provide --token or --username and --password "
            "(or ADMIN_TOKEN / ADMIN_USERNAME and ADMIN_PASSWORD)"
        )
    client.login(config.admin_username, config.admin_password)


def _print_dry_run(method: str, path: str, payload: dict[str, Any]) -> None:
    print(f"[dry-run] {method} {path} {json.dumps(payload, sort_keys=True)}")


def _format_multipliers(multipliers: dict[str, Any]) -> str:
    return ", ".join(f"{quiz_type}={value}" for quiz_type, value in multipliers.items())


def _print_user(user: dict[str, Any], *, show_credits: bool = True, show_multipliers: bool = True) -> None:
    print(f"{user.get('username')} ({user.get('id')})")
    if show_credits:
        print(f"  credits: earned={user.get('earnedCredits')} claimed={user.get('claimedCredits')}")
    if show_multipliers:
        print(f"  multipliers: {_format_multipliers(user.get('multipliers') or {})}")


def _run_update_multiplier(args: argparse.Namespace, config: CliConfig, client: AdminClient) -> int:
    if args.list_types:
        for quiz_type in all_quiz_types():
            print(quiz_type)
        return 0
    if not args.user or not args.quiz_type or args.value is None:
        raise AdminApiError("--user, --quiz-type and --value are required")
    quiz_type = parse_quiz_type(args.quiz_type).value
    payload = {"quizType": quiz_type, "multiplier": args.value}
    if config.dry_run:
        _print_dry_run("PATCH", f"/parent/users/{args.user}/multiplier", payload)
        return 0

    _authenticate(client, config)
    result = client.update_multiplier(args.user, quiz_type, args.value)
    print(f"{result.get('message', 'Multiplier updated')}: {quiz_type} = {result.get('multiplier')}")
    return 0


def _run_update_credits(args: argparse.Namespace, config: CliConfig, client: AdminClient) -> int:
    changes = {
        field: getattr(args, attribute)
        for attribute, field in _CREDIT_FLAGS
        if getattr(args, attribute) is not None
    }
    if not changes:
        raise AdminApiError("Pass at least one of --earned, --claimed, --earned-delta, --claimed-delta")
    if config.dry_run:
        _print_dry_run("PATCH", f"/parent/users/{args.user}/credits", changes)
        return 0

    _authenticate(client, config)
    result = client.update_credits(args.user, changes)
    print(
        f"{result.get('message', 'Credits updated')}: "
        f"earned={result.get('earnedCredits')} claimed={result.get('claimedCredits')}"
    )
    return 0


def _run_list_users(args: argparse.Namespace, config: CliConfig, client: AdminClient) -> int:
    _authenticate(client, config)
    users = client.list_users(search=args.search, limit=args.limit)
    if not users:
        print("No users found.")
        return 0
    for user in users:
        _print_user(user, show_credits=args.show_credits, show_multipliers=args.show_multipliers)
    return 0


def _run_get_user(args: argparse.Namespace, config: CliConfig, client: AdminClient) -> int:
    _authenticate(client, config)
    _print_user(client.get_user(args.user))
    return 0


_COMMANDS = {
    "update-multiplier": _run_update_multiplier,
    "update-credits": _run_update_credits,
    "list-users": _run_list_users,
    "get-user": _run_get_user,
}


def main(argv: list[str] | None = None, transport: httpx.BaseTransport | None = None) -> int:
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as exc:
        # --help and --version exit cleanly; usage errors map to the generic failure code.
        return 0 if exc.code in (0, None) else 1
    config = CliConfig().with_overrides(
        api_url=args.api_url,
        admin_username=args.username,
        admin_password=args.password,
        admin_token=args.token,
        verbose=args.verbose,
        dry_run=args.dry_run,
    )
    configure_logging(logging.DEBUG if config.verbose else logging.WARNING)

    try:
        with AdminClient(config.api_url, token=config.admin_token, transport=transport) as client:
            return _COMMANDS[args.cmd](args, config, client)
    except (AdminApiError, QuizError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
