"""CLI entry point for the recruiting sync client."""

import argparse
import asyncio
import getpass
import logging
import sys

from src.client import RecruitClient
from src.core.config import Settings
from src.core.errors import SyncError
from src.core.schemas import LoginCredentials, StatusValue
from src.sync.entity_store import FetchState


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recruiting sync client - mirror jobs, candidates and schedules",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Sign in and persist the session")
    login_parser.add_argument("--email", required=True, help="Account e-mail")
    login_parser.add_argument(
        "--password",
        help="Account password (prompted for when omitted)",
    )
    _add_common(login_parser)

    logout_parser = subparsers.add_parser("logout", help="Forget the persisted session")
    _add_common(logout_parser)

    whoami_parser = subparsers.add_parser("whoami", help="Show the persisted session user")
    whoami_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Re-read the profile from the server first",
    )
    _add_common(whoami_parser)

    sync_parser = subparsers.add_parser("sync", help="Fetch all data for the session user")
    sync_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export the fetched state to format (json)",
    )
    _add_common(sync_parser)

    status_parser = subparsers.add_parser("set-status", help="Move a candidate to a new stage")
    status_parser.add_argument("candidate_id", type=int, help="Candidate id")
    status_parser.add_argument(
        "status",
        choices=[s.value for s in StatusValue],
        help="New pipeline stage",
    )
    _add_common(status_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def cmd_login(client: RecruitClient, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    ok = await client.session.sign_in(LoginCredentials(email=args.email, password=password))
    if not ok:
        print(f"Error: {client.session.error}", file=sys.stderr)
        return 1
    profile = client.session.profile
    if profile is None:
        print("Error: sign-in returned no profile", file=sys.stderr)
        return 1
    print(f"Signed in as {profile.name or profile.email} (id {profile.id})")
    return 0


def cmd_logout(client: RecruitClient) -> int:
    client.sign_out()
    print("Signed out.")
    return 0


async def cmd_whoami(client: RecruitClient, args: argparse.Namespace) -> int:
    client.session.rehydrate()
    if args.refresh:
        await client.session.refetch_profile()
    profile = client.session.profile
    if profile is None:
        print("Not signed in.")
        return 1
    print(f"User {profile.id}: {profile.name}")
    print(f"  E-mail: {profile.email}")
    print(f"  Company: {profile.company}")
    print(f"  Google Calendar connected: {profile.google_connected}")
    return 0


async def cmd_sync(client: RecruitClient, args: argparse.Namespace) -> int:
    result = await client.start()
    if not client.session.is_authenticated:
        print("Not signed in. Run: python main.py login --email ...", file=sys.stderr)
        return 1
    state = client.store.state
    if result is FetchState.FAILED:
        print(f"Error: {state.error}", file=sys.stderr)
        return 1

    print(f"Sync complete: {len(state.jobs)} jobs, {len(state.candidates)} candidates, "
          f"{len(state.schedules)} schedules.")
    for job in state.jobs:
        candidates = client.store.candidates_for_job(job.id)
        print(f"  [{job.id}] '{job.title}' ({job.status.value}): {len(candidates)} candidates")

    if args.export == "json":
        print(f"\n{state.model_dump_json(indent=2)}")
    return 0


async def cmd_set_status(client: RecruitClient, args: argparse.Namespace) -> int:
    await client.start()
    if not client.session.is_authenticated:
        print("Not signed in. Run: python main.py login --email ...", file=sys.stderr)
        return 1
    if client.store.get_candidate(args.candidate_id) is None:
        print(f"Error: candidate {args.candidate_id} not found", file=sys.stderr)
        return 1
    try:
        await client.mutations.set_candidate_status(args.candidate_id, args.status)
    except SyncError as e:
        print(f"Error: could not update status ({e}); local data reconciled.", file=sys.stderr)
        return 1
    print(f"Candidate {args.candidate_id} moved to {args.status}.")
    return 0


async def run(client: RecruitClient, args: argparse.Namespace) -> int:
    if args.command == "login":
        return await cmd_login(client, args)
    if args.command == "logout":
        return cmd_logout(client)
    if args.command == "whoami":
        return await cmd_whoami(client, args)
    if args.command == "sync":
        return await cmd_sync(client, args)
    return await cmd_set_status(client, args)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    client = RecruitClient.from_settings(settings)
    try:
        code = asyncio.run(run(client, args))
    finally:
        client.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
