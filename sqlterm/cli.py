"""Command-line entry point: interactive terminal, HTTP server or database cleanup."""

import argparse
import asyncio
import getpass
import logging
import sys
from collections.abc import Callable

from sqlterm.config.constants import LineKind
from sqlterm.config.settings import get_settings
from sqlterm.infrastructure.database.connection import Database
from sqlterm.infrastructure.llm.factory import create_llm_client
from sqlterm.infrastructure.logging.logger import setup_logging
from sqlterm.services.auth.cleanup import AccountCleanup
from sqlterm.services.registry import build_services
from sqlterm.terminal.session import TerminalLine, TerminalSession

logger = logging.getLogger(__name__)

_COLORS = {LineKind.ERROR: "\033[31m", LineKind.SUCCESS: "\033[32m"}
_RESET = "\033[0m"
_CLEAR = "\033[2J\033[H"


def _print_lines(lines: list[TerminalLine], use_color: bool) -> None:
    for line in lines:
        # The user already sees what they typed
        if line.kind == LineKind.INPUT:
            continue
        color = _COLORS.get(line.kind) if use_color else None
        print(f"{color}{line.content}{_RESET}" if color else line.content)


async def _read_line(session: TerminalSession) -> str:
    if session.is_password_input:
        return await asyncio.to_thread(getpass.getpass, session.prompt)
    return await asyncio.to_thread(input, session.prompt)


async def run_terminal() -> int:
    settings = get_settings()
    database = Database(settings)
    services = build_services(settings, database, create_llm_client(settings))
    use_color = sys.stdout.isatty()

    try:
        await database.connect()
        await services.auth.ensure_table()
    except Exception as e:
        logger.error("Database initialization failed: %s", e)
        print(f"ERROR: could not connect to the database: {e}", file=sys.stderr)
        await services.close()
        return 1

    session = TerminalSession(services.auth, services.executor, services.flow, services.schema)
    _print_lines(session.banner(), use_color)
    try:
        while True:
            try:
                line = await _read_line(session)
            except EOFError:
                break
            lines = await session.handle(line)
            if session.screen_cleared:
                print(_CLEAR, end="")
            # input() shows the next prompt itself
            if session.prompt:
                lines = [item for item in lines if item.content != session.prompt]
            _print_lines(lines, use_color)
    except KeyboardInterrupt:
        print()
    finally:
        await services.close()
    return 0


async def cleanup_workspaces(
    cleanup: AccountCleanup,
    include_orphans: bool = False,
    assume_yes: bool = False,
    delay: float = 5.0,
    read: Callable[[str], str] = input,
) -> int:
    """List what will be deleted, confirm, then drop every account and schema."""
    plan = await cleanup.plan(include_orphans=include_orphans)
    if plan.is_empty:
        print("No users found, nothing to clean up")
        return 0

    print(f"Found {len(plan.accounts)} user(s) to clean up")
    print("\nWARNING: This will delete ALL user data!")
    for account in plan.accounts:
        print(f"  - {account.username} (schema: {account.schema_name})")
    for schema in plan.orphan_schemas:
        print(f"  - orphaned schema: {schema}")

    if assume_yes:
        print(f"\nPress Ctrl+C to cancel, or wait {delay:g} seconds to continue...")
        await asyncio.sleep(delay)
    else:
        answer = await asyncio.to_thread(read, "\nType 'yes' to continue: ")
        if answer.strip().lower() != "yes":
            print("Cleanup cancelled")
            return 1

    report = await cleanup.run(plan)
    for schema in report.dropped_schemas:
        print(f"Dropped schema: {schema}")
    for username in report.removed_users:
        print(f"Removed user: {username}")
    for error in report.errors:
        print(f"ERROR: {error}", file=sys.stderr)
    if not report.success:
        return 1
    print("\nDatabase cleanup completed")
    return 0


async def run_cleanup(include_orphans: bool, assume_yes: bool, delay: float) -> int:
    database = Database(get_settings())
    try:
        await database.connect()
        return await cleanup_workspaces(
            AccountCleanup(database),
            include_orphans=include_orphans,
            assume_yes=assume_yes,
            delay=delay,
        )
    except Exception as e:
        logger.error("Database cleanup failed: %s", e, exc_info=True)
        print(f"ERROR: database cleanup failed: {e}", file=sys.stderr)
        return 1
    finally:
        await database.close()


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("sqlterm.app:app", host=host, port=port, proxy_headers=True)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="sqlterm", description=__doc__)
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("terminal", help="Interactive SQL*Plus-style terminal (default)")
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Delete every user together with their schema and tables"
    )
    cleanup_parser.add_argument(
        "--yes", action="store_true", help="Skip the prompt; wait --delay seconds instead"
    )
    cleanup_parser.add_argument("--delay", type=float, default=5.0)
    cleanup_parser.add_argument(
        "--include-orphans",
        action="store_true",
        help="Also drop tenant-shaped schemas that have no account",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(level=settings.log_level, json_output=False)

    if args.command == "serve":
        serve(args.host, args.port)
        return 0
    if args.command == "cleanup":
        return asyncio.run(run_cleanup(args.include_orphans, args.yes, args.delay))
    if settings.log_level == "INFO":
        # Keep the interactive screen free of request logs
        logging.getLogger().setLevel(logging.WARNING)
    return asyncio.run(run_terminal())


if __name__ == "__main__":
    sys.exit(main())
