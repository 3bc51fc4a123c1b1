"""
Command-line interface for Unburden.

Provides subcommands for recording and reviewing thoughts, checking
progress, and running a guided breathing session.
"""

import argparse
import asyncio
import logging
import logging.handlers
import signal
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

import yaml

from unburden import __version__
from unburden.breathing import (
    CYCLE_MS,
    BreathingSession,
    PhaseEvent,
    SessionHistory,
    SessionResult,
)
from unburden.config import (
    LOG_DIR,
    LOG_FILE,
    MIN_CYCLES_FOR_CREDIT,
    PROJECT_ROOT,
    RECENT_THOUGHTS_LIMIT,
    SETTINGS_PATH,
    Settings,
    load_settings,
)
from unburden.errors import ConfigError, NotFound, Rejected
from unburden.storage import SQLiteStorage
from unburden.thoughts import ThoughtStore, format_today
from unburden.utils.timezone import detect_system_timezone, get_current_time_for_user

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings, verbose: bool, log_dir: Path = LOG_DIR) -> None:
    """
    Set up logging for a CLI run.

    Verbose runs log DEBUG to stderr; otherwise records at the configured
    level go to a rotating file so they do not mix with command output.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger()
    root.setLevel(settings.log_level)
    root.addHandler(handler)


def _open_storage(args: argparse.Namespace) -> SQLiteStorage:
    return SQLiteStorage(args.db or args.settings.db_path)


def _print_warnings(store: ThoughtStore) -> None:
    for warning in store.drain_warnings():
        if warning.kind == "write_failure":
            print(f"Warning: changes not saved to disk ({warning.message})", file=sys.stderr)
        else:
            print(f"Warning: stored thoughts unreadable, starting empty ({warning.message})", file=sys.stderr)


async def _with_store(
    args: argparse.Namespace, action: Callable[[ThoughtStore], Awaitable[int]]
) -> int:
    storage = _open_storage(args)
    try:
        store = ThoughtStore(storage, timezone_str=args.settings.timezone)
        await store.load()
        code = await action(store)
        _print_warnings(store)
        return code
    finally:
        await storage.close()


def handle_init(args: argparse.Namespace) -> int:
    """Create the data directory, database and default settings."""
    root = Path(args.path).expanduser().resolve()
    print(f"Initializing Unburden at {root}")

    root.mkdir(parents=True, exist_ok=True)
    (root / "logs").mkdir(exist_ok=True)

    db_path = root / "state.db"
    storage = SQLiteStorage(db_path)
    storage.init_db()
    asyncio.run(storage.close())

    settings_path = root / "settings.yaml"
    if not settings_path.exists():
        defaults = {
            "timezone": detect_system_timezone(),
            "db_path": str(db_path),
            "log_level": "INFO",
        }
        settings_path.write_text(yaml.safe_dump(defaults, sort_keys=False), encoding="utf-8")
        print(f"  Created settings: {settings_path}")

    print(f"  Created database: {db_path}")
    if root != PROJECT_ROOT.expanduser().resolve():
        print(f"  Note: set UNBURDEN_ROOT={root} so later commands use this location")
    print("Ready. Offload a thought with: unburden thought add \"...\"")
    return 0


def handle_thought_add(args: argparse.Namespace) -> int:
    """Record a new thought."""

    async def action(store: ThoughtStore) -> int:
        entry = await store.add(args.text)
        if entry is None:
            print("Nothing to save: the thought is empty.")
            return 1
        print(f"Thought released [{entry.id}]")
        print(f"{store.thoughts_released} thoughts offloaded")
        return 0

    return asyncio.run(_with_store(args, action))


def handle_thought_list(args: argparse.Namespace) -> int:
    """List thoughts, newest first."""

    async def action(store: ThoughtStore) -> int:
        entries = await store.load_all()
        if not entries:
            print("No thoughts yet!")
            return 0

        shown = entries[: args.limit] if args.limit else entries
        now = get_current_time_for_user(args.settings.timezone)
        print(f"Thoughts ({len(entries)} total):")
        print()
        for entry in shown:
            print(f"  [{entry.id}] {store.relative_age(entry, now)}")
            print(f"    {entry.text}")
            print()
        return 0

    return asyncio.run(_with_store(args, action))


def handle_thought_edit(args: argparse.Namespace) -> int:
    """Replace the text of a thought."""

    async def action(store: ThoughtStore) -> int:
        result = await store.update(args.id, args.text)
        if isinstance(result, NotFound):
            print(f"No thought with id {result.id}.")
            return 1
        if isinstance(result, Rejected):
            print(f"Not saved: {result.reason}.")
            return 1
        print(f"Thought {result.id} updated.")
        return 0

    return asyncio.run(_with_store(args, action))


def handle_thought_delete(args: argparse.Namespace) -> int:
    """Delete a thought. Deleting twice is harmless."""

    async def action(store: ThoughtStore) -> int:
        result = await store.remove(args.id)
        if isinstance(result, NotFound):
            print(f"No thought with id {result.id} (already deleted?).")
        else:
            print(f"Thought {result.id} deleted.")
        return 0

    return asyncio.run(_with_store(args, action))


def handle_status(args: argparse.Namespace) -> int:
    """Show today's summary."""

    async def run() -> int:
        storage = _open_storage(args)
        try:
            store = ThoughtStore(storage, timezone_str=args.settings.timezone)
            await store.load()
            sessions = await SessionHistory(storage).total()
        finally:
            await storage.close()

        now = get_current_time_for_user(args.settings.timezone)
        print(format_today(now))
        print("=" * 40)
        print(f"{store.thoughts_released} thoughts offloaded")
        print(f"{sessions} zen sessions completed")

        recent = store.recent(RECENT_THOUGHTS_LIMIT)
        if recent:
            print("\nRecent thoughts:")
            for entry in recent:
                print(f"  - {entry.text}  ({store.relative_age(entry, now)})")
        _print_warnings(store)
        return 0

    return asyncio.run(run())


def _print_phase(event: PhaseEvent) -> None:
    main, sub = event.prompt
    print(f"  {main:<15} {sub.lower():<28} cycles: {event.cycles_completed}", flush=True)


async def _run_zen(args: argparse.Namespace) -> int:
    session = BreathingSession()
    stopped: list[SessionResult] = []

    def on_interrupt() -> None:
        stopped.append(session.stop())

    loop = asyncio.get_running_loop()
    handles_sigint = True
    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except NotImplementedError:
        handles_sigint = False
        logger.debug("Signal handlers unsupported, Ctrl+C will abort the session")

    minutes = MIN_CYCLES_FOR_CREDIT * CYCLE_MS / 60000
    print(f"Zen session: breathe along. Ctrl+C to finish (counts after {minutes:.1f} min).")
    try:
        async for event in session.start():
            _print_phase(event)
            if args.cycles and event.cycles_completed >= args.cycles:
                break
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    if session.running:
        result = session.stop()
    else:
        result = stopped[-1] if stopped else SessionResult(cycles_completed=0)

    storage = _open_storage(args)
    try:
        outcome = await SessionHistory(storage).finalize(result)
    finally:
        await storage.close()

    print()
    if outcome.credited_as_complete:
        print("Session complete")
        print(f"You completed {result.cycles_completed} breathing cycles")
        print(f"Total sessions: {outcome.total_sessions}")
        if outcome.write_failed:
            print("Warning: session count not saved to disk", file=sys.stderr)
    else:
        print(
            f"Session ended after {result.cycles_completed} cycles "
            f"(at least {MIN_CYCLES_FOR_CREDIT} needed to count)."
        )
    return 0


def handle_zen(args: argparse.Namespace) -> int:
    """Run a guided breathing session."""
    return asyncio.run(_run_zen(args))


def handle_config(args: argparse.Namespace) -> int:
    """Show configuration."""
    settings: Settings = args.settings
    print("Unburden Configuration")
    print("=" * 50)

    print("\nPaths:")
    print(f"  Data Root: {PROJECT_ROOT}")
    print(f"  Settings: {SETTINGS_PATH}")
    print(f"  Database: {args.db or settings.db_path}")
    print(f"  Logs: {LOG_DIR}")

    print("\nSettings:")
    print(f"  Timezone: {settings.timezone or detect_system_timezone() or 'system default'}")
    print(f"  Log level: {settings.log_level}")

    print("\nBreathing:")
    print(f"  Cycle length: {CYCLE_MS / 1000:.0f}s")
    print(f"  Cycles to count a session: {MIN_CYCLES_FOR_CREDIT}")
    return 0


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unburden",
        description="Offload your thoughts and take a breath",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Path to the database (overrides settings.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # init command
    init_parser = subparsers.add_parser("init", help="Create the data directory")
    init_parser.add_argument(
        "path",
        nargs="?",
        default=str(PROJECT_ROOT),
        help=f"Where to keep data (default: {PROJECT_ROOT})",
    )
    init_parser.set_defaults(func=handle_init)

    # thought command
    thought_parser = subparsers.add_parser("thought", help="Thought operations")
    thought_subparsers = thought_parser.add_subparsers(dest="thought_command")

    # thought add
    add_parser = thought_subparsers.add_parser("add", help="Offload a thought")
    add_parser.add_argument("text", help="What's on your mind")
    add_parser.set_defaults(func=handle_thought_add)

    # thought list
    list_parser = thought_subparsers.add_parser("list", help="List thoughts")
    list_parser.add_argument(
        "--limit", "-n",
        type=_non_negative_int,
        default=0,
        help="Show at most this many (default: all)",
    )
    list_parser.set_defaults(func=handle_thought_list)

    # thought edit
    edit_parser = thought_subparsers.add_parser("edit", help="Edit a thought")
    edit_parser.add_argument("id", help="Thought ID")
    edit_parser.add_argument("text", help="New text")
    edit_parser.set_defaults(func=handle_thought_edit)

    # thought delete
    delete_parser = thought_subparsers.add_parser("delete", help="Delete a thought")
    delete_parser.add_argument("id", help="Thought ID")
    delete_parser.set_defaults(func=handle_thought_delete)

    # status command
    status_parser = subparsers.add_parser("status", help="Show today's summary")
    status_parser.set_defaults(func=handle_status)

    # zen command
    zen_parser = subparsers.add_parser("zen", help="Start a breathing session")
    zen_parser.add_argument(
        "--cycles", "-c",
        type=_non_negative_int,
        default=0,
        help="Stop after this many cycles (default: run until Ctrl+C)",
    )
    zen_parser.set_defaults(func=handle_zen)

    # config command
    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.set_defaults(func=handle_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.settings = load_settings()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(args.settings, args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        logger.exception(f"Command '{args.command}' failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
