import argparse
import sys
from collections.abc import Callable

import setproctitle
from dotenv import find_dotenv, load_dotenv

from notionboard import __version__

# Command registry: name -> (handler, description)
# Handler signature: (args: list[str]) -> int
COMMANDS: dict[str, tuple[Callable[[list[str]], int], str]] = {}

DEFAULT_COMMAND = "board"


def command(name: str, description: str):
    """Decorator to register a command."""

    def decorator(func):
        COMMANDS[name] = (func, description)
        return func

    return decorator


class ArgumentError(Exception):
    """Raised when argument parsing fails."""

    pass


def make_parser(cmd: str, description: str) -> argparse.ArgumentParser:
    """Create an argument parser for a subcommand.

    Returns a parser configured with:
    - prog set to 'nboard <cmd>' for proper usage lines
    - exit_on_error=False so we can handle errors gracefully
    """
    return argparse.ArgumentParser(
        prog=f"nboard {cmd}",
        description=description,
        exit_on_error=False,
    )


def parse_args(parser: argparse.ArgumentParser, args: list[str]) -> argparse.Namespace:
    """Parse arguments, raising ArgumentError on failure."""
    try:
        return parser.parse_args(args)
    except argparse.ArgumentError as e:
        raise ArgumentError(str(e)) from e
    except SystemExit:
        # Raised by argparse for --help (exits with 0)
        raise


def print_help() -> None:
    """Print help text."""
    print(f"nboard v{__version__} - kanban board for a Notion task database")
    print()
    print("Usage: nboard [command] [options]")
    print()
    print("Commands:")
    for name, (_, desc) in COMMANDS.items():
        print(f"  {name:<12} {desc}")
    print()
    print("Options:")
    print("  -h, --help   Show this help message")
    print("  --version    Show version number")


def print_setup_help(error: Exception) -> None:
    """Explain how to provide the Notion credentials."""
    print(f"Missing Notion configuration: {error}")
    print()
    print("Set these in the environment or a .env file:")
    print()
    print("    NOTION_TOKEN=<integration token>")
    print("    NOTION_DATABASE_ID=<database id>")
    print()
    print("Or store them in the config file:")
    print()
    print("    nboard config token <integration token>")
    print("    nboard config database_id <database id>")
    print()
    print("Integration tokens: https://www.notion.so/my-integrations")
    print("Database ID: share your database and copy the ID from its URL")


def make_client():
    """Build a NotionClient from settings. Returns None after printing help on failure."""
    from notionboard.config import ConfigError, load_settings
    from notionboard.notion import NotionClient

    try:
        settings = load_settings()
    except ConfigError as e:
        print_setup_help(e)
        return None
    return NotionClient(settings.token, settings.database_id)


@command("board", "Open the task board")
def cmd_board(args: list[str]) -> int:
    """Start the TUI."""
    parser = make_parser("board", "Open the kanban board for the configured Notion database.")
    try:
        parse_args(parser, args)
    except SystemExit:
        return 0
    except ArgumentError as e:
        print(f"error: {e}")
        parser.print_usage()
        return 1

    client = make_client()
    if client is None:
        return 1

    from notionboard.tui import run_tui

    return run_tui(client)


@command("list", "Print tasks grouped by status")
def cmd_list(args: list[str]) -> int:
    """Print the board as plain text, optionally filtered."""
    from notionboard.notion import FetchError
    from notionboard.tasks import count_tasks, filter_view, group_by_status

    parser = make_parser("list", "Print tasks grouped by status.")
    parser.add_argument("query", nargs="*", help="Only show tasks matching this text")
    try:
        parsed = parse_args(parser, args)
    except SystemExit:
        return 0
    except ArgumentError as e:
        print(f"error: {e}")
        parser.print_usage()
        return 1

    client = make_client()
    if client is None:
        return 1

    try:
        tasks = client.fetch_tasks()
    except FetchError as e:
        print(f"error: {e}")
        return 1

    view = group_by_status(tasks)
    query = " ".join(parsed.query)
    filtered = filter_view(view, query)
    if filtered is not None:
        view = filtered

    if not view:
        print(f"No tasks match '{query}'." if query else "No tasks found.")
        return 0

    for status, items in view.items():
        print(f"{status} ({len(items)})")
        for task in items:
            badge = f"[{task.priority[0].upper()}] " if task.priority else ""
            print(f"  {badge}{task.title}")
    print()
    print(f"{count_tasks(view)} tasks")
    return 0


@command("config", "Get or set config values")
def cmd_config(args: list[str]) -> int:
    """Get or set config values."""
    from notionboard.config import load_config, save_config

    parser = make_parser(
        "config",
        "Get or set config values (token, database_id, editor).",
    )
    parser.add_argument("name", nargs="?", help="Config key name")
    parser.add_argument("value", nargs="?", help="Value to set")
    try:
        parsed = parse_args(parser, args)
    except SystemExit:
        return 0
    except ArgumentError as e:
        print(f"error: {e}")
        parser.print_usage()
        return 1

    config = load_config()

    # No args: list all config
    if not parsed.name:
        if not config:
            print("No config set. Use: nboard config <name> <value>")
            return 0
        for key, value in sorted(config.items()):
            print(f"{key}={value}")
        return 0

    # One arg: get value
    if not parsed.value:
        if parsed.name in config:
            print(config[parsed.name])
        else:
            print(f"Config '{parsed.name}' not set.")
            return 1
        return 0

    # Two args: set value
    config[parsed.name] = parsed.value
    save_config(config)
    print(f"{parsed.name}={parsed.value}")
    return 0


def main() -> int:
    """Main entry point with command dispatch."""
    args = sys.argv[1:]

    if args and args[0] in ("-h", "--help", "help"):
        print_help()
        return 0

    # Version flag
    if args and args[0] == "--version":
        print(f"nboard {__version__}")
        return 0

    # No args -> open the board
    cmd = args[0] if args else DEFAULT_COMMAND
    cmd_args = args[1:]

    # Check for unknown commands
    if cmd not in COMMANDS:
        print(f"unknown command: {cmd}")
        print()
        print_help()
        return 1

    # Credentials may live in a .env file in the working directory
    load_dotenv(find_dotenv(usecwd=True))

    # Set process title
    setproctitle.setproctitle(f"nboard:{cmd}")

    # Dispatch to command handler
    handler, _ = COMMANDS[cmd]
    return handler(cmd_args)
