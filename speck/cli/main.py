"""Entry point for speck-worktree."""

import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from speck.cli.args import parse_args
from speck.cli.commands import COMMANDS, print_json
from speck.exceptions import SpeckError
from speck.logging_config import setup_logging

err_console = Console(stderr=True)


def _report_error(message: str, cause: Optional[str], as_json: bool) -> None:
    if as_json:
        print_json({"success": False, "error": message})
        return
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    if cause and cause not in message:
        err_console.print(f"  Cause: {escape(cause)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run one subcommand and return the exit code: 0 on success, 1 on any handled error."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)
    as_json = getattr(parsed_args, "json", False)

    try:
        return COMMANDS[parsed_args.command](parsed_args)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except SpeckError as e:
        _report_error(e.message, e.cause, as_json)
        if parsed_args.debug:
            err_console.print_exception()
        return 1
    except Exception as e:
        _report_error(f"Error: {e}", None, as_json)
        if parsed_args.debug:
            err_console.print_exception()
        return 1


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
