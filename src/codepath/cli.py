"""
codepath.cli - Command-line interface.

Main entry point for the codepath CLI tool.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from codepath import __version__
from codepath.commands import goto, init_cmd, list_cmd, repair, show, validate


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="codepath",
        description="Inspect, validate and repair stored code-path graphs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  codepath init                     # Create .codepath.toml in the workspace
  codepath list                     # List stored graphs
  codepath show                     # Print the last used graph as a tree
  codepath validate                 # Check every node against the files
  codepath validate --apply         # Move relocated nodes to their new lines
  codepath repair --dry-run         # Report structural repairs without saving
  codepath goto NODE_ID             # Open a node in the configured editor

Configuration:
  .codepath.toml at the workspace root, .codepath.local.toml for local
  overrides, CODEPATH_<SECTION>_<KEY> environment variables on top.

For detailed command help: codepath <command> --help
        """,
    )

    # Global options
    parser.add_argument(
        "--version",
        action="version",
        version=f"codepath {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
        metavar="PATH",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Workspace directory (default: current directory)",
        metavar="PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Create .codepath.toml configuration",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing configuration",
    )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List stored graphs",
    )
    list_parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output graph summaries as JSON",
    )

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Print a graph as a tree",
    )
    show_parser.add_argument(
        "graph_id",
        nargs="?",
        help="Graph to show (default: last used graph)",
        metavar="GRAPH_ID",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check every node's anchor against the files on disk",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Confidence levels:
  exact     Code is where the node says it is
  high      Found nearby with an exact match
  medium    Found with a close match or within 10 lines
  low       Found further away or with a weaker match
  failed    Code not found

Exit status is 1 when any node failed.
""",
    )
    validate_parser.add_argument(
        "graph_id",
        nargs="?",
        help="Graph to validate (default: last used graph)",
        metavar="GRAPH_ID",
    )
    validate_parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output results as JSON",
    )
    validate_parser.add_argument(
        "--apply",
        action="store_true",
        help="Move relocated nodes to their suggested locations and save",
    )

    # repair command
    repair_parser = subparsers.add_parser(
        "repair",
        help="Check graph structure and repair broken relationships",
    )
    repair_parser.add_argument(
        "graph_id",
        nargs="?",
        help="Graph to repair (default: last used graph)",
        metavar="GRAPH_ID",
    )
    repair_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report repairs without saving",
    )

    # goto command
    goto_parser = subparsers.add_parser(
        "goto",
        help="Open a node's location in the configured editor",
    )
    goto_parser.add_argument(
        "node_id",
        help="Node to navigate to",
        metavar="NODE_ID",
    )
    goto_parser.add_argument(
        "--graph",
        dest="graph_id",
        help="Graph containing the node (default: last used graph)",
        metavar="GRAPH_ID",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()

    # Enable shell tab-completion if argcomplete is installed
    # Install with: pip install codepath[completion]
    # Then activate: eval "$(register-python-argcomplete codepath)"
    try:
        import argcomplete

        argcomplete.autocomplete(parser)
    except ImportError:
        pass

    args = parser.parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    # Handle no command
    if not args.command:
        parser.print_help()
        return 0

    try:
        # Dispatch to command handlers
        if args.command == "init":
            return init_cmd.run(args)
        elif args.command == "list":
            return list_cmd.run(args)
        elif args.command == "show":
            return show.run(args)
        elif args.command == "validate":
            return validate.run(args)
        elif args.command == "repair":
            return repair.run(args)
        elif args.command == "goto":
            return goto.run(args)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130
    except Exception as e:
        if args.verbose:
            raise
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
