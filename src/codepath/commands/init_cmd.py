"""
codepath.commands.init_cmd - Write a default .codepath.toml.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from codepath.config import write_default_config


def run(args: argparse.Namespace) -> int:
    """Create the configuration file in the workspace directory."""
    directory = getattr(args, "workspace", None) or Path.cwd()
    try:
        path = write_default_config(directory, force=getattr(args, "force", False))
    except FileExistsError as e:
        print(f"Error: {e} (use --force to overwrite)", file=sys.stderr)
        return 1

    if not getattr(args, "quiet", False):
        print(f"Created {path}")
    return 0
