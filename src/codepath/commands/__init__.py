"""
codepath.commands - CLI command implementations
"""

__all__ = [
    "goto",
    "init_cmd",
    "list_cmd",
    "repair",
    "show",
    "validate",
]
