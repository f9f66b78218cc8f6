"""
codepath - Resilient code location markers

Builds trees of named markers anchored to lines in source files and
keeps those anchors valid as the files are edited, moved, or rewritten.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("codepath")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed
__license__ = "MIT"

from codepath.graph import CodeGraph, CodeNode, GraphIntegrityError
from codepath.session import GraphSession
from codepath.store import GraphStore
from codepath.tracking import Confidence, LocationValidator, Navigator, ValidationResult

__all__ = [
    "__version__",
    "CodeGraph",
    "CodeNode",
    "GraphIntegrityError",
    "GraphSession",
    "GraphStore",
    "Confidence",
    "LocationValidator",
    "Navigator",
    "ValidationResult",
]
