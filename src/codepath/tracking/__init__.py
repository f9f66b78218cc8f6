"""Tracking module - Keep node anchors valid as files change.

Exports:
- LocationValidator / ValidationResult / Confidence: anchor validation
- Navigator / NavigationResult: open or reveal a node's location
- FileAccess / LocalFileSystem / TextDocument: file-system capability
- EditorSurface / RecordingEditor / CommandEditor: editor capability
"""

from codepath.tracking.editor import (
    CommandEditor,
    EditorCall,
    EditorError,
    EditorSurface,
    RecordingEditor,
)
from codepath.tracking.files import FileAccess, LocalFileSystem, TextDocument
from codepath.tracking.navigator import NavigationResult, Navigator
from codepath.tracking.validator import Confidence, LocationValidator, ValidationResult

__all__ = [
    "Confidence",
    "LocationValidator",
    "ValidationResult",
    "Navigator",
    "NavigationResult",
    "FileAccess",
    "LocalFileSystem",
    "TextDocument",
    "EditorSurface",
    "EditorCall",
    "EditorError",
    "RecordingEditor",
    "CommandEditor",
]
