"""Navigation - Turn a node into an open/reveal action on an editor surface.

Validation runs first. A valid anchor is opened as stored; an invalid
one with a suggestion is opened at the suggestion; an invalid one
without a suggestion is still opened at the stored location so the user
can fix it by hand. Only a file that cannot be opened at all is a hard
failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from codepath.graph.CodeNode import CodeNode, SourceLocation
from codepath.tracking.editor import EditorError, EditorSurface, RecordingEditor
from codepath.tracking.validator import Confidence, LocationValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationResult:
    """Outcome of navigating to a node.

    Attributes:
        success: True if a location was shown.
        confidence: Validation confidence for the location shown.
        actual_location: Where navigation landed.
        message: Informational or error text.
    """

    success: bool
    confidence: Confidence
    actual_location: SourceLocation | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "confidence": self.confidence.value}
        if self.actual_location is not None:
            result["actualLocation"] = self.actual_location.to_dict()
        if self.message is not None:
            result["message"] = self.message
        return result


class Navigator:
    """Navigates to nodes through a validator and an editor surface."""

    def __init__(
        self,
        validator: LocationValidator | None = None,
        editor: EditorSurface | None = None,
    ) -> None:
        self.validator = validator if validator is not None else LocationValidator()
        self.editor: EditorSurface = editor if editor is not None else RecordingEditor()

    def navigate_to_node(self, node: CodeNode) -> NavigationResult:
        """Validate a node's anchor and show the best location for it."""
        validation = self.validator.validate_location(node)

        if validation.is_valid:
            target = node.location
        elif validation.suggested_location is not None:
            target = validation.suggested_location
        else:
            target = node.location

        try:
            self.perform_navigation(target)
        except EditorError as e:
            logger.debug("Editor could not show %s: %s", target, e)
            return NavigationResult(False, Confidence.FAILED, message=f"Editor failed: {e}")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Navigation to %s failed: %s", target, e)
            return NavigationResult(False, Confidence.FAILED, message=f"File not accessible: {e}")

        if validation.is_valid:
            return NavigationResult(True, validation.confidence, target)
        if validation.suggested_location is not None:
            return NavigationResult(True, validation.confidence, target, message=validation.reason)
        return NavigationResult(
            True,
            Confidence.FAILED,
            node.location,
            message=validation.reason
            or "Code snippet not found, but navigated to stored location",
        )

    def perform_navigation(self, location: SourceLocation) -> None:
        """Show a location: directories are revealed, files opened at (line - 1, 0).

        Raises:
            OSError: If the file does not exist or cannot be read.
            EditorError: If the editor surface fails.
        """
        files = self.validator.files
        if files.exists(location.path) and files.is_dir(location.path):
            logger.debug("%s is a directory, revealing", location.path)
            self._show(self.editor.reveal_directory, location.path)
            return

        # Opening proves the file is readable before the editor is asked
        files.open_text(location.path)
        self._show(self.editor.open_file, location.path, max(0, location.line - 1), 0)

    @staticmethod
    def _show(action: Callable[..., None], *args: Any) -> None:
        try:
            action(*args)
        except OSError as e:
            raise EditorError(str(e)) from e
