"""Location validation - Decide whether a node's anchor still holds.

Given a CodeNode and the live file, ``LocationValidator`` returns a
``ValidationResult``: the anchor is exact, relocated with some
confidence, or lost. Strategies run in order and stop at the first hit:

1. fingerprint / substring match at the stored line
2. nearby-line search (±search_radius lines)
3. whitespace-insensitive search across up to ``multiline_span`` lines

When the stored line is past the end of the file, the whole file is
searched instead. "The code moved" is an expected outcome, so nothing
here raises: every failure becomes a result with ``Confidence.FAILED``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from codepath.graph.CodeNode import CodeNode, SourceLocation
from codepath.tracking.files import FileAccess, LocalFileSystem, TextDocument
from codepath.utilities.hasher import DEFAULT_HASH_LENGTH, calculate_hash
from codepath.utilities.similarity import normalize_for_comparison, similarity

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RADIUS = 20
DEFAULT_FUZZY_THRESHOLD = 0.8
DEFAULT_MULTILINE_SPAN = 8

# Similarity assigned to a line that contains the snippet as a substring
SUBSTRING_SIMILARITY = 0.95
# Snippets this short or shorter are too ambiguous for substring matching
MIN_SUBSTRING_LENGTH = 3


class Confidence(str, Enum):
    """How sure the validator is about a (possibly relocated) anchor."""

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    FAILED = "failed"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one node's location.

    Attributes:
        is_valid: True if the stored anchor is still correct.
        confidence: Confidence tier of the verdict or of the suggestion.
        suggested_location: Where the code appears to be now, if found.
        reason: Human-readable explanation when not exactly valid.
    """

    is_valid: bool
    confidence: Confidence
    suggested_location: SourceLocation | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "isValid": self.is_valid,
            "confidence": self.confidence.value,
        }
        if self.suggested_location is not None:
            result["suggestedLocation"] = self.suggested_location.to_dict()
        if self.reason is not None:
            result["reason"] = self.reason
        return result


@dataclass(frozen=True)
class _Match:
    line_number: int  # 1-based
    confidence: Confidence


def _normalize_snippet(text: str) -> str:
    return text.strip().lower()


def _contains_snippet(line_text: str, normalized_snippet: str) -> bool:
    return (
        len(normalized_snippet) > MIN_SUBSTRING_LENGTH
        and normalized_snippet in _normalize_snippet(line_text)
    )


class LocationValidator:
    """Validates node anchors against live file content.

    Stateless apart from its configuration: the same validator can be
    used for any number of nodes and graphs.

    Args:
        files: File-access capability (defaults to the local disk).
        search_radius: Lines searched on each side of the stored line.
        fuzzy_threshold: Minimum similarity accepted by fuzzy matching.
        multiline_span: Maximum consecutive lines joined by the
            whitespace-insensitive search.
        hash_length: Fingerprint length used for comparisons.
    """

    def __init__(
        self,
        files: FileAccess | None = None,
        search_radius: int = DEFAULT_SEARCH_RADIUS,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
        multiline_span: int = DEFAULT_MULTILINE_SPAN,
        hash_length: int = DEFAULT_HASH_LENGTH,
    ) -> None:
        self.files: FileAccess = files if files is not None else LocalFileSystem()
        self.search_radius = search_radius
        self.fuzzy_threshold = fuzzy_threshold
        self.multiline_span = multiline_span
        self.hash_length = hash_length

    def generate_code_hash(self, code: str | None) -> str:
        """Fingerprint a line or snippet ("" for blank input)."""
        return calculate_hash(code, length=self.hash_length)

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    def validate_location(self, node: CodeNode) -> ValidationResult:
        """Check a node's stored anchor against the file on disk. Never raises."""
        try:
            return self._validate(node)
        except Exception as e:
            logger.debug("Validation of %s failed with %r", node.id, e)
            return ValidationResult(
                is_valid=False,
                confidence=Confidence.FAILED,
                reason=f"Validation error: {e}",
            )

    def read_anchor(self, file_path: str, line_number: int) -> tuple[str, str] | None:
        """Read the trimmed text at a line and its fingerprint.

        Returns:
            ``(snippet, code_hash)``, or None if the file cannot be read
            or the line is past the end of the file.
        """
        try:
            document = self.files.open_text(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read %s: %s", file_path, e)
            return None
        if line_number < 1 or line_number > document.line_count:
            return None
        text = document.line_at(line_number - 1).strip()
        return text, self.generate_code_hash(text)

    def update_node_location(self, node: CodeNode, file_path: str, line_number: int) -> None:
        """Move a node's anchor and refresh its snippet from the new line.

        The previous snippet and fingerprint are kept when the new line
        cannot be read or is blank.

        Raises:
            ValueError: If the path or line number is invalid.
        """
        node.update_file_path(file_path)
        node.update_line_number(line_number)
        anchor = self.read_anchor(file_path, line_number)
        if anchor is None or not anchor[0]:
            return
        snippet, code_hash = anchor
        node.update_code_snippet(snippet)
        node.code_hash = code_hash

    # ─────────────────────────────────────────────────────────────────────────
    # Strategies
    # ─────────────────────────────────────────────────────────────────────────

    def _validate(self, node: CodeNode) -> ValidationResult:
        if not self.files.exists(node.file_path):
            return ValidationResult(False, Confidence.FAILED, reason="File not found")

        if self.files.is_dir(node.file_path):
            return ValidationResult(True, Confidence.EXACT)

        document = self.files.open_text(node.file_path)
        snippet = node.code_snippet if node.code_snippet and node.code_snippet.strip() else None

        if node.line_number > document.line_count:
            overflow = (
                f"Line number {node.line_number} exceeds file length "
                f"({document.line_count} lines)"
            )
            if snippet is not None:
                found = self._search_entire_file(document, snippet)
                if found is not None:
                    return ValidationResult(
                        is_valid=False,
                        confidence=found.confidence,
                        suggested_location=SourceLocation(node.file_path, found.line_number),
                        reason=f"{overflow}. Code found at line {found.line_number}",
                    )
            return ValidationResult(False, Confidence.FAILED, reason=overflow)

        if snippet is None:
            # Legacy nodes carry no snippet: trust the line number
            return ValidationResult(True, Confidence.EXACT)

        expected_hash = self.generate_code_hash(snippet)
        actual_line = document.line_at(node.line_number - 1)
        if expected_hash == self.generate_code_hash(actual_line):
            return ValidationResult(True, Confidence.EXACT)

        # Snippet is often a sub-selection of the stored line
        if _contains_snippet(actual_line, _normalize_snippet(snippet)):
            return ValidationResult(True, Confidence.EXACT)

        nearby = self._search_nearby_lines(document, node.line_number, snippet, expected_hash)
        if nearby is not None:
            moved = abs(nearby.line_number - node.line_number)
            return ValidationResult(
                is_valid=False,
                confidence=nearby.confidence,
                suggested_location=SourceLocation(node.file_path, nearby.line_number),
                reason=f"Code found at line {nearby.line_number} (moved {moved} lines)",
            )

        spanning = self._search_across_lines_normalized(document, snippet)
        if spanning is not None:
            return ValidationResult(
                is_valid=False,
                confidence=spanning.confidence,
                suggested_location=SourceLocation(node.file_path, spanning.line_number),
                reason=(
                    f"Code found at line {spanning.line_number} (whitespace-insensitive match)"
                ),
            )

        return ValidationResult(False, Confidence.FAILED, reason="Code snippet not found in file")

    def _score_line(
        self, line_text: str, snippet: str, normalized_snippet: str, expected_hash: str
    ) -> float | None:
        """Similarity of a candidate line, or None if it is not a match."""
        if self.generate_code_hash(line_text) == expected_hash:
            return 1.0
        if _contains_snippet(line_text, normalized_snippet):
            return SUBSTRING_SIMILARITY
        score = similarity(snippet, line_text)
        if score > self.fuzzy_threshold:
            return score
        return None

    def _search_nearby_lines(
        self,
        document: TextDocument,
        original_line: int,
        snippet: str,
        expected_hash: str,
    ) -> _Match | None:
        start = max(0, original_line - self.search_radius - 1)
        end = min(document.line_count - 1, original_line + self.search_radius - 1)
        normalized_snippet = _normalize_snippet(snippet)

        best: tuple[float, int, int] | None = None  # (similarity, distance, line_number)
        for i in range(start, end + 1):
            if i == original_line - 1:
                continue
            score = self._score_line(
                document.line_at(i), snippet, normalized_snippet, expected_hash
            )
            if score is None:
                continue
            distance = abs(i + 1 - original_line)
            if best is None or score > best[0] or (score == best[0] and distance < best[1]):
                best = (score, distance, i + 1)

        if best is None:
            return None

        score, distance, line_number = best
        if score == 1.0 and distance <= 5:
            confidence = Confidence.HIGH
        elif score >= 0.9 or distance <= 10:
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.LOW
        return _Match(line_number, confidence)

    def _search_entire_file(self, document: TextDocument, snippet: str) -> _Match | None:
        expected_hash = self.generate_code_hash(snippet)
        normalized_snippet = _normalize_snippet(snippet)

        best: tuple[float, int] | None = None  # (similarity, line_number)
        for i, line_text in enumerate(document.lines):
            score = self._score_line(line_text, snippet, normalized_snippet, expected_hash)
            if score is None:
                continue
            if score == 1.0 and self.generate_code_hash(line_text) == expected_hash:
                return _Match(i + 1, Confidence.HIGH)
            if best is None or score > best[0]:
                best = (score, i + 1)

        if best is None:
            return None

        score, line_number = best
        if score >= 0.95:
            confidence = Confidence.HIGH
        elif score >= 0.85:
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.LOW
        return _Match(line_number, confidence)

    def _search_across_lines_normalized(
        self, document: TextDocument, snippet: str
    ) -> _Match | None:
        target = normalize_for_comparison(snippet)
        if not target:
            return None

        normalized_lines = [normalize_for_comparison(line) for line in document.lines]
        total = len(normalized_lines)

        for start in range(total):
            combined = ""
            offsets: list[int] = []
            for end in range(start, min(total, start + self.multiline_span)):
                offsets.append(len(combined))
                combined += normalized_lines[end]

                if len(combined) < len(target):
                    continue

                match_index = combined.find(target)
                if match_index != -1:
                    match_line = start
                    for relative, segment_start in enumerate(offsets):
                        segment_end = segment_start + len(normalized_lines[start + relative])
                        if segment_start <= match_index < segment_end:
                            match_line = start + relative
                            break

                    span = end - start
                    if span == 0:
                        confidence = Confidence.HIGH
                    elif span <= 2:
                        confidence = Confidence.MEDIUM
                    else:
                        confidence = Confidence.LOW
                    return _Match(match_line + 1, confidence)

                if len(combined) > len(target) * 2:
                    break

        return None
