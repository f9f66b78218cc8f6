"""Hasher - Content fingerprints for code location tracking.

Provides functions for calculating and verifying SHA-256 based
fingerprints of single source lines or short snippets.
"""

import hashlib

DEFAULT_HASH_LENGTH = 16


def normalize_code(content: str) -> str:
    """Normalize code text for consistent hashing.

    Strips leading/trailing whitespace and converts every line-ending
    style (CRLF, CR) to a single newline.

    Args:
        content: Raw code text

    Returns:
        Normalized text suitable for hashing
    """
    return content.replace("\r\n", "\n").replace("\r", "\n").strip()


def calculate_hash(
    content: str | None,
    length: int = DEFAULT_HASH_LENGTH,
) -> str:
    """Calculate a code fingerprint.

    Empty or whitespace-only content maps to the empty string, which
    never equals the fingerprint of a real line.

    Args:
        content: Code text to fingerprint
        length: Number of hex characters to keep (default 16)

    Returns:
        Hexadecimal hash string of specified length, or "" for blank input
    """
    if not content:
        return ""
    normalized = normalize_code(content)
    if not normalized:
        return ""

    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:length]


def verify_hash(
    content: str,
    expected_hash: str,
    length: int = DEFAULT_HASH_LENGTH,
) -> bool:
    """Verify that content matches an expected fingerprint.

    Args:
        content: Code text to verify
        expected_hash: Expected hash value
        length: Hash length used (default 16)

    Returns:
        True if hash matches, False otherwise. Blank content never matches.
    """
    actual_hash = calculate_hash(content, length=length)
    if not actual_hash:
        return False
    return actual_hash.lower() == expected_hash.lower()
