"""Hash-based identifier allocation and prefix resolution for issues."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import TYPE_CHECKING

from gitissue.constants import (
    ID_MAX_RETRIES,
    SHORT_ID_LENGTH,
    STRICT_SHORT_ID_LENGTH,
)
from gitissue.errors import AllocationExhaustedError, AmbiguousError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable


def generate_hash_id(input_data: str, nonce: str = "") -> str:
    """Generate a 40 character hex id from input data.

    Args:
        input_data: Data to hash (e.g., description + timestamp)
        nonce: Optional nonce to handle collisions (empty string for first attempt)

    Returns:
        Lowercase hex digest with the shape of a git object name
    """
    combined = input_data + nonce
    return hashlib.sha1(combined.encode()).hexdigest()  # noqa: S324


def short_id_length(strict: bool = False) -> int:
    """Return the length of abbreviated ids for the given mode."""
    return STRICT_SHORT_ID_LENGTH if strict else SHORT_ID_LENGTH


def short_id(issue_id: str, strict: bool = False) -> str:
    """Return the display abbreviation of an issue id."""
    return issue_id[: short_id_length(strict)]


def resolve_id(partial_id: str, known_ids: Iterable[str]) -> str:
    """Resolve a partial ID to a full issue ID.

    Any leading substring of an id denotes that issue as long as no other
    id starts with it.

    Args:
        partial_id: Full or partial issue ID
        known_ids: Every issue ID in the repository

    Returns:
        The full issue ID

    Raises:
        NotFoundError: If the prefix is empty or matches no issue
        AmbiguousError: If the prefix matches several issues
    """
    needle = partial_id.strip().lower()
    if not needle:
        msg = "Empty issue id"
        raise NotFoundError(msg)

    matches = sorted({issue_id for issue_id in known_ids if issue_id.startswith(needle)})
    if not matches:
        msg = f"No issue found with prefix '{partial_id}'"
        raise NotFoundError(msg)
    if len(matches) > 1:
        raise AmbiguousError(partial_id, matches)
    return matches[0]


class IDGenerator:
    """Manages ID generation with collision detection and handling."""

    def __init__(
        self,
        existing_ids: set[str] | None = None,
        max_retries: int = ID_MAX_RETRIES,
    ) -> None:
        """Initialize the ID generator.

        Args:
            existing_ids: Set of already-used IDs to detect collisions
            max_retries: Attempts before giving up on a free ID
        """
        self.existing_ids = existing_ids if existing_ids is not None else set()
        self.max_retries = max_retries

    def allocate(self, content: str, timestamp: datetime | None = None) -> str:
        """Allocate a unique issue ID.

        Args:
            content: Issue description the ID is derived from
            timestamp: Timestamp for issue creation (default: now)

        Returns:
            New 40 character issue ID, recorded as taken

        Raises:
            AllocationExhaustedError: If every attempt collided
        """
        if timestamp is None:
            timestamp = datetime.now().astimezone()

        input_data = f"{content}:{timestamp.isoformat()}"

        # Try generating with increasing nonce values
        for attempt in range(self.max_retries):
            nonce = "" if attempt == 0 else str(attempt)
            candidate = generate_hash_id(input_data, nonce=nonce)
            if candidate not in self.existing_ids:
                self.existing_ids.add(candidate)
                return candidate

        msg = f"Could not allocate a free issue id after {self.max_retries} attempts"
        raise AllocationExhaustedError(msg)
