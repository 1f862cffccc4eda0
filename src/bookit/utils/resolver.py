"""Utility for resolving names of owned entities to IDs."""

from typing import Callable, Iterable, Optional, TypeVar

from bookit.domain.errors import NotFoundError

T = TypeVar("T")


def resolve_by_name_or_id(
    kind: str,
    reference: str | int,
    get: Callable[[int], Optional[T]],
    candidates: Callable[[], Iterable[T]],
) -> int:
    """Resolve an entity name or ID to its ID.

    Args:
        kind: Human readable entity kind used in error messages ("Account")
        reference: Name (str) or ID (int or string representation of int)
        get: Owner-scoped lookup by ID returning None when missing
        candidates: Owner-scoped listing searched by exact name

    Returns:
        Entity ID

    Raises:
        NotFoundError: If nothing matches
    """
    if isinstance(reference, int) or reference.strip().isdigit():
        entity_id = int(reference)
        if get(entity_id) is None:
            raise NotFoundError(f"{kind} ID {entity_id} not found")
        return entity_id

    for candidate in candidates():
        if candidate.name == reference:
            return candidate.id

    raise NotFoundError(f"{kind} '{reference}' not found")
