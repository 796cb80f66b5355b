"""ULID helpers for primary keys."""

import ulid

ULID_LENGTH = 26


def generate_ulid() -> str:
    """Return a new sortable identifier as a 26-char string."""
    return str(ulid.new())


def is_ulid(value: str) -> bool:
    """Cheap shape check used before hitting the database with an id."""
    if len(value) != ULID_LENGTH:
        return False
    try:
        ulid.from_str(value)
    except ValueError:
        return False
    return True
