import uuid

from bookloop.exceptions import MalformedIdentifier


def new_id() -> str:
    return str(uuid.uuid4())


def parse_identifier(value: str, kind: str = "book") -> str:
    """Normalize an identifier to canonical UUID text or raise MalformedIdentifier."""
    try:
        return str(uuid.UUID(str(value).strip()))
    except (ValueError, AttributeError, TypeError):
        raise MalformedIdentifier(f"Invalid {kind} ID")
