import uuid

from vidtube.core.errors import BadRequest


def parse_id(value: str | None, label: str = "ID") -> str:
    """Normalize a path/query id to canonical UUID text, or fail BadRequest."""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError):
        raise BadRequest(f"Invalid {label}")
