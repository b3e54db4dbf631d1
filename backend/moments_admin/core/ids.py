from ulid import ULID


def new_id() -> str:
    """Lexicographically sortable 26-character identifier."""
    return str(ULID())
