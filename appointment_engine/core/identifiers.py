"""Entity ids are ULID strings, so they sort by creation time."""

import ulid


def new_id() -> str:
    return str(ulid.ULID())
