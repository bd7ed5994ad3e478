from __future__ import annotations

import uuid


def new_item_id() -> str:
    """Opaque id for a stock item; assigned once and never reused."""
    return uuid.uuid4().hex
