# backend/labstock/security.py

"""
PIN gate for Lab Stock.

Responsibilities:
- Check a supplied PIN against the shared PIN kept in the inventory settings
- Change the PIN (current PIN + new PIN + confirmation)
- FastAPI dependency that protects destructive routes

There is no session: every protected call carries the PIN again, and there
is no lockout or attempt counter.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from labstock.errors import AuthError, ValidationError
from labstock.apps.inventory.services import InventoryStore

logger = logging.getLogger(__name__)

PIN_HEADER = "X-Lab-Pin"


# ---------------------------------------------------------------------------
# CORE
# ---------------------------------------------------------------------------


def _same_text(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def authorize(store: InventoryStore, candidate: Optional[str]) -> bool:
    """
    Return True if ``candidate`` equals the stored PIN as text.

    ``None`` stands for a cancelled prompt and is never authorised.
    """
    if candidate is None:
        return False
    return _same_text(str(candidate), store.settings.pin)


def change_pin(
    store: InventoryStore,
    *,
    current: Optional[str],
    proposed: Optional[str],
    confirmation: Optional[str],
) -> None:
    if not authorize(store, current):
        logger.warning("PIN change rejected: current PIN did not match")
        raise AuthError("Incorrect current PIN. PIN not changed.")
    if proposed is None or not str(proposed).strip():
        raise ValidationError("PIN cannot be empty.")
    if confirmation is None or str(proposed) != str(confirmation):
        raise ValidationError("PINs do not match.")
    store.replace_pin(str(proposed))
    logger.info("PIN changed")


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def get_store(request: Request) -> InventoryStore:
    """Return the process-wide store attached to the application at startup."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Inventory store is not configured.")
    return store


def require_pin(
    store: InventoryStore = Depends(get_store),
    x_lab_pin: Optional[str] = Header(None, alias=PIN_HEADER),
) -> None:
    if x_lab_pin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"PIN required. Send header: {PIN_HEADER}: <PIN>",
        )
    if not authorize(store, x_lab_pin):
        logger.warning("Rejected protected action: incorrect PIN")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Incorrect PIN")
