"""
Derived stock alerts.

Nothing here touches the store; results depend only on the item, the
settings and the reference date.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from labstock.utils import dates

from . import models, schemas


def _as_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def effective_threshold(item: schemas.StoredItem, settings: schemas.Settings) -> float:
    threshold = getattr(item, "threshold", None)
    if threshold is not None:
        return threshold
    return settings.low_threshold


def compute_alerts(
    item: schemas.StoredItem,
    settings: schemas.Settings,
    *,
    today: Optional[date] = None,
) -> schemas.AlertFlags:
    low = _as_number(item.quantity) <= effective_threshold(item, settings)

    near_expiry = False
    expiry = getattr(item, "expiry", None)
    if expiry:
        days = dates.days_until(expiry, today=today)
        # Already-expired items (days < 0) are deliberately not flagged.
        near_expiry = days is not None and 0 <= days <= settings.near_expiry_days

    return schemas.AlertFlags(low=low, near_expiry=near_expiry)


def summarize_alerts(
    state: schemas.InventoryState,
    *,
    today: Optional[date] = None,
) -> List[schemas.CategoryAlertSummary]:
    summary: List[schemas.CategoryAlertSummary] = []
    for category in models.CATEGORIES:
        items = getattr(state, category)
        counts: Dict[str, int] = {"low": 0, "near_expiry": 0}
        for item in items:
            flags = compute_alerts(item, state.settings, today=today)
            counts["low"] += int(flags.low)
            counts["near_expiry"] += int(flags.near_expiry)
        summary.append(
            schemas.CategoryAlertSummary(
                category=category,
                total=len(items),
                low=counts["low"],
                near_expiry=counts["near_expiry"],
            )
        )
    return summary
