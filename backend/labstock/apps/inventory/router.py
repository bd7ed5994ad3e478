from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from labstock.errors import AuthError, ItemNotFoundError, ValidationError
from labstock.security import change_pin, get_store, require_pin

from . import alerts, models, schemas
from .services import InventoryStore, Match

router = APIRouter(prefix="/inventory", tags=["inventory"])

T = TypeVar("T")


def _run(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return fn(*args, **kwargs)
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


def _read(store: InventoryStore, match: Match) -> schemas.ItemRead:
    return schemas.ItemRead(
        category=match.category,
        index=match.index,
        item=match.item,
        alerts=store.alerts_for(match.item),
    )


def _read_by_id(store: InventoryStore, category: models.CategoryEnum, item_id: str) -> schemas.ItemRead:
    item = _run(store.get, category, item_id)
    index = _run(store.index_of, category, item_id)
    return _read(store, Match(category.value, index, item))


# ---------------------------------------------------------------------------
# Cross-category reads and settings (declared before /{category} routes)
# ---------------------------------------------------------------------------


@router.get("/search", response_model=List[schemas.ItemRead])
def search_all_items(
    q: str = Query("", description="Case-insensitive text matched against every item field"),
    store: InventoryStore = Depends(get_store),
):
    return [_read(store, match) for match in store.search_all(q)]


@router.get("/alerts/summary", response_model=List[schemas.CategoryAlertSummary])
def alert_summary(store: InventoryStore = Depends(get_store)):
    return alerts.summarize_alerts(store.state, today=store.today())


@router.get("/settings", response_model=schemas.SettingsRead)
def read_settings(store: InventoryStore = Depends(get_store)):
    settings = store.settings
    return schemas.SettingsRead(
        low_threshold=settings.low_threshold,
        near_expiry_days=settings.near_expiry_days,
        load_error=store.load_error,
    )


@router.put("/settings", response_model=schemas.SettingsRead)
def update_settings(
    payload: schemas.SettingsUpdate,
    store: InventoryStore = Depends(get_store),
):
    settings = _run(
        store.update_settings,
        low_threshold=payload.low_threshold,
        near_expiry_days=payload.near_expiry_days,
    )
    return schemas.SettingsRead(
        low_threshold=settings.low_threshold,
        near_expiry_days=settings.near_expiry_days,
        load_error=store.load_error,
    )


@router.post("/settings/pin", status_code=status.HTTP_204_NO_CONTENT)
def change_settings_pin(
    payload: schemas.PinChangeRequest,
    store: InventoryStore = Depends(get_store),
):
    _run(
        change_pin,
        store,
        current=payload.current,
        proposed=payload.proposed,
        confirmation=payload.confirmation,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Category collections
# ---------------------------------------------------------------------------


@router.get("/{category}", response_model=List[schemas.ItemRead])
def list_category(
    category: models.CategoryEnum,
    q: Optional[str] = Query(None),
    store: InventoryStore = Depends(get_store),
):
    return [_read(store, match) for match in store.search(category, q)]


@router.post(
    "/{category}",
    response_model=schemas.ItemRead,
    status_code=status.HTTP_201_CREATED,
)
def create_item(
    category: models.CategoryEnum,
    payload: Dict[str, Any] = Body(...),
    store: InventoryStore = Depends(get_store),
):
    item = _run(store.create, category, payload)
    return _read_by_id(store, category, item.id)


@router.get("/{category}/{item_id}", response_model=schemas.ItemRead)
def read_item(
    category: models.CategoryEnum,
    item_id: str,
    store: InventoryStore = Depends(get_store),
):
    return _read_by_id(store, category, item_id)


@router.get("/{category}/{item_id}/log", response_model=List[schemas.LogEntry])
def read_item_log(
    category: models.CategoryEnum,
    item_id: str,
    store: InventoryStore = Depends(get_store),
):
    return list(_run(store.get_log, category, item_id))


@router.put(
    "/{category}/{item_id}",
    response_model=schemas.ItemRead,
    dependencies=[Depends(require_pin)],
)
def update_item(
    category: models.CategoryEnum,
    item_id: str,
    payload: Dict[str, Any] = Body(...),
    store: InventoryStore = Depends(get_store),
):
    _run(store.update, category, item_id, payload)
    return _read_by_id(store, category, item_id)


@router.delete(
    "/{category}/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_pin)],
)
def delete_item(
    category: models.CategoryEnum,
    item_id: str,
    store: InventoryStore = Depends(get_store),
):
    _run(store.delete, category, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{category}/{item_id}/consume",
    response_model=schemas.LogEntry,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_pin)],
)
def consume_item(
    category: models.CategoryEnum,
    item_id: str,
    payload: schemas.ConsumeRequest,
    store: InventoryStore = Depends(get_store),
):
    return _run(store.consume, category, item_id, payload.amount, payload.date)


@router.post(
    "/{category}/{item_id}/damage",
    response_model=schemas.LogEntry,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_pin)],
)
def record_item_damage(
    category: models.CategoryEnum,
    item_id: str,
    payload: schemas.DamageRequest,
    store: InventoryStore = Depends(get_store),
):
    return _run(store.record_damage, category, item_id, payload.amount, payload.date)
