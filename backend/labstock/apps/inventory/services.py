from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Iterator, List, Mapping, NamedTuple, Optional, Protocol, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from labstock.errors import ItemNotFoundError, ValidationError
from labstock.utils import dates
from labstock.utils.identifiers import new_item_id

from . import alerts, models, schemas

logger = logging.getLogger(__name__)

ItemRef = Union[int, str]
FieldsT = TypeVar("FieldsT", bound=BaseModel)


class StateRepository(Protocol):
    def load(self) -> Optional[str]: ...

    def save(self, payload: str) -> None: ...


class Match(NamedTuple):
    category: str
    index: int
    item: schemas.Item


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _describe_errors(exc: PydanticValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages) or "Invalid input."


def _validate(schema: Type[FieldsT], data: Any) -> FieldsT:
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_describe_errors(exc)) from exc


def normalize_category(category: Union[str, models.CategoryEnum]) -> str:
    value = category.value if isinstance(category, models.CategoryEnum) else str(category or "").strip().lower()
    if value not in models.CATEGORIES:
        raise ValidationError(f"Unknown category {category!r}; expected one of {', '.join(models.CATEGORIES)}.")
    return value


def _resolve_index(items: List[schemas.Item], category: str, ref: ItemRef) -> int:
    if isinstance(ref, int) and not isinstance(ref, bool):
        if 0 <= ref < len(items):
            return ref
        raise ItemNotFoundError(category, ref)
    for idx, item in enumerate(items):
        if item.id == ref:
            return idx
    raise ItemNotFoundError(category, ref)


def _searchable_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _matches(item: schemas.Item, needle: str) -> bool:
    if not needle:
        return True
    values = item.model_dump(mode="json", exclude={"id", "image", "consumption_log", "damage_log"})
    return any(needle in _searchable_text(v).lower() for v in values.values())


def serialize_state(state: schemas.InventoryState) -> str:
    return state.model_dump_json(by_alias=True)


def deserialize_state(raw: str) -> schemas.InventoryState:
    return schemas.InventoryState.model_validate_json(raw)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class InventoryStore:
    """
    In-memory inventory state with write-through persistence.

    Items can be addressed by position (shifts after a delete) or by their
    stable ``id``. Every mutation validates first and then writes the whole
    state through the repository; if anything fails the previous state is
    kept.
    """

    def __init__(
        self,
        repository: StateRepository,
        *,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self.repository = repository
        self.clock = clock or dates.today
        self.state = schemas.InventoryState()
        self.load_error: Optional[str] = None
        self._lock = threading.RLock()

    @classmethod
    def open(cls, repository: StateRepository, **kwargs: Any) -> "InventoryStore":
        store = cls(repository, **kwargs)
        store.load()
        return store

    # -- persistence --------------------------------------------------------

    def load(self) -> schemas.InventoryState:
        with self._lock:
            self.load_error = None
            raw = self.repository.load()
            if raw is None:
                self.state = schemas.InventoryState()
                self.repository.save(serialize_state(self.state))
                logger.info("Initialised empty inventory state")
                return self.state
            try:
                self.state = deserialize_state(raw)
            except PydanticValidationError as exc:
                self.load_error = (
                    f"Stored inventory could not be read ({exc.error_count()} problem(s)); "
                    "defaults were restored and the unreadable copy was kept as a backup."
                )
                logger.warning(
                    "Stored inventory state is unreadable; resetting to defaults",
                    extra={"error_count": exc.error_count()},
                )
                backup = getattr(self.repository, "save_backup", None)
                if backup is not None:
                    backup(raw)
                self.state = schemas.InventoryState()
                self.repository.save(serialize_state(self.state))
                return self.state
            # Legacy records get ids and defaults on load; write them back so
            # the ids survive a restart.
            normalized = serialize_state(self.state)
            if normalized != raw:
                self.repository.save(normalized)
                logger.info("Upgraded stored inventory state")
            return self.state

    @contextmanager
    def _transaction(self) -> Iterator[schemas.InventoryState]:
        with self._lock:
            working = self.state.model_copy(deep=True)
            yield working
            self.repository.save(serialize_state(working))
            self.state = working

    # -- reads --------------------------------------------------------------

    @property
    def settings(self) -> schemas.Settings:
        return self.state.settings.model_copy()

    def today(self) -> date:
        return self.clock()

    def list_items(self, category: Union[str, models.CategoryEnum]) -> Tuple[schemas.Item, ...]:
        category = normalize_category(category)
        with self._lock:
            return tuple(item.model_copy(deep=True) for item in getattr(self.state, category))

    def get(self, category: Union[str, models.CategoryEnum], ref: ItemRef) -> schemas.Item:
        category = normalize_category(category)
        with self._lock:
            items = getattr(self.state, category)
            return items[_resolve_index(items, category, ref)].model_copy(deep=True)

    def index_of(self, category: Union[str, models.CategoryEnum], ref: ItemRef) -> int:
        category = normalize_category(category)
        with self._lock:
            return _resolve_index(getattr(self.state, category), category, ref)

    def get_log(self, category: Union[str, models.CategoryEnum], ref: ItemRef) -> Tuple[schemas.LogEntry, ...]:
        item = self.get(category, ref)
        if isinstance(item, schemas.ChemicalItem):
            return tuple(item.consumption_log)
        return tuple(item.damage_log)

    def alerts_for(self, item: schemas.Item) -> schemas.AlertFlags:
        return alerts.compute_alerts(item, self.state.settings, today=self.today())

    def search(self, category: Union[str, models.CategoryEnum], query: Optional[str] = None) -> List[Match]:
        category = normalize_category(category)
        needle = (query or "").strip().lower()
        with self._lock:
            return [
                Match(category, idx, item.model_copy(deep=True))
                for idx, item in enumerate(getattr(self.state, category))
                if _matches(item, needle)
            ]

    def search_all(self, query: Optional[str]) -> List[Match]:
        if not (query or "").strip():
            return []
        results: List[Match] = []
        for category in models.CATEGORIES:
            results.extend(self.search(category, query))
        return results

    # -- item master data ---------------------------------------------------

    def _check_dates(self, purchase: Optional[str], expiry: Optional[str]) -> None:
        today = self.today()
        if purchase is not None:
            if dates.parse_dmy(purchase) is None:
                raise ValidationError(f"Purchase date must be in {dates.DATE_FORMAT_HINT} format.")
            if dates.is_future(purchase, today=today):
                raise ValidationError("Purchase date cannot be in the future.")
        if expiry is not None:
            if dates.parse_dmy(expiry) is None:
                raise ValidationError(f"Expiry date must be in {dates.DATE_FORMAT_HINT} format.")
            if purchase is not None and dates.is_before(expiry, purchase):
                raise ValidationError("Expiry date cannot be before the purchase date.")

    def _build_item(
        self,
        category: str,
        fields: Union[Mapping[str, Any], BaseModel],
        existing: Optional[schemas.Item] = None,
    ) -> schemas.Item:
        is_chemical = category == models.CategoryEnum.CHEMICALS.value
        payload = _validate(schemas.ChemicalFields if is_chemical else schemas.GenericFields, fields)

        purchase = payload.purchase
        if not is_chemical and purchase is None:
            # Non-chemical items are stamped with today's date when none is given.
            purchase = dates.today_dmy(today=self.today())
        expiry = payload.expiry if is_chemical else None
        self._check_dates(purchase, expiry)

        image = payload.image
        if existing is not None and "image" not in payload.model_fields_set:
            image = existing.image

        common = {
            "id": existing.id if existing is not None else new_item_id(),
            "name": payload.name,
            "quantity": payload.quantity,
            "location": payload.location,
            "purchase": dates.format_dmy(dates.parse_dmy(purchase)) if purchase else "",
            "image": image,
        }
        if is_chemical:
            return schemas.ChemicalItem(
                **common,
                state=payload.state,
                unit=payload.unit,
                threshold=payload.threshold,
                expiry=dates.format_dmy(dates.parse_dmy(expiry)) if expiry else "",
                consumption_log=list(existing.consumption_log) if existing is not None else [],
            )
        return schemas.GenericItem(
            **common,
            specs=payload.specs,
            status=payload.status,
            threshold=existing.threshold if existing is not None else None,
            damage_log=list(existing.damage_log) if existing is not None else [],
        )

    def create(
        self,
        category: Union[str, models.CategoryEnum],
        fields: Union[Mapping[str, Any], BaseModel],
    ) -> schemas.Item:
        category = normalize_category(category)
        item = self._build_item(category, fields)
        with self._transaction() as state:
            getattr(state, category).append(item)
        logger.info("Created stock item", extra={"category": category, "item_id": item.id})
        return item.model_copy(deep=True)

    def update(
        self,
        category: Union[str, models.CategoryEnum],
        ref: ItemRef,
        fields: Union[Mapping[str, Any], BaseModel],
    ) -> schemas.Item:
        category = normalize_category(category)
        with self._transaction() as state:
            items = getattr(state, category)
            idx = _resolve_index(items, category, ref)
            item = self._build_item(category, fields, existing=items[idx])
            items[idx] = item
        logger.info("Updated stock item", extra={"category": category, "item_id": item.id})
        return item.model_copy(deep=True)

    def delete(self, category: Union[str, models.CategoryEnum], ref: ItemRef) -> schemas.Item:
        category = normalize_category(category)
        with self._transaction() as state:
            items = getattr(state, category)
            removed = items.pop(_resolve_index(items, category, ref))
        logger.info("Deleted stock item", extra={"category": category, "item_id": removed.id})
        return removed

    # -- stock events -------------------------------------------------------

    def _event_date(self, text: Optional[str]) -> str:
        today = self.today()
        if not text:
            return dates.format_dmy(today)
        parsed = dates.parse_dmy(text)
        if parsed is None:
            raise ValidationError(f"Event date must be in {dates.DATE_FORMAT_HINT} format.")
        if parsed > today:
            logger.info("Future event date replaced with today", extra={"requested_date": text})
            return dates.format_dmy(today)
        return dates.format_dmy(parsed)

    def _record_event(
        self,
        category: str,
        ref: ItemRef,
        amount: Union[int, float],
        event_date: Optional[str],
        *,
        log_field: str,
    ) -> schemas.LogEntry:
        when = self._event_date(event_date)
        with self._transaction() as state:
            items = getattr(state, category)
            item = items[_resolve_index(items, category, ref)]
            before = item.quantity
            after = max(before - amount, 0)
            entry = schemas.LogEntry(date=when, amount=amount, original=before, balance=after)
            item.quantity = after
            getattr(item, log_field).append(entry)
        logger.info(
            "Recorded stock event",
            extra={"category": category, "item_id": item.id, "log": log_field, "amount": amount, "balance": after},
        )
        return entry

    def consume(
        self,
        category: Union[str, models.CategoryEnum],
        ref: ItemRef,
        amount: Any,
        date: Optional[str] = None,
    ) -> schemas.LogEntry:
        category = normalize_category(category)
        if category not in models.CONSUMABLE_CATEGORIES:
            raise ValidationError("Consumption can only be recorded for chemicals; use breakage for other items.")
        payload = _validate(schemas.ConsumeRequest, {"amount": amount, "date": date})
        return self._record_event(category, ref, payload.amount, payload.date, log_field="consumption_log")

    def record_damage(
        self,
        category: Union[str, models.CategoryEnum],
        ref: ItemRef,
        amount: Any,
        date: Optional[str] = None,
    ) -> schemas.LogEntry:
        category = normalize_category(category)
        if category not in models.BREAKABLE_CATEGORIES:
            raise ValidationError("Breakage is recorded for glassware, instruments and misc items only.")
        payload = _validate(schemas.DamageRequest, {"amount": amount, "date": date})
        return self._record_event(category, ref, payload.amount, payload.date, log_field="damage_log")

    # -- settings -----------------------------------------------------------

    def update_settings(
        self,
        *,
        low_threshold: Any = None,
        near_expiry_days: Any = None,
    ) -> schemas.Settings:
        payload = _validate(
            schemas.SettingsUpdate,
            {"low_threshold": low_threshold, "near_expiry_days": near_expiry_days},
        )
        with self._transaction() as state:
            if payload.low_threshold is not None:
                state.settings.low_threshold = payload.low_threshold
            if payload.near_expiry_days is not None:
                state.settings.near_expiry_days = payload.near_expiry_days
        logger.info(
            "Updated alert settings",
            extra={"low_threshold": state.settings.low_threshold, "near_expiry_days": state.settings.near_expiry_days},
        )
        return self.settings

    def replace_pin(self, pin: str) -> None:
        """Store a new PIN. Callers go through ``labstock.security.change_pin``."""
        with self._transaction() as state:
            state.settings.pin = str(pin)
