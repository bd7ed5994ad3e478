from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from labstock.utils.identifiers import new_item_id

from . import models

DEFAULT_LOW_THRESHOLD = 10
DEFAULT_NEAR_EXPIRY_DAYS = 30
DEFAULT_PIN = "9999"


def _lenient_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return number


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ---------------------------------------------------------------------------
# Persisted state
# ---------------------------------------------------------------------------


class LogEntry(BaseModel):
    """One consumption or breakage event. Never mutated after it is appended."""

    model_config = ConfigDict(frozen=True)

    date: str
    amount: float
    original: float
    balance: float


class StoredItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_item_id)
    name: str = ""
    quantity: float = 0
    location: str = ""
    purchase: str = ""
    image: Optional[str] = None
    threshold: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def _fill_missing_id(cls, v: Any) -> str:
        return str(v) if v else new_item_id()

    @field_validator("name", "location", "purchase", mode="before")
    @classmethod
    def _text_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_or_zero(cls, v: Any) -> float:
        return _lenient_number(v)

    @field_validator("threshold", mode="before")
    @classmethod
    def _threshold_or_none(cls, v: Any) -> Optional[float]:
        if _blank_to_none(v) is None:
            return None
        return _lenient_number(v)


class ChemicalItem(StoredItem):
    state: models.ChemicalStateEnum = models.ChemicalStateEnum.SOLID
    unit: models.UnitEnum = models.UnitEnum.GRAM
    expiry: str = ""
    consumption_log: List[LogEntry] = Field(default_factory=list, alias="consumptionLog")

    @field_validator("expiry", mode="before")
    @classmethod
    def _expiry_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("consumption_log", mode="before")
    @classmethod
    def _log_or_empty(cls, v: Any) -> Any:
        return v or []


class GenericItem(StoredItem):
    quantity: int = 0
    specs: str = ""
    status: models.ItemStatusEnum = models.ItemStatusEnum.WORKING
    damage_log: List[LogEntry] = Field(default_factory=list, alias="damageLog")

    @field_validator("quantity", mode="before")
    @classmethod
    def _whole_quantity_or_zero(cls, v: Any) -> int:
        return int(_lenient_number(v))

    @field_validator("specs", mode="before")
    @classmethod
    def _specs_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("damage_log", mode="before")
    @classmethod
    def _log_or_empty(cls, v: Any) -> Any:
        return v or []


Item = Union[ChemicalItem, GenericItem]


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    low_threshold: float = Field(DEFAULT_LOW_THRESHOLD, alias="lowThreshold")
    near_expiry_days: int = Field(DEFAULT_NEAR_EXPIRY_DAYS, alias="nearExpiryDays")
    pin: str = DEFAULT_PIN

    # A stored null counts as missing and falls back to the default.
    @field_validator("low_threshold", mode="before")
    @classmethod
    def _default_threshold(cls, v: Any) -> Any:
        return DEFAULT_LOW_THRESHOLD if v is None else v

    @field_validator("near_expiry_days", mode="before")
    @classmethod
    def _default_days(cls, v: Any) -> Any:
        return DEFAULT_NEAR_EXPIRY_DAYS if v is None else v

    @field_validator("pin", mode="before")
    @classmethod
    def _pin_as_text(cls, v: Any) -> str:
        return DEFAULT_PIN if v is None else str(v)


class InventoryState(BaseModel):
    """The whole persisted record: four category collections plus settings."""

    chemicals: List[ChemicalItem] = Field(default_factory=list)
    glassware: List[GenericItem] = Field(default_factory=list)
    instruments: List[GenericItem] = Field(default_factory=list)
    misc: List[GenericItem] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)

    @field_validator("chemicals", "glassware", "instruments", "misc", mode="before")
    @classmethod
    def _collection_or_empty(cls, v: Any) -> Any:
        return v or []

    @field_validator("settings", mode="before")
    @classmethod
    def _settings_or_default(cls, v: Any) -> Any:
        return v or {}


# ---------------------------------------------------------------------------
# Input payloads
# ---------------------------------------------------------------------------


class _ItemFieldsBase(BaseModel):
    name: str
    location: str = ""
    purchase: Optional[str] = None
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("location", mode="before")
    @classmethod
    def _location_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("purchase", mode="before")
    @classmethod
    def _purchase_nullable(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)

    @field_validator("image", mode="before")
    @classmethod
    def _image_nullable(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)


class ChemicalFields(_ItemFieldsBase):
    state: models.ChemicalStateEnum = models.ChemicalStateEnum.SOLID
    quantity: float = Field(..., ge=0, allow_inf_nan=False)
    unit: models.UnitEnum = models.UnitEnum.GRAM
    threshold: Optional[float] = Field(None, allow_inf_nan=False)
    expiry: Optional[str] = None

    @field_validator("threshold", "expiry", mode="before")
    @classmethod
    def _nullable(cls, v: Any) -> Any:
        return _blank_to_none(v)


class GenericFields(_ItemFieldsBase):
    specs: str = ""
    quantity: int = Field(..., ge=0)
    status: models.ItemStatusEnum = models.ItemStatusEnum.WORKING

    @field_validator("specs", mode="before")
    @classmethod
    def _specs_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ConsumeRequest(BaseModel):
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    date: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _date_nullable(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)


class DamageRequest(BaseModel):
    amount: int = Field(..., gt=0)
    date: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _date_nullable(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)


class SettingsUpdate(BaseModel):
    low_threshold: Optional[float] = Field(None, alias="lowThreshold", allow_inf_nan=False)
    near_expiry_days: Optional[int] = Field(None, alias="nearExpiryDays", ge=0)

    model_config = ConfigDict(populate_by_name=True)


class PinChangeRequest(BaseModel):
    current: str
    proposed: str
    confirmation: str


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


class AlertFlags(BaseModel):
    low: bool = False
    near_expiry: bool = Field(False, alias="nearExpiry")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ItemRead(BaseModel):
    category: models.CategoryEnum
    index: int
    item: Item
    alerts: AlertFlags


class SettingsRead(BaseModel):
    low_threshold: float = Field(..., alias="lowThreshold")
    near_expiry_days: int = Field(..., alias="nearExpiryDays")
    load_error: Optional[str] = Field(None, alias="loadError")

    model_config = ConfigDict(populate_by_name=True)


class CategoryAlertSummary(BaseModel):
    category: models.CategoryEnum
    total: int
    low: int
    near_expiry: int = Field(..., alias="nearExpiry")

    model_config = ConfigDict(populate_by_name=True)
