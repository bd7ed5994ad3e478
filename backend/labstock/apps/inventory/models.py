from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from labstock.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class CategoryEnum(str, enum.Enum):
    CHEMICALS = "chemicals"
    GLASSWARE = "glassware"
    INSTRUMENTS = "instruments"
    MISC = "misc"


class ChemicalStateEnum(str, enum.Enum):
    SOLID = "solid"
    LIQUID = "liquid"
    GAS = "gas"


class UnitEnum(str, enum.Enum):
    GRAM = "g"
    MILLILITRE = "mL"
    LITRE = "L"
    PIECES = "pcs"
    OTHER = "other"


class ItemStatusEnum(str, enum.Enum):
    WORKING = "Working"
    NON_FUNCTIONAL = "Non-functional"
    NEEDS_REPAIR = "Needs repair"


CATEGORIES = [c.value for c in CategoryEnum]
CONSUMABLE_CATEGORIES = {CategoryEnum.CHEMICALS.value}
BREAKABLE_CATEGORIES = {
    CategoryEnum.GLASSWARE.value,
    CategoryEnum.INSTRUMENTS.value,
    CategoryEnum.MISC.value,
}


class StoredState(Base):
    """
    One serialized inventory record per storage key.

    The payload is the full JSON state; every save overwrites it.
    """

    __tablename__ = "inventory_state"

    id = Column(Integer, primary_key=True, index=True)
    storage_key = Column(String(128), nullable=False, unique=True, index=True)
    payload = Column(Text, nullable=False)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
