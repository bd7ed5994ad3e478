from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["LABSTOCK_STORAGE_KEY"] = "lab_inventory_test"

from labstock.database import Base  # noqa: E402
from labstock.apps.inventory import models as inventory_models  # noqa: E402
from labstock.apps.inventory.services import InventoryStore  # noqa: E402
from labstock.apps.inventory.storage import SqlStateRepository  # noqa: E402

FIXED_TODAY = date(2024, 6, 15)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[inventory_models.StoredState.__table__])
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    try:
        yield TestingSession
    finally:
        engine.dispose()


@pytest.fixture()
def repository(session_factory):
    return SqlStateRepository(session_factory, storage_key="lab_inventory_test")


@pytest.fixture()
def store(repository):
    return InventoryStore.open(repository, clock=lambda: FIXED_TODAY)
