"""
Persistence for the serialized inventory record.

The store only needs ``load() -> Optional[str]`` and ``save(text)``; this
module provides the SQLAlchemy-backed implementation used by the app.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

STORAGE_KEY = os.getenv("LABSTOCK_STORAGE_KEY", "lab_inventory_v1")
CORRUPT_SUFFIX = ".corrupt"


class SqlStateRepository:
    """Keeps one row per storage key; each save replaces the payload."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        storage_key: str = STORAGE_KEY,
    ) -> None:
        self.session_factory = session_factory
        self.storage_key = storage_key

    def _get_row(self, db: Session, key: str) -> Optional[models.StoredState]:
        return db.query(models.StoredState).filter(models.StoredState.storage_key == key).first()

    def _write(self, key: str, payload: str) -> None:
        db = self.session_factory()
        try:
            row = self._get_row(db, key)
            if row is None:
                db.add(models.StoredState(storage_key=key, payload=payload))
            else:
                row.payload = payload
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def load(self) -> Optional[str]:
        db = self.session_factory()
        try:
            row = self._get_row(db, self.storage_key)
            return row.payload if row else None
        finally:
            db.close()

    def save(self, payload: str) -> None:
        self._write(self.storage_key, payload)

    def save_backup(self, payload: str) -> None:
        backup_key = f"{self.storage_key}{CORRUPT_SUFFIX}"
        self._write(backup_key, payload)
        logger.warning(
            "Unreadable inventory state copied to backup key",
            extra={"storage_key": self.storage_key, "backup_key": backup_key},
        )

    def load_backup(self) -> Optional[str]:
        db = self.session_factory()
        try:
            row = self._get_row(db, f"{self.storage_key}{CORRUPT_SUFFIX}")
            return row.payload if row else None
        finally:
            db.close()
