from __future__ import annotations

from datetime import date

import pytest
from fastapi import HTTPException

from labstock.apps.inventory.services import InventoryStore
from labstock.errors import AuthError, ValidationError
from labstock.security import authorize, change_pin, require_pin


def test_authorize_compares_as_text(store):
    assert authorize(store, "9999") is True
    assert authorize(store, 9999) is True
    assert authorize(store, "09999") is False
    assert authorize(store, "") is False
    assert authorize(store, None) is False


def test_authorize_has_no_lockout(store):
    for _ in range(20):
        assert authorize(store, "0000") is False
    assert authorize(store, "9999") is True


def test_change_pin_rejects_empty_pin(store):
    with pytest.raises(ValidationError):
        change_pin(store, current="9999", proposed="", confirmation="")
    with pytest.raises(ValidationError):
        change_pin(store, current="9999", proposed="   ", confirmation="   ")
    assert authorize(store, "9999") is True


def test_change_pin_rejects_wrong_current_pin(store):
    with pytest.raises(AuthError):
        change_pin(store, current="wrong", proposed="1234", confirmation="1234")
    assert store.settings.pin == "9999"


def test_change_pin_rejects_mismatched_confirmation(store):
    with pytest.raises(ValidationError):
        change_pin(store, current="9999", proposed="1234", confirmation="4321")
    assert store.settings.pin == "9999"


def test_change_pin_success_is_persisted(store, repository):
    change_pin(store, current="9999", proposed="1234", confirmation="1234")

    assert authorize(store, "1234") is True
    assert authorize(store, "9999") is False

    reloaded = InventoryStore.open(repository, clock=lambda: date(2024, 6, 15))
    assert authorize(reloaded, "1234") is True


def test_change_pin_accepts_text_pins(store):
    change_pin(store, current="9999", proposed="lab-2 ", confirmation="lab-2 ")
    assert store.settings.pin == "lab-2 "


def test_require_pin_dependency(store):
    with pytest.raises(HTTPException) as missing:
        require_pin(store=store, x_lab_pin=None)
    assert missing.value.status_code == 401

    with pytest.raises(HTTPException) as wrong:
        require_pin(store=store, x_lab_pin="1111")
    assert wrong.value.status_code == 403

    assert require_pin(store=store, x_lab_pin="9999") is None
