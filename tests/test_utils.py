import re

import pytest

from app.core.errors import ValidationError
from app.utils.identifiers import generate_bill_id, generate_refund_id, public_callback_url
from app.utils.money import to_major_units, to_minor_units
from app.utils.validators import normalize_phone, parse_positive_amount, require_fields

FALLBACK = "https://api.knowhowcafe.in"


# ----- money -----
@pytest.mark.parametrize("value, minor", [
    ("19.99", 1999),
    (19.99, 1999),
    (1999, 199900),
    ("0.005", 1),
    (" 250.5 ", 25050),
])
def test_to_minor_units(value, minor):
    assert to_minor_units(value) == minor


@pytest.mark.parametrize("value", ["abc", "", None, True, "nan", "inf"])
def test_to_minor_units_rejects_garbage(value):
    with pytest.raises(ValueError):
        to_minor_units(value)


def test_to_major_units():
    assert to_major_units(1999) == 19.99


@pytest.mark.parametrize("value", ["0", "-5", "abc", None])
def test_parse_positive_amount_rejects(value):
    with pytest.raises(ValidationError) as exc:
        parse_positive_amount(value)
    assert exc.value.message == "Amount must be a positive number"


# ----- phone -----
@pytest.mark.parametrize("raw", ["9876543210", "+91 98765 43210", "919876543210", "09876543210", "98765-43210"])
def test_normalize_phone(raw):
    assert normalize_phone(raw) == "9876543210"


@pytest.mark.parametrize("raw", ["12345", "", None, "+1 415 555 0100 22"])
def test_normalize_phone_rejects(raw):
    with pytest.raises(ValidationError):
        normalize_phone(raw)


def test_require_fields():
    require_fields({"a": "x", "b": [1]}, "missing")
    for bad in (None, "  ", []):
        with pytest.raises(ValidationError) as exc:
            require_fields({"a": "x", "b": bad}, "missing")
        assert exc.value.message == "missing"


# ----- identifiers -----
def test_bill_ids_are_prefixed_and_unique():
    ids = {generate_bill_id("KH") for _ in range(200)}
    assert len(ids) == 200
    assert all(re.fullmatch(r"KH-\d{8}T\d{6}-[A-Z0-9]{4}", i) for i in ids)


def test_refund_id_format():
    assert re.fullmatch(r"KH-RF-\d{14}-[A-Z0-9]{6}", generate_refund_id("KH"))


@pytest.mark.parametrize("base", [
    None,
    "http://localhost:8000",
    "https://localhost:8000/",
    "http://api.example.com",
    "http://testserver/",
])
def test_callback_url_falls_back_for_local_or_plain_http(base):
    assert public_callback_url(base, "/api/webhook", FALLBACK) == f"{FALLBACK}/api/webhook"


def test_callback_url_keeps_public_https_host():
    assert (
        public_callback_url("https://bookings.example.com/", "/api/webhook", FALLBACK)
        == "https://bookings.example.com/api/webhook"
    )
