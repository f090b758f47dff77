import re

from app.core.errors import ValidationError
from app.utils.money import to_minor_units

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str | None) -> str:
    """Strip formatting and the +91 / 0 prefix; the rest must be 10 digits."""
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    elif len(digits) == 11 and digits.startswith("0"):
        digits = digits[1:]
    if len(digits) != 10:
        raise ValidationError("Phone number must be a valid 10-digit number")
    return digits


def require_fields(values: dict, message: str):
    """Raise ValidationError if any value is None / blank / empty."""
    for value in values.values():
        if value is None:
            raise ValidationError(message)
        if isinstance(value, str) and not value.strip():
            raise ValidationError(message)
        if isinstance(value, (list, tuple)) and not value:
            raise ValidationError(message)


def parse_positive_amount(value) -> int:
    """Major-unit amount -> positive minor units."""
    try:
        minor = to_minor_units(value)
    except ValueError:
        raise ValidationError("Amount must be a positive number")
    if minor <= 0:
        raise ValidationError("Amount must be a positive number")
    return minor
