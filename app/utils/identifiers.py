import secrets
import string
from datetime import datetime
from urllib.parse import urlparse

_ALPHABET = string.ascii_uppercase + string.digits
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1", "testserver"}


def _suffix(length: int = 4) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_bill_id(prefix: str) -> str:
    """e.g. KH-20261018T101530-7QXZ"""
    return f"{prefix}-{datetime.utcnow():%Y%m%dT%H%M%S}-{_suffix()}"


def generate_refund_id(prefix: str) -> str:
    return f"{prefix}-RF-{datetime.utcnow():%Y%m%d%H%M%S}-{_suffix(6)}"


def public_callback_url(base_url: str | None, path: str, fallback: str) -> str:
    """Gateways only call back over HTTPS; local/plain-HTTP hosts use ``fallback``."""
    parsed = urlparse(base_url or "")
    if parsed.scheme != "https" or (parsed.hostname or "") in _LOCAL_HOSTS:
        base_url = fallback
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
