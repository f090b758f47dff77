from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.core.auth_utils import decode_token
from app.core.config import get_settings
from app.core.errors import AuthError, Forbidden, GatewayNotConfigured, NotFound
from app.gateways.base import PaymentGateway
from app.gateways.factory import build_gateway
from app.models.user import User

security = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------
# PAYMENT GATEWAY
# ---------------------------------------------------------------------
@lru_cache()
def _configured_gateway():
    return build_gateway(get_settings())


def get_gateway() -> PaymentGateway:
    gateway = _configured_gateway()
    if gateway is None:
        raise GatewayNotConfigured()
    return gateway


# ---------------------------------------------------------------------
# AUTH RESOLUTION
# ---------------------------------------------------------------------
def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
):
    """(user, role) from a valid bearer token, or (None, None) for guests.

    An invalid token on a guest-allowed route is treated as no token.
    """
    if credentials is None:
        return None, None
    try:
        payload = decode_token(credentials.credentials)
    except AuthError:
        return None, None

    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user:
        return None, None
    return user, payload["role"]


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
):
    if credentials is None:
        raise AuthError()

    payload = decode_token(credentials.credentials)
    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user:
        raise NotFound("User not found")

    return user, payload["role"]


def require_admin(principal=Depends(get_current_principal)) -> User:
    user, role = principal
    if role != "admin":
        raise Forbidden()
    return user
