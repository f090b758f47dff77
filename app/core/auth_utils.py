from app.core.errors import AuthError
from app.core.jwt import decode_access_token


def decode_token(token: str):
    payload = decode_access_token(token)
    if payload is None:
        raise AuthError("Invalid or expired token")

    if "sub" not in payload or "role" not in payload:
        raise AuthError("Invalid token payload")

    # refresh tokens only work on /refresh
    if payload.get("type") == "refresh":
        raise AuthError("Invalid token type")

    return payload


def decode_refresh_token(token: str):
    payload = decode_access_token(token)
    if payload is None or payload.get("type") != "refresh" or "sub" not in payload:
        raise AuthError("Invalid or expired refresh token")
    return payload
