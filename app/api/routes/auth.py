import time

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth_utils import decode_refresh_token
from app.core.dependencies import get_current_principal, get_db, require_admin
from app.core.errors import AuthError, NotFound, ValidationError
from app.core.jwt import create_access_token, create_refresh_token
from app.core.logging_config import get_logger
from app.core.redis import get_cache, set_cache
from app.core.security import hash_password, role_for_email, verify_password
from app.models.user import User
from app.schemas.user import RefreshRequest, TokenOut, UserCreate, UserLogin, UserOut, UserSummary
from app.services.store import run_in_transaction
from app.utils.validators import normalize_phone

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

logger = get_logger()


def _token_response(user: User) -> TokenOut:
    role = role_for_email(user.email)
    token = create_access_token({"sub": user.email, "role": role})
    out = UserOut.model_validate(user)
    out.role = role
    return TokenOut(
        access_token=token,
        refresh_token=create_refresh_token(user.email),
        role=role,
        user=out,
    )


def _revoke_refresh(payload: dict):
    """Remember a used refresh token until it would have expired anyway."""
    ttl = int(payload["exp"] - time.time())
    if payload.get("jti") and ttl > 0:
        set_cache(f"revoked_refresh:{payload['jti']}", True, ttl=ttl)


# =====================================================================
#                           REGISTER
# =====================================================================
@router.post("/register", response_model=TokenOut)
def register(data: UserCreate, db: Session = Depends(get_db)):
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("User already exists")

    user = User(
        name=data.name.strip(),
        email=email,
        phone=normalize_phone(data.phone) if data.phone else None,
        password_hash=hash_password(data.password),
    )

    def work():
        db.add(user)
        db.flush()
        return user

    run_in_transaction(db, work)
    db.refresh(user)
    logger.info(f"User registered: {email}")

    return _token_response(user)


# =====================================================================
#                           LOGIN
# =====================================================================
@router.post("/login", response_model=TokenOut)
def login(data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise AuthError("Invalid credentials")

    return _token_response(user)


# =====================================================================
#                           CURRENT USER
# =====================================================================
@router.get("/me", response_model=UserOut)
def me(principal=Depends(get_current_principal)):
    user, role = principal
    out = UserOut.model_validate(user)
    out.role = role
    return out


# =====================================================================
#                           REFRESH / LOGOUT
# =====================================================================
@router.post("/refresh", response_model=TokenOut)
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    if not data.refresh_token:
        raise AuthError("No refresh token provided. Please log in again.")

    payload = decode_refresh_token(data.refresh_token)
    if payload.get("jti") and get_cache(f"revoked_refresh:{payload['jti']}"):
        raise AuthError("Invalid or expired refresh token")

    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user:
        raise NotFound("User not found")

    # rotation: the presented token cannot be used again
    _revoke_refresh(payload)
    return _token_response(user)


@router.post("/logout")
def logout(data: RefreshRequest | None = None):
    if data and data.refresh_token:
        try:
            _revoke_refresh(decode_refresh_token(data.refresh_token))
        except AuthError:
            logger.info("Logout with an invalid refresh token")
    return {"success": True, "message": "Logged out successfully"}


# =====================================================================
#                           ALL USERS (ADMIN)
# =====================================================================
@router.get("/all-users")
def all_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    logger.bind(log_type="admin").info(f"{admin.email} listed {len(users)} users")
    return {"success": True, "users": [UserSummary.model_validate(u) for u in users]}
