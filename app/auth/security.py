import uuid
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import User, UserSession, USER_ROLES
from ..services.audit import set_actor
from ..services.permissions import MANAGER_ROLES


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)

PASSWORD_WORDS = ["vibe", "gig", "beat", "tune", "song", "mix", "play", "jazz", "rock", "soul"]
PASSWORD_SPECIALS = ["!", "@", "#", "$", "%"]


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    # Legacy bcrypt ($2a$/$2b$/$2y$) hashes are checked with the bcrypt module directly
    if hashed.startswith(("$2a$", "$2b$", "$2y$")):
        pb = plain.encode("utf-8")[:72]
        try:
            return bcrypt.checkpw(pb, hashed.encode("utf-8"))
        except ValueError:
            return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def generate_password() -> str:
    """Three words, three digits and a symbol, e.g. 'vibejazzmix042#'."""
    words = "".join(secrets.choice(PASSWORD_WORDS) for _ in range(3))
    digits = f"{secrets.randbelow(1000):03d}"
    return f"{words}{digits}{secrets.choice(PASSWORD_SPECIALS)}"


def _create_token(sub: str, ttl_seconds: int, extra: Optional[dict] = None) -> Tuple[str, dict]:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra:
        payload.update(extra)
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, payload


def create_access_token(user_id: str, role: Optional[str] = None) -> Tuple[str, dict]:
    return _create_token(user_id, settings.jwt_ttl_seconds, extra={"role": role})


def open_session(db: Session, user: User) -> str:
    """Issue a token and persist its session row; the caller commits."""
    token, payload = create_access_token(str(user.id), user.role)
    db.add(UserSession(
        jti=payload["jti"],
        user_id=user.id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    ))
    return token


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_token_payload(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> dict:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return decode_token(creds.credentials)


def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    try:
        user_uuid = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid subject")
    session_row = db.get(UserSession, str(payload.get("jti")))
    if session_row is None or session_row.user_id != user_uuid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")
    user = db.get(User, user_uuid)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    set_actor(db, user.id, user.role)
    return user


def require_roles(*allowed_roles: str):
    """Allow callers holding any one of the given roles."""
    unknown = set(allowed_roles) - set(USER_ROLES)
    if unknown:
        raise ValueError(f"Unknown roles: {sorted(unknown)}")

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _dep


require_manager = require_roles(*MANAGER_ROLES)
require_owner = require_roles("owner")
