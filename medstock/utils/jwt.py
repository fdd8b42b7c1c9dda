# medstock/utils/jwt.py
from datetime import datetime, timedelta
from typing import Iterable, Optional

from jose import jwt

from medstock.core.config import settings


def create_access_token(
    *,
    user_id: int,
    role: str = "user",
    perms: Iterable[str] = (),
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Token layout read by api.deps.current_actor. Issued by the auth service;
    kept here for scripts and tests.
    """
    now = datetime.utcnow()
    payload = {
        "sub": str(user_id),
        "role": role,
        "perms": list(perms),
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
