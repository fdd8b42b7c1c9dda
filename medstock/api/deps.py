# medstock/api/deps.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generator, List, Optional

from fastapi import Header, HTTPException
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from medstock.core.config import settings
from medstock.db.session import SessionLocal


@dataclass
class Actor:
    """Caller identity taken from the bearer token. Users are owned by the auth service."""
    id: int
    role: str = "user"
    permissions: List[str] = field(default_factory=list)


# =========================================================
# DB (per request)
# =========================================================
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_token(raw_token: str) -> dict:
    try:
        return jwt.decode(raw_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def current_actor(authorization: Optional[str] = Header(None)) -> Actor:
    raw = _extract_bearer(authorization)
    if not raw:
        raise HTTPException(status_code=401, detail="User not authenticated")

    payload = _decode_token(raw)
    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    perms = payload.get("perms") or []
    return Actor(
        id=user_id,
        role=str(payload.get("role") or "user"),
        permissions=[str(p) for p in perms if p],
    )
