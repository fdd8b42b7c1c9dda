# FILE: medstock/core/rbac.py
from __future__ import annotations

from typing import Any, FrozenSet, Iterable, Optional

from fastapi import HTTPException, status

ADMIN_ROLES: FrozenSet[str] = frozenset({"ADMIN", "SUPER_ADMIN"})


def _perm(code: Any) -> str:
    # enums and objects carrying .code are accepted as well as plain strings
    value = getattr(code, "value", None) or getattr(code, "code", None) or code
    return str(value or "").strip()


def is_admin_user(actor: Any) -> bool:
    if not actor:
        return False
    role = getattr(actor, "role", None)
    return isinstance(role, str) and role.upper() in ADMIN_ROLES


def actor_perm_codes(actor: Any) -> FrozenSet[str]:
    return frozenset(p for p in map(_perm, getattr(actor, "permissions", None) or []) if p)


def require_any(actor: Any, required: Iterable[Any], *, message: Optional[str] = None) -> None:
    """403 unless the actor is an admin or holds one of `required`."""
    if is_admin_user(actor):
        return

    wanted = {p for p in map(_perm, required) if p}
    if not wanted or actor_perm_codes(actor) & wanted:
        return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=message or "Access denied. Insufficient permissions.",
    )
