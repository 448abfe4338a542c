# backend/leasekeeper/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class Principal:
    """
    Who is acting. Identity is asserted upstream (gateway / session layer);
    this service only reads the id it was handed.
    """

    user_id: Optional[int]


def get_principal(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> Principal:
    raw = str(x_user_id or "").strip()
    if not raw:
        return Principal(user_id=None)
    try:
        return Principal(user_id=int(raw))
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-Id must be an integer") from None


def require_user(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> Principal:
    p = get_principal(x_user_id)
    if p.user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id (acting user).")
    return p
