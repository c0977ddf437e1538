"""
Bearer-token authentication.

Tokens are issued elsewhere; this module only decodes them into an Actor.
Payload: {"sub": "<user id>", "role": "customer" | "admin", "exp": ..., "iat": ...}
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException

from backend.app.core.constants import ROLE_ADMIN, ROLE_CUSTOMER
from backend.app.core.logging import get_logger
from backend.app.core.settings import get_settings

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 24 * 7  # 7 days

VALID_ROLES = (ROLE_CUSTOMER, ROLE_ADMIN)


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _secret() -> str:
    secret = get_settings().JWT_SECRET
    if not secret:
        raise HTTPException(status_code=500, detail="Server configuration error: JWT_SECRET not set")
    return secret


def create_access_token(user_id: int, role: str = ROLE_CUSTOMER, expires_hours: int = JWT_EXPIRY_HOURS) -> str:
    if role not in VALID_ROLES:
        raise ValueError(f"Unknown role '{role}'")
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.utcnow() + timedelta(hours=expires_hours),
        "iat": datetime.utcnow(),
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Actor]:
    """Actor for a valid token, None otherwise."""
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
        role = payload.get("role")
        if role not in VALID_ROLES:
            return None
        return Actor(user_id=int(payload["sub"]), role=role)
    except (jwt.InvalidTokenError, ValueError, KeyError):
        return None


async def get_current_actor(
    authorization: Optional[str] = Header(None)
) -> Actor:
    """
    FastAPI dependency: Actor from the "Authorization: Bearer <token>" header.

    Raises:
        HTTPException 401: If the header is missing or the token is invalid
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid Authorization header format. Expected: Bearer <token>"
        )

    actor = decode_token(parts[1])
    if actor is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return actor


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        logger.warning("Admin endpoint called by non-admin", user_id=actor.user_id)
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor
