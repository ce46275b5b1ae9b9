"""
Authentication

Resolves the acting user from a JWT bearer token. Tokens are issued by
the surrounding platform; create_token exists for tooling and tests.
"""
import jwt
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, Header

from ..config import Config
from ..models.actor import Actor

logger = logging.getLogger("cadence.routes.auth")


def create_token(user_id: UUID, name: str = "", expires_in_hours: int = 24) -> str:
    """Create JWT token for an actor"""
    expiration = datetime.now(timezone.utc) + timedelta(hours=expires_in_hours)
    payload = {
        "user_id": str(user_id),
        "name": name,
        "exp": expiration,
    }
    return jwt.encode(payload, Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify and decode JWT token"""
    try:
        return jwt.decode(token, Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


async def get_current_actor(authorization: str = Header(None)) -> Actor:
    """Dependency to get the current authenticated actor"""
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    # Expect "Bearer <token>"
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    payload = verify_token(parts[1])
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        user_id = UUID(payload["user_id"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    return Actor(id=user_id, name=payload.get("name") or "")
