"""Identity context carried by already-issued JWT access tokens."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from pos_core.core.config import settings
from pos_core.models.enums import UserRole

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=True)


@dataclass(frozen=True)
class Actor:
    """Validated caller: who acts, for which outlet, in which role."""

    user_id: int
    outlet_id: int
    role: UserRole


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token from payload data."""
    to_encode: dict[str, Any] = data.copy()
    expire: datetime = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_expire_minutes
    )
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    return payload


def actor_from_token(token: str) -> Actor:
    """Build the caller identity from a token's claims."""
    payload = verify_token(token)
    try:
        return Actor(
            user_id=int(payload["sub"]),
            outlet_id=int(payload["outlet_id"]),
            role=UserRole(str(payload["role"]).upper()),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from exc


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Actor:
    """Resolve the caller from the Authorization header."""
    return actor_from_token(credentials.credentials)


def require_outlet_access(actor: Actor, outlet_id: int) -> None:
    """OWNER may act on any outlet; everyone else only on their own."""
    if actor.role != UserRole.OWNER and actor.outlet_id != outlet_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Outlet access denied")


def get_outlet_actor(outlet_id: int, actor: Actor = Depends(get_current_actor)) -> Actor:
    """Dependency for routes under ``/outlets/{outlet_id}``."""
    require_outlet_access(actor, outlet_id)
    return actor
