"""Session token issuance and verification."""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from jose import JWTError, jwt

from taskdesk.auth.context import Caller
from taskdesk.config import settings
from taskdesk.engine.errors import UnauthorizedError
from taskdesk.models.enums import UserRole
from taskdesk.utils.time import utc_now


def create_access_token(user_id: UUID, role: UserRole) -> str:
    """Sign a session token for a user."""
    now = utc_now()
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.jwt_access_token_ttl_days)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str | None) -> Caller:
    """Verify a session token and return the caller it names."""
    if not token:
        raise UnauthorizedError("Unauthorized - No Token Provided")

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise UnauthorizedError(f"Unauthorized - Invalid Token: {exc}") from exc

    subject = payload.get("sub")
    try:
        user_id = UUID(subject)
        role = UserRole(payload.get("role", UserRole.USER.value))
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError("Unauthorized - Invalid Token") from exc

    return Caller(id=user_id, role=role)
