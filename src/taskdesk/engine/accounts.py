"""Account operations: registration, login, profile."""

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth.context import Caller
from taskdesk.auth.passwords import (
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    hash_password,
    verify_password,
)
from taskdesk.db.repositories import UserRepository
from taskdesk.engine.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from taskdesk.engine.validation import require_email, require_password, require_username
from taskdesk.models import User, UserRole

if TYPE_CHECKING:
    from taskdesk.images.normalizer import ImageNormalizer

logger = logging.getLogger(__name__)


def _conflict(exc: IntegrityError, suffix: str) -> ConflictError:
    """Name the unique field a constraint violation is about."""
    if "email" in str(exc.orig).lower():
        return ConflictError(f"Email {suffix}", field="email")
    return ConflictError(f"Username {suffix}", field="username")


class AccountService:
    """User accounts backed by the identity store."""

    def __init__(self, session: AsyncSession, normalizer: Optional["ImageNormalizer"] = None):
        self.session = session
        self.normalizer = normalizer
        self.users = UserRepository(session)

    async def signup(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: UserRole = UserRole.USER,
    ) -> User:
        """Register a new account."""
        email = require_email(email)
        username = require_username(username)

        if await self.users.get_by_username(username):
            raise ConflictError("Username is already taken", field="username")
        if await self.users.get_by_email(email):
            raise ConflictError("Email is already taken", field="email")

        password = require_password(password, MIN_PASSWORD_LENGTH, MAX_PASSWORD_BYTES)

        try:
            user = await self.users.create(
                username=username,
                email=email,
                password_hash=hash_password(password),
                role=role,
            )
        except IntegrityError as exc:
            # lost a race with a concurrent signup for the same name or email
            raise _conflict(exc, "is already taken") from exc
        logger.info(f"User {user.id} registered as {user.role.value}")
        return user

    async def ensure_admin(self, username: str, email: str, password: str) -> User:
        """Get or create an admin account; promotes an existing user of that name."""
        user = await self.users.get_by_username(username)
        if user is None:
            return await self.signup(username, email, password, role=UserRole.ADMIN)
        if not user.is_admin:
            user = await self.users.update(user.id, {"role": UserRole.ADMIN})
            logger.info(f"User {user.id} promoted to admin")
        return user

    async def login(self, username: Optional[str], password: Optional[str]) -> User:
        """Verify credentials. Unknown user and wrong password look the same."""
        user = await self.users.get_by_username(username) if username else None
        if not user or not verify_password(password or "", user.password_hash):
            raise UnauthorizedError("Invalid username or password")
        return user

    async def get_user(self, user_id) -> User:
        user = await self.users.get(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def update_profile(
        self,
        caller: Caller,
        username: Optional[str] = None,
        email: Optional[str] = None,
        profile_img: Optional[str] = None,
    ) -> User:
        """Change username, email or profile image.

        The image is normalized before anything is written.
        """
        user = await self.get_user(caller.id)
        values = {}

        if username:
            username = require_username(username)
        if username and username != user.username:
            if await self.users.get_by_username(username):
                raise ConflictError("Username already taken", field="username")
            values["username"] = username

        if email:
            email = require_email(email)
        if email and email != user.email:
            if await self.users.get_by_email(email):
                raise ConflictError("Email already taken", field="email")
            values["email"] = email

        if profile_img and profile_img.strip():
            if self.normalizer is None:
                raise ValidationError("Profile images are not accepted here.")
            values["profile_img"] = await self.normalizer.normalize(profile_img)

        try:
            return await self.users.update(user.id, values)
        except IntegrityError as exc:
            raise _conflict(exc, "already taken") from exc

    async def change_password(
        self,
        caller: Caller,
        current_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        if not current_password or not new_password:
            raise ValidationError("Both current and new password are required")

        user = await self.get_user(caller.id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")

        new_password = require_password(
            new_password, MIN_PASSWORD_LENGTH, MAX_PASSWORD_BYTES, field="new_password"
        )
        await self.users.update(user.id, {"password_hash": hash_password(new_password)})
        logger.info(f"Password changed for user {user.id}")
