"""API dependencies."""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.audit import AuditDispatcher, AuditedTaskService, get_audit_dispatcher
from taskdesk.auth.context import Caller
from taskdesk.auth.token import decode_access_token
from taskdesk.config import Environment, settings
from taskdesk.db import base as db_base
from taskdesk.db.repositories import UserRepository
from taskdesk.engine import AccountService, ForbiddenError, TaskService, UnauthorizedError
from taskdesk.images import ImageNormalizer, ImageStore, get_image_store

logger = logging.getLogger("taskdesk.api")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with db_base.async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Session cookie first, then an Authorization: Bearer header."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_caller(
    request: Request,
    authorization: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_db_session),
) -> Caller:
    """
    Resolve the caller from the session token.

    The role is re-read from the user record so a demotion takes effect
    without waiting for the token to expire.
    """
    claims = decode_access_token(_extract_token(request, authorization))

    user = await UserRepository(session).get(claims.id)
    if not user:
        raise UnauthorizedError("Unauthorized - User not found")

    return Caller(id=user.id, role=user.role, username=user.username, email=user.email)


async def get_optional_caller(
    request: Request,
    authorization: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_db_session),
) -> Optional[Caller]:
    """Like get_current_caller, but anonymous requests yield None."""
    if not _extract_token(request, authorization):
        return None
    try:
        return await get_current_caller(request, authorization, session)
    except UnauthorizedError:
        return None


async def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Admin-only routes."""
    if not caller.is_admin:
        raise ForbiddenError()
    return caller


def get_task_normalizer(store: ImageStore = Depends(get_image_store)) -> ImageNormalizer:
    return ImageNormalizer(
        store,
        namespace=settings.task_image_folder,
        timeout_seconds=settings.image_upload_timeout_seconds,
    )


def get_profile_normalizer(store: ImageStore = Depends(get_image_store)) -> ImageNormalizer:
    return ImageNormalizer(
        store,
        namespace=settings.profile_image_folder,
        timeout_seconds=settings.image_upload_timeout_seconds,
    )


def get_task_service(
    session: AsyncSession = Depends(get_db_session),
    normalizer: ImageNormalizer = Depends(get_task_normalizer),
    dispatcher: AuditDispatcher = Depends(get_audit_dispatcher),
) -> AuditedTaskService:
    return AuditedTaskService(TaskService(session, normalizer), dispatcher)


def get_account_service(
    session: AsyncSession = Depends(get_db_session),
    normalizer: ImageNormalizer = Depends(get_profile_normalizer),
) -> AccountService:
    return AccountService(session, normalizer)


def validate_security_config() -> None:
    """
    Validate security-sensitive configuration at startup.

    Raises:
        RuntimeError: If the configuration is unsafe for the current environment
    """
    if settings.env != Environment.DEVELOPMENT and not settings.cookie_secure:
        raise RuntimeError(
            f"SECURITY ERROR: cookie_secure must be enabled in {settings.env.value}. "
            f"Set TASKDESK_COOKIE_SECURE=true."
        )

    if not settings.image_store_configured:
        logger.warning(
            "Image store is not configured; inline image uploads will be rejected. "
            "Set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET."
        )

    if settings.env == Environment.DEVELOPMENT and settings.jwt_secret_is_default:
        logger.warning("Session tokens are signed with the development secret")
