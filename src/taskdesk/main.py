"""TaskDesk main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskdesk import __version__
from taskdesk.api import router
from taskdesk.api.deps import validate_security_config
from taskdesk.audit import get_audit_dispatcher
from taskdesk.config import settings
from taskdesk.db.base import close_db, get_session, init_db
from taskdesk.engine import AccountService, TaskDeskError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("taskdesk")


async def bootstrap_admin() -> None:
    """Create the configured admin account if it does not exist yet."""
    username = settings.bootstrap_admin_username
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not (username and email and password):
        return

    async with get_session() as session:
        admin = await AccountService(session).ensure_admin(username, email, password)
    logger.info(f"Bootstrap admin ready: {admin.username}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting TaskDesk server...")
    logger.info(f"Environment: {settings.env.value}")

    # Validate security configuration (fail fast if unsafe)
    validate_security_config()

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    await bootstrap_admin()

    # Start background audit writer
    dispatcher = get_audit_dispatcher()
    await dispatcher.start()
    logger.info("Audit dispatcher started")

    yield

    # Cleanup
    logger.info("Shutting down TaskDesk server...")
    await dispatcher.stop()
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="TaskDesk",
    description="Personal task tracking with an admin audit trail",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(TaskDeskError)
async def taskdesk_error_handler(request: Request, exc: TaskDeskError) -> JSONResponse:
    """Render domain errors as {"error": ..., "details": ...}."""
    body = {"error": exc.message}
    if exc.details is not None:
        body["details"] = exc.details
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.details}")
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and query strings are client errors (400)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message},
    )


# Add CORS middleware (explicit allowlist, no wildcards with credentials)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)

# Include API router
app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "taskdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
