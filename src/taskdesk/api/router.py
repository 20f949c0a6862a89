"""REST API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk import __version__
from taskdesk.admin import DashboardEngine
from taskdesk.api.deps import (
    get_account_service,
    get_current_caller,
    get_db_session,
    get_optional_caller,
    get_task_service,
    require_admin,
)
from taskdesk.api.schemas import (
    HealthResponse,
    ListTasksResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    SignupRequest,
    TaskFieldsRequest,
    TaskResponse,
)
from taskdesk.audit import AuditDispatcher, AuditedTaskService, get_audit_dispatcher
from taskdesk.auth.context import Caller
from taskdesk.auth.token import create_access_token
from taskdesk.config import settings
from taskdesk.engine import AccountService
from taskdesk.models import DashboardSnapshot, PublicUser, User, UserRole

router = APIRouter(prefix="/api")

auth_router = APIRouter(prefix="/auth", tags=["auth"])
profile_router = APIRouter(prefix="/profile", tags=["profile"])
tasks_router = APIRouter(prefix="/tasks", tags=["tasks"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


def _set_session_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_access_token(user.id, user.role),
        max_age=settings.jwt_access_token_ttl_days * 24 * 60 * 60,
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )


# ============================================================================
# Health
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


# ============================================================================
# Auth Endpoints
# ============================================================================


@auth_router.post("/signup", response_model=PublicUser, status_code=201)
async def signup(
    request: SignupRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    actor: Optional[Caller] = Depends(get_optional_caller),
    dispatcher: AuditDispatcher = Depends(get_audit_dispatcher),
):
    """Register an account. Admin-created accounts keep the admin's session."""
    user = await accounts.signup(request.username, request.email, request.password)

    if actor and actor.is_admin:
        dispatcher.submit_after_commit(
            accounts.session,
            actor.id,
            "Created new user",
            target="User",
            target_id=user.id,
            details={"username": user.username, "email": user.email},
        )
    else:
        _set_session_cookie(response, user)

    return user.to_public()


@auth_router.post("/login", response_model=PublicUser)
async def login(
    request: LoginRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    dispatcher: AuditDispatcher = Depends(get_audit_dispatcher),
):
    """Log in and receive the session cookie."""
    user = await accounts.login(request.username, request.password)
    _set_session_cookie(response, user)

    if user.role == UserRole.ADMIN:
        dispatcher.submit(
            user.id,
            "Admin login",
            target="User",
            target_id=user.id,
            details={"username": user.username, "email": user.email},
        )

    return user.to_public()


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    caller: Optional[Caller] = Depends(get_optional_caller),
    dispatcher: AuditDispatcher = Depends(get_audit_dispatcher),
):
    """Clear the session cookie."""
    response.delete_cookie(settings.session_cookie_name)

    if caller and caller.is_admin:
        dispatcher.submit(
            caller.id,
            "Admin logout",
            target="User",
            target_id=caller.id,
            details={"username": caller.username, "email": caller.email},
        )

    return MessageResponse(message="Logged out successfully")


@auth_router.get("/me", response_model=PublicUser)
async def get_me(
    caller: Caller = Depends(get_current_caller),
    accounts: AccountService = Depends(get_account_service),
):
    """Current user."""
    return (await accounts.get_user(caller.id)).to_public()


# ============================================================================
# Profile Endpoints
# ============================================================================


@profile_router.get("", response_model=PublicUser)
async def get_profile(
    caller: Caller = Depends(get_current_caller),
    accounts: AccountService = Depends(get_account_service),
):
    """Current user's profile."""
    return (await accounts.get_user(caller.id)).to_public()


@profile_router.put("", response_model=PublicUser)
async def update_profile(
    request: ProfileUpdateRequest,
    caller: Caller = Depends(get_current_caller),
    accounts: AccountService = Depends(get_account_service),
):
    """Update username, email or profile image."""
    user = await accounts.update_profile(
        caller,
        username=request.username,
        email=request.email,
        profile_img=request.profile_img,
    )
    return user.to_public()


@profile_router.put("/password", response_model=MessageResponse)
async def change_password(
    request: PasswordChangeRequest,
    caller: Caller = Depends(get_current_caller),
    accounts: AccountService = Depends(get_account_service),
):
    """Change password."""
    await accounts.change_password(caller, request.current_password, request.new_password)
    return MessageResponse(message="Password updated successfully")


# ============================================================================
# Task Endpoints
# ============================================================================


@tasks_router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    request: TaskFieldsRequest,
    caller: Caller = Depends(get_current_caller),
    tasks: AuditedTaskService = Depends(get_task_service),
):
    """Create a new task."""
    task = await tasks.create(caller, request.present_fields())
    return TaskResponse.from_task(task)


@tasks_router.get("", response_model=ListTasksResponse)
async def list_tasks(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    caller: Caller = Depends(get_current_caller),
    tasks: AuditedTaskService = Depends(get_task_service),
):
    """List the caller's tasks with optional filtering."""
    result = await tasks.list(caller, status=status, priority=priority, page=page, limit=limit)
    return ListTasksResponse(
        tasks=[TaskResponse.from_task(t) for t in result.items],
        total=result.total,
        page=result.page,
        pages=result.total_pages,
    )


@tasks_router.get("/search", response_model=list[TaskResponse])
async def search_tasks(
    q: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    tasks: AuditedTaskService = Depends(get_task_service),
):
    """Search the caller's tasks by title or description."""
    return [TaskResponse.from_task(t) for t in await tasks.search(caller, q)]


@tasks_router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    caller: Caller = Depends(get_current_caller),
    tasks: AuditedTaskService = Depends(get_task_service),
):
    """Get a task by ID."""
    return TaskResponse.from_task(await tasks.get(caller, task_id))


@tasks_router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    request: TaskFieldsRequest,
    caller: Caller = Depends(get_current_caller),
    tasks: AuditedTaskService = Depends(get_task_service),
):
    """Update a task."""
    task = await tasks.update(caller, task_id, request.present_fields())
    return TaskResponse.from_task(task)


@tasks_router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    caller: Caller = Depends(get_current_caller),
    tasks: AuditedTaskService = Depends(get_task_service),
):
    """Delete a task."""
    await tasks.delete(caller, task_id)
    return MessageResponse(message="Task deleted successfully.")


# ============================================================================
# Admin Endpoints
# ============================================================================


@admin_router.get("/dashboard", response_model=DashboardSnapshot)
async def admin_dashboard(
    admin: Caller = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Aggregate statistics across all users (admins only)."""
    return await DashboardEngine(session).compute_dashboard()


router.include_router(auth_router)
router.include_router(profile_router)
router.include_router(tasks_router)
router.include_router(admin_router)
