"""
Account service tests: signup, login, profile and password changes.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth.passwords import verify_password
from taskdesk.engine import (
    AccountService,
    ConflictError,
    UnauthorizedError,
    UploadError,
    ValidationError,
)
from taskdesk.images.normalizer import ImageNormalizer
from taskdesk.models import UserRole

from conftest import TEST_PASSWORD, caller_for, make_user

PNG_DATA_URI = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUg=="


@pytest.fixture
def profile_normalizer(image_store):
    return ImageNormalizer(image_store, namespace="profile_pics")


@pytest.fixture
def accounts(session: AsyncSession, profile_normalizer):
    return AccountService(session, profile_normalizer)


@pytest.mark.asyncio
async def test_signup_hashes_password(accounts):
    user = await accounts.signup("carol", "carol@example.com", "hunter22")

    assert user.role == UserRole.USER
    assert user.password_hash != "hunter22"
    assert verify_password("hunter22", user.password_hash)
    assert "password_hash" not in user.to_public().model_dump()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "username, email, password, message",
    [
        ("carol", "not-an-email", "hunter22", "Invalid email format"),
        ("ca", "carol@example.com", "hunter22", "Username must be between 3 and 32 characters"),
        ("carol", "carol@example.com", "short", "Password must be at least 6 characters long"),
        ("carol", "carol@example.com", None, "Password must be at least 6 characters long"),
    ],
)
async def test_signup_validation(accounts, username, email, password, message):
    with pytest.raises(ValidationError) as exc_info:
        await accounts.signup(username, email, password)

    assert exc_info.value.message == message


@pytest.mark.asyncio
async def test_signup_rejects_taken_username_and_email(session, accounts):
    await make_user(session, "carol", email="carol@example.com")

    with pytest.raises(ConflictError) as exc_info:
        await accounts.signup("carol", "other@example.com", "hunter22")
    assert exc_info.value.message == "Username is already taken"

    with pytest.raises(ConflictError) as exc_info:
        await accounts.signup("carol2", "carol@example.com", "hunter22")
    assert exc_info.value.message == "Email is already taken"


@pytest.mark.asyncio
async def test_signup_rejects_password_longer_than_bcrypt_accepts(accounts):
    with pytest.raises(ValidationError) as exc_info:
        await accounts.signup("carol", "carol@example.com", "p" * 100)

    assert exc_info.value.message == "Password must be at most 72 bytes long"
    assert await accounts.users.get_by_username("carol") is None


@pytest.mark.asyncio
async def test_signup_race_on_unique_fields_is_conflict(session, accounts, monkeypatch):
    await make_user(session, "carol", email="carol@example.com")
    await session.commit()

    async def nobody(_value):
        return None

    # both lookups miss, so only the unique constraints catch the duplicate
    monkeypatch.setattr(accounts.users, "get_by_username", nobody)
    monkeypatch.setattr(accounts.users, "get_by_email", nobody)

    with pytest.raises(ConflictError) as exc_info:
        await accounts.signup("carol", "other@example.com", "hunter22")
    assert exc_info.value.message == "Username is already taken"
    await session.rollback()

    with pytest.raises(ConflictError) as exc_info:
        await accounts.signup("carol2", "carol@example.com", "hunter22")
    assert exc_info.value.message == "Email is already taken"


@pytest.mark.asyncio
async def test_login(session, accounts):
    user = await make_user(session, "carol")

    assert (await accounts.login("carol", TEST_PASSWORD)).id == user.id

    for username, password in [("carol", "wrong-password"), ("nobody", TEST_PASSWORD), (None, None)]:
        with pytest.raises(UnauthorizedError) as exc_info:
            await accounts.login(username, password)
        assert exc_info.value.message == "Invalid username or password"


@pytest.mark.asyncio
async def test_ensure_admin_creates_then_promotes(session, accounts):
    admin = await accounts.ensure_admin("boss", "boss@example.com", "hunter22")
    assert admin.role == UserRole.ADMIN

    again = await accounts.ensure_admin("boss", "boss@example.com", "hunter22")
    assert again.id == admin.id

    user = await make_user(session, "carol")
    promoted = await accounts.ensure_admin("carol", "carol@example.com", "ignored")
    assert promoted.id == user.id
    assert promoted.role == UserRole.ADMIN


@pytest.mark.asyncio
async def test_update_profile(session, accounts, image_store):
    user = await make_user(session, "carol")
    caller = caller_for(user)

    updated = await accounts.update_profile(
        caller, username="caroline", email="caroline@example.com", profile_img=PNG_DATA_URI
    )

    assert updated.username == "caroline"
    assert updated.email == "caroline@example.com"
    assert updated.profile_img == "https://img.test/profile_pics/1.png"
    assert image_store.calls == [(PNG_DATA_URI, "profile_pics")]


@pytest.mark.asyncio
async def test_update_profile_conflicts(session, accounts):
    carol = await make_user(session, "carol")
    await make_user(session, "dave")

    with pytest.raises(ConflictError):
        await accounts.update_profile(caller_for(carol), username="dave")
    with pytest.raises(ConflictError):
        await accounts.update_profile(caller_for(carol), email="dave@example.com")


@pytest.mark.asyncio
async def test_update_profile_rename_race_is_conflict(session, accounts, monkeypatch):
    carol = await make_user(session, "carol")
    await make_user(session, "dave")

    async def nobody(_value):
        return None

    monkeypatch.setattr(accounts.users, "get_by_username", nobody)

    with pytest.raises(ConflictError) as exc_info:
        await accounts.update_profile(caller_for(carol), username="dave")
    assert exc_info.value.message == "Username already taken"


@pytest.mark.asyncio
async def test_update_profile_accepts_own_padded_name_and_email(session, accounts):
    carol = await make_user(session, "carol")

    updated = await accounts.update_profile(
        caller_for(carol), username=" carol ", email="  carol@example.com "
    )

    assert updated.username == "carol"
    assert updated.email == "carol@example.com"


@pytest.mark.asyncio
async def test_update_profile_failed_upload_changes_nothing(session, failing_image_store):
    accounts = AccountService(
        session, ImageNormalizer(failing_image_store, namespace="profile_pics")
    )
    carol = await make_user(session, "carol")

    with pytest.raises(UploadError):
        await accounts.update_profile(
            caller_for(carol), username="caroline", profile_img=PNG_DATA_URI
        )

    assert (await accounts.get_user(carol.id)).username == "carol"


@pytest.mark.asyncio
async def test_change_password(session, accounts):
    carol = await make_user(session, "carol")
    caller = caller_for(carol)

    with pytest.raises(ValidationError):
        await accounts.change_password(caller, "wrong-password", "newpass1")
    with pytest.raises(ValidationError):
        await accounts.change_password(caller, TEST_PASSWORD, "abc")
    with pytest.raises(ValidationError):
        await accounts.change_password(caller, None, "newpass1")

    await accounts.change_password(caller, TEST_PASSWORD, "newpass1")

    assert (await accounts.login("carol", "newpass1")).id == carol.id
    with pytest.raises(UnauthorizedError):
        await accounts.login("carol", TEST_PASSWORD)


@pytest.mark.asyncio
async def test_change_password_rejects_overlong_password(session, accounts):
    carol = await make_user(session, "carol")

    with pytest.raises(ValidationError) as exc_info:
        await accounts.change_password(caller_for(carol), TEST_PASSWORD, "p" * 100)

    assert exc_info.value.message == "Password must be at most 72 bytes long"
    assert (await accounts.login("carol", TEST_PASSWORD)).id == carol.id
