"""User lifecycle service tests: exercised without HTTP."""

import uuid

import bcrypt
import pytest

from userhub.auth.jwt import verify_token
from userhub.auth.password import verify_password
from userhub.auth.permissions import Permission
from userhub.errors import (
    BusinessRuleViolation,
    ConflictError,
    InvalidCredentials,
    NotFoundError,
)
from userhub.services.auth_service import AuthService
from userhub.services.user_service import UserService, normalize_email

PASSWORD = "Passw0rd!"


@pytest.fixture()
def svc(db_session):
    return UserService(db_session)


# ═══════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_normalizes_email(svc):
    user, _ = await svc.create("Foo@Bar.com ", PASSWORD)
    assert user.email == "foo@bar.com"
    assert (await svc.users.find_by_email("foo@bar.com")).id == user.id


@pytest.mark.asyncio
async def test_create_hashes_password(svc):
    user, _ = await svc.create("hash@example.com", PASSWORD)
    assert user.password_hash != PASSWORD
    assert verify_password(PASSWORD, user.password_hash)


@pytest.mark.asyncio
async def test_create_returns_token_for_new_user(svc):
    user, token = await svc.create("token@example.com", PASSWORD)
    assert verify_token(token)["id"] == str(user.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("permissions", [None, []])
async def test_create_defaults_permissions_to_user(svc, permissions):
    user, _ = await svc.create(
        f"default-{uuid.uuid4().hex[:8]}@example.com", PASSWORD, permissions
    )
    assert user.permissions == ["user"]
    assert user.is_active is True


@pytest.mark.asyncio
async def test_create_keeps_given_permissions(svc):
    user, _ = await svc.create(
        "admin@example.com",
        PASSWORD,
        [Permission.SUPER_ADMIN, Permission.RRHH_LEER, Permission.SUPER_ADMIN],
    )
    assert user.permissions == ["super_admin", "rrhh_leer"]


@pytest.mark.asyncio
async def test_create_duplicate_email_is_conflict(svc):
    await svc.create("dup@example.com", PASSWORD)
    with pytest.raises(ConflictError):
        await svc.create("  DUP@example.com", PASSWORD)


def test_normalize_email():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


# ═══════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_find_by_id_missing_is_not_found(svc):
    missing = uuid.uuid4()
    with pytest.raises(NotFoundError, match=str(missing)):
        await svc.find_by_id(missing)


@pytest.mark.asyncio
async def test_find_all_lists_users(svc):
    await svc.create("one@example.com", PASSWORD)
    await svc.create("two@example.com", PASSWORD)
    emails = {u.email for u in await svc.find_all()}
    assert emails == {"one@example.com", "two@example.com"}


# ═══════════════════════════════════════════════════════════
# Email / password / permissions
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_email(svc):
    user, _ = await svc.create("old@example.com", PASSWORD)
    result = await svc.update_email(user.id, " New@Example.com")
    assert result == {"message": "Email updated"}
    assert (await svc.users.find_by_email("new@example.com")).id == user.id


@pytest.mark.asyncio
async def test_update_email_to_same_email_fails(svc):
    user, _ = await svc.create("same@example.com", PASSWORD)
    with pytest.raises(BusinessRuleViolation, match="already the same"):
        await svc.update_email(user.id, "SAME@example.com")


@pytest.mark.asyncio
async def test_update_email_to_taken_email_fails(svc):
    await svc.create("taken@example.com", PASSWORD)
    user, _ = await svc.create("other@example.com", PASSWORD)
    with pytest.raises(BusinessRuleViolation, match="already in use"):
        await svc.update_email(user.id, "taken@example.com")


@pytest.mark.asyncio
async def test_update_email_lost_race_is_conflict(svc, db_session, monkeypatch):
    """A concurrent writer claims the address after the pre-check passes.

    The unique constraint decides: the update fails, the session is
    rolled back and the caller sees a 409.
    """
    await svc.create("taken@example.com", PASSWORD)
    user, _ = await svc.create("other@example.com", PASSWORD)

    async def miss(email):
        return None

    rollbacks = []
    real_rollback = db_session.rollback

    async def tracking_rollback():
        rollbacks.append(True)
        await real_rollback()

    monkeypatch.setattr(svc.users, "find_by_email", miss)
    monkeypatch.setattr(db_session, "rollback", tracking_rollback)

    with pytest.raises(ConflictError) as exc_info:
        await svc.update_email(user.id, "taken@example.com")

    assert exc_info.value.status_code == 409
    assert rollbacks == [True]
    assert not db_session.in_transaction()
    # The rollback expired `user`; reload it asynchronously before reading attributes.
    await db_session.refresh(user)
    assert (await svc.find_by_id(user.id)).email == "other@example.com"


@pytest.mark.asyncio
async def test_update_email_inactive_user_fails(svc):
    user, _ = await svc.create("inactive-mail@example.com", PASSWORD)
    await svc.deactivate(user.id)
    with pytest.raises(BusinessRuleViolation, match="User is not active"):
        await svc.update_email(user.id, "fresh@example.com")


@pytest.mark.asyncio
async def test_update_password_rehashes(svc, db_session):
    user, _ = await svc.create("pw@example.com", PASSWORD)
    result = await svc.update_password(user.id, "N3wPass#")
    assert result == {"message": "Password updated"}

    auth = AuthService(db_session)
    assert verify_token(await auth.authenticate("pw@example.com", "N3wPass#"))
    with pytest.raises(InvalidCredentials):
        await auth.authenticate("pw@example.com", PASSWORD)


@pytest.mark.asyncio
async def test_update_password_inactive_user_fails(svc):
    user, _ = await svc.create("inactive-pw@example.com", PASSWORD)
    await svc.deactivate(user.id)
    with pytest.raises(BusinessRuleViolation, match="User is not active"):
        await svc.update_password(user.id, "N3wPass#")


@pytest.mark.asyncio
async def test_update_permissions_replaces_set(svc):
    user, _ = await svc.create(
        "perms@example.com", PASSWORD, [Permission.USER, Permission.RRHH_LEER]
    )
    updated = await svc.update_permissions(user.id, [Permission.VEHICULOS_LEER])
    assert updated.permissions == ["vehiculos_leer"]


@pytest.mark.asyncio
async def test_update_permissions_inactive_user_fails(svc):
    user, _ = await svc.create("inactive-perms@example.com", PASSWORD)
    await svc.deactivate(user.id)
    with pytest.raises(BusinessRuleViolation, match="User is not active"):
        await svc.update_permissions(user.id, [Permission.SUPER_ADMIN])


# ═══════════════════════════════════════════════════════════
# Activation and removal
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_deactivate_twice_fails(svc):
    user, _ = await svc.create("deact@example.com", PASSWORD)
    deactivated = await svc.deactivate(user.id)
    assert deactivated.is_active is False
    with pytest.raises(BusinessRuleViolation, match="User is not active"):
        await svc.deactivate(user.id)


@pytest.mark.asyncio
async def test_reactivate_active_user_fails(svc):
    user, _ = await svc.create("react@example.com", PASSWORD)
    with pytest.raises(BusinessRuleViolation, match="User is already active"):
        await svc.reactivate(user.id)


@pytest.mark.asyncio
async def test_reactivate_after_deactivate(svc):
    user, _ = await svc.create("cycle@example.com", PASSWORD)
    await svc.deactivate(user.id)
    reactivated = await svc.reactivate(user.id)
    assert reactivated.is_active is True


@pytest.mark.asyncio
async def test_remove_active_user_fails(svc):
    user, _ = await svc.create("active-rm@example.com", PASSWORD)
    with pytest.raises(BusinessRuleViolation, match="deactivate account first"):
        await svc.remove(user.id)


@pytest.mark.asyncio
async def test_remove_inactive_user(svc):
    user, _ = await svc.create("rm@example.com", PASSWORD)
    await svc.deactivate(user.id)
    result = await svc.remove(user.id)
    assert result == {"message": f"User with id {user.id} deleted"}
    with pytest.raises(NotFoundError):
        await svc.find_by_id(user.id)


@pytest.mark.asyncio
async def test_mutations_on_missing_user_are_not_found(svc):
    missing = uuid.uuid4()
    calls = [
        lambda: svc.update_email(missing, "x@example.com"),
        lambda: svc.update_password(missing, "N3wPass#"),
        lambda: svc.update_permissions(missing, []),
        lambda: svc.deactivate(missing),
        lambda: svc.reactivate(missing),
        lambda: svc.remove(missing),
    ]
    for call in calls:
        with pytest.raises(NotFoundError):
            await call()


# ═══════════════════════════════════════════════════════════
# Authentication flow
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_authenticate_unknown_and_wrong_password_look_identical(svc, db_session):
    await svc.create("known@example.com", PASSWORD)
    auth = AuthService(db_session)

    with pytest.raises(InvalidCredentials) as unknown:
        await auth.authenticate("nobody@example.com", PASSWORD)
    with pytest.raises(InvalidCredentials) as mismatch:
        await auth.authenticate("known@example.com", "Wr0ngPass!")

    assert type(unknown.value) is type(mismatch.value)
    assert unknown.value.message == mismatch.value.message == "Credentials are not valid"
    assert unknown.value.status_code == mismatch.value.status_code == 401


@pytest.mark.asyncio
async def test_authenticate_failures_do_the_same_bcrypt_work(svc, db_session, monkeypatch):
    """Unknown email and wrong password each cost one checkpw and no hashpw."""
    await svc.create("timed@example.com", PASSWORD)
    auth = AuthService(db_session)

    calls = []
    real_hashpw, real_checkpw = bcrypt.hashpw, bcrypt.checkpw

    def counting_hashpw(*args):
        calls.append("hashpw")
        return real_hashpw(*args)

    def counting_checkpw(*args):
        calls.append("checkpw")
        return real_checkpw(*args)

    monkeypatch.setattr(bcrypt, "hashpw", counting_hashpw)
    monkeypatch.setattr(bcrypt, "checkpw", counting_checkpw)

    with pytest.raises(InvalidCredentials):
        await auth.authenticate("first-unknown@example.com", PASSWORD)
    unknown_calls, calls[:] = list(calls), []

    with pytest.raises(InvalidCredentials):
        await auth.authenticate("timed@example.com", "Wr0ngPass!")

    assert unknown_calls == calls == ["checkpw"]


@pytest.mark.asyncio
async def test_authenticate_token_payload_is_user_id(svc, db_session):
    user, _ = await svc.create("payload@example.com", PASSWORD)
    token = await AuthService(db_session).authenticate("payload@example.com", PASSWORD)
    payload = verify_token(token)
    assert payload["id"] == str(user.id)
    assert set(payload) - {"iat", "exp"} == {"id"}


@pytest.mark.asyncio
async def test_authenticate_looks_up_email_as_given(svc, db_session):
    """The login path does not normalize; stored emails are lowercase."""
    await svc.create("case@example.com", PASSWORD)
    with pytest.raises(InvalidCredentials):
        await AuthService(db_session).authenticate("Case@Example.com", PASSWORD)
