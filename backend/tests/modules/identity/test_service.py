"""Tests for the identity service and its input normalization."""

import pytest

from modules.auth.exceptions import InsufficientPermissionsError
from modules.identity.exceptions import (
    InvalidEmailError,
    InvalidNameError,
    InvalidPhoneError,
    PhoneAlreadyInUseError,
    UserNotFoundError,
    WeakPasswordError,
)
from modules.identity.validation import normalize_email, normalize_optional_phone, normalize_phone
from modules.verification.models import VerificationState, verification_key
from providers.exceptions import EmailAlreadyInUseError, InvalidCredentialsError
from tests.conftest import TEST_PASSWORD, make_user, principal_for, seed_user


@pytest.fixture
def service(container):
    return container.identity


async def new_user(credentials, store, email: str, phone: str = None):
    """Create a credential and a matching User record."""
    user_id = await credentials.create_credential(email, TEST_PASSWORD)
    return await seed_user(store, make_user(user_id, email=email, phone=phone))


class TestValidation:
    def test_normalize_email(self):
        """Addresses are trimmed and lowercased."""
        assert normalize_email("  Dana@Example.COM ") == "dana@example.com"

    def test_normalize_email_rejects_garbage(self):
        with pytest.raises(InvalidEmailError):
            normalize_email("not-an-email")

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+1 (555) 010-9999", "+15550109999"),
            ("555.010.9999", "+5550109999"),
            ("+447700900123", "+447700900123"),
        ],
    )
    def test_normalize_phone(self, raw, expected):
        """Separators are dropped and a leading + is ensured."""
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["12345", "+1-555-CALL-NOW", "++15550109999", ""])
    def test_normalize_phone_rejects(self, raw):
        with pytest.raises(InvalidPhoneError):
            normalize_phone(raw)

    def test_optional_phone_blank(self):
        """Blank input means no phone."""
        assert normalize_optional_phone("   ") is None
        assert normalize_optional_phone(None) is None


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_user(self, service, store):
        user = await seed_user(store, make_user("user-1"))
        assert await service.get_user("user-1") == user
        assert await service.find_user("ghost") is None
        with pytest.raises(UserNotFoundError):
            await service.get_user("ghost")

    @pytest.mark.asyncio
    async def test_find_by_email_and_phone(self, service, store):
        """Lookups should normalize their input."""
        user = await seed_user(store, make_user("user-1", phone="+15550109999"))

        assert await service.find_by_email(" USER-1@example.com ") == user
        assert await service.find_by_phone("+1 555 010 9999") == user
        assert await service.find_by_email("other@example.com") is None

    @pytest.mark.asyncio
    async def test_list_users_requires_admin(self, service, store, admin):
        """Only admins can list every user."""
        user = await seed_user(store, make_user("user-1"))

        assert [u.id for u in await service.list_users(admin)] == ["user-1"]
        with pytest.raises(InsufficientPermissionsError):
            await service.list_users(principal_for(user))


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_rename(self, service, credentials, store):
        """Renaming keeps the account verified."""
        user = await new_user(credentials, store, "dana@example.com")

        updated = await service.update_profile(principal_for(user), user.id, name="  Dana  ")
        assert updated.name == "Dana"
        assert updated.verified is True

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, service, credentials, store):
        user = await new_user(credentials, store, "dana@example.com")
        with pytest.raises(InvalidNameError):
            await service.update_profile(principal_for(user), user.id, name="  ")

    @pytest.mark.asyncio
    async def test_phone_change_resets_verification(self, service, credentials, store):
        """A new phone number must be verified again."""
        user = await new_user(credentials, store, "dana@example.com")

        updated = await service.update_profile(principal_for(user), user.id, phone="+1 555 010 9999")

        assert updated.phone == "+15550109999"
        assert updated.verified is False
        record = await store.get(verification_key(user.id))
        assert record["state"] == VerificationState.CREATED.value
        assert (await credentials.get_credential(user.id)).phone == "+15550109999"

    @pytest.mark.asyncio
    async def test_same_phone_keeps_verification(self, service, credentials, store):
        user = await new_user(credentials, store, "dana@example.com", phone="+15550109999")

        updated = await service.update_profile(principal_for(user), user.id, phone="+15550109999")
        assert updated.verified is True
        assert await store.get(verification_key(user.id)) is None

    @pytest.mark.asyncio
    async def test_phone_in_use(self, service, credentials, store):
        """Two users cannot share a phone number."""
        await seed_user(store, make_user("user-2", phone="+15550109999"))
        user = await new_user(credentials, store, "dana@example.com")

        with pytest.raises(PhoneAlreadyInUseError):
            await service.update_profile(principal_for(user), user.id, phone="+15550109999")
        assert (await service.get_user(user.id)).phone is None

    @pytest.mark.asyncio
    async def test_other_users_profile(self, service, credentials, store, admin):
        """Only the owner or an admin may edit a profile."""
        user = await new_user(credentials, store, "dana@example.com")
        other = await seed_user(store, make_user("user-2"))

        with pytest.raises(InsufficientPermissionsError):
            await service.update_profile(principal_for(other), user.id, name="Mallory")

        updated = await service.update_profile(admin, user.id, name="Dana B")
        assert updated.name == "Dana B"


class TestCredentials:
    @pytest.mark.asyncio
    async def test_change_email(self, service, credentials, store):
        """The new address signs in and must be verified again."""
        user = await new_user(credentials, store, "dana@example.com")

        updated = await service.change_email(principal_for(user), TEST_PASSWORD, "Dana.New@Example.com")

        assert updated.email == "dana.new@example.com"
        assert updated.verified is False
        assert await credentials.verify_credential("dana.new@example.com", TEST_PASSWORD) == user.id
        with pytest.raises(InvalidCredentialsError):
            await credentials.verify_credential("dana@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_change_email_wrong_password(self, service, credentials, store):
        """A wrong current password must leave the email unchanged."""
        user = await new_user(credentials, store, "dana@example.com")

        with pytest.raises(InvalidCredentialsError):
            await service.change_email(principal_for(user), "wrong-password", "new@example.com")
        assert (await service.get_user(user.id)).email == "dana@example.com"

    @pytest.mark.asyncio
    async def test_change_email_taken(self, service, credentials, store):
        user = await new_user(credentials, store, "dana@example.com")
        await new_user(credentials, store, "erin@example.com")

        with pytest.raises(EmailAlreadyInUseError):
            await service.change_email(principal_for(user), TEST_PASSWORD, "erin@example.com")

    @pytest.mark.asyncio
    async def test_change_password(self, service, credentials, store):
        user = await new_user(credentials, store, "dana@example.com")

        await service.change_password(principal_for(user), TEST_PASSWORD, "battery-staple")

        assert await credentials.verify_credential("dana@example.com", "battery-staple") == user.id
        with pytest.raises(InvalidCredentialsError):
            await credentials.verify_credential("dana@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_change_password_too_short(self, service, credentials, store):
        user = await new_user(credentials, store, "dana@example.com")
        with pytest.raises(WeakPasswordError):
            await service.change_password(principal_for(user), TEST_PASSWORD, "short")


class TestRoles:
    @pytest.mark.asyncio
    async def test_grant_roles(self, service, store, admin):
        """Admins can grant roles; repeating a grant is a no-op."""
        await seed_user(store, make_user("user-1"))

        assert (await service.grant_vendor(admin, "user-1")).is_vendor is True
        assert (await service.grant_vendor(admin, "user-1")).is_vendor is True
        promoted = await service.grant_admin(admin, "user-1")
        assert promoted.is_admin is True
        assert promoted.is_vendor is True

    @pytest.mark.asyncio
    async def test_grant_requires_admin(self, service, store):
        user = await seed_user(store, make_user("user-1"))
        with pytest.raises(InsufficientPermissionsError):
            await service.grant_admin(principal_for(user), "user-1")
        assert (await service.get_user("user-1")).is_admin is False

    @pytest.mark.asyncio
    async def test_grant_unknown_user(self, service, admin):
        with pytest.raises(UserNotFoundError):
            await service.grant_vendor(admin, "ghost")
