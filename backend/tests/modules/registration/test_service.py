"""Tests for the registration saga and the deferred flow."""

import asyncio
from unittest.mock import patch

import pytest

from modules.auth.exceptions import InsufficientPermissionsError
from modules.identity.exceptions import InvalidEmailError, PhoneAlreadyInUseError, WeakPasswordError
from modules.identity.models import UserStatus, user_key
from modules.registration.exceptions import (
    EmailMismatchError,
    EmailNotVerifiedError,
    PendingRegistrationNotFoundError,
    TokenNotAvailableError,
    UserAlreadyExistsError,
)
from modules.registration.models import pending_key
from modules.registry.exceptions import InvalidTokenFormatError
from modules.registry.models import TokenStatus
from modules.verification.models import VerificationState, verification_key
from providers.exceptions import (
    CredentialNotFoundError,
    CredentialProviderError,
    EmailAlreadyInUseError,
    InvalidCredentialsError,
)
from shared.exceptions import ConflictError
from shared.models import Principal
from tests.conftest import TEST_PASSWORD, link_token, make_user, seed_user


@pytest.fixture
def service(container):
    return container.registration


async def scan(container, token: str = "A1B2C3D4"):
    await container.registry.record_scan(token)


class TestRegister:
    @pytest.mark.asyncio
    async def test_happy_path(self, service, container, dispatcher):
        """Registering should bind the token, create the User and send a verification link."""
        await scan(container)

        result = await service.register(
            name=" Alice ",
            email="Alice@Example.com",
            password=TEST_PASSWORD,
            token="A1B2C3D4",
            phone="+1 555 010 0000",
        )

        user = result.user
        assert user.name == "Alice"
        assert user.email == "alice@example.com"
        assert user.phone == "+15550100000"
        assert user.token == "a1b2c3d4"
        assert user.points == 0
        assert user.verified is False
        assert user.status == UserStatus.UNVERIFIED
        assert result.verification.state == VerificationState.PENDING_EMAIL_VERIFICATION

        assert await container.registry.get_bound_user("a1b2c3d4") == user.id
        availability = await container.registry.check_availability("a1b2c3d4")
        assert availability.status == TokenStatus.REGISTERED
        assert link_token(dispatcher, "alice@example.com")

    @pytest.mark.asyncio
    async def test_unscanned_token(self, service, credentials):
        """A token never scanned is not available, and no credential is created."""
        with pytest.raises(TokenNotAvailableError) as exc_info:
            await service.register("Bob", "bob@example.com", TEST_PASSWORD, "ffffffff")

        assert exc_info.value.details["status"] == "unknown"
        with pytest.raises(InvalidCredentialsError):
            await credentials.verify_credential("bob@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_registered_token(self, service, container):
        """A token bound to someone else is not available."""
        await scan(container)
        await service.register("Alice", "alice@example.com", TEST_PASSWORD, "a1b2c3d4")

        with pytest.raises(TokenNotAvailableError) as exc_info:
            await service.register("Bob", "bob@example.com", TEST_PASSWORD, "a1b2c3d4")
        assert exc_info.value.details["status"] == "registered"

    @pytest.mark.asyncio
    async def test_phone_already_in_use(self, service, container, credentials, store):
        """A phone held by another account is rejected before any credential is created."""
        await seed_user(store, make_user("someone-else", phone="+15550100000"))
        await scan(container)

        with pytest.raises(PhoneAlreadyInUseError):
            await service.register("Bob", "bob@example.com", TEST_PASSWORD, "a1b2c3d4", phone="+1 555 010 0000")

        with pytest.raises(InvalidCredentialsError):
            await credentials.verify_credential("bob@example.com", TEST_PASSWORD)
        assert (await container.registry.check_availability("a1b2c3d4")).status == TokenStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_validation_happens_before_writes(self, service, container, store):
        """Malformed input should fail without touching the store."""
        await scan(container)

        with pytest.raises(InvalidEmailError):
            await service.register("Alice", "nope", TEST_PASSWORD, "a1b2c3d4")
        with pytest.raises(WeakPasswordError):
            await service.register("Alice", "alice@example.com", "123", "a1b2c3d4")
        with pytest.raises(InvalidTokenFormatError):
            await service.register("Alice", "alice@example.com", TEST_PASSWORD, "xyz")

        assert await store.list_prefix("users/") == {}
        assert (await container.registry.check_availability("a1b2c3d4")).status == TokenStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service, container):
        """A taken email should fail and leave the second token available."""
        await scan(container, "00000001")
        await scan(container, "00000002")
        await service.register("Alice", "alice@example.com", TEST_PASSWORD, "00000001")

        with pytest.raises(EmailAlreadyInUseError):
            await service.register("Alice Again", "alice@example.com", TEST_PASSWORD, "00000002")
        assert (await container.registry.check_availability("00000002")).status == TokenStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_admin_email_is_bootstrapped(self, service, container):
        """Emails listed in admin_emails should register as admins."""
        await scan(container)
        result = await service.register("Ops", "admin@example.com", TEST_PASSWORD, "a1b2c3d4")
        assert result.user.is_admin is True

    @pytest.mark.asyncio
    async def test_concurrent_registrations_bind_once(self, service, container, store):
        """Two registrations racing for one token should produce one account."""
        await scan(container)

        results = await asyncio.gather(
            service.register("Alice", "alice@example.com", TEST_PASSWORD, "a1b2c3d4"),
            service.register("Bob", "bob@example.com", TEST_PASSWORD, "a1b2c3d4"),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], ConflictError)

        users = await store.list_prefix("users/")
        assert list(users) == [user_key(winners[0].user.id)]
        assert await container.registry.get_bound_user("a1b2c3d4") == winners[0].user.id


class TestCompensation:
    @pytest.mark.asyncio
    async def test_failure_after_commit_rolls_back(self, service, container, store, credentials):
        """A failure after the User is written should undo the User, binding and credential."""
        await scan(container)

        with patch.object(
            container.verification,
            "start_email_verification",
            side_effect=CredentialProviderError("mail link service down"),
        ):
            with pytest.raises(CredentialProviderError):
                await service.register("Alice", "alice@example.com", TEST_PASSWORD, "a1b2c3d4")

        assert await store.list_prefix("users/") == {}
        assert await container.registry.get_bound_user("a1b2c3d4") is None
        assert (await container.registry.check_availability("a1b2c3d4")).status == TokenStatus.AVAILABLE
        with pytest.raises(InvalidCredentialsError):
            await credentials.verify_credential("alice@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_retry_after_compensation_succeeds(self, service, container):
        """After a compensated failure the same email and token can register again."""
        await scan(container)

        with patch.object(
            container.verification,
            "start_email_verification",
            side_effect=CredentialProviderError("down"),
        ):
            with pytest.raises(CredentialProviderError):
                await service.register("Alice", "alice@example.com", TEST_PASSWORD, "a1b2c3d4")

        result = await service.register("Alice", "alice@example.com", TEST_PASSWORD, "a1b2c3d4")
        assert result.user.token == "a1b2c3d4"

    @pytest.mark.asyncio
    async def test_compensation_keeps_other_users_binding(self, service, container, store):
        """Rollback must not remove a binding that belongs to another user."""
        await scan(container)
        await seed_user(store, make_user("someone-else", email="someone@example.com"))
        await container.registry.claim("a1b2c3d4", "someone-else")

        outcome = await service.compensate_failed_registration(
            "ghost", "a1b2c3d4", committed=True, reason="test"
        )

        assert outcome.records_removed is True
        assert await container.registry.get_bound_user("a1b2c3d4") == "someone-else"

    @pytest.mark.asyncio
    async def test_compensation_reports_failures(self, service):
        """Failed compensation steps should be listed, not raised."""
        outcome = await service.compensate_failed_registration(
            "ghost", "a1b2c3d4", committed=False, reason="test"
        )

        assert outcome.credential_deleted is False
        assert outcome.records_removed is False
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("credential:")

    @pytest.mark.asyncio
    async def test_compensation_deletes_credential(self, service, credentials):
        """A failure before commit only needs the credential removed."""
        user_id = await credentials.create_credential("alice@example.com", TEST_PASSWORD)

        outcome = await service.compensate_failed_registration(user_id, "a1b2c3d4", committed=False)

        assert outcome.credential_deleted is True
        with pytest.raises(CredentialNotFoundError):
            await credentials.get_credential(user_id)


class TestDeferredRegistration:
    async def _verified_session(self, container, dispatcher, email="carol@example.com"):
        session = await container.auth.sign_up(email, TEST_PASSWORD)
        user_id = session.principal.id
        await container.verification.start_email_verification(user_id)
        await container.verification.confirm_email_link(user_id, link_token(dispatcher, email))
        return session

    @pytest.mark.asyncio
    async def test_complete_registration(self, service, container, dispatcher, store):
        """Completing should create an active User, bind the token and drop the pending record."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "A1B2C3D4")
        assert pending.token == "a1b2c3d4"

        session = await self._verified_session(container, dispatcher)
        result = await service.complete_registration(session, pending.id)

        assert result.user.id == session.principal.id
        assert result.user.status == UserStatus.ACTIVE
        assert result.user.verified is True
        assert result.verification.state == VerificationState.ACTIVE
        assert await container.registry.get_bound_user("a1b2c3d4") == result.user.id
        assert await store.get(pending_key(pending.id)) is None

    @pytest.mark.asyncio
    async def test_begin_requires_available_token(self, service):
        """Deferred registration should also require a scanned, unbound token."""
        with pytest.raises(TokenNotAvailableError):
            await service.begin_deferred_registration("Carol", "carol@example.com", "ffffffff")

    @pytest.mark.asyncio
    async def test_begin_rejects_phone_in_use(self, service, container, store):
        """Deferred registration should not reserve a phone another account holds."""
        await seed_user(store, make_user("someone-else", phone="+15550100000"))
        await scan(container)

        with pytest.raises(PhoneAlreadyInUseError):
            await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4", phone="+15550100000")
        assert await store.list_prefix("pending-registrations/") == {}

    @pytest.mark.asyncio
    async def test_phone_taken_before_completion(self, service, container, dispatcher, store):
        """If the phone was taken after begin, completion conflicts and the pending record stays."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4", phone="+15550100000")
        await seed_user(store, make_user("someone-else", phone="+15550100000"))
        session = await self._verified_session(container, dispatcher)

        with pytest.raises(PhoneAlreadyInUseError):
            await service.complete_registration(session, pending.id)
        assert await store.get(user_key(session.principal.id)) is None
        assert await store.get(pending_key(pending.id)) is not None

    @pytest.mark.asyncio
    async def test_complete_requires_verified_email(self, service, container, store):
        """An unverified caller cannot complete and nothing is written."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4")
        session = await container.auth.sign_up("carol@example.com", TEST_PASSWORD)

        with pytest.raises(EmailNotVerifiedError):
            await service.complete_registration(session, pending.id)
        assert await store.get(pending_key(pending.id)) is not None
        assert await container.registry.get_bound_user("a1b2c3d4") is None

    @pytest.mark.asyncio
    async def test_complete_requires_matching_email(self, service, container, dispatcher):
        """The signed-in email must match the pending registration."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4")
        session = await self._verified_session(container, dispatcher, email="mallory@example.com")

        with pytest.raises(EmailMismatchError):
            await service.complete_registration(session, pending.id)

    @pytest.mark.asyncio
    async def test_token_claimed_meanwhile(self, service, container, dispatcher, store):
        """If the token was claimed after begin, completion conflicts and nothing is written."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4")
        await seed_user(store, make_user("someone-else", email="someone@example.com"))
        await container.registry.claim("a1b2c3d4", "someone-else")
        session = await self._verified_session(container, dispatcher)

        with pytest.raises(ConflictError):
            await service.complete_registration(session, pending.id)
        assert await store.get(user_key(session.principal.id)) is None
        assert await store.get(pending_key(pending.id)) is not None

    @pytest.mark.asyncio
    async def test_complete_twice(self, service, container, dispatcher):
        """A pending registration can only be completed once."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4")
        session = await self._verified_session(container, dispatcher)
        await service.complete_registration(session, pending.id)

        with pytest.raises(PendingRegistrationNotFoundError):
            await service.complete_registration(session, pending.id)

    @pytest.mark.asyncio
    async def test_existing_user_cannot_complete(self, service, container, dispatcher):
        """An account that already has a User cannot complete another registration."""
        await scan(container, "00000001")
        await scan(container, "00000002")
        first = await service.begin_deferred_registration("Carol", "carol@example.com", "00000001")
        second = await service.begin_deferred_registration("Carol", "carol@example.com", "00000002")
        session = await self._verified_session(container, dispatcher)
        await service.complete_registration(session, first.id)

        with pytest.raises(UserAlreadyExistsError):
            await service.complete_registration(session, second.id)

    @pytest.mark.asyncio
    async def test_pending_expires(self, service, container, clock):
        """Pending registrations older than the TTL are gone."""
        await scan(container)
        pending = await service.begin_deferred_registration("Carol", "carol@example.com", "a1b2c3d4")
        assert (await service.get_pending_registration(pending.id)).id == pending.id

        clock.advance(hours=73)
        with pytest.raises(PendingRegistrationNotFoundError):
            await service.get_pending_registration(pending.id)

    @pytest.mark.asyncio
    async def test_purge_expired(self, service, container, clock, admin, store):
        """Purge should remove only expired records and require admin."""
        await scan(container, "00000001")
        await scan(container, "00000002")
        old = await service.begin_deferred_registration("Old", "old@example.com", "00000001")
        clock.advance(hours=73)
        fresh = await service.begin_deferred_registration("New", "new@example.com", "00000002")

        with pytest.raises(InsufficientPermissionsError):
            await service.purge_expired_pending_registrations(Principal(id="user-1"))

        result = await service.purge_expired_pending_registrations(admin)
        assert result.purged == [old.id]
        assert await store.get(pending_key(old.id)) is None
        assert await store.get(pending_key(fresh.id)) is not None
