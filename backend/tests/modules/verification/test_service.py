"""Tests for the verification state machine."""

from unittest.mock import AsyncMock, patch

import pytest

from modules.auth.exceptions import InsufficientPermissionsError
from modules.auth.tokens import TokenIssuer
from modules.identity.models import UserStatus
from modules.verification.exceptions import (
    AlreadyVerifiedError,
    InvalidCodeFormatError,
    InvalidOrExpiredCodeError,
    NotVerifiedError,
    VerificationNotPendingError,
)
from modules.verification.models import VerificationChannel, VerificationState, verification_key
from providers.base import NotificationChannel
from providers.exceptions import InvalidCodeError, InvalidCredentialsError
from shared.models import Principal, Session
from tests.conftest import TEST_PASSWORD, link_token, make_user, seed_user

EMAIL = "dana@example.com"


@pytest.fixture
def service(container):
    return container.verification


async def new_account(credentials, store, with_user: bool = True) -> str:
    user_id = await credentials.create_credential(EMAIL, TEST_PASSWORD)
    if with_user:
        user = make_user(user_id, email=EMAIL).model_copy(
            update={"verified": False, "status": UserStatus.UNVERIFIED}
        )
        await seed_user(store, user)
    return user_id


def session_for(user_id: str) -> Session:
    return Session(principal=Principal(id=user_id, email=EMAIL))


class TestEmailVerification:
    @pytest.mark.asyncio
    async def test_start_sends_link(self, service, credentials, store, dispatcher):
        """Starting should email a link and store only the token hash."""
        user_id = await new_account(credentials, store)
        status = await service.start_email_verification(user_id)

        assert status.state == VerificationState.PENDING_EMAIL_VERIFICATION
        assert status.channel == VerificationChannel.EMAIL
        assert status.can_resend is False
        assert status.delivery_failed is False

        [delivery] = dispatcher.sent_to(EMAIL)
        assert delivery.channel == NotificationChannel.EMAIL
        token = link_token(dispatcher, EMAIL)
        assert token not in str(await store.get(verification_key(user_id)))

    @pytest.mark.asyncio
    async def test_confirm_marks_verified(self, service, container, credentials, store, dispatcher):
        """A valid link should verify the account and flag the User."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)

        status = await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))

        assert status.state == VerificationState.VERIFIED
        user = await container.identity.get_user(user_id)
        assert user.verified is True
        assert user.status == UserStatus.UNVERIFIED

    @pytest.mark.asyncio
    async def test_link_is_single_use(self, service, credentials, store, dispatcher):
        """A consumed link cannot be used again."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        token = link_token(dispatcher, EMAIL)
        await service.confirm_email_link(user_id, token)

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_email_link(user_id, token)

    @pytest.mark.asyncio
    async def test_wrong_token(self, service, credentials, store):
        """A wrong token should be rejected and leave the state pending."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_email_link(user_id, "not-the-token")
        status = await service.poll_verification_status(user_id)
        assert status.state == VerificationState.PENDING_EMAIL_VERIFICATION

    @pytest.mark.asyncio
    async def test_expired_link(self, service, credentials, store, dispatcher, clock):
        """Links should expire after a day."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        clock.advance(hours=24, seconds=1)

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))

    @pytest.mark.asyncio
    async def test_resend_invalidates_previous_link(self, service, credentials, store, dispatcher, clock):
        """Only the most recently issued link should work."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        old_token = link_token(dispatcher, EMAIL)

        clock.advance(seconds=31)
        status = await service.resend_email_verification(user_id)
        new_token = link_token(dispatcher, EMAIL)
        assert new_token != old_token
        assert len(dispatcher.sent_to(EMAIL)) == 2
        assert status.state == VerificationState.PENDING_EMAIL_VERIFICATION

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_email_link(user_id, old_token)
        assert (await service.confirm_email_link(user_id, new_token)).state == VerificationState.VERIFIED

    @pytest.mark.asyncio
    async def test_resend_requires_pending(self, service, credentials, store):
        """Resending without a pending email verification should fail."""
        user_id = await new_account(credentials, store)
        with pytest.raises(VerificationNotPendingError):
            await service.resend_email_verification(user_id)

    @pytest.mark.asyncio
    async def test_no_new_token_once_verified(self, service, credentials, store, dispatcher):
        """Verified accounts cannot be issued new tokens."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))

        with pytest.raises(AlreadyVerifiedError):
            await service.start_email_verification(user_id)
        with pytest.raises(AlreadyVerifiedError):
            await service.start_phone_verification(user_id, "+15550100000")

    @pytest.mark.asyncio
    async def test_delivery_failure_is_reported(self, service, credentials, store, dispatcher):
        """A failed hand-off should be flagged on the status, not raised."""
        user_id = await new_account(credentials, store)
        store_user = await store.get(f"users/{user_id}")
        store_user["email"] = ""

        async def apply(ctx):
            ctx.set(f"users/{user_id}", store_user)

        await store.run_transaction([f"users/{user_id}"], apply)
        status = await service.start_email_verification(user_id)

        assert status.delivery_failed is True
        assert status.state == VerificationState.PENDING_EMAIL_VERIFICATION

    @pytest.mark.asyncio
    async def test_account_without_user_record(self, service, credentials, store, dispatcher):
        """Credential-only accounts are emailed at the credential address."""
        user_id = await new_account(credentials, store, with_user=False)
        await service.start_email_verification(user_id)
        assert (await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))).state == (
            VerificationState.VERIFIED
        )


class TestResendCooldown:
    @pytest.mark.asyncio
    async def test_can_resend_after_cooldown(self, service, credentials, store, clock):
        """can_resend should flip once the cooldown elapses."""
        user_id = await new_account(credentials, store)
        assert await service.can_resend(user_id) is True

        await service.start_email_verification(user_id)
        assert await service.can_resend(user_id) is False

        clock.advance(seconds=29)
        assert await service.can_resend(user_id) is False
        clock.advance(seconds=1)
        assert await service.can_resend(user_id) is True

    @pytest.mark.asyncio
    async def test_poll_reports_elapsed(self, service, credentials, store, clock):
        """Status should report time since the last issue."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        clock.advance(seconds=12)

        status = await service.poll_verification_status(user_id)
        assert status.seconds_since_last_issue == 12.0
        assert status.last_issued_at is not None

    @pytest.mark.asyncio
    async def test_poll_unknown_account(self, service):
        """An account with no record reports CREATED."""
        status = await service.poll_verification_status("nobody")
        assert status.state == VerificationState.CREATED
        assert status.can_resend is True


class TestPhoneVerification:
    @pytest.mark.asyncio
    async def test_phone_flow(self, service, container, credentials, store):
        """A correct code should verify the account and set the phone."""
        user_id = await new_account(credentials, store)
        started = await service.start_phone_verification(user_id, "+1 555-010-0000")
        assert started.status.state == VerificationState.PENDING_PHONE_VERIFICATION

        code = credentials.sent_codes[started.session_id]
        status = await service.confirm_phone_code(user_id, started.session_id, code)

        assert status.state == VerificationState.VERIFIED
        user = await container.identity.get_user(user_id)
        assert user.phone == "+15550100000"
        assert user.verified is True
        assert (await credentials.get_credential(user_id)).phone == "+15550100000"

    @pytest.mark.asyncio
    async def test_phone_linked_before_code_is_sent(self, service, credentials, store):
        """The number is attached to the caller's credential before any SMS goes out."""
        user_id = await new_account(credentials, store)

        issue = credentials.issue_phone_otp
        linked_at_send = []

        async def issue_after_link(phone):
            linked_at_send.append((await credentials.get_credential(user_id)).phone)
            return await issue(phone)

        with patch.object(credentials, "issue_phone_otp", side_effect=issue_after_link):
            await service.start_phone_verification(user_id, "+15550100000")

        assert linked_at_send == ["+15550100000"]

    @pytest.mark.asyncio
    async def test_code_owned_by_nobody_is_rejected(self, service, container, credentials, store):
        """A code that resolves to no credential must not verify the account."""
        user_id = await new_account(credentials, store)
        started = await service.start_phone_verification(user_id, "+15550100000")

        with patch.object(credentials, "consume_phone_otp", AsyncMock(return_value=None)):
            with pytest.raises(InvalidOrExpiredCodeError):
                await service.confirm_phone_code(user_id, started.session_id, "123456")

        user = await container.identity.get_user(user_id)
        assert user.verified is False
        assert user.phone is None

    @pytest.mark.asyncio
    async def test_code_format(self, service, credentials, store):
        """Codes must be exactly six digits."""
        user_id = await new_account(credentials, store)
        started = await service.start_phone_verification(user_id, "+15550100000")

        for bad in ("12345", "1234567", "12a456"):
            with pytest.raises(InvalidCodeFormatError):
                await service.confirm_phone_code(user_id, started.session_id, bad)

    @pytest.mark.asyncio
    async def test_wrong_code(self, service, credentials, store):
        """A wrong code should be rejected."""
        user_id = await new_account(credentials, store)
        started = await service.start_phone_verification(user_id, "+15550100000")
        code = credentials.sent_codes[started.session_id]
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_phone_code(user_id, started.session_id, wrong)

    @pytest.mark.asyncio
    async def test_superseded_session(self, service, credentials, store):
        """A new code should invalidate the previous session."""
        user_id = await new_account(credentials, store)
        first = await service.start_phone_verification(user_id, "+15550100000")
        second = await service.start_phone_verification(user_id, "+15550100000")

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_phone_code(user_id, first.session_id, credentials.sent_codes[first.session_id])
        status = await service.confirm_phone_code(
            user_id, second.session_id, credentials.sent_codes[second.session_id]
        )
        assert status.state == VerificationState.VERIFIED

    @pytest.mark.asyncio
    async def test_expired_code(self, service, credentials, store, clock):
        """Codes should expire after five minutes."""
        user_id = await new_account(credentials, store)
        started = await service.start_phone_verification(user_id, "+15550100000")
        clock.advance(minutes=5, seconds=1)

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_phone_code(user_id, started.session_id, credentials.sent_codes[started.session_id])

    @pytest.mark.asyncio
    async def test_email_link_superseded_by_phone(self, service, credentials, store, dispatcher):
        """Switching to phone should invalidate an outstanding email link."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        token = link_token(dispatcher, EMAIL)
        await service.start_phone_verification(user_id, "+15550100000")

        with pytest.raises(InvalidOrExpiredCodeError):
            await service.confirm_email_link(user_id, token)


class TestActivate:
    @pytest.mark.asyncio
    async def test_activate_after_verification(self, service, container, credentials, store, dispatcher):
        """Activation should mark the account active and return a fresh session."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))

        old_session = session_for(user_id)
        session = await service.activate(old_session, user_id)

        assert session is not old_session
        assert old_session.access_token is None
        assert session.verification_state == VerificationState.ACTIVE.value
        assert session.principal.email_verified is True
        assert TokenIssuer().decode(session.access_token).sub == user_id
        assert (await container.identity.get_user(user_id)).status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_activate_is_idempotent(self, service, credentials, store, dispatcher):
        """Activating twice should succeed both times."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))

        await service.activate(session_for(user_id), user_id)
        session = await service.activate(session_for(user_id), user_id)
        assert session.verification_state == "active"

    @pytest.mark.asyncio
    async def test_activate_requires_verification(self, service, credentials, store):
        """Unverified accounts cannot be activated."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)

        with pytest.raises(NotVerifiedError):
            await service.activate(session_for(user_id), user_id)

    @pytest.mark.asyncio
    async def test_activate_requires_owner(self, service, credentials, store, dispatcher):
        """Only the account owner may activate it."""
        user_id = await new_account(credentials, store)
        await service.start_email_verification(user_id)
        await service.confirm_email_link(user_id, link_token(dispatcher, EMAIL))

        with pytest.raises(InsufficientPermissionsError):
            await service.activate(session_for("someone-else"), user_id)


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_reset_flow(self, service, credentials, store):
        """Requesting and confirming a reset should change the password."""
        user_id = await new_account(credentials, store)
        await service.request_password_reset("DANA@example.com")
        token = credentials.sent_reset_tokens[EMAIL]

        assert await service.confirm_password_reset(token, "brand-new-pw") == user_id
        assert await credentials.verify_credential(EMAIL, "brand-new-pw") == user_id
        with pytest.raises(InvalidCredentialsError):
            await credentials.verify_credential(EMAIL, TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_bad_reset_token(self, service):
        """An unknown reset token should be rejected."""
        with pytest.raises(InvalidCodeError):
            await service.confirm_password_reset("bogus", "brand-new-pw")
