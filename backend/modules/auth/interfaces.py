"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Protocol, runtime_checkable

from shared.models import Principal, Session


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for session and role operations.

    Sessions are immutable snapshots: every operation that changes who
    is signed in returns a new Session instead of mutating shared state.
    """

    async def sign_up(self, email: str, password: str) -> Session:
        """
        Create a credential and sign it in.

        Used by the deferred registration path, where the User record is
        materialized only after the email is verified.

        Raises:
            InvalidEmailError, WeakPasswordError: If the input is rejected
            EmailAlreadyInUseError: If a credential already uses the email
        """
        ...

    async def sign_in(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: If the pair does not match
        """
        ...

    async def sign_in_with_phone(self, phone: str, password: str) -> Session:
        """Sign in with the phone number on a user's profile and the password."""
        ...

    async def sign_out(self, session: Session) -> Session:
        """Return an anonymous session."""
        ...

    async def validate_token(self, token: str) -> Principal:
        """
        Validate a session token and resolve the principal.

        Role flags come from the current User record, not the token.

        Raises:
            AuthenticationError: If token is invalid or expired
        """
        ...

    async def issue_access_token(self, principal: Principal) -> Session:
        """Mint a session for a principal."""
        ...

    async def authenticate_bin(self, api_key: str) -> Principal:
        """
        Authenticate bin hardware by API key.

        Raises:
            InvalidBinKeyError: If the key is not configured
        """
        ...

    def require_admin(self, principal: Principal) -> Principal:
        """Raise InsufficientPermissionsError unless principal is an admin."""
        ...

    def require_vendor(self, principal: Principal) -> Principal:
        """Raise InsufficientPermissionsError unless principal is a vendor or admin."""
        ...

    def authorize_user_access(self, principal: Principal, user_id: str, role: str = "admin") -> Principal:
        """Allow the owner of user_id, or a holder of role."""
        ...
