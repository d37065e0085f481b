"""
Identity module interface.

Other modules should depend on IIdentityService, not the concrete implementation.
"""

from typing import Protocol, Optional, runtime_checkable

from shared.models import Principal

from .models import User


@runtime_checkable
class IIdentityService(Protocol):
    """
    Interface for User record operations.

    Lookups are unauthenticated helpers for other modules; every mutation
    takes the calling Principal and checks it.
    """

    async def get_user(self, user_id: str) -> User:
        """
        Get a user by ID.

        Raises:
            UserNotFoundError: If no user has the ID
        """
        ...

    async def find_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID, or None."""
        ...

    async def find_by_email(self, email: str) -> Optional[User]:
        """Find the user with an email address (case-insensitive)."""
        ...

    async def find_by_phone(self, phone: str) -> Optional[User]:
        """Find the user with a phone number, in any common formatting."""
        ...

    async def list_users(self, principal: Principal) -> list[User]:
        """
        List every user. Admin only.

        Raises:
            InsufficientPermissionsError: If the caller is not an admin
        """
        ...

    async def update_profile(
        self,
        principal: Principal,
        user_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        """
        Update name and/or phone. Self or admin.

        Changing the phone clears ``verified`` and resets verification.
        """
        ...

    async def change_email(
        self,
        principal: Principal,
        current_password: str,
        new_email: str,
    ) -> User:
        """
        Change the caller's email after reauthenticating.

        Raises:
            InvalidCredentialsError: If current_password is wrong
            EmailAlreadyInUseError: If another account uses new_email
        """
        ...

    async def change_password(
        self,
        principal: Principal,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Change the caller's password after reauthenticating.

        Raises:
            InvalidCredentialsError: If current_password is wrong
            WeakPasswordError: If new_password is too short
        """
        ...

    async def grant_admin(self, principal: Principal, user_id: str) -> User:
        """Set is_admin. Admin only, idempotent."""
        ...

    async def grant_vendor(self, principal: Principal, user_id: str) -> User:
        """Set is_vendor. Admin only, idempotent."""
        ...
