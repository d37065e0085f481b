"""
Flat role checks.

Every operation that touches another user's data calls one of these with
the caller's Principal. Role flags on the Principal come from the User
record, so a check here always reflects the latest grant.
"""

from typing import Optional

from shared.models import Principal

from .exceptions import InsufficientPermissionsError, MissingTokenError


def role_of(principal: Optional[Principal]) -> str:
    """Highest role held by a principal, for error messages."""
    if principal is None:
        return "anonymous"
    if principal.is_bin:
        return "bin"
    if principal.is_admin:
        return "admin"
    if principal.is_vendor:
        return "vendor"
    return "user"


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise MissingTokenError()
    return principal


def require_admin(principal: Optional[Principal]) -> Principal:
    """
    Require the admin role.

    Raises:
        MissingTokenError: If there is no principal
        InsufficientPermissionsError: If the principal is not an admin
    """
    principal = require_principal(principal)
    if not principal.is_admin:
        raise InsufficientPermissionsError("admin", role_of(principal))
    return principal


def require_vendor(principal: Optional[Principal]) -> Principal:
    """
    Require the vendor role. Admins pass as well.

    Raises:
        MissingTokenError: If there is no principal
        InsufficientPermissionsError: If the principal is neither vendor nor admin
    """
    principal = require_principal(principal)
    if not (principal.is_vendor or principal.is_admin):
        raise InsufficientPermissionsError("vendor", role_of(principal))
    return principal


def authorize_user_access(
    principal: Optional[Principal],
    user_id: str,
    role: str = "admin",
) -> Principal:
    """
    Allow a principal to act on user_id's data.

    The owner always passes; anyone else needs the given role
    ("admin" or "vendor").

    Raises:
        MissingTokenError: If there is no principal
        InsufficientPermissionsError: If the principal is not the owner and lacks the role
    """
    principal = require_principal(principal)
    if principal.id == user_id and not principal.is_bin:
        return principal
    if role == "vendor":
        return require_vendor(principal)
    return require_admin(principal)
