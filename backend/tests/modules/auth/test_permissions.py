"""Tests for role checks."""

import pytest

from modules.auth.exceptions import InsufficientPermissionsError, MissingTokenError
from modules.auth.permissions import authorize_user_access, require_admin, require_vendor, role_of
from shared.models import Principal

USER = Principal(id="user-1")
VENDOR = Principal(id="vendor-1", is_vendor=True)
ADMIN = Principal(id="admin-1", is_admin=True)
BIN = Principal(id="user-1", is_bin=True)


class TestRoleOf:
    def test_roles(self):
        """role_of should report the highest role."""
        assert role_of(None) == "anonymous"
        assert role_of(USER) == "user"
        assert role_of(VENDOR) == "vendor"
        assert role_of(ADMIN) == "admin"
        assert role_of(BIN) == "bin"


class TestRequireRoles:
    def test_require_admin(self):
        """Only admins pass require_admin."""
        assert require_admin(ADMIN) is ADMIN
        with pytest.raises(InsufficientPermissionsError):
            require_admin(VENDOR)
        with pytest.raises(MissingTokenError):
            require_admin(None)

    def test_require_vendor_accepts_admin(self):
        """Vendors and admins pass require_vendor."""
        assert require_vendor(VENDOR) is VENDOR
        assert require_vendor(ADMIN) is ADMIN
        with pytest.raises(InsufficientPermissionsError) as exc_info:
            require_vendor(USER)
        assert exc_info.value.details == {"required_role": "vendor", "user_role": "user"}


class TestAuthorizeUserAccess:
    def test_owner_passes(self):
        """A user may always act on their own data."""
        assert authorize_user_access(USER, "user-1") is USER

    def test_other_user_rejected(self):
        """A user may not act on another user's data."""
        with pytest.raises(InsufficientPermissionsError):
            authorize_user_access(USER, "user-2")

    def test_admin_passes(self):
        """Admins may act on anyone's data."""
        assert authorize_user_access(ADMIN, "user-2") is ADMIN

    def test_vendor_role(self):
        """With role='vendor', vendors may act on other users."""
        assert authorize_user_access(VENDOR, "user-2", role="vendor") is VENDOR
        with pytest.raises(InsufficientPermissionsError):
            authorize_user_access(VENDOR, "user-2")

    def test_bin_is_never_owner(self):
        """A bin principal never counts as the owner, even with a matching ID."""
        with pytest.raises(InsufficientPermissionsError):
            authorize_user_access(BIN, "user-1")
