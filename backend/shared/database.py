"""
Supabase client factory.

The service-role client backs the Supabase store and the admin side of
the credential provider; it bypasses RLS, so authorization stays in the
service layer. End-user auth calls (password sign-in, OTP, recovery) go
through an anon-key client instead.
"""

from typing import Optional

from supabase import Client, create_client

from .config import get_settings

# Service-role client, shared for the life of the process
_service_client: Optional[Client] = None


def _create(key: str, key_variable: str) -> Client:
    settings = get_settings()
    if not settings.supabase_url or not key:
        raise RuntimeError(
            "Supabase configuration missing. "
            f"Set SUPABASE_URL and {key_variable} environment variables."
        )
    return create_client(settings.supabase_url, key)


def get_supabase_client() -> Client:
    """
    Get the cached service-role client.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
    """
    global _service_client

    if _service_client is None:
        _service_client = _create(get_settings().supabase_service_role_key, "SUPABASE_SERVICE_ROLE_KEY")
    return _service_client


def get_supabase_anon_client() -> Client:
    """
    Get a fresh anon-key client.

    Not cached: sign-in stores the user's session on the client, and one
    caller's session must not leak into the next request.
    """
    return _create(get_settings().supabase_anon_key, "SUPABASE_ANON_KEY")


def reset_client_cache() -> None:
    global _service_client
    _service_client = None
