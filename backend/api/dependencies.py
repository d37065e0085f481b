"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

When we're ready to extract a module to a microservice, we only need
to change the implementation here to an HTTP client.
"""

from typing import TYPE_CHECKING, Optional

from shared.models import Clock, utc_now

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService
    from modules.auth.tokens import TokenIssuer
    from modules.identity.interfaces import IIdentityService
    from modules.ledger.interfaces import ILedgerService
    from modules.registration.interfaces import IRegistrationService
    from modules.registry.interfaces import IRegistryService
    from modules.verification.interfaces import IVerificationService
    from providers.base import CredentialProvider, NotificationDispatcher
    from shared.store import IStore


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    Collaborators (store, credential provider, dispatcher, clock) may be
    passed in; otherwise they come from settings. All services are cached
    as singletons within the container. Use reset() to clear them.
    """

    def __init__(
        self,
        store: "Optional[IStore]" = None,
        credentials: "Optional[CredentialProvider]" = None,
        dispatcher: "Optional[NotificationDispatcher]" = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._dispatcher = dispatcher
        self._clock = clock
        self._tokens: "TokenIssuer | None" = None
        self._identity_service: "IIdentityService | None" = None
        self._registry_service: "IRegistryService | None" = None
        self._verification_service: "IVerificationService | None" = None
        self._registration_service: "IRegistrationService | None" = None
        self._ledger_service: "ILedgerService | None" = None
        self._auth_service: "IAuthService | None" = None

    @property
    def store(self) -> "IStore":
        """Get the transactional store."""
        if self._store is None:
            from shared.store import get_store
            self._store = get_store()
        return self._store

    @property
    def dispatcher(self) -> "NotificationDispatcher":
        """Get the notification dispatcher."""
        if self._dispatcher is None:
            from providers.factory import create_notification_dispatcher
            self._dispatcher = create_notification_dispatcher()
        return self._dispatcher

    @property
    def credentials(self) -> "CredentialProvider":
        """Get the credential provider."""
        if self._credentials is None:
            from providers.factory import create_credential_provider
            self._credentials = create_credential_provider(dispatcher=self.dispatcher)
        return self._credentials

    @property
    def tokens(self) -> "TokenIssuer":
        """Get the session token issuer."""
        if self._tokens is None:
            from modules.auth.tokens import TokenIssuer
            self._tokens = TokenIssuer()
        return self._tokens

    @property
    def identity(self) -> "IIdentityService":
        """Get the identity service instance."""
        if self._identity_service is None:
            from modules.identity.service import IdentityService
            self._identity_service = IdentityService(self.store, self.credentials)
        return self._identity_service

    @property
    def registry(self) -> "IRegistryService":
        """Get the token registry service instance."""
        if self._registry_service is None:
            from modules.registry.service import RegistryService
            self._registry_service = RegistryService(self.store, clock=self._clock)
        return self._registry_service

    @property
    def verification(self) -> "IVerificationService":
        """Get the verification service instance."""
        if self._verification_service is None:
            from modules.verification.service import VerificationService
            self._verification_service = VerificationService(
                self.store,
                self.credentials,
                self.dispatcher,
                tokens=self.tokens,
                clock=self._clock,
            )
        return self._verification_service

    @property
    def registration(self) -> "IRegistrationService":
        """Get the registration service instance."""
        if self._registration_service is None:
            from modules.registration.service import RegistrationService
            self._registration_service = RegistrationService(
                self.store,
                self.credentials,
                registry=self.registry,
                verification=self.verification,
                identity=self.identity,
                clock=self._clock,
            )
        return self._registration_service

    @property
    def ledger(self) -> "ILedgerService":
        """Get the ledger service instance."""
        if self._ledger_service is None:
            from modules.ledger.service import LedgerService
            self._ledger_service = LedgerService(self.store, self.registry, clock=self._clock)
        return self._ledger_service

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(
                self.store,
                self.identity,
                self.credentials,
                tokens=self.tokens,
            )
        return self._auth_service

    def reset(self) -> None:
        """
        Reset all cached services.

        Injected collaborators are kept; services are rebuilt on next access.
        """
        self._tokens = None
        self._identity_service = None
        self._registry_service = None
        self._verification_service = None
        self._registration_service = None
        self._ledger_service = None
        self._auth_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a preconfigured container (used by tests)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_identity_service() -> "IIdentityService":
    """FastAPI dependency for identity service."""
    return get_container().identity


def get_registry_service() -> "IRegistryService":
    """FastAPI dependency for token registry service."""
    return get_container().registry


def get_verification_service() -> "IVerificationService":
    """FastAPI dependency for verification service."""
    return get_container().verification


def get_registration_service() -> "IRegistrationService":
    """FastAPI dependency for registration service."""
    return get_container().registration


def get_ledger_service() -> "ILedgerService":
    """FastAPI dependency for ledger service."""
    return get_container().ledger


def get_store_dependency() -> "IStore":
    """FastAPI dependency for the store (readiness checks)."""
    return get_container().store
