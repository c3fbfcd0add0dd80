"""Error taxonomy for catalog reconciliation."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for failures that a tenant sync converts into a result entry."""


class CatalogError(ReconciliationError):
    """Raised when the remote catalog cannot deliver a usable answer."""


class AuthenticationError(CatalogError):
    """Raised when no credential is registered for a tenant."""

    def __init__(self, tenant_id: int) -> None:
        super().__init__(f"Token not found for tenant {tenant_id}")
        self.tenant_id = tenant_id


class RequestTimeoutError(CatalogError, TimeoutError):
    """Raised when a single catalog request exceeds its deadline."""


class TransportError(CatalogError):
    """Raised on network-level failures other than timeouts."""


class RemoteError(CatalogError):
    """Raised when the catalog answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(CatalogError):
    """Raised when a catalog payload lacks the expected structure."""


class RetryExhaustedError(CatalogError):
    """Raised when an operation failed on every attempt of its retry budget."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Failed after {attempts} consecutive attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class StorageQueryError(ReconciliationError):
    """Raised when the backing store rejects an identifier query."""


class CredentialStoreError(ReconciliationError):
    """Raised when credentials cannot be read from the shared cache."""


class ConcurrentSyncError(RuntimeError):
    """Raised when a sync is requested while another one is running."""

    def __init__(self) -> None:
        super().__init__("Sync already in progress")


class InvalidTenantError(ValueError):
    """Raised for tenant identifiers that are not positive integers."""


RETRYABLE_CATALOG_ERRORS: tuple[type[CatalogError], ...] = (
    RequestTimeoutError,
    TransportError,
    RemoteError,
    MalformedResponseError,
)
