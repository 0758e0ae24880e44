"""Custom exception hierarchy for the shop statistics service.

Failures travel through the pipeline as values carried by an
:class:`~shop_stats.concurrency.async_result.AsyncResult`; they are only
raised at the outer edges (config loading, ``AsyncResult.get()``).
"""


class ShopError(Exception):
    """Base exception for all shop statistics errors."""

    @property
    def kind(self) -> str:
        """Short tag naming the originating failure kind."""
        return type(self).__name__


# --- Configuration ---
class ConfigError(ShopError):
    """Invalid or missing configuration."""


# --- Store ---
class StoreError(ShopError):
    """Document store error."""


class StoreAccessError(StoreError):
    """A lookup against the store failed (I/O, connectivity, bad document)."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


# --- Authentication ---
class AuthError(ShopError):
    """Credential check failure."""

    def __init__(self, username: str, message: str):
        self.username = username
        super().__init__(message)


class UserNotFound(AuthError):
    """No user record for the supplied username (exact, case-sensitive)."""

    def __init__(self, username: str):
        super().__init__(username, f"no user named {username!r}")


class BadPassword(AuthError):
    """User exists but the password does not match."""

    def __init__(self, username: str):
        super().__init__(username, f"bad password for user {username!r}")


# --- Execution ---
class ExecutionError(ShopError):
    """Worker pool or promise misuse."""


class ExecutionContextClosed(ExecutionError):
    """Work was submitted after the execution context was shut down."""


def describe_failure(failure: BaseException) -> str:
    """Render a failure as the single line handed to the error reporter."""
    kind = failure.kind if isinstance(failure, ShopError) else type(failure).__name__
    return f"{kind}: {failure}"
