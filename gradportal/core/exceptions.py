class BackendError(Exception):
    """Raised when the auth or profile backend cannot complete an operation."""


class AuthenticationError(BackendError):
    """Raised when credentials or a session token are rejected."""


class ProfileNotFoundError(BackendError):
    """Raised when no profile row matches the requested id."""


class DuplicateRecordError(BackendError):
    """Raised when an insert collides with an existing email or student id."""
