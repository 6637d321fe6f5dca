"""Error taxonomy shared by services and the HTTP layer.

Every failure a service raises is a ``StreamGateError`` subclass carrying the
HTTP status and the public error code it maps to. Storage errors never leave the
service layer; they are converted into one of these first.
"""


class StreamGateError(Exception):
    status_code = 500
    code = "internal_error"
    public_message: str | None = None

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    @property
    def detail(self) -> str:
        return self.public_message or self.message


# --- Input ---

class ValidationError(StreamGateError):
    status_code = 400
    code = "invalid_request"


# --- Lookup ---

class NotFoundError(StreamGateError):
    status_code = 404
    code = "not_found"


class NotConfigured(NotFoundError):
    """No upstream credentials stored for the device."""

    code = "upstream_not_configured"


# --- Conflicts ---

class ConflictError(StreamGateError):
    status_code = 409
    code = "conflict"


class UuidInUse(ConflictError):
    """The presented device uuid is bound to another approved device."""

    code = "uuid_in_use"


class InvalidTransition(ConflictError):
    code = "invalid_transition"


# --- Authorization ---

class AuthError(StreamGateError):
    """Rendered identically for every subclass so callers cannot tell which check failed."""

    status_code = 401
    code = "unauthorized"
    public_message = "unauthorized"


class NotRegistered(AuthError):
    pass


class NotActive(AuthError):
    pass


class Expired(AuthError):
    pass


class InvalidToken(AuthError):
    pass


class AdminUnauthorized(AuthError):
    """Missing or wrong operator API key."""


class PinRejected(StreamGateError):
    status_code = 403
    code = "invalid_pin"


# --- Vault ---

class VaultError(StreamGateError):
    code = "credentials_unusable"
    public_message = "credentials unusable"


class VaultMalformed(VaultError):
    pass


class VaultAuthenticationFailed(VaultError):
    pass


class VaultKeyError(ValueError):
    """Raised at startup when the vault key is missing or malformed."""


# --- Upstream resolution ---

class ResolverError(StreamGateError):
    code = "upstream_error"


class MissingBaseUrl(ResolverError):
    code = "missing_upstream_base_url"


# --- Capacity ---

class CodeSpaceExhausted(StreamGateError):
    status_code = 503
    code = "device_code_collision"
