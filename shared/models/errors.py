"""Error taxonomy shared by clients, cache, rate limiter and token engine.

Every error carries a user-facing message plus the actionable next step the
caller should take (re-login, wait, fix input, check identifier).
"""


class BridgeError(Exception):
    """Base class for all errors surfaced by the bridge."""

    default_next_step = "Try again later."
    status_code = 500

    def __init__(self, message: str, next_step: str | None = None):
        self.message = message
        self.next_step = next_step or self.default_next_step
        super().__init__(message)

    def user_message(self) -> str:
        return f"{self.message} {self.next_step}"


class AuthRequiredError(BridgeError):
    """No usable local credential; the user must authenticate interactively."""

    default_next_step = "Please log in again."
    status_code = 401


class SessionExpiredError(AuthRequiredError):
    """The PLM server rejected a previously valid session."""

    default_next_step = "Your session has expired. Please log in again."


class InvalidCredentialError(AuthRequiredError):
    """The generative-AI backend rejected the configured API key."""

    default_next_step = "Check your API key in the settings and save it again."


class ConfigurationError(BridgeError):
    default_next_step = "Check the server configuration."
    status_code = 500


class RateLimitedError(BridgeError):
    """Remote quota rejection (HTTP 429) or terminal rate-limit exhaustion."""

    default_next_step = "Please wait a few minutes before trying again."
    status_code = 429

    def __init__(self, message: str, next_step: str | None = None, terminal: bool = False):
        super().__init__(message, next_step)
        self.terminal = terminal


class TransientError(BridgeError):
    """Network failure that may succeed on retry."""

    default_next_step = "Please try again in a moment."
    status_code = 503


class RemoteError(BridgeError):
    """Non-2xx response that is not otherwise classified. Only 5xx is retried."""

    default_next_step = "Please try again later."
    status_code = 502

    def __init__(self, message: str, status: int, next_step: str | None = None):
        super().__init__(message, next_step)
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.status >= 500


class InputValidationError(BridgeError):
    """Malformed input: missing cursor, missing wizard fields, malformed token literal."""

    default_next_step = "Please correct the input and try again."
    status_code = 422


class NotFoundError(BridgeError):
    default_next_step = "Check the identifier and try again."
    status_code = 404


class StoreQuotaError(Exception):
    """Raised by a property store when a value exceeds its per-entry limit."""
