"""Domain errors raised by the relay services.

Each error carries the HTTP status it maps to by default. Routes
re-raise as HTTPException when an endpoint reports a different
status (a missing auth code is 401 on /register, not 404).
"""


class RelayError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(RelayError):
    status_code = 400


class Unauthorized(RelayError):
    status_code = 401


class Forbidden(RelayError):
    status_code = 403


class NotFound(RelayError):
    status_code = 404


class InvalidCode(RelayError):
    """Presented auth code does not match the pending one."""

    status_code = 401


class Expired(RelayError):
    """Auth code is past its validity window."""

    status_code = 401


class TransportFailure(RelayError):
    """The push service rejected or failed the delivery."""

    status_code = 500

    def __init__(self, message: str, *, gone: bool = False) -> None:
        super().__init__(message)
        self.gone = gone


class StoreUnavailable(RelayError):
    """The persisted document could not be read."""

    status_code = 500
