class CinemaError(Exception):
    """Base class for errors raised by the service layer."""


class NotFoundError(CinemaError):
    pass


class ConflictError(CinemaError):
    """A unique field (username, email) is already taken."""


class InvalidReferenceError(CinemaError):
    """A foreign key points at a row that does not exist."""


class ConfigurationError(CinemaError):
    """Signing material or another required setting is missing."""


class StoreUnavailableError(CinemaError):
    """The revocation store could not be reached."""


class AuthenticationError(CinemaError):
    pass


class InvalidTokenError(AuthenticationError):
    pass


class TokenExpiredError(AuthenticationError):
    pass


class TokenRevokedError(AuthenticationError):
    pass


class MissingClaimError(AuthenticationError):
    def __init__(self, claim: str):
        super().__init__(f"Token is missing the '{claim}' claim")
        self.claim = claim


class BadClaimError(CinemaError):
    """A claim needed for logout is absent or malformed."""
