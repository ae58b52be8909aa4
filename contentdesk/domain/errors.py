"""Error kinds raised by the credential workflows."""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for failures surfaced to API callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CredentialError):
    """Missing or malformed input."""


class ConflictError(CredentialError):
    """An account already exists for the requested email."""

    def __init__(self, message: str = "email already registered") -> None:
        super().__init__(message)


class AuthenticationError(CredentialError):
    """Login rejected without saying which factor was wrong."""

    def __init__(self, message: str = "email or password incorrect") -> None:
        super().__init__(message)


class StoreUnavailableError(CredentialError):
    """The account store could not be reached."""

    def __init__(self, message: str = "account store unavailable") -> None:
        super().__init__(message)
