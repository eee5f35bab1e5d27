"""
Custom exceptions for the location sharing client.

Every error carries a human readable message; the structured cause is chained
through ``raise ... from`` so it shows up in logged tracebacks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from locshare.client.domain.entities import FanoutReport


class LocShareError(Exception):
    """Base class for all client errors."""


class ConfigurationError(LocShareError):
    """Server URL missing or invalid."""


class MissingIdentity(LocShareError):
    """No key pair has been generated yet."""


class NotAuthenticated(LocShareError):
    """No token (or no private key) is available for an authenticated call."""


class NetworkFailure(LocShareError):
    """Transport failure or unexpected HTTP status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class Unauthorized(NetworkFailure):
    """The server rejected the bearer token (401/403)."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message, status_code)


class VerificationFailed(LocShareError):
    """A fetched public key does not derive the requested key id."""

    def __init__(self, message: str, expected: str, actual: str | None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class DecryptFailed(LocShareError):
    """A ciphertext could not be decrypted with the given private key."""


class AuthFailed(LocShareError):
    """The challenge/response handshake did not produce a token."""


class GroupFetchFailed(LocShareError):
    """The group list could not be fetched; fatal to the current cycle."""


class GroupCreateFailed(LocShareError):
    """The server refused to create a group."""


class FanoutFailed(LocShareError):
    """Every attempted group post failed."""

    def __init__(self, message: str, report: FanoutReport) -> None:
        super().__init__(message)
        self.report = report
