"""Application errors raised inside the service layer.

Every one of these is caught at the HouseholdService boundary and turned
into an ErrorResponse; none reaches the caller as an exception.
"""

from __future__ import annotations


class EnsembleError(Exception):
    """Base error carrying a machine code and an HTTP-like status."""

    code = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(EnsembleError):
    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class InvalidInputError(EnsembleError):
    code = "invalid_input"
    status_code = 400


class NotFoundError(EnsembleError):
    code = "not_found"
    status_code = 404


class PermissionDeniedError(EnsembleError):
    code = "forbidden"
    status_code = 403


class PersistenceError(EnsembleError):
    """Storage failure; the message shown to users stays generic."""

    code = "persistence"
    status_code = 500
