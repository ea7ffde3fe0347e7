# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error kinds of the auth core.

Components raise AuthFlowError subclasses; the AuthService boundary turns
them into Err values carrying the ErrorKind, so transport layers match on
the kind instead of on exception classes.

Messages of login and forgot-password failures are deliberately generic.
Passcode and token failures carry specific messages because the caller
already holds a user id or session context.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    AUTHENTICATION = "AUTHENTICATION"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"


class AuthFlowError(Exception):
    """Base exception for auth flow failures.

    Attributes:
        kind: Error kind reported to callers.
        message: Human-readable error description.
        details: Structured context safe to return to the caller.
    """

    kind: ErrorKind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(AuthFlowError):
    """Raised when a role-required field is missing or an input is malformed."""

    kind = ErrorKind.VALIDATION


class ConflictError(AuthFlowError):
    """Raised when an email or mobile number is already registered."""

    kind = ErrorKind.CONFLICT


class AuthenticationError(AuthFlowError):
    """Raised on bad credentials or an inactive account."""

    kind = ErrorKind.AUTHENTICATION


class InvalidTokenError(AuthenticationError):
    """Raised when an access token, refresh secret or reset token is invalid."""

    kind = ErrorKind.INVALID_TOKEN


class NotFoundError(AuthFlowError):
    """Raised when a user, passcode or reset token row does not exist."""

    kind = ErrorKind.NOT_FOUND


class ExpiredError(AuthFlowError):
    """Raised when a passcode, refresh secret or reset token is past its window."""

    kind = ErrorKind.EXPIRED


class InvalidCredentialError(AuthFlowError):
    """Raised when a passcode does not match."""

    kind = ErrorKind.INVALID_CREDENTIAL


_ERRORS_BY_KIND: dict[ErrorKind, type[AuthFlowError]] = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.EXPIRED: ExpiredError,
    ErrorKind.INVALID_TOKEN: InvalidTokenError,
    ErrorKind.INVALID_CREDENTIAL: InvalidCredentialError,
}


def error_for_kind(kind: ErrorKind) -> type[AuthFlowError]:
    """Get the exception class matching an error kind."""
    return _ERRORS_BY_KIND[kind]
