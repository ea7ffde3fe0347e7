# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication and session lifecycle.

Exports:
    AuthService: Registration, login, sessions, recovery and passcodes.
    build_auth_service: Composition root wiring an AuthService.
    SessionManager: Refresh session issuance, rotation and statistics.
    OtpService: One-time passcode issuance and verification.
    JWTManager: Access token signing and validation.
    PasswordHasher: bcrypt password hashing.
    OtpCoder: Passcode generation and hashing.
    Ok, Err, Result: Typed operation outcomes.
    ErrorKind: Failure categories.
"""

from tutorix.domains.auth.analytics import AuthAnalytics
from tutorix.domains.auth.errors import (
    AuthenticationError,
    AuthFlowError,
    ConflictError,
    ErrorKind,
    ExpiredError,
    InvalidCredentialError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from tutorix.domains.auth.factory import build_auth_service
from tutorix.domains.auth.jwt import AccessTokenClaims, JWTManager
from tutorix.domains.auth.otp import OtpService
from tutorix.domains.auth.otp_codes import OtpCoder
from tutorix.domains.auth.password import PasswordHasher
from tutorix.domains.auth.results import Err, Ok, Result, as_result
from tutorix.domains.auth.schemas import (
    AuthResponse,
    AuthTokens,
    GeneratedOtp,
    LoginIdentifier,
    OtpVerification,
    PasswordResetDelivery,
    PlatformBreakdown,
    RegisterInput,
    RegisterUserInput,
    SessionStats,
    UpdateUserInput,
    UserSignupInput,
)
from tutorix.domains.auth.service import AuthService
from tutorix.domains.auth.sessions import SessionManager

__all__ = [
    "AuthService",
    "build_auth_service",
    "SessionManager",
    "OtpService",
    "JWTManager",
    "AccessTokenClaims",
    "PasswordHasher",
    "OtpCoder",
    "AuthAnalytics",
    # Results and errors
    "Ok",
    "Err",
    "Result",
    "as_result",
    "ErrorKind",
    "AuthFlowError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "InvalidTokenError",
    "NotFoundError",
    "ExpiredError",
    "InvalidCredentialError",
    # Schemas
    "AuthTokens",
    "AuthResponse",
    "SessionStats",
    "PlatformBreakdown",
    "GeneratedOtp",
    "OtpVerification",
    "RegisterInput",
    "RegisterUserInput",
    "UpdateUserInput",
    "UserSignupInput",
    "LoginIdentifier",
    "PasswordResetDelivery",
]
