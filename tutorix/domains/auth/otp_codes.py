# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""One-time passcode primitives.

Codes are short-lived and their verification is rate limited at the call
site, so a fast SHA-256 digest is enough to keep them unreadable at rest.
It offers no brute-force resistance over a 10^6 code space.
"""

import hashlib
import hmac
import secrets


class OtpCoder:
    """Generates numeric passcodes and their storage digests.

    Attributes:
        _length: Number of digits per code.

    Example:
        >>> coder = OtpCoder()
        >>> code = coder.generate_code()
        >>> coder.matches(code, coder.hash(code))
        True
    """

    def __init__(self, length: int = 6) -> None:
        """Initialize the coder.

        Args:
            length: Number of digits per code.
        """
        if length < 1:
            raise ValueError("OTP length must be positive")
        self._length = length

    @property
    def length(self) -> int:
        """Number of digits per code."""
        return self._length

    def generate_code(self) -> str:
        """Generate a uniformly distributed, zero-padded numeric code."""
        return str(secrets.randbelow(10**self._length)).zfill(self._length)

    @staticmethod
    def hash(code: str) -> str:
        """SHA-256 hex digest of a code."""
        return hashlib.sha256(code.encode("utf-8")).hexdigest()

    def matches(self, code: str, code_hash: str) -> bool:
        """Compare a code against a stored digest in constant time."""
        if not code or not code_hash:
            return False
        return hmac.compare_digest(self.hash(code.strip()), code_hash)
