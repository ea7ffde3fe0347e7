# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Password hashing utilities using bcrypt.

bcrypt is deliberately slow (tens of milliseconds at the default work
factor), so async callers go through ahash() / averify(), which run the
computation in a worker thread instead of blocking the event loop.

Example:
    >>> hasher = PasswordHasher(rounds=settings.password.bcrypt_rounds)
    >>> user.password_hash = await hasher.ahash(new_password)
"""

import asyncio
import logging

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt only considers the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt hasher with a configurable work factor.

    Hashes made with a different cost still verify; needs_rehash() tells
    the login flow to upgrade them.

    Attributes:
        _rounds: bcrypt cost used for new hashes.
    """

    def __init__(self, rounds: int = 12) -> None:
        """Initialize the password hasher.

        Args:
            rounds: Number of bcrypt rounds. Higher is more secure but slower.
        """
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        """Configured bcrypt work factor."""
        return self._rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password to hash.

        Returns:
            Bcrypt hash string with salt embedded.

        Raises:
            ValueError: If password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        salt = bcrypt.gensalt(rounds=self._rounds)
        hashed = bcrypt.hashpw(self._encode(password), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password to verify.
            password_hash: Bcrypt hash to verify against.

        Returns:
            True if password matches the hash, False otherwise.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Check if a hash was produced with a different work factor.

        Args:
            password_hash: Existing password hash to check.

        Returns:
            True if the hash should be updated, False otherwise.
        """
        if not password_hash:
            return False

        # Layout: $2b$<rounds>$<salt+digest>
        parts = password_hash.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self._rounds

    async def ahash(self, password: str) -> str:
        """Hash a password in a worker thread."""
        return await asyncio.to_thread(self.hash, password)

    async def averify(self, password: str, password_hash: str) -> bool:
        """Verify a password in a worker thread."""
        return await asyncio.to_thread(self.verify, password, password_hash)
