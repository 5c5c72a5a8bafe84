"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.

Digests are kept as raw bytes end to end. The repository stores them
in a binary column and nothing outside this module inspects them.
"""

import secrets

import bcrypt

from userbase.config import settings

BCRYPT_MAX_BYTES = 72


class CredentialHasher:
    """One-way salted password hashing with a fixed cost factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_digest: bytes | None = None

    @property
    def dummy_digest(self) -> bytes:
        """A digest of a random secret, same cost as real ones.

        Verifying against it when the account does not exist keeps the
        "no such user" path as slow as the "wrong password" path.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash(secrets.token_urlsafe(16))
        return self._dummy_digest

    @staticmethod
    def _encode(password: str) -> bytes:
        # bcrypt ignores (newer versions reject) anything past 72 bytes
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> bytes:
        """Hash a password. Returns bcrypt's "$2b$..." digest as bytes."""
        return bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds))

    def verify(self, digest: bytes, password: str) -> bool:
        """Check a password against a stored digest.

        Comparison is constant-time inside bcrypt. A malformed digest is
        a mismatch, not an error.
        """
        try:
            return bcrypt.checkpw(self._encode(password), bytes(digest))
        except (ValueError, TypeError):
            return False


hasher = CredentialHasher(rounds=settings.bcrypt_rounds)
