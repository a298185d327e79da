"""
Password hashing utilities using bcrypt
"""

import bcrypt

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Password and device secret hashing utility"""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password as string

        Raises:
            ValueError: If the password is longer than 72 bytes
        """
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password must not exceed {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(encoded, salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Malformed hashes and inputs bcrypt refuses are reported as a mismatch.

        Args:
            password: Plain text password
            hashed_password: Previously hashed password

        Returns:
            True if password matches, False otherwise
        """
        if not isinstance(password, str) or not isinstance(hashed_password, str):
            return False

        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False

        try:
            return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
        except ValueError:
            return False
