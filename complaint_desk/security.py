"""Password hashing."""

import bcrypt


class PasswordHasher:
    """
    bcrypt password hasher.

    Example:
        hasher = PasswordHasher(rounds=12)
        hashed = hasher.hash("secret-password")
        assert hasher.verify(hashed, "secret-password")
    """

    def __init__(self, rounds: int = 12):
        """
        Initialize PasswordHasher.

        Args:
            rounds: bcrypt cost factor
        """
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode(), salt).decode()

    def verify(self, hashed_password: str, password: str) -> bool:
        """
        Verify a password against a stored hash.

        Returns:
            bool: True if the password matches; False for a mismatch or a
            malformed hash
        """
        try:
            return bcrypt.checkpw(password.encode(), hashed_password.encode())
        except ValueError:
            return False
