"""Password hashing with bcrypt."""

import bcrypt

from vatofotsy_api.errors import PasswordTooLong

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password for storage.

    Raises:
        PasswordTooLong: If the UTF-8 encoded password exceeds 72 bytes
    """
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise PasswordTooLong()
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored bcrypt hash.

    Returns:
        True if the password matches, False otherwise (including a malformed hash)
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
