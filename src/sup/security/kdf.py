import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.exceptions import RandomnessUnavailable

ITERATIONS = 4096
KEY_LEN = 32  # AES-256
SALT_LEN = 32


def generate_salt(length: int = SALT_LEN) -> bytes:
    """Return a cryptographically secure random salt."""
    try:
        return os.urandom(length)
    except OSError as e:
        raise RandomnessUnavailable(f"OS random source failed: {e}") from e


def derive_key(passphrase: bytes, salt: bytes) -> bytes:
    """
    Derive a 256-bit AES key from a passphrase using PBKDF2-HMAC-SHA256.
    Same passphrase and salt always give the same key.
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LEN,
        salt=salt,
        iterations=ITERATIONS,
    )
    return kdf.derive(passphrase)
