"""Security helpers: the encrypted config container and passphrase storage.

- PBKDF2-HMAC-SHA256 key derivation
- AES-256-CBC + HMAC-SHA256 container, authenticated before decryption
- optional OS keyring storage for the passphrase
"""

from .kdf import generate_salt, derive_key
from .container import Container
from .crypt import encrypt, decrypt, seal
from .keystore import save_key, load_key, delete_key, assess_keyring_backend

__all__ = [
    "generate_salt",
    "derive_key",
    "Container",
    "encrypt",
    "decrypt",
    "seal",
    "save_key",
    "load_key",
    "delete_key",
    "assess_keyring_backend",
]
