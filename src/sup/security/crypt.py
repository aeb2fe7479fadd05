"""Password-based encryption of small blobs (the service config file).

encrypt:
- fresh 32-byte salt, key = PBKDF2-HMAC-SHA256(passphrase, salt, 4096)
- PKCS#7 padding, always applied
- fresh 16-byte IV, AES-256-CBC
- mac = HMAC-SHA256(passphrase, ciphertext || iv || salt)

decrypt verifies the mac before deriving the key or touching the ciphertext,
so a wrong passphrase and a tampered container look exactly the same and no
padding error can be observed on unauthenticated input.

The mac is keyed with the raw passphrase rather than a derived key, the same
MAC construction as the original sup config format. The byte encoding of the
container is new, so older config files must be decrypted with the old tool
and re-encrypted.
"""
import hashlib
import hmac
import logging
import os
from typing import Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..core.exceptions import AuthenticationFailed, RandomnessUnavailable, StructuralCorruption
from .container import BLOCK_SIZE, IV_LEN, Container
from .kdf import derive_key, generate_salt

logger = logging.getLogger(__name__)

Passphrase = Union[bytes, str]


def _as_bytes(passphrase: Passphrase) -> bytes:
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return passphrase


def _generate_iv() -> bytes:
    try:
        return os.urandom(IV_LEN)
    except OSError as e:
        raise RandomnessUnavailable(f"OS random source failed: {e}") from e


def calc_mac(message: bytes, key: bytes) -> bytes:
    return hmac.new(key, message, hashlib.sha256).digest()


def check_mac(message: bytes, message_mac: bytes, key: bytes) -> bool:
    # constant-time comparison
    return hmac.compare_digest(message_mac, calc_mac(message, key))


def encrypt(passphrase: Passphrase, plaintext: bytes) -> Container:
    """Encrypt and authenticate ``plaintext`` under ``passphrase``.

    Raises RandomnessUnavailable if no salt or IV can be drawn.
    """
    key = _as_bytes(passphrase)
    salt = generate_salt()
    derived_key = derive_key(key, salt)

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    iv = _generate_iv()
    encryptor = Cipher(algorithms.AES(derived_key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    mac = calc_mac(ciphertext + iv + salt, key)
    logger.debug("encrypted %d bytes into %d bytes of ciphertext", len(plaintext), len(ciphertext))
    return Container(ciphertext=ciphertext, iv=iv, salt=salt, mac=mac)


def seal(passphrase: Passphrase, plaintext: bytes) -> bytes:
    """Like :func:`encrypt` but return the serialized container."""
    return encrypt(passphrase, plaintext).to_bytes()


def decrypt(passphrase: Passphrase, container_bytes: bytes) -> bytes:
    """Authenticate, then decrypt, a serialized container.

    Raises:
        ContainerTooShort: input shorter than the fixed-size fields.
        MalformedContainer: input cannot be parsed.
        AuthenticationFailed: wrong passphrase or corrupted/tampered data.
        StructuralCorruption: authenticated ciphertext is not block aligned
            or its padding is invalid.
    """
    key = _as_bytes(passphrase)
    c = Container.from_bytes(container_bytes)

    if not check_mac(c.authenticated_data(), c.mac, key):
        raise AuthenticationFailed("decrypt: wrong passphrase or corrupted data")

    derived_key = derive_key(key, c.salt)

    if not c.ciphertext or len(c.ciphertext) % BLOCK_SIZE != 0:
        raise StructuralCorruption("decrypt: ciphertext is not a multiple of the block size")

    decryptor = Cipher(algorithms.AES(derived_key), modes.CBC(c.iv)).decryptor()
    padded = decryptor.update(c.ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise StructuralCorruption("decrypt: invalid padding") from e

    logger.debug("decrypted %d bytes of ciphertext", len(c.ciphertext))
    return plaintext
