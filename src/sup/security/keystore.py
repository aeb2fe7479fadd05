"""OS keystore integration so the config passphrase need not live in the shell environment.

Thin wrapper around `keyring` that stores binary secrets base64-encoded under a
service/account pair. Whether the secret is really protected depends on the
platform backend; see :func:`assess_keyring_backend`.

Backend failures (locked keyring, access denied, no backend) surface as
:class:`sup.core.exceptions.KeystoreError`.
"""
import base64
import binascii
from typing import Optional

from ..core.exceptions import KeystoreError

try:
    import keyring
    from keyring.errors import KeyringError, PasswordDeleteError
except ImportError:
    keyring = None
    KeyringError = PasswordDeleteError = None

DEFAULT_SERVICE = "sup"
DEFAULT_ACCOUNT = "config"


def _require_keyring():
    if keyring is None:
        raise RuntimeError("keyring package is not available; install keyring to use keystore features")


def save_key(service: str, account: str, key_bytes: bytes) -> None:
    """Persist key_bytes in the OS keystore under (service, account)."""
    _require_keyring()
    secret = base64.b64encode(key_bytes).decode("ascii")
    try:
        keyring.set_password(service, account, secret)
    except KeyringError as e:
        raise KeystoreError(f"cannot store key in OS keyring: {e}") from e


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristic only: backends are recognised by class name.
    """
    if keyring is None:
        return False, "keyring package is not installed"

    try:
        backend = keyring.get_keyring()
    except KeyringError as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Simple", "File")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"


def load_key(service: str, account: str) -> Optional[bytes]:
    """Load a stored key; returns raw bytes, or None if absent or unreadable."""
    _require_keyring()
    try:
        secret = keyring.get_password(service, account)
    except KeyringError as e:
        raise KeystoreError(f"cannot read key from OS keyring: {e}") from e
    if secret is None:
        return None
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        return None


def delete_key(service: str, account: str) -> bool:
    """Remove the key from the OS keystore. Returns False if nothing was stored."""
    _require_keyring()
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        return False
    except KeyringError as e:
        raise KeystoreError(f"cannot delete key from OS keyring: {e}") from e
    return True
