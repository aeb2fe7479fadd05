"""
Service configuration for sup

The config file is a JSON object, optionally sealed with :func:`sup.security.crypt.seal`:

    {
        "URL": "https://example.com/health",
        "TwilioSID": "...",
        "TwilioAuthToken": "...",
        "CallFrom": "+15550100",
        "Phones": ["+15550101", "+15550102"],
        "HipchatAuthToken": "...",
        "HipchatRoom": "ops"
    }

The passphrase is always passed in explicitly; resolve_passphrase() is the
only place that looks at the environment or the OS keyring.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .exceptions import ConfigError, KeystoreError
from ..security import keystore
from ..security.crypt import decrypt, seal

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./config.json"
CONFIG_KEY_ENV = "CONFIG_KEY"


def _str_field(data: Dict[str, Any], key: str) -> str:
    # missing and null both mean "not configured"
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {type(value).__name__}")
    return value


@dataclass
class SupConfig:
    """Decoded config record. Secrets are kept out of repr()."""

    url: str = ""
    twilio_sid: str = ""
    twilio_auth_token: str = field(default="", repr=False)
    call_from: str = ""
    phones: List[str] = field(default_factory=list)
    hipchat_auth_token: str = field(default="", repr=False)
    hipchat_room: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SupConfig":
        phones = data.get("Phones") or []
        if not isinstance(phones, list) or not all(isinstance(p, str) for p in phones):
            raise ConfigError("Phones must be a list of strings")
        return cls(
            url=_str_field(data, "URL"),
            twilio_sid=_str_field(data, "TwilioSID"),
            twilio_auth_token=_str_field(data, "TwilioAuthToken"),
            call_from=_str_field(data, "CallFrom"),
            phones=list(phones),
            hipchat_auth_token=_str_field(data, "HipchatAuthToken"),
            hipchat_room=_str_field(data, "HipchatRoom"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "URL": self.url,
            "TwilioSID": self.twilio_sid,
            "TwilioAuthToken": self.twilio_auth_token,
            "CallFrom": self.call_from,
            "Phones": list(self.phones),
            "HipchatAuthToken": self.hipchat_auth_token,
            "HipchatRoom": self.hipchat_room,
        }

    @property
    def has_twilio(self) -> bool:
        return bool(self.twilio_sid and self.twilio_auth_token)

    @property
    def has_hipchat(self) -> bool:
        return bool(self.hipchat_auth_token and self.hipchat_room)


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e


def _write_atomic(path: Path, data: bytes) -> None:
    # write next to the target so os.replace stays on one filesystem
    with tempfile.NamedTemporaryFile(dir=path.parent, prefix=f".{path.name}.", delete=False) as tmpf:
        tmp_path = Path(tmpf.name)

    replaced = False
    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
        replaced = True
    except OSError as e:
        raise ConfigError(f"cannot write config file {path}: {e}") from e
    finally:
        # never leave partial plaintext next to the config
        if not replaced:
            tmp_path.unlink(missing_ok=True)


def parse_config(raw: bytes) -> SupConfig:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"config is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config must be a JSON object")
    return SupConfig.from_dict(data)


def load_config(path: Union[str, Path], passphrase: Optional[bytes] = None) -> SupConfig:
    """
    Load the config file at ``path``.

    If ``passphrase`` is given the file is treated as a sealed container and
    decrypted first; crypto errors propagate unchanged.
    """
    path = Path(path).expanduser()
    raw = _read_bytes(path)
    if passphrase:
        raw = decrypt(passphrase, raw)
    logger.debug("loaded config from %s (encrypted=%s)", path, bool(passphrase))
    return parse_config(raw)


def lock_config_file(path: Union[str, Path], passphrase: bytes) -> None:
    """Encrypt the config file in place."""
    path = Path(path).expanduser()
    plaintext = _read_bytes(path)
    _write_atomic(path, seal(passphrase, plaintext))
    logger.info("encrypted config file %s", path)


def unlock_config_file(path: Union[str, Path], passphrase: bytes) -> None:
    """Decrypt the config file in place. The file is untouched if decryption fails."""
    path = Path(path).expanduser()
    plaintext = decrypt(passphrase, _read_bytes(path))
    _write_atomic(path, plaintext)
    logger.info("decrypted config file %s", path)


def resolve_passphrase(
    explicit: Optional[Union[str, bytes]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    service: str = keystore.DEFAULT_SERVICE,
    account: str = keystore.DEFAULT_ACCOUNT,
    use_keyring: bool = True,
) -> Optional[bytes]:
    """
    Find the config passphrase.

    Order: ``explicit``, then $CONFIG_KEY, then the OS keyring. Returns None if
    none of them has a non-empty value.
    """
    if explicit:
        return explicit.encode("utf-8") if isinstance(explicit, str) else explicit

    env = os.environ if env is None else env
    from_env = env.get(CONFIG_KEY_ENV)
    if from_env:
        return from_env.encode("utf-8")

    if not use_keyring:
        return None
    try:
        stored = keystore.load_key(service, account)
    except (RuntimeError, KeystoreError) as e:
        # keyring not installed, locked or without a usable backend
        logger.debug("keyring lookup skipped: %s", e)
        return None
    return stored or None
