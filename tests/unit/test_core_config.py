"""Unit tests for config loading, in-place locking and passphrase resolution."""

import json
from unittest.mock import patch

import pytest

from sup.core.config import (
    SupConfig,
    load_config,
    lock_config_file,
    parse_config,
    resolve_passphrase,
    unlock_config_file,
)
from sup.core.exceptions import AuthenticationFailed, ConfigError, KeystoreError
from sup.security.crypt import decrypt

CONFIG = {
    "URL": "https://example.com/health",
    "TwilioSID": "AC123",
    "TwilioAuthToken": "tw-secret",
    "CallFrom": "+15550100",
    "Phones": ["+15550101", "+15550102"],
    "HipchatAuthToken": "hc-secret",
    "HipchatRoom": "ops",
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(CONFIG), encoding="utf-8")
    return path


def test_from_dict_maps_keys():
    config = SupConfig.from_dict(CONFIG)
    assert config.url == "https://example.com/health"
    assert config.twilio_sid == "AC123"
    assert config.call_from == "+15550100"
    assert config.phones == ["+15550101", "+15550102"]
    assert config.has_twilio
    assert config.has_hipchat
    assert config.to_dict() == CONFIG


def test_from_dict_defaults_and_ignores_unknown():
    config = SupConfig.from_dict({"URL": "http://x", "Extra": 1})
    assert config.phones == []
    assert config.twilio_auth_token == ""
    assert not config.has_twilio
    assert not config.has_hipchat


def test_from_dict_rejects_non_list_phones():
    with pytest.raises(ConfigError):
        SupConfig.from_dict({"Phones": "+15550101"})


def test_repr_hides_secrets():
    text = repr(SupConfig.from_dict(CONFIG))
    assert "tw-secret" not in text
    assert "hc-secret" not in text
    assert "AC123" in text


@pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b"\xff\xfe"])
def test_parse_config_rejects_bad_documents(raw):
    with pytest.raises(ConfigError):
        parse_config(raw)


def test_load_plain_config(config_file):
    config = load_config(config_file)
    assert config.url == CONFIG["URL"]


def test_load_missing_config(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_config(tmp_path / "nope.json")


def test_lock_then_load_encrypted(config_file):
    lock_config_file(config_file, b"k3y")

    raw = config_file.read_bytes()
    assert b"tw-secret" not in raw
    assert json.loads(decrypt(b"k3y", raw)) == CONFIG

    config = load_config(config_file, b"k3y")
    assert config.to_dict() == CONFIG


def test_lock_unlock_roundtrip(config_file):
    original = config_file.read_bytes()
    lock_config_file(config_file, b"k3y")
    unlock_config_file(config_file, b"k3y")
    assert config_file.read_bytes() == original


def test_lock_leaves_no_temp_files(config_file):
    lock_config_file(config_file, b"k3y")
    assert [p.name for p in config_file.parent.iterdir()] == ["config.json"]


def test_unlock_wrong_key_leaves_file_untouched(config_file):
    lock_config_file(config_file, b"k3y")
    sealed = config_file.read_bytes()

    with pytest.raises(AuthenticationFailed):
        unlock_config_file(config_file, b"wrong")
    assert config_file.read_bytes() == sealed


def test_load_encrypted_with_wrong_key(config_file):
    lock_config_file(config_file, b"k3y")
    with pytest.raises(AuthenticationFailed):
        load_config(config_file, b"wrong")


def test_resolve_passphrase_explicit_wins():
    assert resolve_passphrase("cli", env={"CONFIG_KEY": "env"}) == b"cli"
    assert resolve_passphrase(b"raw", env={}) == b"raw"


def test_resolve_passphrase_from_env():
    assert resolve_passphrase(None, env={"CONFIG_KEY": "env"}, use_keyring=False) == b"env"


def test_resolve_passphrase_empty_env_ignored():
    assert resolve_passphrase("", env={"CONFIG_KEY": ""}, use_keyring=False) is None


def test_resolve_passphrase_from_keyring():
    with patch("sup.core.config.keystore.load_key", return_value=b"stored") as load:
        assert resolve_passphrase(None, env={}) == b"stored"
    load.assert_called_once_with("sup", "config")


def test_resolve_passphrase_keyring_unavailable():
    with patch("sup.core.config.keystore.load_key", side_effect=RuntimeError("no keyring")):
        assert resolve_passphrase(None, env={}) is None


def test_resolve_passphrase_skips_keyring_when_disabled():
    with patch("sup.core.config.keystore.load_key") as load:
        assert resolve_passphrase(None, env={}, use_keyring=False) is None
    load.assert_not_called()


@pytest.mark.parametrize("key,value", [("URL", 42), ("TwilioAuthToken", ["x"]), ("HipchatRoom", {"a": 1})])
def test_from_dict_rejects_non_string_fields(key, value):
    with pytest.raises(ConfigError, match=f"{key} must be a string"):
        SupConfig.from_dict({key: value})


def test_from_dict_null_means_unset():
    config = SupConfig.from_dict({"URL": None, "TwilioSID": None})
    assert config.url == ""
    assert config.twilio_sid == ""


@pytest.mark.parametrize("phones", [[None], ["+15550101", 15550102]])
def test_from_dict_rejects_non_string_phones(phones):
    with pytest.raises(ConfigError, match="Phones"):
        SupConfig.from_dict({"Phones": phones})


class _FailingWriter:
    """File wrapper that writes a few bytes and then fails like a full disk."""

    def __init__(self, f):
        self._f = f

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self._f.close()
        return False

    def write(self, data):
        self._f.write(data[:10])
        raise OSError(28, "No space left on device")


def test_unlock_write_failure_leaves_no_partial_plaintext(config_file):
    lock_config_file(config_file, b"k3y")
    sealed = config_file.read_bytes()
    real_open = open

    def failing_open(path, mode="r", *args, **kwargs):
        return _FailingWriter(real_open(path, mode, *args, **kwargs))

    with patch("sup.core.config.open", side_effect=failing_open, create=True):
        with pytest.raises(ConfigError, match="cannot write"):
            unlock_config_file(config_file, b"k3y")

    assert [p.name for p in config_file.parent.iterdir()] == ["config.json"]
    assert config_file.read_bytes() == sealed


def test_lock_replace_failure_cleans_temp_file(config_file):
    original = config_file.read_bytes()

    with patch("sup.core.config.os.replace", side_effect=OSError("busy")):
        with pytest.raises(ConfigError, match="cannot write"):
            lock_config_file(config_file, b"k3y")

    assert [p.name for p in config_file.parent.iterdir()] == ["config.json"]
    assert config_file.read_bytes() == original


def test_resolve_passphrase_keyring_locked():
    with patch("sup.core.config.keystore.load_key", side_effect=KeystoreError("cannot read key: locked")):
        assert resolve_passphrase(None, env={}) is None
