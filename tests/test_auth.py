"""Tests for auth.py — credential priority, key loading, fallback."""

import io
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from auth import (
    Agent,
    Password,
    PrivateKey,
    describe,
    fallback_credential,
    load_private_key,
    resolve_credential,
)
from config import SftpConfig
from errors import CredentialError


def _key_text(key, password=None):
    buf = io.StringIO()
    key.write_private_key(buf, password=password)
    return buf.getvalue()


def _config(**options):
    return SftpConfig(host="example.com", username="test", **options)


class TestLoadPrivateKey:
    def test_from_text(self, rsa_key):
        loaded = load_private_key(_key_text(rsa_key))
        assert loaded.get_fingerprint() == rsa_key.get_fingerprint()

    def test_from_bytes(self, rsa_key):
        loaded = load_private_key(_key_text(rsa_key).encode())
        assert loaded.get_fingerprint() == rsa_key.get_fingerprint()

    def test_from_file(self, rsa_key, tmp_path):
        path = tmp_path / "id_rsa"
        path.write_text(_key_text(rsa_key))
        loaded = load_private_key(str(path))
        assert loaded.get_fingerprint() == rsa_key.get_fingerprint()

    def test_encrypted_with_passphrase(self, rsa_key):
        text = _key_text(rsa_key, password="hunter2")
        loaded = load_private_key(text, "hunter2")
        assert loaded.get_fingerprint() == rsa_key.get_fingerprint()

    def test_encrypted_without_passphrase(self, rsa_key):
        with pytest.raises(CredentialError, match="passphrase"):
            load_private_key(_key_text(rsa_key, password="hunter2"))

    def test_wrong_passphrase(self, rsa_key):
        with pytest.raises(CredentialError):
            load_private_key(_key_text(rsa_key, password="hunter2"), "wrong")

    def test_malformed(self):
        with pytest.raises(CredentialError):
            load_private_key("key contents")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "some.key"
        path.write_text("key contents")
        with pytest.raises(CredentialError):
            load_private_key(str(path))


class TestResolveCredential:
    def test_password(self):
        credential = resolve_credential(_config(password="test"))
        assert credential == Password("test")

    def test_private_key_beats_password(self, rsa_key):
        credential = resolve_credential(_config(password="pw", private_key=_key_text(rsa_key, "pw")))
        assert isinstance(credential, PrivateKey)
        assert credential.key.get_fingerprint() == rsa_key.get_fingerprint()

    def test_passphrase_separate_from_password(self, rsa_key):
        config = _config(password="pw", passphrase="pp", private_key=_key_text(rsa_key, "pp"))
        assert isinstance(resolve_credential(config), PrivateKey)

    def test_agent_beats_everything(self, rsa_key):
        handle = MagicMock()
        config = _config(password="pw", private_key=_key_text(rsa_key), use_agent=True)
        assert resolve_credential(config, handle) == Agent(handle)

    def test_agent_from_config(self):
        handle = MagicMock()
        config = _config(use_agent=True, agent=handle)
        assert resolve_credential(config).handle is handle

    def test_agent_built_when_missing(self):
        with patch("auth.paramiko.Agent") as agent_cls:
            credential = resolve_credential(_config(use_agent=True))
        agent_cls.assert_called_once_with()
        assert credential.handle is agent_cls.return_value

    def test_empty_password_is_still_a_password(self):
        assert resolve_credential(_config(password="")) == Password("")

    def test_nothing_configured(self):
        with pytest.raises(CredentialError, match="test@example.com"):
            resolve_credential(_config())

    def test_bad_key_raises(self):
        with pytest.raises(CredentialError):
            resolve_credential(_config(private_key="not a key"))


class TestFallbackCredential:
    def test_disabled_by_default(self, rsa_key):
        config = _config(password="pw", private_key=_key_text(rsa_key, "pw"))
        primary = resolve_credential(config)
        assert fallback_credential(config, primary) is None

    def test_key_falls_back_to_password(self, rsa_key):
        config = _config(password="pw", private_key=_key_text(rsa_key, "pw"), login_fallback=True)
        primary = resolve_credential(config)
        assert fallback_credential(config, primary) == Password("pw")

    def test_agent_falls_back_to_key(self, rsa_key):
        config = _config(private_key=_key_text(rsa_key), use_agent=True, login_fallback=True)
        fallback = fallback_credential(config, Agent(MagicMock()))
        assert isinstance(fallback, PrivateKey)

    def test_agent_falls_back_to_password(self):
        config = _config(password="pw", use_agent=True, login_fallback=True)
        assert fallback_credential(config, Agent(MagicMock())) == Password("pw")

    def test_password_has_no_fallback(self):
        config = _config(password="pw", login_fallback=True)
        assert fallback_credential(config, Password("pw")) is None


class TestDescribe:
    def test_labels_hide_secrets(self, rsa_key):
        assert describe(Password("hunter2")) == "password"
        assert describe(PrivateKey(rsa_key)) == "private key"
        assert describe(Agent(MagicMock())) == "agent"
        assert "hunter2" not in repr(Password("hunter2"))


def test_key_classes_are_paramiko_keys():
    from auth import KEY_CLASSES

    assert all(issubclass(cls, paramiko.PKey) for cls in KEY_CLASSES)
