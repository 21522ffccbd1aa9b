"""Shared fixtures for SFTP adapter tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import paramiko
import pytest

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from adapter import SftpAdapter
from config import SftpConfig
from transport import TYPE_DIRECTORY, TYPE_REGULAR

FILE_STAT = {"type": TYPE_REGULAR, "mtime": 1700000000, "size": 20, "permissions": 0o777}
DIR_STAT = {"type": TYPE_DIRECTORY, "mtime": 1700000000, "size": 20, "permissions": 0o777}


@pytest.fixture
def config():
    """Password login, no root."""
    return SftpConfig(host="example.com", username="test", password="test")


@pytest.fixture
def transport():
    """Connected transport stand-in; individual tests override return values."""
    mock = MagicMock()
    mock.is_connected.return_value = True
    mock.login.return_value = True
    mock.chdir.return_value = True
    mock.pwd.return_value = "/"
    return mock


@pytest.fixture
def adapter(config, transport):
    return SftpAdapter(config, transport=transport)


@pytest.fixture(scope="session")
def rsa_key():
    """Real RSA key for credential and fingerprint tests."""
    return paramiko.RSAKey.generate(2048)


@pytest.fixture(scope="session")
def host_key_blob(rsa_key):
    return f"{rsa_key.get_name()} {rsa_key.get_base64()}"


@pytest.fixture(scope="session")
def host_key_fingerprint(rsa_key):
    return ":".join(f"{b:02x}" for b in rsa_key.get_fingerprint())
