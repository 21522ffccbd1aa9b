"""Connection configuration — config.yaml plus .env overrides."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml
from dotenv import load_dotenv

from errors import ConfigurationError

log = logging.getLogger(__name__)

# Option names as they appear in flysystem-style adapter configs
ALIASES = {
    "user": "username",
    "privateKey": "private_key",
    "useAgent": "use_agent",
    "permPublic": "perm_public",
    "permPrivate": "perm_private",
    "directoryPerm": "directory_perm",
    "hostFingerprint": "host_fingerprint",
    "usePingForConnectivityCheck": "use_ping_for_connectivity_check",
    "loginFallback": "login_fallback",
    "autoReconnect": "auto_reconnect",
}

# .env variable → option
ENV_OPTIONS = {
    "SFTP_HOST": "host",
    "SFTP_PORT": "port",
    "SFTP_USER": "username",
    "SFTP_PASSWORD": "password",
    "SFTP_PRIVATE_KEY": "private_key",
    "SFTP_PASSPHRASE": "passphrase",
    "SFTP_ROOT": "root",
    "SFTP_HOST_FINGERPRINT": "host_fingerprint",
}

_PERMISSION_OPTIONS = ("perm_public", "perm_private", "directory_perm")
_BOOLEAN_OPTIONS = (
    "use_agent",
    "use_ping_for_connectivity_check",
    "login_fallback",
    "auto_reconnect",
)


@dataclass(frozen=True)
class SftpConfig:
    """Everything needed to open and root one SFTP session."""

    host: str
    username: str
    port: int = 22
    password: str = None
    private_key: str = None
    passphrase: str = None
    use_agent: bool = False
    agent: object = None
    timeout: int = 10
    root: str = None
    perm_public: int = 0o744
    perm_private: int = 0o700
    directory_perm: int = 0o744
    host_fingerprint: str = None
    use_ping_for_connectivity_check: bool = False
    login_fallback: bool = False
    auto_reconnect: bool = True

    @property
    def key_passphrase(self):
        """Passphrase for the private key; the password doubles as one."""
        return self.passphrase or self.password

    @classmethod
    def from_dict(cls, options):
        """Build a config from a plain mapping, accepting camelCase names."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (options or {}).items():
            name = ALIASES.get(key, key)
            if name not in known:
                log.warning("Ignoring unknown SFTP option: %s", key)
                continue
            values[name] = value

        for required in ("host", "username"):
            if not values.get(required):
                raise ConfigurationError(f"Missing required SFTP option: {required}")

        if "port" in values:
            values["port"] = _to_int("port", values["port"])
        if "timeout" in values:
            values["timeout"] = _to_int("timeout", values["timeout"])
        for name in _PERMISSION_OPTIONS:
            if name in values:
                values[name] = _to_mode(name, values[name])
        for name in _BOOLEAN_OPTIONS:
            if name in values:
                values[name] = _to_bool(values[name])
        return cls(**values)


def _to_int(name, value):
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Option {name} must be an integer, got {value!r}") from e


def _to_mode(name, value):
    """Permission masks: ints as-is, strings read as octal ("0755", "0o755")."""
    if isinstance(value, int):
        return value
    try:
        return int(str(value), 8)
    except ValueError as e:
        raise ConfigurationError(f"Option {name} must be an octal mode, got {value!r}") from e


def _to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_config(config_path=None, env_path=None):
    """Load the sftp section of config.yaml, then apply .env overrides.

    Returns SftpConfig. A missing config.yaml is fine as long as the
    environment supplies host and username.
    """
    project_root = Path(__file__).parent
    if config_path is None:
        config_path = project_root / "config.yaml"
    if env_path is None:
        env_path = project_root / ".env"

    options = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        options.update(raw.get("sftp", raw) or {})
    else:
        log.debug("No config file at %s", config_path)

    load_dotenv(env_path)
    for env_name, option in ENV_OPTIONS.items():
        if os.environ.get(env_name):
            options[option] = os.environ[env_name]

    return SftpConfig.from_dict(options)
