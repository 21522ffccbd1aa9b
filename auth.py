"""Credential selection — agent, private key or password, in that order."""

import io
import logging
import os
from dataclasses import dataclass

import paramiko

from errors import CredentialError

log = logging.getLogger(__name__)

# Key classes tried in order when parsing private key text
KEY_CLASSES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


@dataclass(frozen=True)
class Password:
    secret: str

    def __repr__(self):
        return "Password(secret=***)"


@dataclass(frozen=True)
class PrivateKey:
    key: paramiko.PKey

    def __repr__(self):
        return f"PrivateKey({self.key.get_name()})"


@dataclass(frozen=True)
class Agent:
    handle: object


def describe(credential):
    """Short label for log messages; never includes secret material."""
    return {Password: "password", PrivateKey: "private key", Agent: "agent"}[type(credential)]


def load_private_key(material, passphrase=None):
    """Parse key text, or the contents of the file it names, into a PKey.

    Raises CredentialError when the file can't be read or no supported key
    type accepts the material with the given passphrase.
    """
    if isinstance(material, bytes):
        material = material.decode("utf-8", errors="replace")
    path = os.path.expanduser(material) if "\n" not in material else None
    if path and os.path.isfile(path):
        try:
            with open(path) as f:
                material = f.read()
        except OSError as e:
            raise CredentialError(f"Could not read private key file: {e}") from e

    failures = []
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(material), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise CredentialError("Private key is encrypted and no passphrase was given") from e
        except (paramiko.SSHException, ValueError, TypeError) as e:
            failures.append(f"{key_class.__name__}: {e}")
    log.debug("Private key rejected by every parser: %s", "; ".join(failures))
    raise CredentialError("Could not load private key: malformed material or wrong passphrase")


def resolve_credential(config, agent=None):
    """Pick the credential for one login attempt.

    Priority: agent (when use_agent is set), private key, password.
    agent is the cached handle owned by the caller; one is built when
    it's missing.
    """
    if config.use_agent:
        if agent is None:
            agent = config.agent or paramiko.Agent()
        return Agent(agent)
    if config.private_key:
        return PrivateKey(load_private_key(config.private_key, config.key_passphrase))
    if config.password is not None:
        return Password(config.password)
    raise CredentialError(
        f"No password, private key or agent configured for {config.username}@{config.host}"
    )


def fallback_credential(config, primary):
    """Second candidate tried once when the primary login is rejected."""
    if not config.login_fallback:
        return None
    if isinstance(primary, Agent) and config.private_key:
        return PrivateKey(load_private_key(config.private_key, config.key_passphrase))
    if isinstance(primary, (Agent, PrivateKey)) and config.password is not None:
        return Password(config.password)
    return None
