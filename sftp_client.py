"""SFTP session lifecycle — connect, verify host, login, root, disconnect."""

import logging
from dataclasses import dataclass
from enum import Enum

import paramiko

import auth
import hostkey
import paths
from errors import AuthenticationError, ConnectionLostError, InvalidRootError, SftpError
from transport import ParamikoTransport

log = logging.getLogger(__name__)


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    ROOTED = "rooted"
    ACTIVE = "active"


@dataclass
class Session:
    """One transport plus its authenticated, rooted login."""

    transport: object
    state: SessionState = SessionState.DISCONNECTED
    credential: object = None
    agent_forwarding: bool = False


class SessionManager:
    """Owns the single session of one adapter instance.

    transport injects a pre-built handle (tests, pooling); otherwise
    transport_factory(host, port, timeout) builds one per connect.
    """

    def __init__(self, config, transport=None, transport_factory=None):
        self.config = config
        self.root = paths.normalize_root(config.root)
        self._transport = transport
        self._transport_factory = transport_factory or ParamikoTransport
        self._agent = config.agent
        self._session = None

    @property
    def session(self):
        return self._session

    @property
    def agent(self):
        """Agent handle, built on first use and kept for reconnects."""
        if self._agent is None:
            self._agent = paramiko.Agent()
        return self._agent

    def prefix(self, path):
        return paths.prefix(self.root, path)

    def connect(self):
        """Open, verify, authenticate and root a new session."""
        config = self.config
        if self._transport is None:
            self._transport = self._transport_factory(config.host, config.port, config.timeout)
        session = Session(self._transport, SessionState.CONNECTING)
        self._session = session
        log.info("Connecting to %s:%s as %s", config.host, config.port, config.username)
        try:
            if config.host_fingerprint:
                blob = session.transport.get_server_public_host_key()
                hostkey.verify(blob, config.host_fingerprint)

            credential = auth.resolve_credential(
                config, self.agent if config.use_agent else None
            )
            session.credential = self._login(session.transport, credential)
            session.state = SessionState.AUTHENTICATED

            if isinstance(session.credential, auth.Agent):
                session.agent_forwarding = bool(session.transport.enable_agent_forwarding())

            self._set_connection_root(session)
        except SftpError:
            self.disconnect()
            raise
        session.state = SessionState.ACTIVE
        log.info("Connected to %s:%s (root %r)", config.host, config.port, self.root or ".")
        return session

    def _login(self, transport, credential):
        """Log in, retrying once with the fallback credential if configured."""
        config = self.config
        if transport.login(config.username, credential):
            return credential
        fallback = auth.fallback_credential(config, credential)
        if fallback is not None:
            log.info(
                "Login with %s rejected for %s@%s, retrying with %s",
                auth.describe(credential), config.username, config.host, auth.describe(fallback),
            )
            if transport.login(config.username, fallback):
                return fallback
        raise AuthenticationError(
            f"Could not login with username: {config.username}, host: {config.host}"
        )

    def _set_connection_root(self, session):
        root = self.root
        if not root:
            return
        if not session.transport.chdir(root):
            raise InvalidRootError(f"Root is invalid or does not exist: {root}")
        session.state = SessionState.ROOTED
        cwd = session.transport.pwd()
        if cwd:
            self.root = paths.normalize_root(cwd)

    def disconnect(self):
        if self._transport is not None:
            self._transport.disconnect()
        if self._session is not None:
            self._session.state = SessionState.DISCONNECTED
        self._transport = None
        self._session = None

    def reconnect(self):
        self.disconnect()
        self.root = paths.normalize_root(self.config.root)
        return self.connect()

    def is_connected(self):
        """Liveness of the transport; in ping mode, probed on every call."""
        if self._transport is None:
            return False
        if self.config.use_ping_for_connectivity_check and hasattr(self._transport, "ping"):
            return bool(self._transport.ping())
        return bool(self._transport.is_connected())

    def get_connection(self):
        """The live transport, connecting or reconnecting as needed."""
        if self.is_connected():
            if self._session is None:
                self._session = Session(self._transport, SessionState.ACTIVE)
            return self._transport
        if self._session is not None and not self.config.auto_reconnect:
            raise ConnectionLostError(
                f"Connection to {self.config.host}:{self.config.port} was lost"
            )
        if self._session is not None:
            log.warning("Connection to %s lost, reconnecting", self.config.host)
            self.reconnect()
        else:
            self.connect()
        return self._transport
