"""Paramiko-backed SFTP transport — one blocking request channel per session."""

import functools
import io
import logging
import posixpath
import socket
import stat

import paramiko
from paramiko.agent import AgentRequestHandler

from auth import Agent, PrivateKey
from errors import ConnectionLostError, HostUnreachableError

log = logging.getLogger(__name__)

# SSH_FILEXFER_TYPE_* codes
TYPE_REGULAR = 1
TYPE_DIRECTORY = 2
TYPE_SYMLINK = 3
TYPE_SPECIAL = 4
TYPE_UNKNOWN = 5


def file_type(mode):
    """Map an st_mode to the SFTP file type code."""
    if mode is None:
        return TYPE_UNKNOWN
    if stat.S_ISREG(mode):
        return TYPE_REGULAR
    if stat.S_ISDIR(mode):
        return TYPE_DIRECTORY
    if stat.S_ISLNK(mode):
        return TYPE_SYMLINK
    return TYPE_SPECIAL


def raw_entry(attrs, filename=None):
    """Flatten paramiko SFTPAttributes into a raw listing/stat dict."""
    return {
        "filename": filename or getattr(attrs, "filename", None),
        "type": file_type(attrs.st_mode),
        "size": attrs.st_size,
        "mtime": attrs.st_mtime,
        "atime": attrs.st_atime,
        "uid": attrs.st_uid,
        "gid": attrs.st_gid,
        "permissions": attrs.st_mode,
    }


def sftp_request(method):
    """Run one SFTP request; status errors become False, dead channels raise."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if not self.is_connected():
            raise ConnectionLostError(f"SFTP session to {self.host}:{self.port} is not connected")
        try:
            return method(self, *args, **kwargs)
        except (EOFError, paramiko.SSHException) as e:
            raise ConnectionLostError(f"Connection to {self.host}:{self.port} lost: {e}") from e
        except (OSError, paramiko.SFTPError) as e:
            if not self.is_connected():
                raise ConnectionLostError(
                    f"Connection to {self.host}:{self.port} lost: {e}"
                ) from e
            log.debug("%s%r failed: %s", method.__name__, args, e)
            return False
    return wrapper


class ParamikoTransport:
    """Upstream capability interface on top of paramiko.Transport/SFTPClient."""

    def __init__(self, host, port=22, timeout=10):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._transport = None
        self._sftp = None
        self._forwarding = None

    def _start(self):
        """Open the socket and run the SSH handshake once."""
        if self._transport is not None:
            return self._transport
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise HostUnreachableError(f"Could not connect to {self.host}:{self.port}: {e}") from e
        transport = paramiko.Transport(sock)
        try:
            transport.start_client(timeout=self.timeout)
        except (paramiko.SSHException, EOFError, OSError) as e:
            transport.close()
            raise HostUnreachableError(
                f"SSH handshake with {self.host}:{self.port} failed: {e}"
            ) from e
        self._transport = transport
        return transport

    def get_server_public_host_key(self):
        """OpenSSH public key line of the server, or None when unreachable.

        hostkey.fingerprint hashes the decoded body of this line, which gives
        the same MD5 digest as paramiko's PKey.get_fingerprint().
        """
        try:
            transport = self._start()
        except HostUnreachableError as e:
            log.warning("%s", e)
            return None
        key = transport.get_remote_server_key()
        return f"{key.get_name()} {key.get_base64()}"

    def login(self, username, credential):
        """Authenticate and open the SFTP channel. Returns False when rejected."""
        transport = self._start()
        try:
            if isinstance(credential, Agent):
                self._auth_agent(transport, username, credential.handle)
            elif isinstance(credential, PrivateKey):
                transport.auth_publickey(username, credential.key)
            else:
                transport.auth_password(username, credential.secret)
        except paramiko.AuthenticationException as e:
            log.debug("Authentication as %s rejected: %s", username, e)
            return False
        except (paramiko.SSHException, EOFError, OSError) as e:
            raise ConnectionLostError(f"Connection to {self.host}:{self.port} lost: {e}") from e
        if not transport.is_authenticated():
            return False
        self._sftp = paramiko.SFTPClient.from_transport(transport)
        return True

    def _auth_agent(self, transport, username, agent):
        for key in agent.get_keys():
            try:
                transport.auth_publickey(username, key)
            except paramiko.AuthenticationException:
                log.debug("Agent key %s rejected", key.get_name())
                continue
            if transport.is_authenticated():
                return
        raise paramiko.AuthenticationException("No agent key was accepted")

    def enable_agent_forwarding(self):
        """Forward the local agent over a session channel."""
        try:
            channel = self._transport.open_session()
            self._forwarding = AgentRequestHandler(channel)
        except (paramiko.SSHException, EOFError, OSError) as e:
            log.warning("Agent forwarding to %s failed: %s", self.host, e)
            return False
        return True

    def is_connected(self):
        return (
            self._sftp is not None
            and self._transport is not None
            and self._transport.is_active()
        )

    def ping(self):
        """Round-trip a no-op request to prove the channel is alive."""
        if not self.is_connected():
            return False
        try:
            self._sftp.normalize(".")
        except (EOFError, paramiko.SSHException, OSError) as e:
            log.debug("Ping to %s failed: %s", self.host, e)
            return False
        return True

    def disconnect(self):
        if self._forwarding is not None:
            self._forwarding.close()
            self._forwarding = None
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    @sftp_request
    def chdir(self, path):
        self._sftp.chdir(path)
        return True

    @sftp_request
    def pwd(self):
        return self._sftp.getcwd() or self._sftp.normalize(".")

    @sftp_request
    def stat(self, path):
        return raw_entry(self._sftp.stat(path), posixpath.basename(path.rstrip("/")))

    @sftp_request
    def rawlist(self, path):
        """Map of filename → raw entry for one directory."""
        return {attrs.filename: raw_entry(attrs) for attrs in self._sftp.listdir_attr(path or ".")}

    @sftp_request
    def get(self, path, sink=None):
        """File contents as bytes, or True after copying them into sink."""
        if sink is not None:
            self._sftp.getfo(path, sink)
            return True
        buf = io.BytesIO()
        self._sftp.getfo(path, buf)
        return buf.getvalue()

    @sftp_request
    def put(self, path, data):
        """Upload str, bytes or a readable file object."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if isinstance(data, bytes):
            data = io.BytesIO(data)
        self._sftp.putfo(data, path)
        return True

    @sftp_request
    def delete(self, path, recursive=False):
        if recursive:
            self._rmtree(path)
        else:
            self._sftp.remove(path)
        return True

    def _rmtree(self, path):
        for attrs in self._sftp.listdir_attr(path):
            child = posixpath.join(path, attrs.filename)
            if stat.S_ISDIR(attrs.st_mode or 0):
                self._rmtree(child)
            else:
                self._sftp.remove(child)
        self._sftp.rmdir(path)

    @sftp_request
    def rename(self, old, new):
        self._sftp.rename(old, new)
        return True

    @sftp_request
    def mkdir(self, path, mode=0o755, recursive=False):
        """Create path; with recursive, missing parents are created too."""
        if not recursive:
            self._sftp.mkdir(path, mode)
            return True
        current = "/" if path.startswith("/") else ""
        for part in [p for p in path.split("/") if p]:
            current = posixpath.join(current, part) if current else part
            try:
                self._sftp.stat(current)
            except IOError:
                self._sftp.mkdir(current, mode)
        return True

    @sftp_request
    def chmod(self, mode, path):
        self._sftp.chmod(path, mode)
        return True
