"""Exception taxonomy for connection setup and session failures."""


class SftpError(RuntimeError):
    """Base class for every error raised by the adapter."""


class ConfigurationError(SftpError):
    """A required option is missing or an option value is not recognised."""


class CredentialError(SftpError):
    """Key material could not be read, parsed or decrypted."""


class HostUnreachableError(SftpError):
    """The server could not be reached or did not present a host key."""


class HostVerificationError(SftpError):
    """The server host key does not match the configured fingerprint."""


class AuthenticationError(SftpError):
    """Login was rejected after every allowed credential was tried."""


class InvalidRootError(SftpError):
    """The configured root directory cannot be entered."""


class ConnectionLostError(SftpError):
    """The transport died between or during requests."""
