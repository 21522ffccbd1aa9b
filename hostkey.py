"""Server host key fingerprinting and verification."""

import base64
import binascii
import hashlib
import logging

from errors import HostUnreachableError, HostVerificationError

log = logging.getLogger(__name__)


def fingerprint(blob):
    """MD5 fingerprint of a public host key as lowercase aa:bb:... hex.

    blob is an OpenSSH public key line ("ssh-rsa AAAA... comment") or just
    its base64 body, as str or bytes.
    """
    if isinstance(blob, bytes):
        blob = blob.decode("ascii", errors="replace")
    parts = blob.split()
    if not parts:
        raise HostVerificationError("Server host key is empty")
    body = parts[1] if len(parts) > 1 else parts[0]
    try:
        raw = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HostVerificationError(f"Server host key is not valid base64: {e}") from e
    digest = hashlib.md5(raw).hexdigest()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def _clean(expected):
    expected = expected.strip().lower()
    if expected.startswith("md5:"):
        expected = expected[4:]
    return expected


def verify(blob, expected):
    """Check the server key against the configured fingerprint.

    Raises HostUnreachableError when no key was retrieved and
    HostVerificationError on a mismatch. Returns True otherwise.
    """
    if not blob:
        raise HostUnreachableError("Could not retrieve the server public host key")
    actual = fingerprint(blob)
    if actual != _clean(expected):
        log.error("Host key mismatch: expected %s, got %s", expected, actual)
        raise HostVerificationError(
            f"The authenticity of the host can't be established: fingerprint {actual} "
            f"does not match {expected}"
        )
    log.debug("Host key fingerprint verified: %s", actual)
    return True
