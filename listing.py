"""Listing and metadata normalization — raw SFTP entries to file records."""

import logging
from enum import Enum

from errors import ConfigurationError
from transport import TYPE_DIRECTORY

log = logging.getLogger(__name__)

TYPE_FILE = "file"
TYPE_DIR = "dir"

# Group/other read bits; listings call a file public when either is set
LISTING_PUBLIC_MASK = 0o044

_RWX = {"r": 4, "w": 2, "x": 1}


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def parse(cls, token):
        """Visibility from a "public"/"private" token, any case."""
        if isinstance(token, cls):
            return token
        try:
            return cls(str(token).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown visibility: {token}") from None


def normalize_permissions(permissions):
    """Reduce a mode to its 0o777 bits.

    Accepts an int (st_mode, type bits included) or an ls-style string
    such as "drwxr-xr-x" / "rw-r--r--".
    """
    if permissions is None:
        return 0
    if isinstance(permissions, int):
        return permissions & 0o777
    text = str(permissions).strip()
    if text.isdigit():
        return int(text, 8) & 0o777
    text = text[-9:]
    mode = 0
    for i in range(0, len(text), 3):
        triad = text[i:i + 3]
        mode = (mode << 3) | sum(_RWX.get(c, 0) for c in triad)
    return mode & 0o777


def visibility_for(permissions, mask):
    """public when any bit of mask is set in the normalized permissions."""
    if normalize_permissions(permissions) & mask:
        return Visibility.PUBLIC.value
    return Visibility.PRIVATE.value


def _record(path, raw, public_mask):
    entry_type = TYPE_DIR if raw.get("type") == TYPE_DIRECTORY else TYPE_FILE
    record = {
        "path": path,
        "timestamp": int(raw.get("mtime") or 0),
        "type": entry_type,
    }
    if entry_type == TYPE_DIR:
        return record
    record["size"] = max(int(raw.get("size") or 0), 0)
    record["visibility"] = visibility_for(raw.get("permissions"), public_mask)
    return record


def to_file_record(path, raw):
    """File record for one directory listing entry."""
    return _record(path, raw, LISTING_PUBLIC_MASK)


def stat_to_record(path, raw, perm_public):
    """File record for a single-path stat, judged against perm_public."""
    return _record(path, raw, perm_public)


def _entries(connection, prefix, directory):
    """Yield (path, raw entry) for one directory, skipping . and .."""
    listing = connection.rawlist(prefix(directory))
    if listing is False or listing is None:
        log.debug("No listing for %r", directory)
        return
    for name, raw in listing.items():
        name = str(name)
        if name in (".", ".."):
            continue
        yield (f"{directory}/{name}" if directory else name), raw


def list_directory(connection, prefix, directory="", recursive=False):
    """List directory as file records, each directory before its children.

    connection provides rawlist(); prefix maps a caller path to the remote
    path. A failed rawlist yields no entries. Recursion uses an explicit
    stack of entry iterators so depth isn't bounded by the call stack.
    """
    results = []
    stack = [_entries(connection, prefix, directory)]
    while stack:
        try:
            path, raw = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        record = to_file_record(path, raw)
        results.append(record)
        if recursive and record["type"] == TYPE_DIR:
            stack.append(_entries(connection, prefix, path))
    return results
