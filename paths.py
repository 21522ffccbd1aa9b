"""Remote path helpers — root normalization and prefixing."""

import posixpath
import re

SEPARATOR = "/"

_REPEATED_SEPARATORS = re.compile(r"/{2,}")


def normalize_root(root):
    """Return root with exactly one trailing separator, or "" when unset."""
    if not root:
        return ""
    root = _REPEATED_SEPARATORS.sub(SEPARATOR, root)
    return root.rstrip(SEPARATOR) + SEPARATOR


def prefix(root, path):
    """Resolve a caller path against the normalized root.

    Leading separators on path are dropped and repeated separators
    collapsed, so "a", "/a" and "//a" all resolve to the same remote path.
    """
    path = _REPEATED_SEPARATORS.sub(SEPARATOR, path or "")
    return root + path.lstrip(SEPARATOR)


def dirname(path):
    """Parent of path, "" for top-level entries."""
    parent = posixpath.dirname(path.rstrip(SEPARATOR))
    return "" if parent in (".", SEPARATOR) else parent
