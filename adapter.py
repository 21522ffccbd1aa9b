"""Filesystem operations over a managed SFTP session."""

import logging
import mimetypes
import shutil
import tempfile

import listing
import paths
from listing import Visibility
from sftp_client import SessionManager

log = logging.getLogger(__name__)


def guess_mimetype(path, contents):
    """Mimetype from the extension, else text/plain vs octet-stream by content."""
    mimetype, _ = mimetypes.guess_type(path)
    if mimetype:
        return mimetype
    if isinstance(contents, str):
        return "text/plain"
    try:
        contents.decode("utf-8")
    except UnicodeDecodeError:
        return "application/octet-stream"
    return "text/plain"


def _token(visibility):
    return Visibility.parse(visibility).value if visibility is not None else None


class SftpAdapter:
    """Path-based filesystem on top of one SessionManager.

    Paths are relative to the configured root. Operations return a dict
    payload on success and False when the server reports a failure.
    """

    def __init__(self, config, manager=None, transport=None):
        self.config = config
        self.manager = manager or SessionManager(config, transport=transport)

    def connect(self):
        return self.manager.connect()

    def disconnect(self):
        self.manager.disconnect()

    def is_connected(self):
        return self.manager.is_connected()

    def _connection(self):
        return self.manager.get_connection()

    def _path(self, path):
        return self.manager.prefix(path)

    def _mask(self, visibility):
        if visibility is Visibility.PUBLIC:
            return self.config.perm_public
        return self.config.perm_private

    # ---------- writes ----------

    def write(self, path, contents, visibility=None):
        visibility = _token(visibility)
        if not self.upload(path, contents, visibility):
            return False
        return {"path": path, "contents": contents, "visibility": visibility}

    def write_stream(self, path, stream, visibility=None):
        visibility = _token(visibility)
        if not self.upload(path, stream, visibility):
            return False
        return {"path": path, "visibility": visibility}

    def update(self, path, contents, visibility=None):
        return self.write(path, contents, visibility)

    def update_stream(self, path, stream, visibility=None):
        return self.write_stream(path, stream, visibility)

    def upload(self, path, contents, visibility=None):
        """Put contents (str, bytes or file object) at path."""
        if visibility is not None:
            visibility = Visibility.parse(visibility)
        connection = self._connection()
        self.ensure_directory(paths.dirname(path))
        if not connection.put(self._path(path), contents):
            log.debug("Upload of %s failed", path)
            return False
        if visibility is not None:
            self.set_visibility(path, visibility)
        return True

    def ensure_directory(self, dirname):
        if dirname and not self.has(dirname):
            self.create_dir(dirname)

    def create_dir(self, dirname):
        connection = self._connection()
        if not connection.mkdir(self._path(dirname), self.config.directory_perm, True):
            return False
        return {"path": dirname}

    # ---------- reads ----------

    def read(self, path):
        contents = self._connection().get(self._path(path))
        if contents is False:
            return False
        return {"path": path, "contents": contents}

    def read_stream(self, path):
        """Download into a temporary file, rewound and ready to read."""
        stream = tempfile.TemporaryFile()
        if self._connection().get(self._path(path), stream) is False:
            stream.close()
            return False
        stream.seek(0)
        return {"path": path, "stream": stream}

    def copy(self, path, newpath):
        """Copy by streaming through a local temporary file."""
        source = self.read_stream(path)
        if source is False:
            return False
        with source["stream"] as stream:
            return bool(self.write_stream(newpath, stream))

    def get_mimetype(self, path):
        data = self.read(path)
        if not data:
            return False
        data["mimetype"] = guess_mimetype(path, data["contents"])
        return data

    # ---------- tree changes ----------

    def delete(self, path):
        return self._connection().delete(self._path(path))

    def delete_dir(self, dirname):
        return self._connection().delete(self._path(dirname), True)

    def rename(self, path, newpath):
        return self._connection().rename(self._path(path), self._path(newpath))

    # ---------- metadata ----------

    def has(self, path):
        return self.get_metadata(path)

    def get_metadata(self, path):
        info = self._connection().stat(self._path(path))
        if info is False:
            return False
        return listing.stat_to_record(path, info, self.config.perm_public)

    def get_size(self, path):
        return self.get_metadata(path)

    def get_timestamp(self, path):
        return self.get_metadata(path)

    def get_visibility(self, path):
        info = self._connection().stat(self._path(path))
        if info is False:
            return False
        return {
            "path": path,
            "visibility": listing.visibility_for(info.get("permissions"), self.config.perm_public),
        }

    def set_visibility(self, path, visibility):
        """chmod path to the public or private mask; unknown tokens raise."""
        visibility = Visibility.parse(visibility)
        connection = self._connection()
        if not connection.chmod(self._mask(visibility), self._path(path)):
            return False
        return {"path": path, "visibility": visibility.value}

    def list_contents(self, directory="", recursive=False):
        directory = (directory or "").strip(paths.SEPARATOR)
        return listing.list_directory(self._connection(), self._path, directory, recursive)

    def download(self, path, local_path):
        """Copy a remote file to local_path. Returns False on failure."""
        source = self.read_stream(path)
        if source is False:
            return False
        with source["stream"] as stream, open(local_path, "wb") as out:
            shutil.copyfileobj(stream, out)
        return {"path": path, "local_path": str(local_path)}
