"""
Object storage access for Terraform state files.

GCSStorage talks to Google Cloud Storage. LocalStorage serves the same
interface from a directory tree (one sub-directory per bucket) for offline
runs and tests.
"""
import io
import logging
import os
import posixpath
from typing import IO, List, Optional, Tuple

from google.cloud import storage as gcs

from tfdrift.errors import DownloadError, URIParseError

log = logging.getLogger(__name__)

GCS_SCHEME = "gs://"


def split_object_uri(uri: str) -> Tuple[str, str]:
    """Split gs://bucket/path/to/object into (bucket, "path/to/object")."""
    if not uri.startswith(GCS_SCHEME):
        raise URIParseError(uri, f"expected a {GCS_SCHEME} URI")
    bucket, sep, name = uri[len(GCS_SCHEME):].partition("/")
    if not bucket:
        raise URIParseError(uri, "missing bucket name")
    if not sep or not name:
        raise URIParseError(uri, "missing object name")
    return bucket, name


def object_uri(bucket: str, name: str) -> str:
    return f"{GCS_SCHEME}{bucket}/{name}"


class Storage:
    """Interface used by the engine. Subclasses implement both methods."""

    def objects_with_name(self, bucket: str, name: str) -> List[str]:
        """URIs of every object in bucket whose base name equals name."""
        raise NotImplementedError

    def download_object(
        self, bucket: str, name: str, max_bytes: Optional[int] = None
    ) -> IO[bytes]:
        """Open an object for reading. The caller closes the returned stream."""
        raise NotImplementedError


class GCSStorage(Storage):
    def __init__(self, client=None, project: Optional[str] = None):
        self._client = client
        self._project = project

    @property
    def client(self) -> gcs.Client:
        if self._client is None:
            self._client = gcs.Client(project=self._project)
        return self._client

    def objects_with_name(self, bucket: str, name: str) -> List[str]:
        try:
            blobs = list(self.client.list_blobs(bucket))
        except Exception as exc:
            raise DownloadError(bucket, None, str(exc)) from exc
        uris = [
            object_uri(bucket, b.name)
            for b in blobs
            if posixpath.basename(b.name) == name
        ]
        log.debug("found %d objects named %s in bucket %s", len(uris), name, bucket)
        return uris

    def download_object(
        self, bucket: str, name: str, max_bytes: Optional[int] = None
    ) -> IO[bytes]:
        # Ranged download: bytes past max_bytes never leave the bucket.
        end = max_bytes - 1 if max_bytes else None
        try:
            data = self.client.bucket(bucket).blob(name).download_as_bytes(end=end)
        except Exception as exc:
            raise DownloadError(bucket, name, str(exc)) from exc
        return io.BytesIO(data)


class LocalStorage(Storage):
    def __init__(self, root: str):
        self.root = root

    def _bucket_dir(self, bucket: str) -> str:
        return os.path.join(self.root, bucket)

    def objects_with_name(self, bucket: str, name: str) -> List[str]:
        base = self._bucket_dir(bucket)
        if not os.path.isdir(base):
            raise DownloadError(bucket, None, f"no such directory: {base}")
        uris = []
        for root, dirs, files in os.walk(base):
            dirs.sort()
            for fname in sorted(files):
                if fname == name:
                    rel = os.path.relpath(os.path.join(root, fname), base)
                    uris.append(object_uri(bucket, rel.replace(os.sep, "/")))
        return uris

    def download_object(
        self, bucket: str, name: str, max_bytes: Optional[int] = None
    ) -> IO[bytes]:
        path = os.path.join(self._bucket_dir(bucket), *name.split("/"))
        try:
            return open(path, "rb")
        except OSError as exc:
            raise DownloadError(bucket, name, str(exc)) from exc
