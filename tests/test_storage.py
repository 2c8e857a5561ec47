"""
Storage tests — URI splitting, local backend and GCS backend (mocked client).
"""
import os
from unittest.mock import MagicMock

import pytest

from tfdrift.errors import DownloadError, URIParseError

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")
STATES = os.path.join(FIXTURES, "states")


class TestSplitObjectUri:
    def setup_method(self):
        from tfdrift.storage import split_object_uri
        self.split = split_object_uri

    def test_simple(self):
        assert self.split("gs://bucket/default.tfstate") == ("bucket", "default.tfstate")

    def test_nested_object(self):
        assert self.split("gs://b/env/prod/default.tfstate") == ("b", "env/prod/default.tfstate")

    @pytest.mark.parametrize("uri", [
        "s3://bucket/key",
        "bucket/key",
        "gs://",
        "gs:///key",
        "gs://bucket",
        "gs://bucket/",
        "",
    ])
    def test_invalid(self, uri):
        with pytest.raises(URIParseError) as exc:
            self.split(uri)
        assert exc.value.uri == uri


class TestLocalStorage:
    def setup_method(self):
        from tfdrift.storage import LocalStorage
        self.storage = LocalStorage(STATES)

    def test_objects_with_name(self):
        assert self.storage.objects_with_name("infra-state", "default.tfstate") == [
            "gs://infra-state/org/default.tfstate",
            "gs://infra-state/teams/payments/default.tfstate",
        ]

    def test_objects_with_name_exact_basename(self):
        assert self.storage.objects_with_name("infra-state", "tfstate") == []

    def test_missing_bucket(self):
        with pytest.raises(DownloadError) as exc:
            self.storage.objects_with_name("nope", "default.tfstate")
        assert exc.value.bucket == "nope"

    def test_download(self):
        with self.storage.download_object("infra-state", "org/default.tfstate") as fh:
            assert fh.read(1) == b"{"

    def test_download_missing(self):
        with pytest.raises(DownloadError) as exc:
            self.storage.download_object("infra-state", "missing/default.tfstate")
        assert exc.value.name == "missing/default.tfstate"


class TestGCSStorage:
    def setup_method(self):
        from tfdrift.storage import GCSStorage
        self.client = MagicMock()
        self.storage = GCSStorage(client=self.client)

    def _blob(self, name):
        b = MagicMock()
        b.name = name
        return b

    def test_objects_with_name_filters_basename(self):
        self.client.list_blobs.return_value = [
            self._blob("a/default.tfstate"),
            self._blob("a/default.tfstate.backup"),
            self._blob("default.tfstate"),
            self._blob("b/c/default.tfstate"),
            self._blob("b/not-default.tfstate"),
        ]
        assert self.storage.objects_with_name("tf", "default.tfstate") == [
            "gs://tf/a/default.tfstate",
            "gs://tf/default.tfstate",
            "gs://tf/b/c/default.tfstate",
        ]
        self.client.list_blobs.assert_called_once_with("tf")

    def test_list_failure_wrapped(self):
        self.client.list_blobs.side_effect = RuntimeError("403 Forbidden")
        with pytest.raises(DownloadError, match="403 Forbidden") as exc:
            self.storage.objects_with_name("tf", "default.tfstate")
        assert exc.value.bucket == "tf"

    def test_download_is_ranged(self):
        blob = self.client.bucket.return_value.blob.return_value
        blob.download_as_bytes.return_value = b'{"resources": []}'
        fh = self.storage.download_object("tf", "env/default.tfstate", max_bytes=1024)
        assert fh.read() == b'{"resources": []}'
        self.client.bucket.assert_called_once_with("tf")
        self.client.bucket.return_value.blob.assert_called_once_with("env/default.tfstate")
        blob.download_as_bytes.assert_called_once_with(end=1023)

    def test_download_unbounded(self):
        blob = self.client.bucket.return_value.blob.return_value
        blob.download_as_bytes.return_value = b"{}"
        self.storage.download_object("tf", "default.tfstate")
        blob.download_as_bytes.assert_called_once_with(end=None)

    def test_download_failure_wrapped(self):
        blob = self.client.bucket.return_value.blob.return_value
        blob.download_as_bytes.side_effect = RuntimeError("404 No such object")
        with pytest.raises(DownloadError) as exc:
            self.storage.download_object("tf", "default.tfstate")
        assert exc.value.bucket == "tf"
        assert exc.value.name == "default.tfstate"
        assert "gs://tf/default.tfstate" in str(exc.value)
