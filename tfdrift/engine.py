"""
Extract IAM grants from Terraform state files stored in object storage.

Typical use::

    parser = TerraformParser(GCSStorage(), organization_id="1234567890")
    parser.set_assets(folders, projects)
    uris = parser.state_file_uris(["my-tf-state-bucket"])
    iams = parser.process_states(uris)
"""
import logging
from typing import Iterable, List, Optional

from tfdrift.classifier import Classifier
from tfdrift.errors import DecodeError, DownloadError
from tfdrift.hierarchy import HierarchyIndex, NodeSource
from tfdrift.models.iam import AssetIAM
from tfdrift.models.state import TerraformState
from tfdrift.parsers import terraform_state
from tfdrift.storage import Storage, split_object_uri

log = logging.getLogger(__name__)

DEFAULT_STATE_FILE_NAME = "default.tfstate"


class TerraformParser:
    def __init__(
        self,
        storage: Storage,
        organization_id: str,
        max_state_bytes: int = terraform_state.DEFAULT_STATE_SIZE_LIMIT,
    ):
        if max_state_bytes <= 0:
            raise ValueError(f"max_state_bytes must be positive, got {max_state_bytes}")
        self.storage = storage
        self.organization_id = organization_id
        self.max_state_bytes = max_state_bytes
        self._index = HierarchyIndex()

    @property
    def index(self) -> HierarchyIndex:
        return self._index

    def set_assets(
        self,
        folders: Optional[NodeSource],
        projects: Optional[NodeSource],
    ) -> None:
        """Replace the hierarchy used to resolve folder and project parents."""
        # Build fully, then publish with a single assignment.
        self._index = HierarchyIndex.build(folders, projects)

    def state_file_uris(
        self,
        buckets: Iterable[str],
        state_file_name: str = DEFAULT_STATE_FILE_NAME,
    ) -> List[str]:
        """Find all Terraform state files in the given buckets."""
        uris: List[str] = []
        for bucket in buckets:
            try:
                found = self.storage.objects_with_name(bucket, state_file_name)
            except DownloadError as exc:
                raise DownloadError(
                    bucket, None, f"failed to determine state files: {exc.reason}"
                ) from exc
            log.info("bucket %s: %d state file(s)", bucket, len(found))
            uris.extend(found)
        return uris

    def parse_state(self, state: TerraformState) -> List[AssetIAM]:
        # Capture the index once so a concurrent set_assets cannot split a file.
        return Classifier(self.organization_id, self._index).classify(state.resources)

    def load_state(self, uri: str) -> TerraformState:
        bucket, name = split_object_uri(uri)
        stream = self.storage.download_object(bucket, name, max_bytes=self.max_state_bytes)
        with stream:
            try:
                return terraform_state.decode(stream, self.max_state_bytes)
            except DecodeError as exc:
                raise DecodeError(exc.reason, uri=uri) from exc

    def process_states(self, uris: Iterable[str]) -> List[AssetIAM]:
        """
        Return the IAM grants declared in the given state files, in order.

        The first URI, download or decode failure aborts the whole batch;
        nothing partial is returned.
        """
        iams: List[AssetIAM] = []
        for uri in uris:
            state = self.load_state(uri)
            found = self.parse_state(state)
            log.info("%s: %d IAM grant(s) from %d resource(s)", uri, len(found), len(state.resources))
            iams.extend(found)
        return iams
