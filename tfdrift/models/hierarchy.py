from dataclasses import dataclass
from typing import Optional

from tfdrift.models.iam import ResourceType


@dataclass(frozen=True)
class HierarchyNode:
    id: str                       # numeric cloud ID, e.g. "123456789"
    name: str                     # not unique across node types
    node_type: ResourceType       # ORGANIZATION, FOLDER or PROJECT
    parent_id: Optional[str] = None
