"""
Map a raw parent identifier from Terraform state onto a hierarchy node.

Numeric identifiers are looked up by ID only. Anything else is treated as a
name and tried against folders first, then projects. A miss is not an error:
the state may reference an asset deleted since the hierarchy snapshot.
"""
import logging
import re
from typing import Optional, Tuple

from tfdrift.hierarchy import HierarchyIndex
from tfdrift.models.hierarchy import HierarchyNode
from tfdrift.models.iam import UNKNOWN_PARENT_ID, ResourceType

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def is_numeric_id(raw_id: str) -> bool:
    """True if raw_id is a base-10 integer that fits in a signed 64-bit int."""
    if not _INT_RE.fullmatch(raw_id):
        return False
    return _INT64_MIN <= int(raw_id) <= _INT64_MAX


def find(index: HierarchyIndex, raw_id: str) -> Optional[HierarchyNode]:
    if is_numeric_id(raw_id):
        # Never retried as a name.
        return index.by_id.get(raw_id)
    node = index.folders_by_name.get(raw_id)
    if node is None:
        node = index.projects_by_name.get(raw_id)
    return node


def resolve(index: HierarchyIndex, raw_id: Optional[str]) -> Tuple[str, ResourceType]:
    """Return (resource_id, resource_type), or the unknown-parent pair on a miss."""
    node = find(index, raw_id) if raw_id else None
    if node is None:
        log.debug("no hierarchy match for parent %r", raw_id)
        return UNKNOWN_PARENT_ID, ResourceType.UNKNOWN
    return node.id, node.node_type
