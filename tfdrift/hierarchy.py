"""
In-memory index over the organization -> folder -> project hierarchy.

The index is immutable once built. Callers that refresh the hierarchy build a
new index and swap the reference, so readers resolving IDs never observe a
half-built state.
"""
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml

from tfdrift.errors import HierarchyError
from tfdrift.models.hierarchy import HierarchyNode
from tfdrift.models.iam import ResourceType

log = logging.getLogger(__name__)

NodeSource = Union[Mapping[str, HierarchyNode], Iterable[HierarchyNode]]

_EMPTY: Mapping[str, HierarchyNode] = MappingProxyType({})


def _nodes(source: Optional[NodeSource]) -> Iterable[HierarchyNode]:
    if source is None:
        return ()
    if isinstance(source, Mapping):
        return source.values()
    return source


def merge(*sources: Optional[NodeSource]) -> Dict[str, HierarchyNode]:
    """Merge nodes into one ID-keyed dict. Later sources win on ID collision."""
    merged: Dict[str, HierarchyNode] = {}
    for source in sources:
        for node in _nodes(source):
            prior = merged.get(node.id)
            if prior is not None and prior.node_type != node.node_type:
                log.warning(
                    "hierarchy ID %s is shared by %s %r and %s %r; keeping the %s",
                    node.id, prior.node_type.value, prior.name,
                    node.node_type.value, node.name, node.node_type.value,
                )
            merged[node.id] = node
    return merged


def by_name(source: Optional[NodeSource]) -> Dict[str, HierarchyNode]:
    return {node.name: node for node in _nodes(source)}


@dataclass(frozen=True)
class HierarchyIndex:
    by_id: Mapping[str, HierarchyNode] = field(default_factory=lambda: _EMPTY)
    folders_by_name: Mapping[str, HierarchyNode] = field(default_factory=lambda: _EMPTY)
    projects_by_name: Mapping[str, HierarchyNode] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def build(
        cls,
        folders: Optional[NodeSource] = None,
        projects: Optional[NodeSource] = None,
    ) -> "HierarchyIndex":
        # Materialize once so generators are not consumed twice.
        folder_nodes = tuple(_nodes(folders))
        project_nodes = tuple(_nodes(projects))
        index = cls(
            by_id=MappingProxyType(merge(folder_nodes, project_nodes)),
            folders_by_name=MappingProxyType(by_name(folder_nodes)),
            projects_by_name=MappingProxyType(by_name(project_nodes)),
        )
        log.debug(
            "built hierarchy index: %d IDs, %d folder names, %d project names",
            len(index.by_id), len(index.folders_by_name), len(index.projects_by_name),
        )
        return index

    def __len__(self) -> int:
        return len(self.by_id)


# --------------------------------------------------------- Snapshot files

_SECTIONS = (("folders", ResourceType.FOLDER), ("projects", ResourceType.PROJECT))


def _node_from_entry(entry: Any, node_type: ResourceType, where: str) -> HierarchyNode:
    if not isinstance(entry, dict):
        raise HierarchyError(f"{where}: expected a mapping, got {type(entry).__name__}")
    node_id = entry.get("id")
    name = entry.get("name")
    if node_id is None or name is None:
        raise HierarchyError(f"{where}: 'id' and 'name' are required")
    parent = entry.get("parent")
    return HierarchyNode(
        id=str(node_id),
        name=str(name),
        node_type=node_type,
        parent_id=str(parent) if parent is not None else None,
    )


def parse_hierarchy(
    data: Any, source: str = "<hierarchy>"
) -> Tuple[Dict[str, HierarchyNode], Dict[str, HierarchyNode]]:
    """
    Turn a decoded snapshot document into (folders, projects), each keyed by ID.

    The organization entry, if present, is not part of either map.
    """
    if data is None:
        return {}, {}
    if not isinstance(data, dict):
        raise HierarchyError(f"{source}: top level must be a mapping")

    result = []
    for key, node_type in _SECTIONS:
        entries = data.get(key) or []
        if not isinstance(entries, list):
            raise HierarchyError(f"{source}: '{key}' must be a list")
        nodes: Dict[str, HierarchyNode] = {}
        for i, entry in enumerate(entries):
            node = _node_from_entry(entry, node_type, f"{source}: {key}[{i}]")
            nodes[node.id] = node
        result.append(nodes)
    return result[0], result[1]


def load_hierarchy(
    path: str,
) -> Tuple[Dict[str, HierarchyNode], Dict[str, HierarchyNode]]:
    """Load a YAML or JSON hierarchy snapshot from disk."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise HierarchyError(f"cannot read hierarchy snapshot {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise HierarchyError(f"malformed hierarchy snapshot {path}: {exc}") from exc
    folders, projects = parse_hierarchy(data, path)
    log.info("loaded %d folders and %d projects from %s", len(folders), len(projects), path)
    return folders, projects
