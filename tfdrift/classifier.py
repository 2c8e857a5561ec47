"""
Turn decoded Terraform resources into flat IAM records.

Resource types are matched by substring against a closed table of markers.
Binding markers and member markers are checked independently: the first
binding marker that matches fires, and so does the first member marker.
Types matching neither are skipped.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from tfdrift.hierarchy import HierarchyIndex
from tfdrift.models.iam import AssetIAM, ResourceType
from tfdrift.models.state import StateInstance, StateResource
from tfdrift.resolver import resolve

log = logging.getLogger(__name__)

FOLDER_PREFIX = "folders/"


class Scope(str, Enum):
    ORGANIZATION = "organization"
    FOLDER       = "folder"
    PROJECT      = "project"


class BindingStyle(str, Enum):
    BINDING = "binding"   # one role, many members
    MEMBER  = "member"    # one role, one member


@dataclass(frozen=True)
class Rule:
    marker: str
    style: BindingStyle
    scope: Scope


# Order matters within each style.
BINDING_RULES: Tuple[Rule, ...] = (
    Rule("organization_iam_binding", BindingStyle.BINDING, Scope.ORGANIZATION),
    Rule("folder_iam_binding",       BindingStyle.BINDING, Scope.FOLDER),
    Rule("project_iam_binding",      BindingStyle.BINDING, Scope.PROJECT),
)
MEMBER_RULES: Tuple[Rule, ...] = (
    Rule("organization_iam_member",  BindingStyle.MEMBER,  Scope.ORGANIZATION),
    Rule("folder_iam_member",        BindingStyle.MEMBER,  Scope.FOLDER),
    Rule("project_iam_member",       BindingStyle.MEMBER,  Scope.PROJECT),
)


# --------------------------------------------------------- Parent reference

@dataclass(frozen=True)
class OrganizationParent:
    pass


@dataclass(frozen=True)
class FolderParent:
    raw_id: str


@dataclass(frozen=True)
class ProjectParent:
    raw_id: str


Parent = Union[OrganizationParent, FolderParent, ProjectParent]


def parent_of(scope: Scope, instance: StateInstance) -> Parent:
    if scope is Scope.ORGANIZATION:
        return OrganizationParent()
    if scope is Scope.FOLDER:
        raw = instance.folder or ""
        if raw.startswith(FOLDER_PREFIX):
            raw = raw[len(FOLDER_PREFIX):]
        return FolderParent(raw)
    if scope is Scope.PROJECT:
        return ProjectParent(instance.project or "")
    raise ValueError(f"unhandled scope: {scope!r}")


def _first_match(resource_type: str, rules: Iterable[Rule]) -> Optional[Rule]:
    for rule in rules:
        if rule.marker in resource_type:
            return rule
    return None


def rules_for(resource_type: str) -> List[Rule]:
    """The rules that fire for a resource type: at most one binding, one member."""
    matched = [
        _first_match(resource_type, BINDING_RULES),
        _first_match(resource_type, MEMBER_RULES),
    ]
    return [r for r in matched if r is not None]


class Classifier:
    """
    Emits AssetIAM records for recognized IAM resources.

    The hierarchy index is read-only here; sharing one classifier across
    workers is safe.
    """

    def __init__(self, organization_id: str, index: Optional[HierarchyIndex] = None):
        self.organization_id = organization_id
        self.index = index if index is not None else HierarchyIndex()

    def _resolve_parent(self, parent: Parent) -> Tuple[str, ResourceType]:
        if isinstance(parent, OrganizationParent):
            return self.organization_id, ResourceType.ORGANIZATION
        if isinstance(parent, (FolderParent, ProjectParent)):
            return resolve(self.index, parent.raw_id)
        raise TypeError(f"unhandled parent reference: {parent!r}")

    def _apply(self, rule: Rule, instances: Iterable[StateInstance]) -> List[AssetIAM]:
        iams: List[AssetIAM] = []
        for inst in instances:
            resource_id, resource_type = self._resolve_parent(parent_of(rule.scope, inst))
            if rule.style is BindingStyle.BINDING:
                members: Iterable[str] = inst.members
            else:
                members = (inst.member or "",)
            for m in members:
                if not m or not inst.role:
                    log.warning(
                        "skipping %s grant with missing member or role (instance id %r)",
                        rule.marker, inst.id,
                    )
                    continue
                iams.append(AssetIAM(
                    member=m,
                    role=inst.role,
                    resource_id=resource_id,
                    resource_type=resource_type,
                ))
        return iams

    def classify_resource(self, resource: StateResource) -> List[AssetIAM]:
        rules = rules_for(resource.type)
        if not rules:
            log.debug("skipping untracked resource type %s", resource.type)
            return []
        iams: List[AssetIAM] = []
        for rule in rules:
            iams.extend(self._apply(rule, resource.instances))
        return iams

    def classify(self, resources: Iterable[StateResource]) -> List[AssetIAM]:
        iams: List[AssetIAM] = []
        for r in resources:
            iams.extend(self.classify_resource(r))
        return iams


def classify(
    resources: Iterable[StateResource],
    organization_id: str,
    index: Optional[HierarchyIndex] = None,
) -> List[AssetIAM]:
    return Classifier(organization_id, index).classify(resources)
