from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class StateInstance:
    id: Optional[str] = None
    members: Tuple[str, ...] = ()     # binding resource types
    member: Optional[str] = None      # member resource types
    folder: Optional[str] = None      # folder-scoped only, may be "folders/<id>"
    project: Optional[str] = None     # project-scoped only
    role: Optional[str] = None


@dataclass(frozen=True)
class StateResource:
    type: str
    name: str = ""
    instances: Tuple[StateInstance, ...] = ()


@dataclass(frozen=True)
class TerraformState:
    resources: Tuple[StateResource, ...] = field(default_factory=tuple)
    version: Optional[int] = None
    terraform_version: Optional[str] = None
