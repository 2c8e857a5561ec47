from dataclasses import dataclass
from enum import Enum

# Downstream drift comparison matches on these exact strings.
UNKNOWN_PARENT_ID = "UNKNOWN_PARENT_ID"
UNKNOWN_PARENT_TYPE = "UNKNOWN_PARENT_TYPE"


class ResourceType(str, Enum):
    ORGANIZATION = "Organization"
    FOLDER       = "Folder"
    PROJECT      = "Project"
    UNKNOWN      = UNKNOWN_PARENT_TYPE


@dataclass(frozen=True)
class AssetIAM:
    member: str
    role: str
    resource_id: str              # hierarchy ID, organization ID or UNKNOWN_PARENT_ID
    resource_type: ResourceType

    def to_dict(self) -> dict:
        return {
            "member": self.member,
            "role": self.role,
            "resource_id": self.resource_id,
            "resource_type": self.resource_type.value,
        }
