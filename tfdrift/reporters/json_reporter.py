"""
JSON report of extracted IAM grants.
"""
import json
from datetime import datetime, timezone
from typing import List, Sequence

from tfdrift import __version__
from tfdrift.models.iam import AssetIAM, ResourceType


def count_by_resource_type(iams: Sequence[AssetIAM]) -> dict:
    counts = {t.value: 0 for t in ResourceType}
    for i in iams:
        counts[i.resource_type.value] += 1
    return counts


def build_report(iams: List[AssetIAM], sources: Sequence[str], organization_id: str) -> str:
    report = {
        "meta": {
            "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "organization_id": organization_id,
            "sources": list(sources),
            "tool": "tfdrift",
            "version": __version__,
        },
        "summary": count_by_resource_type(iams),
        "iams": [i.to_dict() for i in iams],
    }
    return json.dumps(report, indent=2)
