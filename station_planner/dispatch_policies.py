"""
Dispatch policies.

A policy only matters here through requires_service_zones: under a
zone-based policy, dragging a station re-derives its service zone.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class DispatchPolicy:
    id: str
    name: str
    description: str = ""
    requires_service_zones: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "requiresServiceZones": self.requires_service_zones,
        }


DISPATCH_POLICIES: Tuple[DispatchPolicy, ...] = (
    DispatchPolicy(
        id="nearest",
        name="Nearest",
        description="Dispatch the nearest available unit to the incident",
        requires_service_zones=False,
    ),
    DispatchPolicy(
        id="firebeats",
        name="Firebeats",
        description="Dispatch units based on predefined service zones",
        requires_service_zones=True,
    ),
)

DEFAULT_POLICY_ID = "nearest"


def get_dispatch_policy(policy_id: Optional[str]) -> Optional[DispatchPolicy]:
    """Policy with the given id, or None."""
    for policy in DISPATCH_POLICIES:
        if policy.id == policy_id:
            return policy
    return None
