"""
Apparatus catalog shared by the station factory and the apparatus ledger.

The station CSV carries one count column per apparatus kind. The catalog is
the only place that lists those columns, their display labels and the unit
class each one maps to.

MODIFICATION POINT: Add new apparatus columns here (order = display order)
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .data_models import ApparatusType


@dataclass(frozen=True)
class ApparatusKind:
    """One column of the station apparatus inventory.

    Attributes:
        key: Count column name in the station CSV (also the counts-map key)
        label: Prefix for synthesized unit names ("Engine 07-2")
        apparatus_type: Unit class of apparatus synthesized from this column
    """

    key: str
    label: str
    apparatus_type: ApparatusType


APPARATUS_CATALOG: Tuple[ApparatusKind, ...] = (
    ApparatusKind("Engine_ID", "Engine", ApparatusType.ENGINE),
    ApparatusKind("Truck", "Truck", ApparatusType.LADDER),
    ApparatusKind("Rescue", "Rescue", ApparatusType.RESCUE),
    ApparatusKind("Hazard", "Hazard", ApparatusType.ENGINE),
    ApparatusKind("Squad", "Squad", ApparatusType.ENGINE),
    ApparatusKind("FAST", "FAST", ApparatusType.ENGINE),
    ApparatusKind("Medic", "Medic", ApparatusType.AMBULANCE),
    ApparatusKind("Brush", "Brush", ApparatusType.ENGINE),
    ApparatusKind("Boat", "Boat", ApparatusType.ENGINE),
    ApparatusKind("UTV", "UTV", ApparatusType.ENGINE),
    ApparatusKind("REACH", "REACH", ApparatusType.ENGINE),
    ApparatusKind("Chief", "Chief", ApparatusType.CHIEF),
)

APPARATUS_KEYS: Tuple[str, ...] = tuple(kind.key for kind in APPARATUS_CATALOG)

_BY_KEY: Dict[str, ApparatusKind] = {kind.key: kind for kind in APPARATUS_CATALOG}

# New, optimized and custom stations start with one engine and one medic unit
DEFAULT_APPARATUS_COUNTS: Dict[str, int] = {
    key: (1 if key in ("Engine_ID", "Medic") else 0) for key in APPARATUS_KEYS
}


def get_kind(key: str) -> Optional[ApparatusKind]:
    """Look up a catalog entry by count key."""
    return _BY_KEY.get(key)


def require_kind(key: str) -> ApparatusKind:
    """Look up a catalog entry, raising KeyError for keys outside the catalog."""
    kind = _BY_KEY.get(key)
    if kind is None:
        raise KeyError(f"Unknown apparatus key {key!r}; expected one of {APPARATUS_KEYS}")
    return kind


def empty_counts() -> Dict[str, int]:
    """All-zero counts map in catalog order."""
    return {key: 0 for key in APPARATUS_KEYS}


def default_counts() -> Dict[str, int]:
    """Fresh copy of the default counts map."""
    return dict(DEFAULT_APPARATUS_COUNTS)
