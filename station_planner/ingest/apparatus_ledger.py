#!/usr/bin/env python3
"""
Apparatus Ledger - per-station equipment counts with baseline tracking

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Turn the apparatus count columns of a station row into
(1) a list of individually named Apparatus and (2) a counts map, and track
live count edits against the counts as loaded.

Key Features:
1. Count extraction over the shared APPARATUS_CATALOG
2. Deterministic unit naming ("Engine 07", "Engine 07-2")
3. Write-once baseline per station for modification detection
4. Change notifications to registered listeners (onApparatusChange)

Navigation Guide:
- extract_apparatus_counts / synthesize_apparatus: stateless helpers
- ApparatusLedger: session-lived store

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging
import re

from station_planner.models import (
    APPARATUS_CATALOG,
    Apparatus,
    ApparatusStatus,
    ApparatusType,
    empty_counts,
    require_kind,
)

logger = logging.getLogger(__name__)

ApparatusCounts = Dict[str, int]
ApparatusListener = Callable[[str, List[Apparatus]], None]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# ═══════════════════════════════════════════════════════════════════════════
# 🧮 STATELESS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def parse_count(value: Any) -> int:
    """
    Parse an apparatus count cell.

    Takes the leading integer ("2", "2.0", "3 units"); anything else is 0.
    Negative counts are clamped to 0.
    """
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(0, int(match.group(1)))


def has_apparatus_columns(record: Mapping[str, str]) -> bool:
    """True if the row carries at least one catalog count column."""
    return any(kind.key in record for kind in APPARATUS_CATALOG)


def extract_apparatus_counts(record: Mapping[str, str]) -> ApparatusCounts:
    """
    Extract one count per catalog key from a raw station row.

    Args:
        record: Header-keyed CSV row

    Returns:
        Counts map covering every catalog key, in catalog order
    """
    counts = empty_counts()
    for kind in APPARATUS_CATALOG:
        counts[kind.key] = parse_count(record.get(kind.key))
    return counts


def pad_station_number(station_number: int) -> str:
    """Zero-pad a station number to two digits."""
    return str(station_number).zfill(2)


def synthesize_apparatus(
    counts: Mapping[str, int], station_id: str, station_number: int
) -> List[Apparatus]:
    """
    Expand a counts map into individually identified apparatus.

    A count of n for a kind yields n entries named "{label} {NN}", suffixed
    "-{i}" when n > 1.

    Args:
        counts: Counts map keyed by catalog key
        station_id: Owning station id (part of each apparatus id)
        station_number: Owning station number (part of each name)

    Returns:
        Apparatus list in catalog order
    """
    padded = pad_station_number(station_number)
    apparatus: List[Apparatus] = []
    for kind in APPARATUS_CATALOG:
        count = counts.get(kind.key, 0)
        for i in range(1, count + 1):
            suffix = f"-{i}" if count > 1 else ""
            apparatus.append(
                Apparatus(
                    id=f"{kind.key.lower()}-{station_id}-{i}",
                    type=kind.apparatus_type,
                    name=f"{kind.label} {padded}{suffix}",
                    status=ApparatusStatus.AVAILABLE,
                    crew=1,
                )
            )
    return apparatus


def default_apparatus(station_id: str, station_number: int) -> List[Apparatus]:
    """One engine (crew 4) and one ambulance (crew 2) for stations without inventory."""
    padded = pad_station_number(station_number)
    return [
        Apparatus(
            id=f"engine-{station_id}",
            type=ApparatusType.ENGINE,
            name=f"Engine {padded}",
            status=ApparatusStatus.AVAILABLE,
            crew=4,
        ),
        Apparatus(
            id=f"ambulance-{station_id}",
            type=ApparatusType.AMBULANCE,
            name=f"Ambulance {padded}",
            status=ApparatusStatus.AVAILABLE,
            crew=2,
        ),
    ]


# ═══════════════════════════════════════════════════════════════════════════
# 📒 APPARATUS LEDGER
# ═══════════════════════════════════════════════════════════════════════════


class ApparatusLedger:
    """
    Current and original apparatus counts, plus apparatus lists, per station.

    The original counts for a station are written the first time the station
    id is registered and never change afterwards (until reset() or
    remove()). Count edits only touch the current map.
    """

    def __init__(self) -> None:
        self._current: Dict[str, ApparatusCounts] = {}
        self._original: Dict[str, ApparatusCounts] = {}
        self._apparatus: Dict[str, List[Apparatus]] = {}
        self._station_numbers: Dict[str, int] = {}
        self._listeners: List[ApparatusListener] = []

    # ═══════════════════════════════════════════════════════════════════════
    # 🔔 LISTENERS
    # ═══════════════════════════════════════════════════════════════════════

    def subscribe(self, listener: ApparatusListener) -> Callable[[], None]:
        """Register an onApparatusChange listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, station_id: str) -> None:
        apparatus = list(self._apparatus.get(station_id, []))
        for listener in list(self._listeners):
            listener(station_id, apparatus)

    # ═══════════════════════════════════════════════════════════════════════
    # 📥 REGISTRATION
    # ═══════════════════════════════════════════════════════════════════════

    def register(
        self,
        station_id: str,
        counts: Mapping[str, int],
        station_number: int,
        apparatus: Optional[List[Apparatus]] = None,
    ) -> None:
        """
        Record a station's counts as loaded.

        Args:
            station_id: Station id
            counts: Counts extracted from the station's source row
            station_number: Used when regenerating apparatus names
            apparatus: Apparatus list; synthesized from counts when omitted
        """
        current = empty_counts()
        for key, value in counts.items():
            require_kind(key)
            current[key] = max(0, int(value))

        self._current[station_id] = current
        if station_id in self._original:
            logger.debug(f"Baseline for station {station_id} already recorded, keeping it")
        else:
            self._original[station_id] = dict(current)

        self._station_numbers[station_id] = station_number
        if apparatus is None:
            apparatus = synthesize_apparatus(current, station_id, station_number)
        self._apparatus[station_id] = list(apparatus)

    def remove(self, station_id: str) -> None:
        """Forget a deleted station. Unknown ids are ignored."""
        self._current.pop(station_id, None)
        self._original.pop(station_id, None)
        self._apparatus.pop(station_id, None)
        self._station_numbers.pop(station_id, None)

    def reset(self) -> None:
        """Drop all stations (a different station dataset is being loaded)."""
        self._current.clear()
        self._original.clear()
        self._apparatus.clear()
        self._station_numbers.clear()

    def __contains__(self, station_id: object) -> bool:
        return station_id in self._current

    # ═══════════════════════════════════════════════════════════════════════
    # 🔢 COUNTS
    # ═══════════════════════════════════════════════════════════════════════

    def counts(self, station_id: str) -> ApparatusCounts:
        """Copy of the current counts (empty dict for unknown stations)."""
        return dict(self._current.get(station_id, {}))

    def original_counts(self, station_id: str) -> Mapping[str, int]:
        """Read-only view of the baseline counts."""
        return MappingProxyType(self._original.get(station_id, {}))

    def set_count(self, station_id: str, key: str, count: int) -> int:
        """
        Set a current count, clamped at zero.

        Returns:
            The stored count

        Raises:
            KeyError: If key is not a catalog key
        """
        require_kind(key)
        stored = max(0, int(count))
        current = self._current.setdefault(station_id, empty_counts())
        if current.get(key, 0) == stored:
            return stored
        current[key] = stored
        self._regenerate(station_id)
        return stored

    def increment(self, station_id: str, key: str, step: int = 1) -> int:
        """Add to a current count."""
        return self.set_count(station_id, key, self._current_value(station_id, key) + step)

    def decrement(self, station_id: str, key: str, step: int = 1) -> int:
        """Subtract from a current count; never goes below zero."""
        return self.set_count(station_id, key, self._current_value(station_id, key) - step)

    def _current_value(self, station_id: str, key: str) -> int:
        require_kind(key)
        return self._current.get(station_id, {}).get(key, 0)

    def is_modified(self, station_id: str, key: str) -> bool:
        """True if the current count differs from the baseline (absent = 0)."""
        original = self._original.get(station_id, {}).get(key, 0)
        current = self._current.get(station_id, {}).get(key, 0)
        return original != current

    def modified_keys(self, station_id: str) -> List[str]:
        """Catalog keys whose current count differs from the baseline."""
        return [kind.key for kind in APPARATUS_CATALOG if self.is_modified(station_id, kind.key)]

    # ═══════════════════════════════════════════════════════════════════════
    # 🚒 APPARATUS LISTS
    # ═══════════════════════════════════════════════════════════════════════

    def apparatus(self, station_id: str) -> List[Apparatus]:
        """Copy of the station's apparatus list."""
        return list(self._apparatus.get(station_id, []))

    def update_apparatus(
        self, station_id: str, apparatus_id: str, **changes: Any
    ) -> Optional[Apparatus]:
        """
        Edit one apparatus (status, crew, name).

        Returns:
            The updated Apparatus, or None if the station or apparatus is unknown
        """
        apparatus_list = self._apparatus.get(station_id)
        if apparatus_list is None:
            return None

        if "status" in changes and isinstance(changes["status"], str):
            changes["status"] = ApparatusStatus.from_string(changes["status"])
        if "type" in changes and isinstance(changes["type"], str):
            changes["type"] = ApparatusType.from_string(changes["type"])

        updated: Optional[Apparatus] = None
        new_list = []
        for item in apparatus_list:
            if item.id == apparatus_id:
                updated = replace(item, **changes)
                new_list.append(updated)
            else:
                new_list.append(item)

        if updated is None:
            return None
        self._apparatus[station_id] = new_list
        self._emit(station_id)
        return updated

    def _regenerate(self, station_id: str) -> None:
        station_number = self._station_numbers.get(station_id, 0)
        self._apparatus[station_id] = synthesize_apparatus(
            self._current[station_id], station_id, station_number
        )
        self._emit(station_id)
