"""
Incident processing for the map overlay.

Incidents are read-only: rows are typed, categorised for icon selection and
optionally narrowed to a date window. A reload replaces the whole list.
"""

from datetime import date, datetime
from typing import List, Mapping, Optional, Sequence, Union
import logging

import numpy as np
import pandas as pd

from station_planner.ingest.station_factory import parse_coordinate
from station_planner.models import Incident, IncidentCategory

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, pd.Timestamp]


def categorize_incident_type(incident_type: str) -> IncidentCategory:
    """Icon category: "EMS & Rescue" -> ems, "Good Intent Call" -> warning, else fire."""
    lowered = (incident_type or "").lower()
    if "ems & rescue" in lowered:
        return IncidentCategory.EMS
    if "good intent call" in lowered:
        return IncidentCategory.WARNING
    return IncidentCategory.FIRE


def process_incidents(records: Sequence[Mapping[str, str]]) -> List[Incident]:
    """
    Type raw incident rows, dropping rows without numeric coordinates.

    Args:
        records: Parsed incident rows

    Returns:
        Incidents in file order
    """
    incidents: List[Incident] = []
    for record in records:
        incident_type = record.get("incident_type") or record.get("type") or ""
        lat = parse_coordinate(record.get("lat"))
        lon = parse_coordinate(record.get("lon"))
        if np.isnan(lat) or np.isnan(lon):
            continue
        incidents.append(
            Incident(
                id=record.get("incident_id") or record.get("id") or "",
                incident_type=incident_type,
                lat=lat,
                lon=lon,
                datetime=record.get("datetime") or "",
                category=record.get("category") or "",
                incident_type_category=categorize_incident_type(incident_type),
            )
        )

    skipped = len(records) - len(incidents)
    if skipped:
        logger.info(f"Skipped {skipped} incident row(s) without coordinates")
    return incidents


def filter_incidents_by_date_range(
    incidents: Sequence[Incident],
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> List[Incident]:
    """
    Keep incidents inside [start, end-of-day(end)].

    Incidents with an empty or unparseable datetime are always kept.

    Args:
        incidents: Incidents to filter
        start: Earliest timestamp (inclusive), or None
        end: Last day to include (the whole day counts), or None

    Returns:
        Filtered incidents in their original order
    """
    if start is None and end is None:
        return list(incidents)

    start_ts = pd.Timestamp(start) if start is not None else None
    end_ts = None
    if end is not None:
        end_ts = pd.Timestamp(end).normalize() + pd.Timedelta(days=1) - pd.Timedelta(
            microseconds=1
        )

    kept: List[Incident] = []
    for incident in incidents:
        stamp = pd.to_datetime(incident.datetime or None, errors="coerce")
        if pd.isna(stamp):
            kept.append(incident)
            continue
        if stamp.tzinfo is not None:
            stamp = stamp.tz_convert(None)
        if start_ts is not None and stamp < start_ts:
            continue
        if end_ts is not None and stamp > end_ts:
            continue
        kept.append(incident)
    return kept
