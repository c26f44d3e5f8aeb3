"""Tabular ingestion: delimited text -> stations, apparatus counts, incidents."""

from .tabular_parser import parse_delimited_text, serialize_records
from .apparatus_ledger import (
    ApparatusLedger,
    default_apparatus,
    extract_apparatus_counts,
    synthesize_apparatus,
)
from .station_factory import (
    StationBatch,
    build_stations,
    create_custom_station,
    create_station,
    extract_station_number,
    format_display_name,
    station_number_hint,
)
from .incident_processing import (
    categorize_incident_type,
    filter_incidents_by_date_range,
    process_incidents,
)

__all__ = [
    "parse_delimited_text",
    "serialize_records",
    "ApparatusLedger",
    "default_apparatus",
    "extract_apparatus_counts",
    "synthesize_apparatus",
    "StationBatch",
    "build_stations",
    "create_custom_station",
    "create_station",
    "extract_station_number",
    "format_display_name",
    "station_number_hint",
    "categorize_incident_type",
    "filter_incidents_by_date_range",
    "process_incidents",
]
