"""
Delimited-text parsing for station and incident files.

The files served to the dashboard are simple exports: no quoting, no escaped
delimiters, one record per line. Parsing is therefore positional and never
fails: short rows are padded with empty strings and blank lines are dropped.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

Record = Dict[str, str]


def parse_delimited_text(text: str, delimiter: str = ",") -> List[Record]:
    """
    Parse delimited text into header-keyed records.

    Args:
        text: Raw file contents; the first line is the header row
        delimiter: Single-character column separator

    Returns:
        One dict per non-blank data row, keys in header order. A text with no
        data rows gives an empty list.
    """
    if not text:
        return []

    lines = text.strip().splitlines()
    if len(lines) < 2:
        return []

    headers = [h.strip() for h in lines[0].split(delimiter)]
    records: List[Record] = []
    short_rows = 0

    for line in lines[1:]:
        if not line.strip():
            continue
        values = line.split(delimiter)
        if len(values) < len(headers):
            short_rows += 1
        records.append(
            {
                header: (values[i].strip() if i < len(values) else "")
                for i, header in enumerate(headers)
            }
        )

    if short_rows:
        logger.debug(f"Padded {short_rows} short row(s) with empty values")
    return records


def serialize_records(
    records: Iterable[Record],
    headers: Optional[Sequence[str]] = None,
    delimiter: str = ",",
) -> str:
    """
    Write records back to delimited text.

    Args:
        records: Header-keyed records (missing keys are written empty)
        headers: Column order; defaults to the first record's key order
        delimiter: Single-character column separator

    Returns:
        Header line plus one line per record, newline-terminated
    """
    rows = list(records)
    if headers is None:
        headers = list(rows[0].keys()) if rows else []
    if not headers:
        return ""

    lines = [delimiter.join(headers)]
    for row in rows:
        lines.append(delimiter.join(str(row.get(h, "")) for h in headers))
    return "\n".join(lines) + "\n"
