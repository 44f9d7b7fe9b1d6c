"""
Report output for permission audit rows.

The header is written before the first row. Permission names inside a row
are joined with ``PERMISSION_DELIMITER`` so they never collide with the
CSV field delimiter.
"""

import csv
import json
from typing import IO, Dict, Iterable, List

from .models import ReportRow

REPORT_HEADER = ("URL", "Object", "Title", "PermissionType", "Permissions")
PERMISSION_DELIMITER = "; "


def row_to_record(row: ReportRow) -> Dict[str, str]:
    """Flatten a row into the five report columns."""
    return dict(zip(REPORT_HEADER, (
        row.url,
        row.object_type,
        row.title,
        row.permission_source,
        PERMISSION_DELIMITER.join(row.permissions),
    )))


class CsvReportWriter:
    """Streams rows to a CSV file as the walk produces them."""

    def __init__(self, stream: IO[str]):
        self.writer = csv.DictWriter(stream, fieldnames=REPORT_HEADER)
        self.writer.writeheader()
        self.count = 0

    def write(self, row: ReportRow) -> None:
        self.writer.writerow(row_to_record(row))
        self.count += 1

    def write_all(self, rows: Iterable[ReportRow]) -> int:
        for row in rows:
            self.write(row)
        return self.count


def rows_to_json(rows: Iterable[ReportRow], scan_info: Dict) -> str:
    """Render rows as a JSON document with a scan_info header block."""
    records: List[Dict] = []
    for row in rows:
        record = row_to_record(row)
        record["Permissions"] = list(row.permissions)
        records.append(record)
    output = dict(scan_info)
    output["total_rows"] = len(records)
    return json.dumps({"scan_info": output, "rows": records}, indent=2)
