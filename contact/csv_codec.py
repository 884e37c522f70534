"""
CSV export and import of submission records.

Records are mappings of field name to scalar. The header comes from the first
record and every record has to expose the same fields. Import gives back
plain strings; callers decide what to do with the types.
"""

import csv
import io
from datetime import date, datetime

LINE_TERMINATOR = "\n"


class NoData(Exception):
    """Raised when there is nothing to export."""

    def __init__(self, message="No data to export"):
        super().__init__(message)


class RecordShapeError(ValueError):
    pass


def _format_value(value):
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def encode_records(records):
    records = list(records)
    if not records:
        raise NoData()

    headers = list(records[0].keys())
    expected = set(headers)

    buffer = io.StringIO()
    writer = csv.writer(
        buffer, lineterminator=LINE_TERMINATOR, quoting=csv.QUOTE_MINIMAL
    )
    writer.writerow(headers)
    for position, record in enumerate(records):
        if set(record.keys()) != expected:
            raise RecordShapeError(
                f"Record {position} has fields {sorted(record.keys())}, expected {sorted(expected)}"
            )
        writer.writerow([_format_value(record[header]) for header in headers])
    return buffer.getvalue()


def decode_records(text):
    reader = csv.DictReader(io.StringIO(text, newline=""))
    records = []
    for row in reader:
        record = {key.strip(): (value or "") for key, value in row.items() if key is not None}
        # DictReader already drops fully empty lines; whitespace-only ones are
        # trailing noise as well.
        if all(not value.strip() for value in record.values()):
            continue
        records.append(record)
    return records
