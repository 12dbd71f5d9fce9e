"""Student CSV template and import.

The template columns match what the import understands:
Name, GR_Number, Roll_Number, Year, Class, Department,
Overall_Percentage, Email, Parent_Name, Parent_Contact.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Any

import structlog

from examdesk.db.academics_repository import list_classes
from examdesk.db.students_repository import StudentRecord, bulk_create_students

logger = structlog.get_logger(__name__)

SAMPLE_CSV_FILENAME = "sampleStudents.csv"

CSV_COLUMNS = [
    "Name",
    "GR_Number",
    "Roll_Number",
    "Year",
    "Class",
    "Department",
    "Overall_Percentage",
    "Email",
    "Parent_Name",
    "Parent_Contact",
]

SAMPLE_STUDENTS: list[dict[str, str]] = [
    {
        "Name": "John Doe",
        "GR_Number": "GR12345",
        "Roll_Number": "1001",
        "Year": "2023",
        "Class": "Class A",
        "Department": "Computer Science",
        "Overall_Percentage": "85.5",
        "Email": "john.doe@example.com",
        "Parent_Name": "Jane Doe",
        "Parent_Contact": "+1-123-456-7890",
    },
    {
        "Name": "Jane Smith",
        "GR_Number": "GR67890",
        "Roll_Number": "1002",
        "Year": "2023",
        "Class": "Class B",
        "Department": "Information Technology",
        "Overall_Percentage": "92.3",
        "Email": "jane.smith@example.com",
        "Parent_Name": "John Smith",
        "Parent_Contact": "+1-987-654-3210",
    },
]

# Normalized header -> student field
HEADER_MAP = {
    "name": "name",
    "grnumber": "gr_number",
    "gr": "gr_number",
    "rollnumber": "roll_number",
    "rollno": "roll_number",
    "year": "year",
    "class": "class_name",
    "classname": "class_name",
    "department": "department",
    "overallpercentage": "overall_percentage",
    "percentage": "overall_percentage",
    "email": "email",
    "parentname": "parent_name",
    "parentcontact": "parent_contact",
}

REQUIRED_FIELDS = ("name", "gr_number", "department")


@dataclass
class ParsedCsv:
    """Rows ready for insertion plus per-row problems."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class CsvImportResult:
    """Outcome of importing a students CSV."""

    created: list[StudentRecord] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def generate_sample_csv() -> str:
    """Sample students CSV, header row first."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(SAMPLE_STUDENTS)
    return buffer.getvalue()


def normalize_header(header: str) -> str:
    return "".join(ch for ch in header.lower() if ch.isalnum())


def parse_students_csv(text: str) -> ParsedCsv:
    """Parse a students CSV into student field dicts.

    Unknown columns are ignored. Line numbers in errors count the header
    as line 1.
    """
    result = ParsedCsv()
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))

    if not reader.fieldnames:
        result.errors.append("CSV file is empty")
        return result

    columns = {h: HEADER_MAP.get(normalize_header(h)) for h in reader.fieldnames if h}

    for line_no, raw in enumerate(reader, start=2):
        row: dict[str, Any] = {}
        for header, field_name in columns.items():
            if field_name is None:
                continue
            value = (raw.get(header) or "").strip()
            if value:
                row[field_name] = value

        if not row:
            continue

        missing = [f for f in REQUIRED_FIELDS if not row.get(f)]
        if missing:
            result.errors.append(f"Line {line_no}: missing {', '.join(missing)}")
            continue

        try:
            if "year" in row:
                row["year"] = int(row["year"])
            if "overall_percentage" in row:
                row["overall_percentage"] = float(row["overall_percentage"])
        except ValueError:
            result.errors.append(f"Line {line_no}: invalid number in year or percentage")
            continue

        result.rows.append(row)

    logger.debug("csv.parsed", rows=len(result.rows), errors=len(result.errors))
    return result


def import_students_csv(text: str, class_id: str | None = None) -> CsvImportResult:
    """Parse a students CSV and insert the rows.

    Args:
        text: CSV content
        class_id: Class for every row; otherwise the Class column is
            matched against class names (case-insensitive)

    Rows whose GR number already exists are skipped.
    """
    parsed = parse_students_csv(text)
    result = CsvImportResult(errors=list(parsed.errors))

    class_ids = {c.name.lower(): c.id for c in list_classes()} if class_id is None else {}

    rows = []
    for row in parsed.rows:
        class_name = row.pop("class_name", None)
        if class_id is not None:
            row["class_id"] = class_id
        elif class_name:
            row["class_id"] = class_ids.get(class_name.lower())
        rows.append(row)

    if rows:
        bulk = bulk_create_students(rows)
        result.created = bulk.created
        result.skipped = bulk.skipped

    logger.info(
        "csv.students_imported",
        created=len(result.created),
        skipped=len(result.skipped),
        errors=len(result.errors),
    )
    return result
