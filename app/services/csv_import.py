# app/services/csv_import.py
# Comma-separated bulk imports (no quoting / escaping support)
#
# Three formats share one parser:
#   students      full_name,student_email,tutor_email
#   organizations name,subdomain,director_name,director_email[,education_level]
#   users         full_name,email,password,role,organization_name
#
# Header names are trimmed and lower-cased; column order is free.
# Blank lines are ignored. A data line is skipped (and reported) when its
# column count differs from the header or a required value is empty.

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

STUDENT_HEADERS = ("full_name", "student_email", "tutor_email")
STUDENT_REQUIRED = ("full_name", "student_email")

ORGANIZATION_HEADERS = ("name", "subdomain", "director_name", "director_email")
ORGANIZATION_REQUIRED = ("name", "director_name", "director_email")

USER_HEADERS = ("full_name", "email", "password", "role", "organization_name")
USER_REQUIRED = ("full_name", "email", "password", "role")


class CsvFormatError(ValueError):
    """The CSV cannot be processed at all (no data rows, missing headers)."""


@dataclass
class RowIssue:
    line: int
    reason: str

    def as_dict(self) -> dict:
        return {"line": self.line, "reason": self.reason}


@dataclass
class ParsedCsv:
    headers: List[str]
    rows: List[Tuple[int, Dict[str, str]]] = field(default_factory=list)  # (line number, values)
    skipped: List[RowIssue] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.rows) + len(self.skipped)


def parse_csv(
    csv_text: str,
    expected_headers: Sequence[str],
    required: Sequence[str],
) -> ParsedCsv:
    """
    Split `csv_text` into validated rows.

    Raises CsvFormatError when there is no data line or a header is missing.
    Line numbers are 1-based and count the header as line 1.
    """
    lines = (csv_text or "").strip().splitlines()
    if len(lines) < 2:
        raise CsvFormatError("CSV must contain a header line and at least one data row.")

    headers = [h.strip().lower() for h in lines[0].split(",")]
    missing = [h for h in expected_headers if h not in headers]
    if missing:
        raise CsvFormatError(f"CSV must contain the columns: {', '.join(expected_headers)}")

    parsed = ParsedCsv(headers=headers)
    for index, raw in enumerate(lines[1:], start=2):
        line = raw.strip()
        if not line:
            continue

        values = [v.strip() for v in line.split(",")]
        if len(values) != len(headers):
            parsed.skipped.append(RowIssue(
                index, f"Expected {len(headers)} columns, found {len(values)}."
            ))
            continue

        row = dict(zip(headers, values))
        empty = [name for name in required if not row.get(name)]
        if empty:
            parsed.skipped.append(RowIssue(index, f"Missing value for: {', '.join(empty)}."))
            continue

        parsed.rows.append((index, row))
    return parsed


def parse_student_csv(csv_text: str) -> ParsedCsv:
    return parse_csv(csv_text, STUDENT_HEADERS, STUDENT_REQUIRED)


def parse_organization_csv(csv_text: str) -> ParsedCsv:
    return parse_csv(csv_text, ORGANIZATION_HEADERS, ORGANIZATION_REQUIRED)


def parse_user_csv(csv_text: str) -> ParsedCsv:
    return parse_csv(csv_text, USER_HEADERS, USER_REQUIRED)
