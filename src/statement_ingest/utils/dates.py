"""Statement date parsing."""

from __future__ import annotations

import re
from datetime import date, datetime

from statement_ingest.errors import InvalidDateFormat

STATEMENT_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%Y/%m/%d",
)


def parse_statement_date(raw: str) -> date:
    """Parse the ``M/D/YYYY`` dates printed on statements."""
    text = (raw or "").strip()
    match = STATEMENT_DATE_RE.match(text)
    if not match:
        raise InvalidDateFormat(raw)
    month, day, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidDateFormat(raw) from exc


def parse_date(raw: str) -> date:
    text = (raw or "").strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidDateFormat(raw)


def to_iso_date(raw: str) -> str:
    return parse_statement_date(raw).isoformat()
