"""Reader for the canonical transaction CSV."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, TextIO

import pandas as pd

from statement_ingest.errors import InvalidDateFormat, IssueKind, StatementIssue
from statement_ingest.ingest.normalize import (
    ACCRUED_INTEREST,
    CANONICAL_COLUMNS,
    CANONICAL_FIELDS,
    CanonicalTransaction,
    clean_symbol,
)
from statement_ingest.ingest.validators import validate_transactions
from statement_ingest.utils.dates import parse_date
from statement_ingest.utils.logging import get_logger
from statement_ingest.utils.money import clean_currency, clean_price, clean_shares, is_blank

logger = get_logger(__name__)

MIN_POPULATED_FIELDS = 5

_CURRENCY_FIELDS = {"principal_amount", "commissions_and_fees", "net_amount"}


def _match_key(text: str) -> str:
    return "".join(ch for ch in str(text).strip().lower() if ch.isalnum())


_FIELD_BY_KEY = {
    _match_key(column): name for column, name in zip(CANONICAL_COLUMNS, CANONICAL_FIELDS)
}


def _resolve_columns(columns: list[str]) -> dict[str, str]:
    resolved: dict[str, str] = {}
    for column in columns:
        name = _FIELD_BY_KEY.get(_match_key(column))
        if name and name not in resolved:
            resolved[name] = column
    return resolved


def _open_source(source: str | Path | TextIO) -> str | Path | TextIO:
    if isinstance(source, str) and "\n" in source:
        return io.StringIO(source)
    return source


def _clean_money(value: str) -> str:
    # "0" is what blank and "Free" amounts were written as.
    if value.strip() == "0":
        return "0"
    return clean_currency(value)


def _iso(value: str) -> str:
    return parse_date(value).isoformat()


def _canonical_row(values: dict[str, str], line_number: int) -> CanonicalTransaction:
    cleaned: dict[str, Any] = dict(values)
    cleaned["trade_date"] = _iso(values["trade_date"])
    cleaned["settlement_date"] = (
        _iso(values["settlement_date"]) if values["settlement_date"].strip() else ""
    )
    cleaned["symbol"] = clean_symbol(values["symbol"])
    cleaned["shares"] = clean_shares(values["shares"])
    cleaned["share_price"] = clean_price(values["share_price"])
    for name in _CURRENCY_FIELDS:
        # A blank principal stays blank so it keys as "undefined".
        if name == "principal_amount" and is_blank(values[name]):
            cleaned[name] = ""
            continue
        cleaned[name] = _clean_money(values[name])
    cleaned["accrued_interest"] = values["accrued_interest"].strip() or ACCRUED_INTEREST
    return CanonicalTransaction(**cleaned, line_number=line_number)


def read_canonical_csv(
    source: str | Path | TextIO,
) -> tuple[list[CanonicalTransaction], list[StatementIssue]]:
    """Read canonical rows back, re-normalizing and validating every value.

    ``source`` is a path, an open text file, or the CSV text itself. Rows that
    fail validation are kept; each failed check is reported as an issue.
    """
    df = pd.read_csv(_open_source(source), dtype=str, keep_default_na=False)
    columns = _resolve_columns([str(c) for c in df.columns])

    rows: list[CanonicalTransaction] = []
    issues: list[StatementIssue] = []
    # Line 1 is the header.
    for line_number, record in enumerate(df.to_dict(orient="records"), start=2):
        values = {
            name: str(record.get(columns[name], "") if name in columns else "").strip()
            for name in CANONICAL_FIELDS
        }
        if sum(1 for value in values.values() if value) < MIN_POPULATED_FIELDS:
            logger.debug("Skipping sparse row at line %d", line_number)
            continue
        try:
            rows.append(_canonical_row(values, line_number))
        except InvalidDateFormat as exc:
            issue = StatementIssue.from_error(IssueKind.INVALID_DATE, exc, line_number)
            logger.warning("Skipping CSV row: %s", issue)
            issues.append(issue)

    issues.extend(validate_transactions(rows))
    logger.info("Read %d canonical row(s) with %d issue(s)", len(rows), len(issues))
    return rows, issues


__all__ = ["MIN_POPULATED_FIELDS", "read_canonical_csv"]
