from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from statement_ingest.errors import IssueKind, StatementIssue
from statement_ingest.ingest.activity_parser import TRANSACTION_TYPE_KEYWORDS
from statement_ingest.ingest.normalize import CASH_SYMBOL, CanonicalTransaction
from statement_ingest.utils.logging import get_logger
from statement_ingest.utils.money import to_decimal

logger = get_logger(__name__)

SYMBOL_RE = re.compile(r"^[A-Z0-9.\- ]{1,10}$", re.IGNORECASE)
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Bonds identified by CUSIP carry a literal "null" symbol.
SPECIAL_SYMBOLS = {CASH_SYMBOL.lower(), "null"}

CASH_ONLY_TYPES = {
    "funds received",
    "withdrawal",
    "transfer (incoming)",
    "transfer (outgoing)",
}

DIVIDEND_TYPES = {"Dividend", "Reinvestment"}


def is_valid_symbol(symbol: str) -> bool:
    text = (symbol or "").strip()
    if not text:
        return False
    if text.lower() in SPECIAL_SYMBOLS:
        return True
    return bool(SYMBOL_RE.match(text))


def parse_iso_date(value: str) -> date | None:
    text = (value or "").strip()
    if not ISO_DATE_RE.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def is_future_date(value: date, today: date | None = None) -> bool:
    return value > (today or date.today())


def is_known_transaction_type(transaction_type: str) -> bool:
    words = transaction_type.split()
    return bool(words) and words[0] in TRANSACTION_TYPE_KEYWORDS


def is_cash_transaction(transaction_type: str) -> bool:
    return transaction_type.strip().lower() in CASH_ONLY_TYPES


class _RowChecks:
    def __init__(self, row: CanonicalTransaction) -> None:
        self.row = row
        self.issues: list[StatementIssue] = []

    def error(self, field: str, message: str, value: Any) -> None:
        self._add(IssueKind.INVALID_FIELD, field, message, value)

    def warning(self, field: str, message: str, value: Any) -> None:
        self._add(IssueKind.SUSPECT_FIELD, field, message, value)

    def _add(self, kind: IssueKind, field: str, message: str, value: Any) -> None:
        self.issues.append(
            StatementIssue(kind, f"{field}: {message} (got {value!r})", self.row.line_number)
        )


def _check_buy(checks: _RowChecks, shares: Decimal | None, price: Decimal | None, net: Decimal | None) -> None:
    row = checks.row
    if shares is None or shares <= 0:
        checks.error("shares", "must be positive for Buy transactions", row.shares)
    if price is None or price <= 0:
        checks.error("share_price", "must be positive for Buy transactions", row.share_price)
    if net is not None and net > 0:
        checks.warning("net_amount", "a Buy should not credit cash", row.net_amount)


def _check_sell(checks: _RowChecks, shares: Decimal | None, price: Decimal | None, net: Decimal | None) -> None:
    row = checks.row
    # Statements print sold shares with either sign; only a zero count is wrong.
    if shares is None or shares == 0:
        checks.error("shares", "must be non-zero for Sell transactions", row.shares)
    if price is None or price <= 0:
        checks.error("share_price", "must be positive for Sell transactions", row.share_price)
    if net is not None and net < 0:
        checks.warning("net_amount", "a Sell should not debit cash", row.net_amount)


def validate_transaction(
    row: CanonicalTransaction, *, today: date | None = None
) -> list[StatementIssue]:
    """Check one canonical row; errors are ``INVALID_FIELD``, warnings ``SUSPECT_FIELD``."""
    checks = _RowChecks(row)

    if not row.account_number.strip():
        checks.error("account_number", "is required", row.account_number)

    if not row.trade_date.strip():
        checks.error("trade_date", "is required", row.trade_date)
    else:
        trade_date = parse_iso_date(row.trade_date)
        if trade_date is None:
            checks.error("trade_date", "must be YYYY-MM-DD", row.trade_date)
        elif is_future_date(trade_date, today):
            checks.error("trade_date", "cannot be in the future", row.trade_date)

    if row.settlement_date.strip() and parse_iso_date(row.settlement_date) is None:
        checks.error("settlement_date", "must be YYYY-MM-DD", row.settlement_date)

    transaction_type = row.transaction_type.strip()
    if not transaction_type:
        checks.error("transaction_type", "is required", row.transaction_type)
    elif not is_known_transaction_type(transaction_type):
        checks.warning("transaction_type", "is not a known transaction type", row.transaction_type)

    if not row.symbol.strip():
        if not is_cash_transaction(transaction_type):
            checks.error("symbol", "is required for security transactions", row.symbol)
    elif not is_valid_symbol(row.symbol):
        checks.warning("symbol", "does not look like a ticker", row.symbol)

    shares = to_decimal(row.shares)
    price = to_decimal(row.share_price)
    net = to_decimal(row.net_amount)
    if transaction_type == "Buy":
        _check_buy(checks, shares, price, net)
    elif transaction_type == "Sell":
        _check_sell(checks, shares, price, net)
    elif transaction_type in DIVIDEND_TYPES and not net:
        checks.warning("net_amount", "a dividend should have a non-zero amount", row.net_amount)

    commissions = to_decimal(row.commissions_and_fees)
    if commissions is not None and commissions < 0:
        checks.error("commissions_and_fees", "cannot be negative", row.commissions_and_fees)

    return checks.issues


def validate_transactions(
    rows: Iterable[CanonicalTransaction], *, today: date | None = None
) -> list[StatementIssue]:
    issues: list[StatementIssue] = []
    for row in rows:
        issues.extend(validate_transaction(row, today=today))
    if issues:
        logger.warning("Validation flagged %d issue(s)", len(issues))
    return issues


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def validation_summary(issues: Iterable[StatementIssue]) -> str:
    collected = list(issues)
    errors = sum(1 for issue in collected if issue.kind == IssueKind.INVALID_FIELD)
    warnings = sum(1 for issue in collected if issue.kind == IssueKind.SUSPECT_FIELD)
    if errors == 0:
        if warnings == 0:
            return "Validation passed with no errors."
        return f"Validation passed with {_plural(warnings, 'warning')}."
    parts = [_plural(errors, "error")]
    if warnings:
        parts.append(_plural(warnings, "warning"))
    return f"Validation failed: {', '.join(parts)}."


__all__ = [
    "is_valid_symbol",
    "validate_transaction",
    "validate_transactions",
    "validation_summary",
]
