"""Canonical transaction rows and the canonical CSV format."""

from __future__ import annotations

import csv
import io
from dataclasses import astuple, dataclass, field, fields
from decimal import Decimal
from pathlib import Path
from typing import Iterable, TextIO

from statement_ingest.errors import InvalidDateFormat, IssueKind, StatementIssue
from statement_ingest.ingest.activity_parser import TransactionRecord
from statement_ingest.utils.dates import to_iso_date
from statement_ingest.utils.logging import get_logger
from statement_ingest.utils.money import (
    CENT,
    PLACEHOLDER,
    clean_currency,
    clean_price,
    clean_shares,
    format_decimal,
    to_decimal,
)

logger = get_logger(__name__)

CANONICAL_COLUMNS = [
    "Account Number",
    "Trade Date",
    "Settlement Date",
    "Transaction Type",
    "Transaction Description",
    "Investment Name",
    "Symbol",
    "Shares",
    "Share Price",
    "Principal Amount",
    "Commissions and Fees",
    "Net Amount",
    "Accrued Interest",
    "Account Type",
]

# The header row ends with a comma, so every row carries an empty last cell.
CANONICAL_HEADER = ",".join(CANONICAL_COLUMNS) + ","

CASH_SYMBOL = "CASH"
ACCRUED_INTEREST = "0.0"


@dataclass(frozen=True)
class CanonicalTransaction:
    account_number: str
    trade_date: str
    settlement_date: str
    transaction_type: str
    transaction_description: str
    investment_name: str
    symbol: str
    shares: str
    share_price: str
    principal_amount: str
    commissions_and_fees: str
    net_amount: str
    accrued_interest: str
    account_type: str
    line_number: int | None = field(default=None, compare=False)

    def as_row(self) -> list[str]:
        return list(astuple(self)[: len(CANONICAL_COLUMNS)])


CANONICAL_FIELDS = tuple(item.name for item in fields(CanonicalTransaction))[: len(CANONICAL_COLUMNS)]


def compute_principal_amount(
    transaction_type: str, net_amount: Decimal, commissions: Decimal
) -> Decimal:
    """Gross trade value before fees; source signs are kept as printed."""
    lowered = transaction_type.lower()
    if "buy" in lowered:
        return net_amount - commissions
    if "sell" in lowered:
        return net_amount + commissions
    return net_amount


def clean_symbol(value: str | None) -> str:
    text = (value or "").strip()
    if not text or text == PLACEHOLDER:
        return CASH_SYMBOL
    return text.upper()


def normalize_transaction(record: TransactionRecord) -> CanonicalTransaction:
    """Canonicalize one parsed record; raises :class:`InvalidDateFormat`."""
    trade_date = to_iso_date(record.trade_date)
    settlement_date = to_iso_date(record.settlement_date)

    commissions = clean_currency(record.commission)
    net_amount = clean_currency(record.amount)
    principal = compute_principal_amount(
        record.transaction_type,
        to_decimal(net_amount) or Decimal("0"),
        to_decimal(commissions) or Decimal("0"),
    )

    return CanonicalTransaction(
        account_number=record.account_number,
        trade_date=trade_date,
        settlement_date=settlement_date,
        transaction_type=record.transaction_type,
        transaction_description="",
        investment_name=record.investment_name,
        symbol=clean_symbol(record.symbol),
        shares=clean_shares(record.shares),
        share_price=clean_price(record.price),
        principal_amount=format_decimal(principal, CENT),
        commissions_and_fees=commissions,
        net_amount=net_amount,
        accrued_interest=ACCRUED_INTEREST,
        account_type=record.account_type,
        line_number=record.line_number,
    )


def normalize_records(
    records: Iterable[TransactionRecord],
) -> tuple[list[CanonicalTransaction], list[StatementIssue]]:
    rows: list[CanonicalTransaction] = []
    issues: list[StatementIssue] = []
    for record in records:
        try:
            rows.append(normalize_transaction(record))
        except InvalidDateFormat as exc:
            issue = StatementIssue.from_error(IssueKind.INVALID_DATE, exc, record.line_number)
            logger.warning("Skipping transaction: %s", issue)
            issues.append(issue)
    return rows, issues


def canonical_csv_text(rows: Iterable[CanonicalTransaction]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([*CANONICAL_COLUMNS, ""])
    for row in rows:
        writer.writerow([*row.as_row(), ""])
    return buffer.getvalue()


def write_canonical_csv(
    rows: Iterable[CanonicalTransaction], target: str | Path | TextIO
) -> None:
    text = canonical_csv_text(rows)
    if isinstance(target, (str, Path)):
        Path(target).write_text(text, encoding="utf-8")
        return
    target.write(text)


__all__ = [
    "CANONICAL_COLUMNS",
    "CANONICAL_FIELDS",
    "CANONICAL_HEADER",
    "CanonicalTransaction",
    "canonical_csv_text",
    "clean_symbol",
    "compute_principal_amount",
    "normalize_records",
    "normalize_transaction",
    "write_canonical_csv",
]
