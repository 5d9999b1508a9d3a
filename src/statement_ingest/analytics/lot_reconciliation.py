from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Sequence, TextIO

import pandas as pd

from statement_ingest.errors import (
    IssueKind,
    ParseStatus,
    StatementIssue,
    UnmatchedLotGroup,
    status_for,
)
from statement_ingest.ingest.lot_parser import LotGroup, LotRecord
from statement_ingest.ingest.symbol_context import SymbolSummary
from statement_ingest.utils.logging import get_logger

logger = get_logger(__name__)

LOT_CSV_COLUMNS = [
    "Account Number",
    "Symbol",
    "Company Name",
    "Date Sold",
    "Date Acquired",
    "Event",
    "Cost Basis Method",
    "Quantity",
    "Total Cost",
    "Proceeds",
    "Short Term Gain/Loss",
    "Long Term Gain/Loss",
    "Total Gain/Loss",
]

UNMATCHED_COLUMNS = ["Line", "Account Number", "Lots", "Summed Quantity", "Closest Diff"]


@dataclass(frozen=True)
class UnmatchedGroup:
    group: LotGroup
    best_diff: Decimal | None

    @property
    def line_number(self) -> int:
        return self.group.line_number

    @property
    def summed_quantity(self) -> Decimal:
        return self.group.summed_quantity


@dataclass(frozen=True)
class LotReconciliation:
    lot_sets: dict[tuple[str, str], list[LotRecord]]
    unmatched: list[UnmatchedGroup]
    targets: list[SymbolSummary]
    tolerance: Decimal
    issues: list[StatementIssue] = field(default_factory=list)

    @property
    def lots(self) -> list[LotRecord]:
        return [lot for lots in self.lot_sets.values() for lot in lots]

    @property
    def matched_count(self) -> int:
        return len(self.lot_sets)

    @property
    def status(self) -> ParseStatus:
        return status_for(self.issues)


def _tolerance(value: float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _closest_target(
    group: LotGroup, targets: Sequence[SymbolSummary]
) -> tuple[SymbolSummary | None, Decimal | None]:
    best: SymbolSummary | None = None
    best_diff: Decimal | None = None
    for target in targets:
        if target.matched or target.expected_quantity is None:
            continue
        diff = abs(target.expected_quantity - group.summed_quantity)
        # Strict comparison keeps the earliest target on ties.
        if best_diff is None or diff < best_diff:
            best, best_diff = target, diff
    return best, best_diff


def _bind(group: LotGroup, target: SymbolSummary) -> list[LotRecord]:
    return [
        replace(
            lot,
            account_number=target.account_number,
            symbol=target.symbol,
            investment_name=target.name,
        )
        for lot in group.lots
    ]


def match_lot_groups(
    groups: Sequence[LotGroup],
    targets: Sequence[SymbolSummary],
    *,
    tolerance: float | Decimal = 0.01,
) -> LotReconciliation:
    """Assign lot groups to symbol summaries by summed share quantity.

    Groups are taken in document order and each claims the unmatched summary
    whose expected quantity is closest, when that distance is strictly below
    ``tolerance``. A claimed summary is never offered again. Groups that find
    no summary are reported as unmatched, never dropped.
    """
    epsilon = _tolerance(tolerance)
    lot_sets: dict[tuple[str, str], list[LotRecord]] = {}
    unmatched: list[UnmatchedGroup] = []
    issues: list[StatementIssue] = []

    for group in groups:
        target, diff = _closest_target(group, targets)
        if target is not None and diff is not None and diff < epsilon:
            target.claim()
            lot_sets[(target.account_number, target.symbol)] = _bind(group, target)
            logger.debug(
                "Lot group at line %d matched %s (%s shares, diff %s)",
                group.line_number,
                target.symbol,
                group.summed_quantity,
                diff,
            )
            continue

        unmatched.append(UnmatchedGroup(group=group, best_diff=diff))
        issue = StatementIssue.from_error(
            IssueKind.UNMATCHED_LOT_GROUP,
            UnmatchedLotGroup(group.line_number, group.summed_quantity, diff),
        )
        logger.warning("Unmatched lot group: %s", issue)
        issues.append(issue)

    logger.info(
        "Matched %d of %d lot group(s) against %d symbol(s)",
        len(lot_sets),
        len(groups),
        len(targets),
    )
    return LotReconciliation(
        lot_sets=lot_sets,
        unmatched=unmatched,
        targets=list(targets),
        tolerance=epsilon,
        issues=issues,
    )


def reconciliation_summary(reconciliation: LotReconciliation) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for target in reconciliation.targets:
        lots = reconciliation.lot_sets.get((target.account_number, target.symbol), [])
        actual = sum((lot.quantity_value for lot in lots), Decimal("0"))
        expected = target.expected_quantity
        diff = None if expected is None else abs(expected - actual)
        rows.append(
            {
                "account_number": target.account_number,
                "symbol": target.symbol,
                "name": target.name,
                "expected_quantity": expected,
                "actual_quantity": actual,
                "lot_count": len(lots),
                "matched": bool(lots) and diff is not None and diff < reconciliation.tolerance,
            }
        )
    return rows


def _lot_row(lot: LotRecord) -> dict[str, str]:
    return {
        "Account Number": lot.account_number,
        "Symbol": lot.symbol,
        "Company Name": lot.investment_name,
        "Date Sold": lot.date_sold,
        "Date Acquired": lot.date_acquired,
        "Event": lot.event,
        "Cost Basis Method": lot.cost_basis_method,
        "Quantity": lot.quantity,
        "Total Cost": lot.total_cost,
        "Proceeds": lot.proceeds,
        "Short Term Gain/Loss": lot.short_term_gain,
        "Long Term Gain/Loss": lot.long_term_gain,
        "Total Gain/Loss": lot.total_gain,
    }


def lots_to_frame(reconciliation: LotReconciliation) -> pd.DataFrame:
    rows = [_lot_row(lot) for lot in reconciliation.lots]
    return pd.DataFrame(rows, columns=LOT_CSV_COLUMNS)


def unmatched_groups_frame(reconciliation: LotReconciliation) -> pd.DataFrame:
    rows = [
        {
            "Line": item.line_number,
            "Account Number": item.group.account_number or "",
            "Lots": len(item.group.lots),
            "Summed Quantity": str(item.summed_quantity),
            "Closest Diff": "" if item.best_diff is None else str(item.best_diff),
        }
        for item in reconciliation.unmatched
    ]
    return pd.DataFrame(rows, columns=UNMATCHED_COLUMNS)


def write_lots_csv(reconciliation: LotReconciliation, target: str | Path | TextIO) -> None:
    lots_to_frame(reconciliation).to_csv(target, index=False)


__all__ = [
    "LOT_CSV_COLUMNS",
    "LotReconciliation",
    "UnmatchedGroup",
    "lots_to_frame",
    "match_lot_groups",
    "reconciliation_summary",
    "unmatched_groups_frame",
    "write_lots_csv",
]
