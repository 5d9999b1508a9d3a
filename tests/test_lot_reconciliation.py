from __future__ import annotations

from decimal import Decimal

import pytest

from statement_ingest.analytics.lot_reconciliation import (
    LOT_CSV_COLUMNS,
    lots_to_frame,
    match_lot_groups,
    reconciliation_summary,
    unmatched_groups_frame,
    write_lots_csv,
)
from statement_ingest.errors import IssueKind, ParseStatus
from statement_ingest.ingest.lot_parser import (
    LotArrangement,
    LotGroup,
    LotLayout,
    LotRecord,
    find_lot_groups,
)
from statement_ingest.ingest.symbol_context import SymbolSummary


def _lot(quantity: str, line_number: int = 1) -> LotRecord:
    return LotRecord(
        date_sold="12/01/2025",
        date_acquired="01/15/2024",
        event="Sell",
        cost_basis_method="First in, first out",
        quantity=quantity,
        total_cost="$1.00",
        proceeds="$2.00",
        short_term_gain="—",
        long_term_gain="$1.00",
        total_gain="$1.00",
        layout=LotLayout.NORMAL_3,
        line_number=line_number,
    )


def _group(*quantities: str, line_number: int = 1) -> LotGroup:
    lots = tuple(_lot(quantity, line_number) for quantity in quantities)
    return LotGroup(
        lots=lots,
        summed_quantity=sum((Decimal(q) for q in quantities), Decimal("0")),
        line_number=line_number,
        end_line=line_number + 3 * len(lots),
        account_number="87654321",
        arrangement=LotArrangement.LOT_DETAILS,
    )


def _target(symbol: str, quantity: str, account: str = "87654321") -> SymbolSummary:
    return SymbolSummary(
        account_number=account,
        symbol=symbol,
        name=f"{symbol} FUND",
        expected_quantity=Decimal(quantity),
        line_number=1,
    )


def test_groups_bind_in_document_order(realized_gains_lines, settings):
    scan = find_lot_groups(realized_gains_lines, settings=settings)

    result = match_lot_groups(
        scan.groups,
        scan.context.reconciliation_targets(),
        tolerance=settings.lot_match_tolerance,
    )

    assert list(result.lot_sets) == [("87654321", "DIA"), ("87654321", "SPY")]
    assert result.unmatched == []
    assert result.status == ParseStatus.CLEAN
    dia_lots = result.lot_sets[("87654321", "DIA")]
    assert {lot.symbol for lot in dia_lots} == {"DIA"}
    assert dia_lots[0].investment_name == "SPDR DOW JONES INDUSTRIAL AVERAGE ETF"
    assert all(target.matched for target in result.targets)


def test_matched_quantities_conserve_expected_totals(realized_gains_lines, settings):
    scan = find_lot_groups(realized_gains_lines, settings=settings)
    result = match_lot_groups(scan.groups, scan.context.reconciliation_targets())

    for row in reconciliation_summary(result):
        assert abs(row["expected_quantity"] - row["actual_quantity"]) < Decimal("0.01")
        assert row["matched"] is True
    assert result.matched_count + len(result.unmatched) == len(scan.groups)


def test_group_outside_tolerance_is_reported_not_dropped():
    targets = [_target("DIA", "18.097")]

    result = match_lot_groups([_group("7.5", line_number=40)], targets, tolerance=0.01)

    assert result.lot_sets == {}
    assert len(result.unmatched) == 1
    assert result.unmatched[0].best_diff == Decimal("10.597")
    assert result.issues[0].kind == IssueKind.UNMATCHED_LOT_GROUP
    assert result.issues[0].line_number == 40
    assert result.status == ParseStatus.PARTIAL
    assert targets[0].matched is False


def test_difference_equal_to_tolerance_is_rejected():
    result = match_lot_groups([_group("5.01")], [_target("SPY", "5.00")], tolerance=0.01)

    assert result.lot_sets == {}
    assert result.unmatched[0].best_diff == Decimal("0.01")


def test_group_without_targets_has_no_best_diff():
    result = match_lot_groups([_group("1")], [])

    assert result.unmatched[0].best_diff is None


def test_tie_goes_to_earliest_target_and_claim_is_final():
    first = _target("AAA", "5.0")
    second = _target("BBB", "5.0")

    result = match_lot_groups(
        [_group("5.0", line_number=10), _group("5.0", line_number=20)],
        [first, second],
    )

    assert list(result.lot_sets) == [("87654321", "AAA"), ("87654321", "BBB")]
    assert first.matched and second.matched


def test_greedy_matching_keeps_first_arrival():
    near = _target("NEAR", "10.000")

    result = match_lot_groups(
        [_group("10.005", line_number=1), _group("10.000", line_number=9)],
        [near],
    )

    assert result.lot_sets[("87654321", "NEAR")][0].quantity == "10.005"
    assert [item.line_number for item in result.unmatched] == [9]


def test_claim_cannot_happen_twice():
    target = _target("SPY", "5")
    target.claim()

    with pytest.raises(ValueError):
        target.claim()


def test_lot_frames_and_csv(realized_gains_lines, settings, tmp_path):
    scan = find_lot_groups(realized_gains_lines, settings=settings)
    result = match_lot_groups(scan.groups, scan.context.reconciliation_targets())

    frame = lots_to_frame(result)
    assert list(frame.columns) == LOT_CSV_COLUMNS
    assert len(frame) == 3
    assert frame.iloc[0]["Symbol"] == "DIA"
    assert frame.iloc[2]["Company Name"] == "SPDR S&P 500 ETF TRUST"
    assert unmatched_groups_frame(result).empty

    out = tmp_path / "lots.csv"
    write_lots_csv(result, out)
    header = out.read_text(encoding="utf-8").splitlines()[0]
    assert header.startswith("Account Number,Symbol,Company Name,Date Sold")


def test_unmatched_frame_lists_diagnostics():
    result = match_lot_groups([_group("2.5", line_number=7)], [_target("VTI", "3")])

    frame = unmatched_groups_frame(result)

    assert frame.to_dict(orient="records") == [
        {
            "Line": 7,
            "Account Number": "87654321",
            "Lots": 1,
            "Summed Quantity": "2.5",
            "Closest Diff": "0.5",
        }
    ]
