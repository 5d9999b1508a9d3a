from __future__ import annotations

import pytest

from statement_ingest.errors import AccountNumberNotFound, IssueKind, ParseStatus
from statement_ingest.ingest.activity_parser import (
    parse_activity_lines,
    parse_transaction_block,
    repair_wrapped_text,
    tokenize_fields,
)


def test_parse_transaction_block_with_trailing_account_type():
    record = parse_transaction_block(
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy 10 $150.0000 $0.00 -$1,500.00 CASH"
    )

    assert record is not None
    assert record.settlement_date == "11/20/2025"
    assert record.trade_date == "11/25/2025"
    assert record.symbol == "AAPL"
    assert record.investment_name == "Apple Inc"
    assert record.transaction_type == "Buy"
    assert record.shares == "10"
    assert record.price == "$150.0000"
    assert record.commission == "$0.00"
    assert record.amount == "-$1,500.00"
    assert record.account_type == "CASH"


def test_parse_transaction_block_fills_placeholders_and_free_commission():
    record = parse_transaction_block(
        "11/28/2025 11/28/2025 QQQ INVESCO QQQ ETF Dividend CASH — — Free $42.17"
    )

    assert record is not None
    assert record.investment_name == "INVESCO QQQ ETF"
    assert record.transaction_type == "Dividend"
    assert record.shares == "—"
    assert record.price == "—"
    assert record.commission == "Free"
    assert record.amount == "$42.17"


@pytest.mark.parametrize(
    ("text", "expected_type"),
    [
        (
            "12/01/2025 12/01/2025 — CASH DEPOSIT Funds Received CASH — — — $5,000.00",
            "Funds Received",
        ),
        (
            "12/02/2025 12/02/2025 — VANGUARD FEDERAL MONEY MARKET Sweep in CASH — — — $10.00",
            "Sweep in",
        ),
        (
            "12/03/2025 12/03/2025 VTI VANGUARD TOTAL STOCK Transfer (outgoing) CASH -2 — — —",
            "Transfer (outgoing)",
        ),
        (
            "12/04/2025 12/04/2025 XYZ XYZ HOLDINGS Corp Action (Exchange of shares) CASH 4 — — —",
            "Corp Action (Exchange of shares)",
        ),
    ],
)
def test_multi_word_transaction_types(text, expected_type):
    record = parse_transaction_block(text)

    assert record is not None
    assert record.transaction_type == expected_type
    assert record.account_type == "CASH"


def test_cash_placeholder_symbol_keeps_cash_words_in_name():
    record = parse_transaction_block(
        "12/01/2025 12/01/2025 — CASH DEPOSIT Funds Received CASH — — — $5,000.00"
    )

    assert record is not None
    assert record.symbol == "—"
    assert record.investment_name == "CASH DEPOSIT"
    assert record.amount == "$5,000.00"


def test_tokenize_fields_in_grammar_order():
    fields = tokenize_fields("VTI VANGUARD TOTAL STOCK MARKET ETF Sell MARGIN 5 $300.10 $5.00 $995.00")

    assert fields["investment_name"] == "VANGUARD TOTAL STOCK MARKET ETF"
    assert fields["transaction_type"] == "Sell"
    assert fields["account_type"] == "MARGIN"
    assert fields["shares"] == "5"
    assert fields["amount"] == "$995.00"


def test_repair_wrapped_text_rejoins_digits_and_words():
    assert repair_wrapped_text("Buy 2 $595.330\n0 $0.00") == "Buy 2 $595.3300 $0.00"
    assert repair_wrapped_text("Sell MARGI N 3") == "Sell MARGIN 3"
    assert repair_wrapped_text("Sell CAS H 3") == "Sell CASH 3"


def test_wrapped_price_digit_is_restored_in_record():
    record = parse_transaction_block(
        "11/20/2025 11/20/2025 SPY SPDR S&P 500 ETF TRUST Buy CASH 2 $595.330 "
        "0 $0.00 -$1,190.66"
    )

    assert record is not None
    assert record.price == "$595.3300"
    assert record.amount == "-$1,190.66"


def test_block_without_transaction_type_yields_none():
    assert parse_transaction_block("12/02/2025 12/02/2025 XYZ Something odd CASH 1 $2.00") is None


def test_missing_account_type_defaults_to_cash():
    record = parse_transaction_block("12/05/2025 12/05/2025 — INTEREST PAYMENT Interest — — — $1.23")

    assert record is not None
    assert record.account_type == "CASH"
    assert record.symbol == "—"


def test_parse_activity_lines_reconstructs_wrapped_records(activity_lines, settings):
    report = parse_activity_lines(activity_lines, settings=settings)

    assert report.account_number == "12345678"
    assert report.status == ParseStatus.CLEAN
    assert [record.symbol for record in report.records] == ["AAPL", "VTI", "QQQ"]

    vti = report.records[1]
    assert vti.investment_name == "VANGUARD TOTAL STOCK MARKET ETF"
    assert vti.transaction_type == "Sell"
    assert vti.shares == "5.00000"
    assert vti.amount == "$995.00"
    assert vti.line_number == 12
    assert all(record.account_number == "12345678" for record in report.records)


def test_record_wrapping_across_page_break_stays_whole(settings):
    lines = [
        "Brokerage Account — 12345678",
        "11/21/2025 11/21/2025 VTI VANGUARD TOTAL STOCK",
        "-- 1 of 2 --",
        "Custom report",
        "MARKET ETF Sell CASH 5 $300.10 $5.00 $995.00",
    ]

    report = parse_activity_lines(lines, settings=settings)

    assert len(report.records) == 1
    assert report.records[0].investment_name == "VANGUARD TOTAL STOCK MARKET ETF"


def test_page_footer_flushes_the_open_block(settings):
    lines = [
        "Brokerage Account — 12345678",
        "11/21/2025 11/21/2025 VTI VANGUARD TOTAL STOCK MARKET ETF Sell CASH 5 $300.10 $5.00 $995.00",
        "Page 1 of 2",
        "These lines are not part of any record",
    ]

    report = parse_activity_lines(lines, settings=settings)

    assert report.records[0].amount == "$995.00"


def test_unparsable_block_is_reported_and_skipped(settings):
    lines = [
        "Brokerage Account — 12345678",
        "12/02/2025 12/02/2025 XYZ Something odd CASH 1 $2.00",
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy 10 $150.0000 $0.00 -$1,500.00 CASH",
    ]

    report = parse_activity_lines(lines, settings=settings)

    assert [record.symbol for record in report.records] == ["AAPL"]
    assert report.status == ParseStatus.PARTIAL
    assert report.issues[0].kind == IssueKind.UNPARSABLE_RECORD
    assert report.issues[0].line_number == 2


def test_records_follow_the_current_account(settings):
    lines = [
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy 10 $150.0000 $0.00 -$1,500.00 CASH",
        "Brokerage Account — 11111111",
        "11/21/2025 11/21/2025 MSFT MICROSOFT CORP Buy 1 $400.0000 $0.00 -$400.00 CASH",
        "Brokerage Account — 22222222",
        "11/22/2025 11/22/2025 NVDA NVIDIA CORP Sell 2 $150.0000 $0.00 $300.00 MARGIN",
    ]

    report = parse_activity_lines(lines, settings=settings)

    assert report.account_numbers == ["11111111", "22222222"]
    assert [record.account_number for record in report.records] == [
        "11111111",
        "11111111",
        "22222222",
    ]
    assert report.records[2].account_type == "MARGIN"


def test_missing_account_header_aborts(settings):
    with pytest.raises(AccountNumberNotFound):
        parse_activity_lines(
            ["11/20/2025 11/25/2025 AAPL Apple Inc Buy 10 $150.0000 $0.00 -$1,500.00 CASH"],
            settings=settings,
        )


@pytest.mark.parametrize(
    "text",
    [
        "11/20/2025 11/25/2025",
        "11/20/2025 11/25/2025 ",
        "11/20/2025 11/25/2025 AAPL",
        "11/20/2025 11/25/2025 AAPL Apple Inc",
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy",
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy 10",
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy 10 $150.0000",
        "11/20/2025 11/25/2025 VTI VANGUARD Transfer (",
        "11/20/2025 11/25/2025 VTI VANGUARD Transfer ( CASH 2",
        "11/20/2025 11/25/2025 XYZ HOLDINGS Corp Action (Exchange",
        "11/20/2025 11/25/2025 — — — —",
        "11/20/2025 11/25/2025 — — Buy — — — —",
        "11/20/2025 11/25/2025 Funds",
        "11/20/2025 11/25/2025 Sweep",
        "11/20/2025 11/25/2025 CASH",
        "11/20/2025 11/25/2025 $595.330\n0",
        "11/20/2025 11/25/2025 11/26/2025 12/01/2025",
    ],
)
def test_degenerate_blocks_never_raise(text, settings):
    record = parse_transaction_block(text)
    if record is not None:
        assert record.settlement_date == "11/20/2025"
        assert record.trade_date == "11/25/2025"
        assert record.transaction_type

    report = parse_activity_lines(["Brokerage Account — 12345678", *text.split("\n")], settings=settings)

    assert len(report.records) + len(report.issues) <= 1
