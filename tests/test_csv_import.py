from __future__ import annotations

import io

from statement_ingest.errors import IssueKind
from statement_ingest.ingest.csv_import import read_canonical_csv
from statement_ingest.ingest.normalize import CANONICAL_HEADER


def test_read_canonical_csv_renormalizes_values():
    text = "\n".join(
        [
            CANONICAL_HEADER,
            "12345678,11/25/2025,11/20/2025,Buy,,\"Apple, Inc\",aapl,10,$150,\"-$1,500.00\",$0,\"-$1,500.00\",,CASH,",
            "12345678,2025/11/28,2025-11-28,Dividend,,INVESCO QQQ ETF,,—,—,42.17,0,42.17,0.0,CASH,",
        ]
    )

    rows, issues = read_canonical_csv(text)

    assert issues == []
    buy, dividend = rows
    assert buy.trade_date == "2025-11-25"
    assert buy.settlement_date == "2025-11-20"
    assert buy.investment_name == "Apple, Inc"
    assert buy.symbol == "AAPL"
    assert buy.shares == "10.00000"
    assert buy.share_price == "150.0000"
    assert buy.principal_amount == "-1500.00"
    assert buy.commissions_and_fees == "0.00"
    assert buy.accrued_interest == "0.0"
    assert buy.line_number == 2

    assert dividend.trade_date == "2025-11-28"
    assert dividend.symbol == "CASH"
    assert dividend.shares == "0.00000"
    assert dividend.share_price == ""
    assert dividend.commissions_and_fees == "0"


def test_sparse_rows_are_skipped_and_bad_dates_reported():
    text = "\n".join(
        [
            CANONICAL_HEADER,
            "12345678,2025-11-25,,,,,,,,,,,,,",
            "12345678,13/45/2025,2025-11-20,Buy,,Apple Inc,AAPL,10,150,-1500,0,-1500,0.0,CASH,",
            "12345678,2025-11-25,2025-11-20,Sell,,Apple Inc,AAPL,5,150,750,0,750,0.0,CASH,",
        ]
    )

    rows, issues = read_canonical_csv(io.StringIO(text))

    assert [row.transaction_type for row in rows] == ["Sell"]
    assert len(issues) == 1
    assert issues[0].kind == IssueKind.INVALID_DATE
    assert issues[0].line_number == 3


def test_headers_match_case_and_spacing_insensitively():
    text = "\n".join(
        [
            "account_number,TRADE DATE,settlement date,transaction type,investment name,symbol,shares,"
            "share price,principal amount,commissions and fees,net amount,account type",
            "12345678,2025-11-25,2025-11-20,Buy,Apple Inc,AAPL,1,1,-1,0,-1,MARGIN",
        ]
    )

    rows, issues = read_canonical_csv(text)

    assert issues == []
    assert rows[0].account_type == "MARGIN"
    assert rows[0].transaction_description == ""
    assert rows[0].principal_amount == "-1.00"


def test_rows_failing_validation_are_kept_and_reported():
    text = "\n".join(
        [
            CANONICAL_HEADER,
            "12345678,2999-01-02,2999-01-01,Buy,,Apple Inc,AAPL,10,150,1500,0,1500,0.0,CASH,",
        ]
    )

    rows, issues = read_canonical_csv(text)

    assert len(rows) == 1
    assert [issue.kind for issue in issues] == [IssueKind.INVALID_FIELD, IssueKind.SUSPECT_FIELD]
    assert issues[0].message.startswith("trade_date")
    assert issues[1].message.startswith("net_amount")
    assert all(issue.line_number == 2 for issue in issues)
