from __future__ import annotations

import pytest

from statement_ingest.config.settings import Settings

ACTIVITY_ACCOUNT = "12345678"
GAINS_ACCOUNT = "87654321"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        lot_match_tolerance=0.01,
        name_lookahead=4,
        lot_scan_window=30,
        log_level="INFO",
    )


@pytest.fixture
def activity_lines() -> list[str]:
    return [
        "Custom report",
        f"Brokerage Account — {ACTIVITY_ACCOUNT}",
        "Settlement",
        "date",
        "Trade date Symbol Name Transaction type",
        "Accoun",
        "t type",
        "Quantity Price Commissio",
        "n & fees**",
        "Amount",
        "11/20/2025 11/25/2025 AAPL Apple Inc Buy 10 $150.0000 $0.00 -$1,500.00 CASH",
        "11/21/2025 11/21/2025 VTI VANGUARD TOTAL STOCK",
        "MARKET ETF Sell CASH 5.00000 $300.10 $5.00 $995.00",
        "-- 1 of 2 --",
        "11/28/2025 11/28/2025 QQQ INVESCO QQQ ETF Dividend CASH — — Free $42.17",
        "Page 1 of 2",
    ]


@pytest.fixture
def realized_gains_lines() -> list[str]:
    return [
        "Realized gains and losses",
        f"Brokerage Account — {GAINS_ACCOUNT}",
        "STOCKS, OPTIONS, AND ETFS",
        "DIA",
        "SPDR DOW JONES INDUSTRIAL AVERAGE ETF",
        "18.097 $7,000.00 $8,000.00 $1,000.00",
        "SPY",
        "SPDR S&P 500 ETF TRUST",
        "5.000 $2,000.00 $2,500.00 $500.00",
        "Hide lot details",
        "Wash sale disallowed losses are shown as adjustments.",
        "12/01/2025 01/15/2024 Sell First in,",
        "first out",
        "10.000 $4,000.00 $4,500.00 — $500.00 $500.00",
        "12/01/2025 02/20/2024 Sell First in,",
        "first out",
        "+$12.34",
        "8.097 $3,000.00 $3,500.00 — $500.00 $500.00",
        "Hide lot details",
        "5.000 $2,000.00 $2,500.00 $500.00 — $500.00",
        "12/02/2025 03/03/2024 Sell Specific",
        "identification",
    ]
