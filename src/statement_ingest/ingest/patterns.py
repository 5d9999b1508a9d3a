"""Line and token predicates shared by the activity and realized-gains parsers."""

from __future__ import annotations

import re
from decimal import Decimal

from statement_ingest.utils.money import PLACEHOLDER, to_decimal

DATE_TOKEN = r"\d{1,2}/\d{1,2}/\d{4}"

_DATE_TOKEN_RE = re.compile(rf"^{DATE_TOKEN}$")
_TRANSACTION_START_RE = re.compile(rf"^({DATE_TOKEN})\s+({DATE_TOKEN})(?!\d)")
_ACCOUNT_HEADER_RE = re.compile(r"Brokerage Account\s*[—–-]\s*(\d{8})(?!\d)")
_TICKER_LINE_RE = re.compile(r"^[A-Z]{1,5}(?: [A-Z])?$")
_SYMBOL_TOKEN_RE = re.compile(r"^[A-Z]{1,10}$")
_NUMBER_TOKEN_RE = re.compile(r"^-?\d[\d,]*(?:\.\d*)?$")
_CURRENCY_TOKEN_RE = re.compile(r"^[+-]?\$")
_DATE_LINE_RE = re.compile(rf"^{DATE_TOKEN}")
_QUANTITY_LINE_RE = re.compile(r"^(\d[\d,]*(?:\.\d+)?)\s+[+-]?\$")
_ADJUSTMENT_LINE_RE = re.compile(r"^(?:[+-]\$|\+\d)")
_PAGE_FOOTER_RE = re.compile(r"\bPage \d+(?: of \d+)?\b")

LOT_DETAILS_MARKER = "Hide lot details"
SECTION_HEADERS = ("STOCKS, OPTIONS, AND ETFS", "BROKERED CDS, BONDS")
ACCOUNT_TYPES = ("CASH", "MARGIN")

_ACTIVITY_HEADER_FRAGMENTS = {
    "type",
    "Accoun",
    "t type",
    "Quantity Price Commissio",
    "n & fees**",
    "Amount",
}
_FOOTNOTE_FRAGMENTS = ("wash sale", "disallowed", "more information")


def is_date_token(token: str) -> bool:
    return bool(_DATE_TOKEN_RE.match(token))


def is_placeholder(token: str) -> bool:
    return token == PLACEHOLDER


def is_symbol_token(token: str) -> bool:
    return bool(_SYMBOL_TOKEN_RE.match(token))


def is_number_token(token: str) -> bool:
    return bool(_NUMBER_TOKEN_RE.match(token))


def is_currency_token(token: str) -> bool:
    return bool(_CURRENCY_TOKEN_RE.match(token))


def is_account_type_token(token: str) -> bool:
    return token in ACCOUNT_TYPES


def transaction_start_dates(line: str) -> tuple[str, str] | None:
    match = _TRANSACTION_START_RE.match(line.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def is_transaction_start(line: str) -> bool:
    return transaction_start_dates(line) is not None


def account_number_in(line: str) -> str | None:
    match = _ACCOUNT_HEADER_RE.search(line)
    if not match:
        return None
    return match.group(1)


def is_ticker_line(line: str) -> bool:
    return bool(_TICKER_LINE_RE.match(line.strip()))


def is_section_marker(line: str) -> bool:
    text = line.strip()
    return LOT_DETAILS_MARKER in text or text in SECTION_HEADERS


def is_date_line(line: str) -> bool:
    return bool(_DATE_LINE_RE.match(line.strip()))


def is_quantity_line(line: str) -> bool:
    return bool(_QUANTITY_LINE_RE.match(line.strip()))


def leading_quantity(line: str) -> Decimal | None:
    """Quantity at the start of a ``<quantity> $<...>`` line."""
    match = _QUANTITY_LINE_RE.match(line.strip())
    if not match:
        return None
    return to_decimal(match.group(1))


def is_adjustment_line(line: str) -> bool:
    return bool(_ADJUSTMENT_LINE_RE.match(line.strip()))


def is_footnote_line(line: str) -> bool:
    lowered = line.strip().lower()
    return any(fragment in lowered for fragment in _FOOTNOTE_FRAGMENTS)


def is_lot_table_header(line: str) -> bool:
    text = line.strip()
    return (
        "Date sold" in text
        or "Date acquired" in text
        or "Dateacquired" in text
        or "Cost basismethod" in text
    )


def ends_lot_section(line: str, *, method_row: bool = False) -> bool:
    """True when ``line`` starts the next section rather than continuing a lot.

    All-caps method continuations such as ``FIFO`` look like tickers, so a
    ``method_row`` only ends the section on an explicit marker.
    """
    text = line.strip()
    return (
        text == "Total"
        or (not method_row and is_ticker_line(text))
        or is_section_marker(text)
        or account_number_in(text) is not None
    )


def is_activity_flush_marker(line: str) -> bool:
    text = line.strip()
    return (
        text == "date"
        or "This report only" in text
        or "DISCLOSURES" in text
        or account_number_in(text) is not None
        or bool(_PAGE_FOOTER_RE.search(text))
    )


def is_activity_noise(line: str) -> bool:
    text = line.strip()
    return (
        not text
        or text in _ACTIVITY_HEADER_FRAGMENTS
        or text.startswith("Trade date Symbol Name")
        or "Settlement" in text
        or "Custom report" in text
        or "--" in text
        or "continued" in text
    )
