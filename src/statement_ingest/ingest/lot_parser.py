"""Realized-gains lot table parser.

Lot rows come in two arrangements: embedded right after a symbol header, or
after an explicit ``Hide lot details`` marker. Either way the rows carry no
security identifier, so each contiguous run is returned as a :class:`LotGroup`
and attributed to a symbol later by quantity reconciliation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Sequence

from statement_ingest.config.settings import Settings, get_settings
from statement_ingest.ingest.patterns import (
    DATE_TOKEN,
    LOT_DETAILS_MARKER,
    account_number_in,
    ends_lot_section,
    is_adjustment_line,
    is_date_line,
    is_footnote_line,
    is_lot_table_header,
    is_quantity_line,
    is_section_marker,
    is_ticker_line,
)
from statement_ingest.ingest.symbol_context import SymbolContext, advance
from statement_ingest.utils.logging import get_logger
from statement_ingest.utils.money import PLACEHOLDER, to_decimal

logger = get_logger(__name__)

LOT_EVENTS = ("Sell", "Redemption", "Buy", "Dividend", "Reinvestment", "Cover Short")

_DATE_ROW_RE = re.compile(rf"^({DATE_TOKEN})(?:\s+({DATE_TOKEN}))?\s*(.*)$")
_EVENT_RE = re.compile(r"^(" + "|".join(re.escape(event) for event in LOT_EVENTS) + r")\b\s*(.*)$")
# Event and method run up to the first decimal quantity; amounts follow it.
_SINGLE_LINE_RE = re.compile(
    rf"^({DATE_TOKEN}\s+{DATE_TOKEN}\s+.*?)\s*(\d[\d,]*\.\d+\s+[+-]?\$.*)$"
)


class LotLayout(str, Enum):
    NORMAL_3 = "normal_3"
    NORMAL_4 = "normal_4"
    INVERTED_3 = "inverted_3"
    SINGLE_LINE = "single_line"


class LotArrangement(str, Enum):
    EMBEDDED = "embedded"
    LOT_DETAILS = "lot_details"


LAYOUT_ROW_COUNTS = {
    LotLayout.NORMAL_3: 3,
    LotLayout.NORMAL_4: 4,
    LotLayout.INVERTED_3: 3,
    LotLayout.SINGLE_LINE: 1,
}

# Row positions holding cost basis method continuations, such as "FIFO".
METHOD_ROW_POSITIONS = {
    LotLayout.NORMAL_3: (1,),
    LotLayout.NORMAL_4: (1, 2),
    LotLayout.INVERTED_3: (2,),
    LotLayout.SINGLE_LINE: (),
}


@dataclass(frozen=True)
class LotRecord:
    date_sold: str
    date_acquired: str
    event: str
    cost_basis_method: str
    quantity: str
    total_cost: str
    proceeds: str
    short_term_gain: str
    long_term_gain: str
    total_gain: str
    layout: LotLayout
    line_number: int
    account_number: str = ""
    symbol: str = ""
    investment_name: str = ""

    @property
    def quantity_value(self) -> Decimal:
        return to_decimal(self.quantity) or Decimal("0")


@dataclass(frozen=True)
class LotGroup:
    lots: tuple[LotRecord, ...]
    summed_quantity: Decimal
    line_number: int
    end_line: int
    account_number: str | None
    arrangement: LotArrangement


@dataclass(frozen=True)
class LotScan:
    groups: list[LotGroup]
    context: SymbolContext


def classify_lot_layout(rows: Sequence[str]) -> LotLayout | None:
    """Pick the layout of the lot whose rows start at ``rows[0]``."""
    if not rows:
        return None
    first = rows[0]
    if _SINGLE_LINE_RE.match(first.strip()):
        return LotLayout.SINGLE_LINE
    if is_date_line(first):
        if len(rows) >= 3 and is_quantity_line(rows[2]):
            return LotLayout.NORMAL_3
        if len(rows) >= 4 and is_quantity_line(rows[3]):
            return LotLayout.NORMAL_4
        return None
    if is_quantity_line(first) and len(rows) >= 3 and is_date_line(rows[1]):
        return LotLayout.INVERTED_3
    return None


def _split_date_row(text: str) -> tuple[str, str, str, str] | None:
    match = _DATE_ROW_RE.match(text.strip())
    if not match:
        return None
    first, second, rest = match.groups()
    if second:
        date_sold, date_acquired = first, second
    else:
        date_sold, date_acquired = "", first

    event_match = _EVENT_RE.match(rest.strip())
    if event_match:
        event, method_head = event_match.group(1), event_match.group(2)
    else:
        event, method_head = "Sell", rest
    return date_sold, date_acquired, event, method_head


def _split_amounts_row(text: str) -> dict[str, str] | None:
    tokens = text.split()
    if len(tokens) < 3 or to_decimal(tokens[0]) is None:
        return None
    gains = tokens[3:]
    short_term = long_term = total = PLACEHOLDER
    if len(gains) >= 3:
        short_term, long_term, total = gains[:3]
    elif gains:
        total = gains[-1]
    return {
        "quantity": tokens[0],
        "total_cost": tokens[1],
        "proceeds": tokens[2],
        "short_term_gain": short_term,
        "long_term_gain": long_term,
        "total_gain": total,
    }


def _build_lot(
    date_row: str,
    method_rows: Sequence[str],
    amounts_row: str,
    layout: LotLayout,
    line_number: int,
) -> LotRecord | None:
    dates = _split_date_row(date_row)
    amounts = _split_amounts_row(amounts_row)
    if dates is None or amounts is None:
        return None
    date_sold, date_acquired, event, method_head = dates
    method = " ".join(" ".join([method_head, *method_rows]).split())
    return LotRecord(
        date_sold=date_sold,
        date_acquired=date_acquired,
        event=event,
        cost_basis_method=method,
        layout=layout,
        line_number=line_number,
        **amounts,
    )


def _parse_normal_3(rows: Sequence[str], line_number: int) -> LotRecord | None:
    return _build_lot(rows[0], rows[1:2], rows[2], LotLayout.NORMAL_3, line_number)


def _parse_normal_4(rows: Sequence[str], line_number: int) -> LotRecord | None:
    return _build_lot(rows[0], rows[1:3], rows[3], LotLayout.NORMAL_4, line_number)


def _parse_inverted_3(rows: Sequence[str], line_number: int) -> LotRecord | None:
    return _build_lot(rows[1], rows[2:3], rows[0], LotLayout.INVERTED_3, line_number)


def _parse_single_line(rows: Sequence[str], line_number: int) -> LotRecord | None:
    match = _SINGLE_LINE_RE.match(rows[0].strip())
    if not match:
        return None
    date_part, amounts_part = match.groups()
    return _build_lot(date_part, (), amounts_part, LotLayout.SINGLE_LINE, line_number)


_LAYOUT_PARSERS: dict[LotLayout, Callable[[Sequence[str], int], LotRecord | None]] = {
    LotLayout.NORMAL_3: _parse_normal_3,
    LotLayout.NORMAL_4: _parse_normal_4,
    LotLayout.INVERTED_3: _parse_inverted_3,
    LotLayout.SINGLE_LINE: _parse_single_line,
}

_unhandled = set(LotLayout) - set(_LAYOUT_PARSERS)
if _unhandled:
    raise RuntimeError(f"No lot parser for layouts: {sorted(layout.value for layout in _unhandled)}")


def _lot_rows(lines: Sequence[str], start: int, limit: int = 4) -> list[tuple[int, str]]:
    # Wash-sale adjustment annotations can sit between or inside lots; they
    # are stepped over one line at a time and never become rows.
    rows: list[tuple[int, str]] = []
    position = start
    while position < len(lines) and len(rows) < limit:
        line = lines[position]
        position += 1
        if not line.strip() or is_adjustment_line(line):
            continue
        rows.append((position - 1, line))
    return rows


def scan_lot_run(
    lines: Sequence[str],
    start: int,
    *,
    account_number: str | None = None,
    arrangement: LotArrangement = LotArrangement.LOT_DETAILS,
) -> tuple[LotGroup | None, int]:
    """Parse consecutive lots from ``start``; return the group and the next index."""
    lots: list[LotRecord] = []
    summed = Decimal("0")
    position = start

    while position < len(lines):
        rows = _lot_rows(lines, position)
        layout = classify_lot_layout([text for _, text in rows])
        if layout is None:
            break
        used = rows[: LAYOUT_ROW_COUNTS[layout]]
        method_positions = METHOD_ROW_POSITIONS[layout]
        if any(
            ends_lot_section(text, method_row=offset in method_positions)
            for offset, (_, text) in enumerate(used)
        ):
            break
        lot = _LAYOUT_PARSERS[layout]([text for _, text in used], used[0][0] + 1)
        if lot is None:
            break
        lots.append(lot)
        summed += lot.quantity_value
        position = used[-1][0] + 1

    if not lots:
        return None, position
    group = LotGroup(
        lots=tuple(lots),
        summed_quantity=summed,
        line_number=lots[0].line_number,
        end_line=position,
        account_number=account_number,
        arrangement=arrangement,
    )
    return group, position


def _skip_lot_preamble(lines: Sequence[str], start: int) -> int:
    position = start
    while position < len(lines):
        line = lines[position]
        if line.strip() and not is_footnote_line(line) and not is_lot_table_header(line):
            break
        position += 1
    return position


def _embedded_run_start(lines: Sequence[str], symbol_index: int, window: int) -> int | None:
    for position in range(symbol_index + 1, min(symbol_index + window, len(lines))):
        line = lines[position]
        text = line.strip()
        if (
            is_ticker_line(text)
            or is_section_marker(text)
            or account_number_in(text) is not None
            or "Date acquired" in text
            or "-- " in text
            or text == "Total"
        ):
            return None
        if is_date_line(text) and "\t" in line:
            return position
    return None


def find_lot_groups(lines: Sequence[str], *, settings: Settings | None = None) -> LotScan:
    """Scan a realized-gains report for lot runs in document order.

    The symbol context is folded over every line outside the lot runs, so
    the returned context holds the expected quantity of each symbol summary.
    """
    resolved = settings or get_settings()
    groups: list[LotGroup] = []
    context = SymbolContext()
    index = 0

    while index < len(lines):
        previous = context
        context = advance(context, lines, index, name_lookahead=resolved.name_lookahead)
        line = lines[index]

        run_start: int | None = None
        arrangement = LotArrangement.LOT_DETAILS
        if LOT_DETAILS_MARKER in line:
            run_start = _skip_lot_preamble(lines, index + 1)
        elif context is not previous and is_ticker_line(line):
            run_start = _embedded_run_start(lines, index, resolved.lot_scan_window)
            arrangement = LotArrangement.EMBEDDED

        if run_start is not None:
            group, end = scan_lot_run(
                lines,
                run_start,
                account_number=context.current_account,
                arrangement=arrangement,
            )
            if group is not None:
                groups.append(group)
                logger.debug(
                    "Lot group at line %d: %d lot(s), %s shares",
                    group.line_number,
                    len(group.lots),
                    group.summed_quantity,
                )
                # Symbol lines skipped here are revisited on the next pass.
                index = max(end, index + 1)
                continue
        index += 1

    return LotScan(groups=groups, context=context)
