"""Account and security context tracked while scanning a statement.

The tracker is a fold: :func:`advance` takes the context before a line and
returns the context after it, without touching the previous value. Both the
activity parser and the realized-gains parser thread the same context through
their scans, and the lot reconciliation reads the symbol summaries it
registers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterator, Sequence

from statement_ingest.config.settings import Settings, get_settings
from statement_ingest.ingest.patterns import (
    account_number_in,
    is_section_marker,
    is_ticker_line,
    leading_quantity,
)


@dataclass(slots=True)
class SymbolSummary:
    account_number: str
    symbol: str
    name: str
    expected_quantity: Decimal | None
    line_number: int
    matched: bool = False

    def claim(self) -> None:
        if self.matched:
            raise ValueError(f"{self.symbol} in {self.account_number} is already matched")
        self.matched = True


@dataclass(frozen=True)
class SymbolContext:
    current_account: str | None = None
    current_symbol: SymbolSummary | None = None
    accounts: tuple[str, ...] = ()
    summaries: tuple[SymbolSummary, ...] = ()

    def reconciliation_targets(self) -> list[SymbolSummary]:
        """Symbol summaries that carry an expected quantity, in document order."""
        return [summary for summary in self.summaries if summary.expected_quantity is not None]

    def find_summary(self, account_number: str, symbol: str) -> SymbolSummary | None:
        for summary in self.summaries:
            if summary.account_number == account_number and summary.symbol == symbol:
                return summary
        return None


def _investment_name_at(
    lines: Sequence[str], index: int, lookahead: int
) -> tuple[int, str] | None:
    for position in range(index + 1, min(index + 1 + lookahead, len(lines))):
        candidate = lines[position].strip()
        if not candidate or candidate[0].isdigit():
            continue
        if len(candidate) <= 5 or is_section_marker(candidate):
            continue
        return position, candidate
    return None


def advance(
    context: SymbolContext,
    lines: Sequence[str],
    index: int,
    *,
    name_lookahead: int = 4,
) -> SymbolContext:
    line = lines[index]

    account_number = account_number_in(line)
    if account_number is not None:
        accounts = context.accounts
        if account_number not in accounts:
            accounts = (*accounts, account_number)
        # A new account invalidates whatever symbol was being matched.
        return replace(
            context,
            current_account=account_number,
            current_symbol=None,
            accounts=accounts,
        )

    if context.current_account is None or not is_ticker_line(line):
        return context

    found = _investment_name_at(lines, index, name_lookahead)
    if found is None:
        return context
    name_index, name = found

    symbol = line.strip()
    expected_quantity = None
    if name_index + 1 < len(lines):
        expected_quantity = leading_quantity(lines[name_index + 1])

    existing = context.find_summary(context.current_account, symbol)
    if existing is not None:
        if existing.expected_quantity is not None or expected_quantity is None:
            return replace(context, current_symbol=existing)
        # The first occurrence that carries a quantity row sets the target.
        upgraded = replace(
            existing,
            name=name,
            expected_quantity=expected_quantity,
            line_number=index + 1,
        )
        summaries = tuple(upgraded if item is existing else item for item in context.summaries)
        return replace(context, current_symbol=upgraded, summaries=summaries)

    summary = SymbolSummary(
        account_number=context.current_account,
        symbol=symbol,
        name=name,
        expected_quantity=expected_quantity,
        line_number=index + 1,
    )
    return replace(
        context,
        current_symbol=summary,
        summaries=(*context.summaries, summary),
    )


def iter_contexts(
    lines: Sequence[str],
    *,
    settings: Settings | None = None,
) -> Iterator[tuple[int, SymbolContext]]:
    resolved = settings or get_settings()
    context = SymbolContext()
    for index in range(len(lines)):
        context = advance(context, lines, index, name_lookahead=resolved.name_lookahead)
        yield index, context


def track_symbols(lines: Sequence[str], *, settings: Settings | None = None) -> SymbolContext:
    context = SymbolContext()
    for _, context in iter_contexts(lines, settings=settings):
        pass
    return context
