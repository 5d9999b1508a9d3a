"""Activity report parser.

Transactions in the activity report wrap across several lines. A record
starts with a line carrying two dates (settlement, trade); every following
line up to the next start line or a flush marker belongs to it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Sequence

from statement_ingest.config.settings import Settings
from statement_ingest.errors import (
    AccountNumberNotFound,
    IssueKind,
    ParseStatus,
    StatementIssue,
    UnparsableRecord,
    status_for,
)
from statement_ingest.ingest.patterns import (
    ACCOUNT_TYPES,
    is_account_type_token,
    is_activity_flush_marker,
    is_activity_noise,
    is_currency_token,
    is_number_token,
    is_placeholder,
    is_symbol_token,
    is_transaction_start,
    transaction_start_dates,
)
from statement_ingest.ingest.symbol_context import iter_contexts
from statement_ingest.utils.logging import get_logger
from statement_ingest.utils.money import PLACEHOLDER

logger = get_logger(__name__)

TRANSACTION_TYPE_KEYWORDS = (
    "Buy",
    "Sell",
    "Dividend",
    "Reinvestment",
    "Interest",
    "Funds",
    "Withdrawal",
    "Transfer",
    "Sweep",
    "Corp",
    "Withholding",
    "Fee",
)

_WRAPPED_DIGIT_RE = re.compile(r"(\$[\d,]*\d\.\d+)\s+(\d)(?=\s|$)")
_UNSIGNED_NUMBER_RE = re.compile(r"^\d[\d,]*(?:\.\d*)?$")
_LEADING_NUMBER_RE = re.compile(r"^-?\d")


def _split_word_pattern(word: str) -> re.Pattern[str]:
    splits = "|".join(
        rf"{re.escape(word[:cut])}\s+{re.escape(word[cut:])}" for cut in range(1, len(word))
    )
    return re.compile(rf"\b(?:{splits})\b")


# Account-type words that the statement layout breaks without a hyphen.
_SPLIT_WORD_REPAIRS = tuple((_split_word_pattern(word), word) for word in ACCOUNT_TYPES)


@dataclass(frozen=True)
class TransactionRecord:
    settlement_date: str
    trade_date: str
    symbol: str
    investment_name: str
    transaction_type: str
    account_type: str
    shares: str
    price: str
    commission: str
    amount: str
    account_number: str = ""
    line_number: int | None = None


@dataclass(frozen=True)
class ActivityReport:
    account_numbers: list[str]
    records: list[TransactionRecord]
    issues: list[StatementIssue] = field(default_factory=list)

    @property
    def account_number(self) -> str:
        return self.account_numbers[0]

    @property
    def status(self) -> ParseStatus:
        return status_for(self.issues)


# Each field extractor is an ordered list of (predicate, consume) rules. The
# first rule whose predicate accepts the token at the cursor consumes it and
# returns (tokens_consumed, value).
Consume = Callable[[list[str], int], tuple[int, str]]
Rule = tuple[Callable[[str], bool], Consume]


def _take_one(tokens: list[str], start: int) -> tuple[int, str]:
    return 1, tokens[start]


def _is_unsigned_number(token: str) -> bool:
    return bool(_UNSIGNED_NUMBER_RE.match(token))


def _is_type_keyword(token: str) -> bool:
    return token in TRANSACTION_TYPE_KEYWORDS


def _looks_like_quantity(token: str) -> bool:
    return is_placeholder(token) or token[:1] == "$" or bool(_LEADING_NUMBER_RE.match(token))


def _take_investment_name(tokens: list[str], start: int) -> tuple[int, str]:
    position = start
    while position < len(tokens):
        token = tokens[position]
        if _is_type_keyword(token):
            break
        if (
            is_account_type_token(token)
            and position + 1 < len(tokens)
            and _looks_like_quantity(tokens[position + 1])
        ):
            break
        position += 1
    return position - start, " ".join(tokens[start:position])


def _parenthetical_length(tokens: list[str], start: int) -> int:
    if start >= len(tokens) or not tokens[start].startswith("("):
        return 0
    position = start
    while position < len(tokens):
        position += 1
        if tokens[position - 1].endswith(")"):
            break
    return position - start


def _next_word_in(words: set[str]) -> Callable[[list[str], int], int]:
    def _length(tokens: list[str], start: int) -> int:
        return 1 if start < len(tokens) and tokens[start] in words else 0

    return _length


def _corp_action_length(tokens: list[str], start: int) -> int:
    if start >= len(tokens):
        return 0
    return 1 + _parenthetical_length(tokens, start + 1)


# Multi-word transaction types, keyed by their first token.
TYPE_CONTINUATIONS: dict[str, Callable[[list[str], int], int]] = {
    "Funds": _next_word_in({"Received"}),
    "Transfer": _parenthetical_length,
    "Sweep": _next_word_in({"in", "out"}),
    "Corp": _corp_action_length,
}


def _take_transaction_type(tokens: list[str], start: int) -> tuple[int, str]:
    continuation = TYPE_CONTINUATIONS.get(tokens[start])
    extra = continuation(tokens, start + 1) if continuation else 0
    consumed = 1 + extra
    return consumed, " ".join(tokens[start : start + consumed])


SYMBOL_RULES: list[Rule] = [
    (is_placeholder, _take_one),
    (is_symbol_token, _take_one),
]
INVESTMENT_NAME_RULES: list[Rule] = [
    (lambda token: True, _take_investment_name),
]
TRANSACTION_TYPE_RULES: list[Rule] = [
    (_is_type_keyword, _take_transaction_type),
]
ACCOUNT_TYPE_RULES: list[Rule] = [
    (is_account_type_token, _take_one),
]
SHARES_RULES: list[Rule] = [
    (is_placeholder, _take_one),
    (is_number_token, _take_one),
]
PRICE_RULES: list[Rule] = [
    (is_placeholder, _take_one),
    (is_currency_token, _take_one),
    (_is_unsigned_number, _take_one),
]
COMMISSION_RULES: list[Rule] = [
    (is_placeholder, _take_one),
    (lambda token: token == "Free", _take_one),
    (is_currency_token, _take_one),
    (_is_unsigned_number, _take_one),
]

FIELD_GRAMMAR: list[tuple[str, list[Rule]]] = [
    ("symbol", SYMBOL_RULES),
    ("investment_name", INVESTMENT_NAME_RULES),
    ("transaction_type", TRANSACTION_TYPE_RULES),
    ("account_type", ACCOUNT_TYPE_RULES),
    ("shares", SHARES_RULES),
    ("price", PRICE_RULES),
    ("commission", COMMISSION_RULES),
]


def _extract(rules: list[Rule], tokens: list[str], start: int) -> tuple[int, str]:
    if start >= len(tokens):
        return 0, ""
    for predicate, consume in rules:
        if predicate(tokens[start]):
            return consume(tokens, start)
    return 0, ""


def repair_wrapped_text(text: str) -> str:
    """Join block text and undo the two breaks caused by word-wrap."""
    normalized = " ".join(text.split())
    normalized = _WRAPPED_DIGIT_RE.sub(r"\1\2", normalized)
    for pattern, word in _SPLIT_WORD_REPAIRS:
        normalized = pattern.sub(word, normalized)
    return normalized


def tokenize_fields(remainder: str) -> dict[str, str]:
    tokens = remainder.split()
    values: dict[str, str] = {}
    cursor = 0
    for name, rules in FIELD_GRAMMAR:
        consumed, value = _extract(rules, tokens, cursor)
        values[name] = value
        cursor += consumed

    rest = tokens[cursor:]
    if rest and not values["account_type"] and is_account_type_token(rest[-1]):
        values["account_type"] = rest.pop()
    values["amount"] = " ".join(rest)
    return values


def parse_transaction_block(
    text: str,
    *,
    account_number: str = "",
    line_number: int | None = None,
) -> TransactionRecord | None:
    """Parse one joined transaction block; ``None`` when no type resolves."""
    normalized = repair_wrapped_text(text)
    dates = transaction_start_dates(normalized)
    if dates is None:
        return None
    settlement_date, trade_date = dates

    parts = normalized.split(None, 2)
    remainder = parts[2] if len(parts) > 2 else ""
    values = tokenize_fields(remainder)
    if not values["transaction_type"]:
        return None

    return TransactionRecord(
        settlement_date=settlement_date,
        trade_date=trade_date,
        symbol=values["symbol"] or PLACEHOLDER,
        investment_name=values["investment_name"],
        transaction_type=values["transaction_type"],
        account_type=values["account_type"] or "CASH",
        shares=values["shares"] or PLACEHOLDER,
        price=values["price"] or PLACEHOLDER,
        commission=values["commission"] or PLACEHOLDER,
        amount=values["amount"] or PLACEHOLDER,
        account_number=account_number,
        line_number=line_number,
    )


@dataclass(slots=True)
class _BlockBuffer:
    lines: list[str] = field(default_factory=list)
    line_number: int | None = None
    account_number: str | None = None

    @property
    def accumulating(self) -> bool:
        return bool(self.lines)

    def start(self, line: str, line_number: int, account_number: str | None) -> None:
        self.lines = [line]
        self.line_number = line_number
        self.account_number = account_number

    def take(self) -> tuple[str, int | None, str | None]:
        block = (" ".join(self.lines), self.line_number, self.account_number)
        self.lines = []
        self.line_number = None
        self.account_number = None
        return block


def parse_activity_lines(
    lines: Sequence[str] | Iterable[str],
    *,
    settings: Settings | None = None,
) -> ActivityReport:
    """Reconstruct every transaction of an activity report.

    Raises :class:`AccountNumberNotFound` when the document has no account
    header. Blocks without a transaction type are reported as issues and
    skipped.
    """
    lines = list(lines)
    parsed: list[tuple[TransactionRecord, str | None]] = []
    issues: list[StatementIssue] = []
    buffer = _BlockBuffer()

    def _flush() -> None:
        if not buffer.accumulating:
            return
        text, line_number, account_number = buffer.take()
        record = parse_transaction_block(text, line_number=line_number)
        if record is None:
            issue = StatementIssue.from_error(
                IssueKind.UNPARSABLE_RECORD, UnparsableRecord(text, line_number)
            )
            logger.warning("Skipping transaction block: %s", issue)
            issues.append(issue)
            return
        parsed.append((record, account_number))

    context = None
    for index, context in iter_contexts(lines, settings=settings):
        line = lines[index].strip()
        if is_activity_flush_marker(line):
            _flush()
            continue
        if is_activity_noise(line):
            continue
        if is_transaction_start(line):
            _flush()
            buffer.start(line, index + 1, context.current_account)
        elif buffer.accumulating:
            buffer.lines.append(line)
    _flush()

    accounts = list(context.accounts) if context is not None else []
    if not accounts:
        raise AccountNumberNotFound("Could not find an account number in the activity report")

    records = [
        replace(record, account_number=account_number or accounts[0])
        for record, account_number in parsed
    ]
    logger.info(
        "Parsed %d transactions for account(s) %s with %d issue(s)",
        len(records),
        ", ".join(accounts),
        len(issues),
    )
    return ActivityReport(account_numbers=accounts, records=records, issues=issues)
