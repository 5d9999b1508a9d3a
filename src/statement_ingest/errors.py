"""Error taxonomy and issue reporting for statement parsing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class StatementParseError(Exception):
    """Base class for every parse failure raised by this package."""


class AccountNumberNotFound(StatementParseError):
    """No account header was found; nothing in the document can be attributed."""


class UnparsableRecord(StatementParseError):
    def __init__(self, text: str, line_number: int | None = None) -> None:
        self.text = text
        self.line_number = line_number
        super().__init__(f"No transaction type found in block: {text!r}")


class InvalidDateFormat(StatementParseError, ValueError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid date format: {value!r}")


class UnmatchedLotGroup(StatementParseError):
    def __init__(self, line_number: int, summed_quantity, best_diff) -> None:
        self.line_number = line_number
        self.summed_quantity = summed_quantity
        self.best_diff = best_diff
        closest = "n/a" if best_diff is None else f"{best_diff}"
        super().__init__(
            f"Lot group at line {line_number} ({summed_quantity} shares) matched no symbol "
            f"(closest diff: {closest})"
        )


class FalseDuplicateDetected(StatementParseError):
    def __init__(self, key: str, differing_fields: list[str]) -> None:
        self.key = key
        self.differing_fields = list(differing_fields)
        super().__init__(
            f"Records share identity key {key!r} but differ in: {', '.join(differing_fields)}"
        )


class IssueKind(str, Enum):
    UNPARSABLE_RECORD = "unparsable_record"
    INVALID_DATE = "invalid_date"
    UNMATCHED_LOT_GROUP = "unmatched_lot_group"
    FALSE_DUPLICATE = "false_duplicate"
    TRUE_DUPLICATE = "true_duplicate"
    INVALID_ROW = "invalid_row"
    INVALID_FIELD = "invalid_field"
    SUSPECT_FIELD = "suspect_field"


# Informational kinds do not downgrade a clean parse.
_INFORMATIONAL_KINDS = {IssueKind.TRUE_DUPLICATE}
_ERROR_KINDS = {IssueKind.INVALID_FIELD, IssueKind.INVALID_DATE, IssueKind.UNPARSABLE_RECORD}


@dataclass(frozen=True)
class StatementIssue:
    kind: IssueKind
    message: str
    line_number: int | None = None

    @classmethod
    def from_error(cls, kind: IssueKind, error: Exception, line_number: int | None = None):
        if line_number is None:
            line_number = getattr(error, "line_number", None)
        return cls(kind=kind, message=str(error), line_number=line_number)

    @property
    def is_warning(self) -> bool:
        return self.kind not in _INFORMATIONAL_KINDS

    @property
    def is_error(self) -> bool:
        return self.kind in _ERROR_KINDS

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"Line {self.line_number}: {self.message}"


class ParseStatus(IntEnum):
    CLEAN = 0
    PARTIAL = 1
    FAILED = 2


def status_for(issues: list[StatementIssue]) -> ParseStatus:
    if any(issue.is_warning for issue in issues):
        return ParseStatus.PARTIAL
    return ParseStatus.CLEAN
