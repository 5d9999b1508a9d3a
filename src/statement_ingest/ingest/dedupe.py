from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from statement_ingest.errors import (
    FalseDuplicateDetected,
    IssueKind,
    ParseStatus,
    StatementIssue,
    status_for,
)
from statement_ingest.ingest.normalize import CanonicalTransaction
from statement_ingest.utils.logging import get_logger
from statement_ingest.utils.money import CENT, format_decimal, to_decimal

logger = get_logger(__name__)

COMPARED_FIELDS = (
    "settlement_date",
    "share_price",
    "principal_amount",
    "net_amount",
    "commissions_and_fees",
    "transaction_description",
)


def _normalize_principal(value: str) -> str:
    parsed = to_decimal(value)
    if parsed is None:
        return "undefined"
    return format_decimal(parsed, CENT)


def transaction_identity_key(row: CanonicalTransaction) -> str:
    parts = [
        row.account_number,
        row.trade_date,
        row.symbol,
        row.transaction_type,
        row.shares,
        _normalize_principal(row.principal_amount),
    ]
    return "-".join(parts)


@dataclass(frozen=True)
class DuplicateGroup:
    key: str
    rows: list[CanonicalTransaction]
    differing_fields: list[str]

    @property
    def is_true_duplicate(self) -> bool:
        return not self.differing_fields


@dataclass(frozen=True)
class DedupeResult:
    rows: list[CanonicalTransaction]
    groups: list[DuplicateGroup]
    issues: list[StatementIssue] = field(default_factory=list)

    @property
    def true_duplicates(self) -> list[DuplicateGroup]:
        return [group for group in self.groups if group.is_true_duplicate]

    @property
    def false_duplicates(self) -> list[DuplicateGroup]:
        return [group for group in self.groups if not group.is_true_duplicate]

    @property
    def removed_count(self) -> int:
        return sum(len(group.rows) - 1 for group in self.true_duplicates)

    @property
    def status(self) -> ParseStatus:
        return status_for(self.issues)


def differing_fields(rows: list[CanonicalTransaction]) -> list[str]:
    first = rows[0]
    return [
        name
        for name in COMPARED_FIELDS
        if any(getattr(row, name) != getattr(first, name) for row in rows[1:])
    ]


def group_by_identity(rows: list[CanonicalTransaction]) -> dict[str, list[int]]:
    """Row positions per identity key, in first-seen order."""
    grouped: dict[str, list[int]] = {}
    for position, row in enumerate(rows):
        grouped.setdefault(transaction_identity_key(row), []).append(position)
    return grouped


def dedupe_transactions(rows: Iterable[CanonicalTransaction]) -> DedupeResult:
    """Collapse true duplicates and flag false ones.

    Rows sharing an identity key are true duplicates when every compared
    field matches; only the first is kept. Otherwise the key is ambiguous:
    all rows are kept and a false-duplicate issue names the differing fields.
    """
    rows = list(rows)
    groups: list[DuplicateGroup] = []
    issues: list[StatementIssue] = []
    dropped: set[int] = set()

    for key, positions in group_by_identity(rows).items():
        if len(positions) < 2:
            continue
        members = [rows[position] for position in positions]
        group = DuplicateGroup(key=key, rows=members, differing_fields=differing_fields(members))
        groups.append(group)

        if group.is_true_duplicate:
            dropped.update(positions[1:])
            issues.append(
                StatementIssue(
                    kind=IssueKind.TRUE_DUPLICATE,
                    message=f"Collapsed {len(members)} identical rows for key {key!r}",
                    line_number=members[0].line_number,
                )
            )
            continue

        issue = StatementIssue.from_error(
            IssueKind.FALSE_DUPLICATE,
            FalseDuplicateDetected(key, group.differing_fields),
            members[0].line_number,
        )
        logger.warning("Possible key collision: %s", issue)
        issues.append(issue)

    kept = [row for position, row in enumerate(rows) if position not in dropped]
    logger.info(
        "Deduplicated %d row(s) to %d (%d false duplicate group(s))",
        len(rows),
        len(kept),
        len(groups) - sum(1 for group in groups if group.is_true_duplicate),
    )
    return DedupeResult(rows=kept, groups=groups, issues=issues)


__all__ = [
    "COMPARED_FIELDS",
    "DedupeResult",
    "DuplicateGroup",
    "dedupe_transactions",
    "differing_fields",
    "group_by_identity",
    "transaction_identity_key",
]
