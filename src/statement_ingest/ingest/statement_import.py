"""End-to-end imports for the two statement report types."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from statement_ingest.analytics.lot_reconciliation import LotReconciliation, match_lot_groups
from statement_ingest.config.settings import Settings, get_settings
from statement_ingest.errors import AccountNumberNotFound, ParseStatus, StatementIssue, status_for
from statement_ingest.ingest.activity_parser import ActivityReport, parse_activity_lines
from statement_ingest.ingest.dedupe import DedupeResult, dedupe_transactions
from statement_ingest.ingest.lot_parser import LotGroup, find_lot_groups
from statement_ingest.ingest.normalize import (
    CanonicalTransaction,
    canonical_csv_text,
    normalize_records,
)
from statement_ingest.ingest.pdf_import import StatementSource, load_statement_lines
from statement_ingest.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActivityConversion:
    report: ActivityReport
    dedupe: DedupeResult
    issues: list[StatementIssue] = field(default_factory=list)

    @property
    def rows(self) -> list[CanonicalTransaction]:
        return self.dedupe.rows

    @property
    def csv_text(self) -> str:
        return canonical_csv_text(self.rows)

    @property
    def status(self) -> ParseStatus:
        return status_for(self.issues)


@dataclass(frozen=True)
class RealizedGainsImport:
    account_numbers: list[str]
    groups: list[LotGroup]
    reconciliation: LotReconciliation

    @property
    def issues(self) -> list[StatementIssue]:
        return self.reconciliation.issues

    @property
    def status(self) -> ParseStatus:
        return self.reconciliation.status


def convert_activity_lines(
    lines: Sequence[str],
    *,
    settings: Settings | None = None,
) -> ActivityConversion:
    report = parse_activity_lines(lines, settings=settings)
    rows, normalize_issues = normalize_records(report.records)
    deduped = dedupe_transactions(rows)
    return ActivityConversion(
        report=report,
        dedupe=deduped,
        issues=[*report.issues, *normalize_issues, *deduped.issues],
    )


def convert_activity_report(
    source: StatementSource,
    *,
    settings: Settings | None = None,
) -> ActivityConversion:
    """Parse, normalize and deduplicate an activity report.

    Raises :class:`AccountNumberNotFound` when no account header is present.
    """
    return convert_activity_lines(load_statement_lines(source), settings=settings)


def parse_realized_gains_lines(
    lines: Sequence[str],
    *,
    settings: Settings | None = None,
    tolerance: float | Decimal | None = None,
) -> RealizedGainsImport:
    resolved = settings or get_settings()
    scan = find_lot_groups(lines, settings=resolved)
    if not scan.context.accounts:
        raise AccountNumberNotFound("Could not find an account number in the realized-gains report")

    epsilon = resolved.lot_match_tolerance if tolerance is None else tolerance
    reconciliation = match_lot_groups(
        scan.groups,
        scan.context.reconciliation_targets(),
        tolerance=epsilon,
    )
    logger.info(
        "Realized-gains report: %d lot group(s), %d unmatched",
        len(scan.groups),
        len(reconciliation.unmatched),
    )
    return RealizedGainsImport(
        account_numbers=list(scan.context.accounts),
        groups=scan.groups,
        reconciliation=reconciliation,
    )


def import_realized_gains_report(
    source: StatementSource,
    *,
    settings: Settings | None = None,
    tolerance: float | Decimal | None = None,
) -> RealizedGainsImport:
    return parse_realized_gains_lines(
        load_statement_lines(source),
        settings=settings,
        tolerance=tolerance,
    )


__all__ = [
    "ActivityConversion",
    "RealizedGainsImport",
    "convert_activity_lines",
    "convert_activity_report",
    "import_realized_gains_report",
    "parse_realized_gains_lines",
]
