from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Sequence

from statement_ingest.analytics.lot_reconciliation import (
    reconciliation_summary,
    unmatched_groups_frame,
    write_lots_csv,
)
from statement_ingest.config.settings import get_settings
from statement_ingest.errors import ParseStatus, StatementIssue, StatementParseError, status_for
from statement_ingest.ingest.csv_import import read_canonical_csv
from statement_ingest.ingest.dedupe import dedupe_transactions
from statement_ingest.ingest.normalize import write_canonical_csv
from statement_ingest.ingest.statement_import import (
    convert_activity_report,
    import_realized_gains_report,
)
from statement_ingest.ingest.validators import validation_summary
from statement_ingest.utils.logging import configure_logging


def _print_issues(issues: Iterable[StatementIssue]) -> None:
    for issue in issues:
        print(f"{issue.kind.value}: {issue}", file=sys.stderr)


def _cmd_activity(args: argparse.Namespace) -> int:
    conversion = convert_activity_report(args.input, settings=get_settings())
    if args.output:
        write_canonical_csv(conversion.rows, args.output)
    else:
        sys.stdout.write(conversion.csv_text)
    _print_issues(conversion.issues)
    print(
        f"{len(conversion.rows)} transaction(s) for account(s) "
        f"{', '.join(conversion.report.account_numbers)}",
        file=sys.stderr,
    )
    return int(conversion.status)


def _cmd_realized_gains(args: argparse.Namespace) -> int:
    result = import_realized_gains_report(
        args.input,
        settings=get_settings(),
        tolerance=args.tolerance,
    )
    reconciliation = result.reconciliation
    write_lots_csv(reconciliation, args.output or sys.stdout)

    for row in reconciliation_summary(reconciliation):
        state = "ok" if row["matched"] else "MISMATCH"
        print(
            f"{row['account_number']} {row['symbol']}: expected {row['expected_quantity']}, "
            f"found {row['actual_quantity']} in {row['lot_count']} lot(s) [{state}]",
            file=sys.stderr,
        )
    unmatched = unmatched_groups_frame(reconciliation)
    if not unmatched.empty:
        print("Unmatched lot groups:", file=sys.stderr)
        print(unmatched.to_string(index=False), file=sys.stderr)
    if args.unmatched:
        unmatched.to_csv(args.unmatched, index=False)
    return int(result.status)


def _cmd_dedupe(args: argparse.Namespace) -> int:
    rows, read_issues = read_canonical_csv(args.input)
    result = dedupe_transactions(rows)
    if args.output:
        write_canonical_csv(result.rows, args.output)

    issues = [*read_issues, *result.issues]
    _print_issues(issues)
    print(validation_summary(read_issues), file=sys.stderr)
    print(
        f"{len(rows)} row(s): {len(result.true_duplicates)} true duplicate group(s) "
        f"({result.removed_count} removed), {len(result.false_duplicates)} false duplicate group(s)",
        file=sys.stderr,
    )
    return int(status_for(issues))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statement-ingest",
        description="Convert brokerage statement text into canonical records",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sp_activity = subparsers.add_parser(
        "activity", help="Parse an activity report into the canonical transaction CSV"
    )
    sp_activity.add_argument("input", type=Path, help="Statement .txt or .pdf file.")
    sp_activity.add_argument("-o", "--output", type=Path, help="CSV path (default: stdout).")
    sp_activity.set_defaults(func=_cmd_activity)

    sp_gains = subparsers.add_parser(
        "realized-gains", help="Parse a realized-gains report and reconcile lots to symbols"
    )
    sp_gains.add_argument("input", type=Path, help="Statement .txt or .pdf file.")
    sp_gains.add_argument("-o", "--output", type=Path, help="Lot CSV path (default: stdout).")
    sp_gains.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Share quantity tolerance for lot matching (default: STATEMENT_LOT_TOLERANCE).",
    )
    sp_gains.add_argument(
        "--unmatched",
        type=Path,
        help="Optional CSV path for the unmatched lot group diagnostic.",
    )
    sp_gains.set_defaults(func=_cmd_realized_gains)

    sp_dedupe = subparsers.add_parser(
        "dedupe", help="Classify duplicate rows in an existing canonical CSV"
    )
    sp_dedupe.add_argument("input", type=Path, help="Canonical transaction CSV.")
    sp_dedupe.add_argument("-o", "--output", type=Path, help="Write the deduplicated CSV here.")
    sp_dedupe.set_defaults(func=_cmd_dedupe)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except (StatementParseError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return int(ParseStatus.FAILED)


if __name__ == "__main__":
    raise SystemExit(main())
