from __future__ import annotations

import argparse
from pathlib import Path

from casefees.build import build_case_reports, export_case_reports
from casefees.store import WorkbookRecordStore
from casefees.utils import DEFAULT_SETTINGS_PATH, load_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build fee estimate, time ledger and WIP reports for a case")
    parser.add_argument("--workbook", required=True, help="Path to the case system Excel export")
    parser.add_argument("--case-id", required=True, help="Case id as stored in the Cases sheet")
    parser.add_argument("--date-from", default=None, help="Start of the ledger period (defaults to appointment date)")
    parser.add_argument("--date-to", default=None, help="End of the ledger period (defaults to today)")
    parser.add_argument(
        "--all-dates",
        action="store_true",
        help="Ignore the appointment-date default and include every approved entry",
    )
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_PATH), help="Path to settings YAML")
    parser.add_argument("--output", default=None, help="Output directory (defaults to processed_dir)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = load_settings(args.settings)
    store = WorkbookRecordStore(Path(args.workbook))
    reports = build_case_reports(
        store,
        args.case_id,
        date_from=args.date_from,
        date_to=args.date_to,
        settings=settings,
        use_case_dates=not args.all_dates,
    )
    export_case_reports(reports, args.output or settings.get("processed_dir", "data/processed"))


if __name__ == "__main__":
    main()
