from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from casefees import fee_estimate, io, qa, report, timesheet, wip
from casefees.case import case_age, default_date_range, fee_basis
from casefees.clean import (
    APPROVED,
    build_directory,
    filter_timesheet,
    parse_activities,
    parse_fee_estimate_data,
    prepare_timesheet,
    select_default_template,
)
from casefees.store import RecordStore
from casefees.taxonomy import RATE_GRADES, RateTable, Totals, rates_from_settings, trading_case_types
from casefees.utils import get_logger, write_json


@dataclass
class CaseReports:
    case_id: Any
    case_reference: str
    date_from: Optional[str]
    date_to: Optional[str]
    rates: RateTable
    activities: List[Dict[str, str]]
    fee_entries: Dict[str, Dict[str, Any]]
    fee_estimate: pd.DataFrame
    fee_estimate_total: Totals
    ledger: timesheet.Ledger
    ledger_table: pd.DataFrame
    ledger_summary: Dict[str, Any]
    wip_by_grade: Dict[str, Totals]
    wip_by_user: List[Dict[str, Any]]
    total_wip: float
    blended_rate: report.BlendedRateReport
    reconciliation: pd.DataFrame
    qa_report: Dict[str, object]
    case_summary: Dict[str, Any] = field(default_factory=dict)


def build_case_reports(
    store: RecordStore,
    case_id: Any,
    date_from: Any = None,
    date_to: Any = None,
    settings: Optional[Mapping[str, Any]] = None,
    today: Any = None,
    use_case_dates: bool = True,
) -> CaseReports:
    """Load one case from the store and derive every fee and time report."""
    logger = get_logger()
    settings = settings or {}
    rates = rates_from_settings(settings)

    case = store.get_case(case_id)
    case_reference = str(case.get("case_reference") or "")
    if use_case_dates:
        default_from, default_to = default_date_range(case, today)
        date_from = date_from or default_from
        date_to = date_to or default_to

    template = select_default_template(store.list_activity_templates())
    activities = parse_activities(template.get("template_data") if template else None)
    fee_entries = parse_fee_estimate_data(case.get("fee_estimate_data"))

    directory = build_directory(store.list_users())
    entries = store.filter_timesheet_entries(case_reference, APPROVED)
    prepared = prepare_timesheet(entries, directory, rates=rates)
    filtered = filter_timesheet(prepared, case_reference, date_from, date_to)
    logger.info("Case %s: %s approved rows in period", case_reference, len(filtered))

    ledger = timesheet.ledger_from_frame(filtered)
    by_grade = wip.wip_by_grade_from_frame(filtered)
    blended = report.build_report(
        activities, fee_entries, case.get("case_type"), rates, trading_case_types(settings)
    )
    tolerance = float(settings.get("qa", {}).get("reconciliation_tolerance", 0.01))

    return CaseReports(
        case_id=case_id,
        case_reference=case_reference,
        date_from=date_from,
        date_to=date_to,
        rates=rates,
        activities=activities,
        fee_entries=fee_entries,
        fee_estimate=fee_estimate.fee_estimate_frame(activities, fee_entries, rates),
        fee_estimate_total=fee_estimate.grand_totals(activities, fee_entries, rates),
        ledger=ledger,
        ledger_table=timesheet.ledger_frame(ledger),
        ledger_summary=timesheet.ledger_totals(ledger),
        wip_by_grade=by_grade,
        wip_by_user=wip.wip_by_user_from_frame(filtered),
        total_wip=wip.total_wip(by_grade),
        blended_rate=blended,
        reconciliation=qa.build_reconciliation(activities, fee_entries, ledger, rates),
        qa_report=qa.build_qa_report(filtered, activities, fee_entries, directory, rates, tolerance),
        case_summary={
            "company_name": case.get("company_name"),
            "case_type": case.get("case_type"),
            "fee_basis": fee_basis(case),
            "case_age": case_age(case.get("appointment_date"), today),
        },
    )


def export_case_reports(reports: CaseReports, out_dir: str | Path) -> Path:
    """Write every report table as CSV plus a JSON summary and QA report."""
    logger = get_logger()
    out_dir = Path(out_dir) / (reports.case_reference or str(reports.case_id))
    out_dir.mkdir(parents=True, exist_ok=True)

    wip_grade = pd.DataFrame(
        [
            {"grade": grade, "rate": reports.rates.for_grade(grade), **reports.wip_by_grade[grade].as_dict()}
            for grade in RATE_GRADES
        ]
    )
    wip_user = pd.DataFrame(reports.wip_by_user, columns=["email", "name", "grade", "hours", "cost"])

    io.save_csv(reports.fee_estimate, out_dir / "fee_estimate.csv")
    io.save_csv(reports.ledger_table, out_dir / "time_ledger.csv")
    io.save_csv(wip_grade, out_dir / "wip_by_grade.csv")
    io.save_csv(wip_user, out_dir / "wip_by_user.csv")
    io.save_csv(report.report_frame(reports.blended_rate), out_dir / "sip9_time_analysis.csv")
    io.save_csv(reports.reconciliation, out_dir / "estimate_vs_actual.csv")

    summary = dict(reports.case_summary)
    summary.update(
        {
            "case_reference": reports.case_reference,
            "period": {"from": reports.date_from, "to": reports.date_to},
            "fee_estimate": reports.fee_estimate_total.as_dict(),
            "time_ledger": reports.ledger_summary["grand_total"].as_dict(),
            "total_wip": reports.total_wip,
        }
    )
    write_json(out_dir / "summary.json", summary)
    write_json(out_dir / "qa_report.json", reports.qa_report)

    logger.info("Reports written to %s", out_dir)
    return out_dir
