from __future__ import annotations

import argparse
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any

from dental_intake.core.settings import settings, validate_settings
from dental_intake.schemas.treatment import TreatmentStatus
from dental_intake.services.api_client import HttpTreatmentApi, TreatmentApi
from dental_intake.services.catalog import CategoryCatalog, default_catalog, load_catalog
from dental_intake.services.currency import format_currency
from dental_intake.services.fixture_api import FixtureTreatmentApi
from dental_intake.services.submission import build_payload
from dental_intake.services.summary_pdf import build_summary_pdf
from dental_intake.services.tooth_chart import CHECKUP_OPTIONS, TOOTH_ISSUE_OPTIONS
from dental_intake.services.workflow import (
    DIAGNOSIS_STEP,
    PATIENT_STEP,
    PLANS_STEP,
    IntakeContext,
    TreatmentIntakeWorkflow,
)

logger = logging.getLogger("dental_intake.cli")

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_SUBMIT_FAILED = 2

STATUS_VALUES = tuple(status.value for status in TreatmentStatus)


def _load_draft(path: str | None) -> dict[str, Any]:
    if not path:
        return {}
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise RuntimeError(f"{path} must contain a JSON object.")
    return data


def _status_error(value: Any) -> str | None:
    if value in STATUS_VALUES:
        return None
    return f"Expected one of: {', '.join(STATUS_VALUES)}"


def _resolve_catalog(path: str | None) -> CategoryCatalog:
    path = path or settings.category_catalog_path
    if path:
        return load_catalog(path)
    return default_catalog()


def _apply_clinical(workflow: TreatmentIntakeWorkflow, draft: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    for section in ("dentalCheckup", "diagnosis"):
        for key, value in (draft.get(section) or {}).items():
            options = CHECKUP_OPTIONS.get(key) if section == "dentalCheckup" else None
            if value and options and value not in options:
                errors[f"{section}.{key}"] = f"Expected one of: {', '.join(options)}"
                continue
            try:
                workflow.chart.update_field(f"{section}.{key}", value)
            except KeyError:
                errors[f"{section}.{key}"] = "Unknown field"
    return errors


def _apply_tooth_issues(workflow: TreatmentIntakeWorkflow, draft: dict[str, Any]) -> dict[str, str]:
    groups: dict[tuple[str, str], list[int]] = defaultdict(list)
    errors: dict[str, str] = {}
    for tooth, entry in (draft.get("toothIssues") or {}).items():
        entry = entry or {}
        try:
            number = int(tooth)
        except ValueError:
            errors[f"toothIssues.{tooth}"] = f"Unknown tooth number: {tooth}"
            continue
        groups[(entry.get("issue") or "", entry.get("comment") or "")].append(number)
    chart = workflow.chart
    for (issue, comment), teeth in groups.items():
        key = "toothIssues." + ",".join(str(tooth) for tooth in teeth)
        if issue and issue not in TOOTH_ISSUE_OPTIONS:
            errors[key] = f"Unknown tooth issue: {issue}"
            continue
        try:
            for tooth in teeth:
                chart.toggle_tooth_selection(tooth)
        except ValueError as exc:
            errors[key] = str(exc)
            chart.cancel()
            continue
        chart.open_issue_editor()
        if not chart.commit_issue(issue, comment):
            errors[key] = chart.error or "Invalid issue"
            chart.cancel()
    return errors


def _apply_plans(workflow: TreatmentIntakeWorkflow, draft: dict[str, Any]) -> dict[str, str]:
    composer = workflow.composer
    errors: dict[str, str] = {}
    if "treatmentPlans" not in draft:
        return errors
    while workflow.form.treatment_plans:
        composer.delete_plan(len(workflow.form.treatment_plans) - 1)
    for plan_index, plan in enumerate(draft.get("treatmentPlans") or []):
        composer.add_plan()
        composer.set_name(plan.get("name") or "")
        if plan.get("startDate"):
            composer.set_start_date(plan["startDate"])
        composer.set_end_date(plan.get("endDate") or "")
        status = plan.get("status") or "pending"
        status_error = _status_error(status)
        if status_error:
            errors[f"treatmentPlans.{plan_index}.status"] = status_error
        else:
            composer.set_status(status)
        composer.set_notes(plan.get("notes") or "")
        for cost in plan.get("costs") or []:
            line = composer.add_cost_line(str(cost.get("categoryId")))
            if line is None:
                errors[f"treatmentPlans.{plan_index}.categoryId"] = composer.errors["categoryId"]
                continue
            line_index = len(composer.draft.costs) - 1
            for field in ("baseCost", "quantity", "materialCost"):
                if field in cost:
                    composer.update_cost_line(line_index, field, cost[field])
        for key, message in composer.errors.items():
            errors[f"treatmentPlans.{plan_index}.{key}"] = message
        composer.save_plan()
    return errors


def apply_draft(workflow: TreatmentIntakeWorkflow, draft: dict[str, Any]) -> dict[str, str]:
    form = workflow.form
    if draft.get("patientName") and form.patient_ref is not None and not form.patient_ref.display_name:
        form.patient_ref.display_name = draft["patientName"]
    for key in ("name", "description"):
        if key in draft:
            setattr(form, key, draft[key] or "")
    errors: dict[str, str] = {}
    if draft.get("status"):
        status_error = _status_error(draft["status"])
        if status_error:
            errors["status"] = status_error
        else:
            form.status = TreatmentStatus(draft["status"])
    if "cost" in draft:
        form.cost = draft["cost"]
    if "materialCost" in draft:
        form.material_cost = draft["materialCost"]
    errors.update(_apply_clinical(workflow, draft))
    errors.update(_apply_tooth_issues(workflow, draft))
    errors.update(_apply_plans(workflow, draft))
    return errors


def run_intake(
    draft: dict[str, Any],
    *,
    api: TreatmentApi,
    catalog: CategoryCatalog,
    treatment_id: str | None = None,
    dry_run: bool = False,
    pdf_path: str | None = None,
    clinic_name: str = "Dental Clinic",
    currency_symbol: str = "₹",
) -> tuple[int, dict[str, Any]]:
    workflow = TreatmentIntakeWorkflow(
        IntakeContext(api=api, catalog=catalog),
        treatment_id=treatment_id,
        patient_id=draft.get("patientId"),
    )
    workflow.start()
    if workflow.alert and treatment_id and workflow.form.patient_ref is None:
        return EXIT_SUBMIT_FAILED, {"status": "error", "error": workflow.alert}

    draft_errors = apply_draft(workflow, draft)
    if draft_errors:
        return EXIT_INVALID, {"status": "invalid", "errors": draft_errors}

    for step in (PATIENT_STEP, DIAGNOSIS_STEP, PLANS_STEP):
        advanced = workflow.skip() if step == DIAGNOSIS_STEP else workflow.next()
        if not advanced:
            return EXIT_INVALID, {"status": "invalid", "step": step, "errors": dict(workflow.errors)}

    summary = workflow.build_summary()
    report: dict[str, Any] = {
        "status": "dry_run" if dry_run else "submitted",
        "treatment_id": workflow.treatment_id,
        "summary": summary.model_dump(mode="json"),
        "total": format_currency(summary.grand_total, symbol=currency_symbol),
    }
    if pdf_path:
        out = Path(pdf_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(build_summary_pdf(workflow.form, clinic_name=clinic_name))
        report["pdf"] = str(out)
    if dry_run:
        report["payload"] = build_payload(workflow.form)
        return EXIT_OK, report

    result = workflow.submit()
    if not result.ok:
        report["status"] = "error"
        report["error"] = result.error
        return EXIT_SUBMIT_FAILED, report
    report["treatment_id"] = result.treatment.id
    return EXIT_OK, report


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run a treatment draft through the intake workflow and submit it."
    )
    parser.add_argument("--draft", help="Path to a JSON treatment draft (camelCase fields).")
    parser.add_argument("--treatment-id", help="Edit an existing treatment instead of creating one.")
    parser.add_argument("--dry-run", action="store_true", help="Print the payload without submitting.")
    parser.add_argument("--pdf", help="Optional path for a PDF treatment summary.")
    parser.add_argument("--catalog", help="Optional JSON treatment category catalog.")
    parser.add_argument(
        "--fixtures",
        action="store_true",
        help="Use the bundled fixture API instead of API_BASE_URL.",
    )
    parser.add_argument("--log-level", help=f"Logging level (default: {settings.log_level}).")
    args = parser.parse_args()

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.draft and not args.treatment_id:
        raise RuntimeError("--draft is required unless --treatment-id is given.")

    draft = _load_draft(args.draft)
    catalog = _resolve_catalog(args.catalog)
    if args.fixtures:
        api: TreatmentApi = FixtureTreatmentApi()
    else:
        validate_settings(settings)
        api = HttpTreatmentApi.from_settings(settings)

    try:
        code, report = run_intake(
            draft,
            api=api,
            catalog=catalog,
            treatment_id=args.treatment_id,
            dry_run=args.dry_run,
            pdf_path=args.pdf,
            clinic_name=settings.clinic_name,
            currency_symbol=settings.currency_symbol,
        )
    finally:
        if isinstance(api, HttpTreatmentApi):
            api.close()

    if code != EXIT_OK:
        logger.warning("Treatment intake finished with status %s", report.get("status"))
    print(json.dumps(report, indent=2))
    return code


if __name__ == "__main__":
    raise SystemExit(main())
