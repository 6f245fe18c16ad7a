from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from dental_intake.schemas.review import PlanSummary, ReviewSummary
from dental_intake.schemas.treatment import FormState, TreatmentPlan
from dental_intake.services.currency import coerce_amount

NOT_SPECIFIED = "Not specified"


def teeth_label(teeth: Iterable[int]) -> str | None:
    teeth = list(teeth)
    if not teeth:
        return None
    return "Teeth: " + ", ".join(str(tooth) for tooth in teeth)


def _plan_summary(plan: TreatmentPlan) -> PlanSummary:
    return PlanSummary(
        name=plan.name,
        status=plan.status,
        line_count=len(plan.costs),
        total_cost=plan.total_cost,
        total_material_cost=plan.total_material_cost,
    )


def build_summary(form: FormState) -> ReviewSummary:
    teeth = tuple(sorted(form.tooth_issues))
    plans = tuple(_plan_summary(plan) for plan in form.treatment_plans)
    patient = form.patient_ref
    return ReviewSummary(
        patient_name=patient.display_name if patient else "",
        name=form.name or None,
        description=form.description or None,
        status=form.status,
        chief_complaint=form.diagnosis.chief_complaint or NOT_SPECIFIED,
        diagnosis=form.diagnosis.diagnosis or NOT_SPECIFIED,
        plan_count=len(plans),
        plans=plans,
        teeth=teeth,
        teeth_label=teeth_label(teeth),
        grand_total=sum((plan.total_cost for plan in plans), Decimal(0)),
        grand_material_total=sum((plan.total_material_cost for plan in plans), Decimal(0)),
    )


def plan_payload(plan: TreatmentPlan) -> dict[str, Any]:
    return plan.model_dump(by_alias=True, mode="json", exclude_none=True)


def build_payload(form: FormState) -> dict[str, Any]:
    """Serialize the form into the create/update request body.

    Every call returns fresh containers, so the result is a snapshot that later
    edits to ``form`` cannot reach.
    """
    patient = form.patient_ref
    return {
        "patientId": patient.id if patient else "",
        "patientName": patient.display_name if patient else "",
        "name": form.name,
        "description": form.description,
        "status": form.status.value,
        "dentalCheckup": form.dental_checkup.to_wire(),
        "diagnosis": form.diagnosis.to_wire(),
        "treatmentPlans": [plan_payload(plan) for plan in form.treatment_plans],
        "toothIssues": {
            str(tooth): form.tooth_issues[tooth].to_wire() for tooth in sorted(form.tooth_issues)
        },
        "cost": coerce_amount(form.cost),
        "materialCost": coerce_amount(form.material_cost),
    }
