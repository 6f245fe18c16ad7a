from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from dental_intake.schemas.treatment import Money, TreatmentStatus


class PlanSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    status: TreatmentStatus
    line_count: int
    total_cost: Money
    total_material_cost: Money


class ReviewSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    patient_name: str
    name: str | None = None
    description: str | None = None
    status: TreatmentStatus
    chief_complaint: str
    diagnosis: str
    plan_count: int
    plans: tuple[PlanSummary, ...] = ()
    teeth: tuple[int, ...] = ()
    teeth_label: str | None = None
    grand_total: Money = Decimal(0)
    grand_material_total: Money = Decimal(0)
