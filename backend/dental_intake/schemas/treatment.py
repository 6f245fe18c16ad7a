from __future__ import annotations

import enum
from decimal import Decimal
from typing import Annotated, Any

from pydantic import (
    BeforeValidator,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
    model_validator,
)

from dental_intake.schemas.base import WireModel
from dental_intake.schemas.patient import PatientRef


class TreatmentStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


# Amounts stay exact in memory and go out as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def line_total(base_cost: Decimal, quantity: int, material_cost: Decimal) -> Decimal:
    return base_cost * quantity + material_cost


def _blank_status(value: Any) -> Any:
    if value in {"", None}:
        return TreatmentStatus.pending
    return value


Status = Annotated[TreatmentStatus, BeforeValidator(_blank_status)]


class TreatmentCategory(WireModel):
    id: str = Field(alias="_id")
    name: str
    base_cost: Money = Field(default=Decimal(0), ge=0)
    description: str = ""


class CostLine(WireModel):
    category_id: str
    category_name: str = ""
    base_cost: Money = Field(default=Decimal(0), ge=0)
    quantity: int = Field(default=1, ge=1)
    material_cost: Money = Field(default=Decimal(0), ge=0)
    total_cost: Money = Decimal(0)

    @field_validator("base_cost", "material_cost", mode="before")
    @classmethod
    def _blank_amount(cls, value):
        if isinstance(value, str) and not value.strip():
            return 0
        return value

    @model_validator(mode="after")
    def _recompute_total(self) -> "CostLine":
        self.total_cost = line_total(self.base_cost, self.quantity, self.material_cost)
        return self

    @classmethod
    def from_category(cls, category: TreatmentCategory) -> "CostLine":
        return cls(
            category_id=category.id,
            category_name=category.name,
            base_cost=category.base_cost,
            quantity=1,
            material_cost=Decimal(0),
        )

    def with_value(self, field: str, value: Any) -> "CostLine":
        data = self.model_dump()
        data[field] = value
        return CostLine.model_validate(data)


class TreatmentPlan(WireModel):
    id: str | None = Field(default=None, alias="_id")
    name: str = ""
    start_date: str = ""
    end_date: str = ""
    status: Status = TreatmentStatus.pending
    notes: str = ""
    costs: list[CostLine] = Field(default_factory=list)

    @computed_field(alias="totalCost")
    @property
    def total_cost(self) -> Money:
        return sum((line.total_cost for line in self.costs), Decimal(0))

    @computed_field(alias="totalMaterialCost")
    @property
    def total_material_cost(self) -> Money:
        return sum((line.material_cost for line in self.costs), Decimal(0))


class DentalCheckup(WireModel):
    oral_hygiene: str = ""
    gingival_status: str = ""
    plaque_index: str = ""
    bleeding_index: str = ""
    mobility: str = ""
    pocket_depth: str = ""
    notes: str = ""


class Diagnosis(WireModel):
    chief_complaint: str = ""
    clinical_findings: str = ""
    diagnosis: str = ""
    treatment_plan: str = ""


class ToothIssue(WireModel):
    issue: str = Field(min_length=1)
    comment: str = ""


class TreatmentFields(WireModel):
    name: str = ""
    description: str = ""
    status: Status = TreatmentStatus.pending
    dental_checkup: DentalCheckup = Field(default_factory=DentalCheckup)
    diagnosis: Diagnosis = Field(default_factory=Diagnosis)
    tooth_issues: dict[int, ToothIssue] = Field(default_factory=dict)
    treatment_plans: list[TreatmentPlan] = Field(default_factory=list)
    cost: str | float | None = None
    material_cost: str | float | None = None


class TreatmentRecord(TreatmentFields):
    id: str = Field(alias="_id")
    patient_id: str | dict[str, Any] | None = None
    patient_name: str | None = None

    def patient_ref(self) -> PatientRef | None:
        patient = self.patient_id
        if isinstance(patient, dict):
            patient_id = patient.get("_id") or patient.get("id")
            if not patient_id:
                return None
            display_name = self.patient_name or (
                f"{patient.get('firstName') or ''} {patient.get('lastName') or ''}".strip()
            )
            return PatientRef(id=str(patient_id), display_name=display_name)
        if patient:
            return PatientRef(id=patient, display_name=self.patient_name or "")
        return None


class FormState(TreatmentFields):
    patient_ref: PatientRef | None = None

    @classmethod
    def from_record(cls, record: TreatmentRecord) -> "FormState":
        data = record.model_dump(include=set(TreatmentFields.model_fields))
        data["patient_ref"] = record.patient_ref()
        return cls.model_validate(data)
