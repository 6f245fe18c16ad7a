from dental_intake.schemas.base import WireModel
from dental_intake.schemas.patient import Patient, PatientRef
from dental_intake.schemas.treatment import (
    CostLine,
    DentalCheckup,
    Diagnosis,
    FormState,
    ToothIssue,
    TreatmentCategory,
    TreatmentPlan,
    TreatmentRecord,
    TreatmentStatus,
    line_total,
)
from dental_intake.schemas.review import PlanSummary, ReviewSummary

__all__ = [
    "CostLine",
    "DentalCheckup",
    "Diagnosis",
    "FormState",
    "Patient",
    "PatientRef",
    "PlanSummary",
    "ReviewSummary",
    "ToothIssue",
    "TreatmentCategory",
    "TreatmentPlan",
    "TreatmentRecord",
    "TreatmentStatus",
    "WireModel",
    "line_total",
]
