from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from dental_intake.core.settings import Settings
from dental_intake.schemas.patient import PatientRef
from dental_intake.schemas.review import ReviewSummary
from dental_intake.schemas.treatment import FormState, TreatmentRecord
from dental_intake.services.api_client import ApiError, HttpTreatmentApi, TreatmentApi
from dental_intake.services.catalog import CategoryCatalog, default_catalog, load_catalog
from dental_intake.services.chart_editor import ChartEditor
from dental_intake.services.patient_selector import PatientSelector
from dental_intake.services.plan_composer import PlanComposer
from dental_intake.services.submission import build_payload, build_summary

logger = logging.getLogger("dental_intake.workflow")

PATIENT_STEP = 1
DIAGNOSIS_STEP = 2
PLANS_STEP = 3
REVIEW_STEP = 4

STEPS: tuple[tuple[int, str], ...] = (
    (PATIENT_STEP, "Patient"),
    (DIAGNOSIS_STEP, "Diagnosis"),
    (PLANS_STEP, "Treatment Plan"),
    (REVIEW_STEP, "Review"),
)

PATIENT_REQUIRED = "Please select a patient"
PLANS_REQUIRED = "At least one treatment plan is required"
SAVE_FAILED = "Failed to save treatment"
FETCH_TREATMENT_FAILED = "Failed to fetch treatment details"
FETCH_PATIENTS_FAILED = "Failed to load patients"


@dataclass
class IntakeContext:
    api: TreatmentApi
    catalog: CategoryCatalog = field(default_factory=default_catalog)
    settings: Settings | None = None

    @classmethod
    def from_settings(cls, settings: Settings, api: TreatmentApi | None = None) -> "IntakeContext":
        if settings.category_catalog_path:
            catalog = load_catalog(settings.category_catalog_path)
        else:
            catalog = default_catalog()
        if api is None:
            api = HttpTreatmentApi.from_settings(settings)
        return cls(api=api, catalog=catalog, settings=settings)


@dataclass
class SubmitResult:
    ok: bool
    treatment: TreatmentRecord | None = None
    error: str | None = None


@dataclass(frozen=True)
class StepState:
    step: int
    title: str
    active: bool
    completed: bool
    enabled: bool


class TreatmentIntakeWorkflow:
    def __init__(
        self,
        context: IntakeContext,
        treatment_id: str | None = None,
        patient_id: str | None = None,
        on_complete: Callable[[TreatmentRecord], None] | None = None,
    ) -> None:
        self.context = context
        self.treatment_id = treatment_id
        self.initial_patient_id = patient_id
        self.on_complete = on_complete
        self.form = FormState()
        self.selector = PatientSelector(self.form)
        self.chart = ChartEditor(self.form)
        self.composer = PlanComposer(self.form, context.catalog)
        self.current_step = PATIENT_STEP
        self.completed_steps: set[int] = set()
        self.errors: dict[str, str] = {}
        self.alert: str | None = None
        self.is_loading = False
        self.is_submitting = False
        self.is_finished = False
        self.is_cancelled = False

    @property
    def is_edit_mode(self) -> bool:
        return self.treatment_id is not None

    def _bind_form(self, form: FormState) -> None:
        self.form = form
        self.selector.form = form
        self.chart.form = form
        self.composer.form = form

    def start(self) -> None:
        self.is_loading = True
        try:
            if self.treatment_id:
                self._load_treatment()
            self._load_patients()
        finally:
            self.is_loading = False
        if self.initial_patient_id and self.form.patient_ref is None:
            if not self.selector.select_by_id(self.initial_patient_id):
                self.form.patient_ref = PatientRef(id=str(self.initial_patient_id))

    def _load_treatment(self) -> None:
        try:
            record = self.context.api.fetch_treatment(self.treatment_id)
        except ApiError:
            logger.exception("Error fetching treatment %s", self.treatment_id)
            self.alert = FETCH_TREATMENT_FAILED
            return
        self._bind_form(FormState.from_record(record))

    def _load_patients(self) -> None:
        try:
            self.selector.load(self.context.api)
        except ApiError:
            logger.exception("Error fetching patients")
            self.selector.set_patients([])
            if self.alert is None:
                self.alert = FETCH_PATIENTS_FAILED

    def validate_step(self, step: int) -> bool:
        errors: dict[str, str] = {}
        if step == PATIENT_STEP:
            if self.form.patient_ref is None or not self.form.patient_ref.id:
                errors["patientId"] = PATIENT_REQUIRED
        elif step == PLANS_STEP:
            if not self.form.treatment_plans:
                errors["treatmentPlans"] = PLANS_REQUIRED
        self.errors = errors
        return not errors

    def next(self) -> bool:
        if not self.validate_step(self.current_step):
            return False
        self.completed_steps.add(self.current_step)
        self.current_step = min(self.current_step + 1, REVIEW_STEP)
        return True

    def previous(self) -> bool:
        self.current_step = max(self.current_step - 1, PATIENT_STEP)
        return True

    def jump_to(self, step: int) -> bool:
        if not PATIENT_STEP <= step <= REVIEW_STEP:
            return False
        if step <= self.current_step or step in self.completed_steps:
            self.current_step = step
            return True
        return False

    def skip(self) -> bool:
        if self.current_step != DIAGNOSIS_STEP:
            return False
        return self.next()

    def step_states(self) -> list[StepState]:
        return [
            StepState(
                step=step,
                title=title,
                active=step == self.current_step,
                completed=step in self.completed_steps,
                enabled=step <= self.current_step or step in self.completed_steps,
            )
            for step, title in STEPS
        ]

    def build_summary(self) -> ReviewSummary:
        return build_summary(self.form)

    def submit(self) -> SubmitResult:
        if self.is_submitting:
            return SubmitResult(ok=False, error="Submission already in progress")
        if self.is_finished or self.is_cancelled:
            return SubmitResult(ok=False, error="Workflow is no longer active")
        if not self.validate_step(PATIENT_STEP):
            return SubmitResult(ok=False, error=self.errors["patientId"])
        if not self.validate_step(PLANS_STEP):
            return SubmitResult(ok=False, error=self.errors["treatmentPlans"])

        payload = build_payload(self.form)
        self.is_submitting = True
        self.alert = None
        try:
            if self.treatment_id:
                treatment = self.context.api.update_treatment(self.treatment_id, payload)
            else:
                treatment = self.context.api.create_treatment(payload)
        except ApiError as exc:
            logger.exception("Error saving treatment")
            self.alert = SAVE_FAILED
            return SubmitResult(ok=False, error=f"{SAVE_FAILED}: {exc}")
        finally:
            self.is_submitting = False

        self.treatment_id = treatment.id
        self.is_finished = True
        logger.info("Treatment %s saved for patient %s", treatment.id, payload["patientId"])
        if self.on_complete is not None:
            self.on_complete(treatment)
        return SubmitResult(ok=True, treatment=treatment)

    def cancel(self) -> None:
        self.chart.cancel()
        self.composer.cancel()
        self.selector.close()
        self._bind_form(FormState())
        self.is_cancelled = True
