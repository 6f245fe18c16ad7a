import pytest

from dental_intake.core.settings import Settings
from dental_intake.schemas.patient import PatientRef
from dental_intake.schemas.treatment import TreatmentCategory
from dental_intake.services.api_client import ApiError, NotFoundError
from dental_intake.services.catalog import CategoryCatalog
from dental_intake.services.fixture_api import FixtureTreatmentApi
from dental_intake.services.workflow import (
    DIAGNOSIS_STEP,
    FETCH_PATIENTS_FAILED,
    FETCH_TREATMENT_FAILED,
    PATIENT_REQUIRED,
    PATIENT_STEP,
    PLANS_REQUIRED,
    PLANS_STEP,
    REVIEW_STEP,
    SAVE_FAILED,
    IntakeContext,
    TreatmentIntakeWorkflow,
)


class FailingApi(FixtureTreatmentApi):
    def __init__(self, fail_on=()):
        super().__init__()
        self.fail_on = set(fail_on)

    def fetch_patients(self):
        if "patients" in self.fail_on:
            raise ApiError("GET /patients returned 500", status_code=500)
        return super().fetch_patients()

    def create_treatment(self, payload):
        if "create" in self.fail_on:
            raise ApiError("POST /treatments returned 500", status_code=500)
        return super().create_treatment(payload)


def _workflow(api, catalog=None, **kwargs):
    context = IntakeContext(api=api) if catalog is None else IntakeContext(api=api, catalog=catalog)
    workflow = TreatmentIntakeWorkflow(context, **kwargs)
    workflow.start()
    return workflow


def _add_plan(workflow, category_id="2"):
    composer = workflow.composer
    composer.add_plan()
    composer.set_name("Phase 1")
    composer.add_cost_line(category_id)
    composer.save_plan()


def _walk_to_review(workflow):
    workflow.selector.select_by_id("p1")
    assert workflow.next()
    assert workflow.skip()
    _add_plan(workflow)
    assert workflow.next()
    assert workflow.current_step == REVIEW_STEP


def test_start_loads_patients(started_workflow):
    assert [patient.id for patient in started_workflow.selector.patients] == ["p1", "p2", "p3"]
    assert started_workflow.alert is None
    assert started_workflow.is_loading is False
    assert started_workflow.is_edit_mode is False


def test_initial_patient_id_is_preselected(fixture_api):
    workflow = _workflow(fixture_api, patient_id="p3")
    assert workflow.form.patient_ref == PatientRef(id="p3", display_name="Asha Menon")


def test_unknown_initial_patient_keeps_id(fixture_api):
    workflow = _workflow(fixture_api, patient_id="p42")
    assert workflow.form.patient_ref.id == "p42"
    assert workflow.form.patient_ref.display_name == ""


def test_next_without_patient_is_blocked(started_workflow):
    assert started_workflow.next() is False
    assert started_workflow.current_step == PATIENT_STEP
    assert started_workflow.completed_steps == set()
    assert started_workflow.errors == {"patientId": PATIENT_REQUIRED}


def test_next_with_patient_advances(started_workflow):
    started_workflow.selector.select_by_id("p1")
    assert started_workflow.next() is True
    assert started_workflow.current_step == DIAGNOSIS_STEP
    assert started_workflow.completed_steps == {PATIENT_STEP}
    assert started_workflow.errors == {}


def test_plans_step_requires_a_plan(started_workflow):
    started_workflow.selector.select_by_id("p1")
    started_workflow.next()
    started_workflow.next()
    assert started_workflow.next() is False
    assert started_workflow.current_step == PLANS_STEP
    assert started_workflow.errors == {"treatmentPlans": PLANS_REQUIRED}


def test_previous_always_steps_back_one(started_workflow):
    _walk_to_review(started_workflow)
    started_workflow.form.treatment_plans.clear()
    for expected in (PLANS_STEP, DIAGNOSIS_STEP, PATIENT_STEP, PATIENT_STEP):
        assert started_workflow.previous() is True
        assert started_workflow.current_step == expected


def test_jump_to_completed_or_earlier_steps(started_workflow):
    _walk_to_review(started_workflow)
    started_workflow.jump_to(PATIENT_STEP)
    assert started_workflow.current_step == PATIENT_STEP
    assert started_workflow.jump_to(PLANS_STEP) is True
    assert started_workflow.current_step == PLANS_STEP


def test_jump_to_future_step_is_noop(started_workflow):
    started_workflow.selector.select_by_id("p1")
    started_workflow.next()
    assert started_workflow.jump_to(REVIEW_STEP) is False
    assert started_workflow.current_step == DIAGNOSIS_STEP
    assert started_workflow.jump_to(0) is False
    assert started_workflow.jump_to(9) is False
    assert started_workflow.current_step == DIAGNOSIS_STEP


def test_skip_only_applies_to_diagnosis(started_workflow):
    assert started_workflow.skip() is False
    started_workflow.selector.select_by_id("p1")
    started_workflow.next()
    assert started_workflow.skip() is True
    assert started_workflow.current_step == PLANS_STEP
    assert started_workflow.skip() is False


def test_step_states(started_workflow):
    started_workflow.selector.select_by_id("p1")
    started_workflow.next()
    states = started_workflow.step_states()
    assert [state.title for state in states] == ["Patient", "Diagnosis", "Treatment Plan", "Review"]
    assert [state.active for state in states] == [False, True, False, False]
    assert [state.completed for state in states] == [True, False, False, False]
    assert [state.enabled for state in states] == [True, True, False, False]


def test_review_summary(started_workflow):
    _walk_to_review(started_workflow)
    chart = started_workflow.chart
    for tooth in (26, 16):
        chart.toggle_tooth_selection(tooth)
    chart.open_issue_editor()
    chart.commit_issue("Cavity")
    summary = started_workflow.build_summary()
    assert summary.patient_name == "Jane Doe"
    assert summary.chief_complaint == "Not specified"
    assert summary.plan_count == 1
    assert summary.teeth == (16, 26)
    assert summary.teeth_label == "Teeth: 16, 26"
    assert summary.grand_total == 1500


def test_submit_payload_snapshot_totals():
    catalog = CategoryCatalog([TreatmentCategory(id="c1", name="Filling", base_cost=1500)])
    api = FixtureTreatmentApi()
    workflow = _workflow(api, catalog=catalog)
    workflow.form.patient_ref = PatientRef(id="p1", display_name="Jane Doe")
    composer = workflow.composer
    composer.add_plan()
    composer.add_cost_line("c1")
    composer.update_cost_line(0, "quantity", 2)
    composer.update_cost_line(0, "materialCost", 200)
    composer.save_plan()

    result = workflow.submit()

    assert result.ok
    payload = api.created[0]
    assert payload["patientId"] == "p1"
    assert payload["patientName"] == "Jane Doe"
    assert payload["treatmentPlans"][0]["costs"][0]["totalCost"] == 3200
    assert payload["treatmentPlans"][0]["totalCost"] == 3200
    assert payload["treatmentPlans"][0]["totalMaterialCost"] == 200


def test_submit_creates_and_completes(started_workflow, fixture_api):
    completed = []
    started_workflow.on_complete = completed.append
    _walk_to_review(started_workflow)

    result = started_workflow.submit()

    assert result.ok
    assert result.treatment.id == "t2"
    assert started_workflow.treatment_id == "t2"
    assert started_workflow.is_finished is True
    assert started_workflow.is_submitting is False
    assert completed == [result.treatment]
    assert started_workflow.submit().ok is False
    assert len(fixture_api.created) == 1


def test_submit_validates_patient_and_plans(started_workflow, fixture_api):
    result = started_workflow.submit()
    assert result.ok is False
    assert result.error == PATIENT_REQUIRED
    started_workflow.selector.select_by_id("p1")
    result = started_workflow.submit()
    assert result.error == PLANS_REQUIRED
    assert fixture_api.created == []


def test_submit_failure_keeps_form_for_retry():
    api = FailingApi(fail_on={"create"})
    workflow = _workflow(api)
    _walk_to_review(workflow)

    result = workflow.submit()

    assert result.ok is False
    assert result.error.startswith(f"{SAVE_FAILED}: ")
    assert workflow.alert == SAVE_FAILED
    assert workflow.is_submitting is False
    assert workflow.is_finished is False
    assert workflow.current_step == REVIEW_STEP
    assert len(workflow.form.treatment_plans) == 1

    api.fail_on.clear()
    retry = workflow.submit()
    assert retry.ok
    assert workflow.alert is None


def test_edits_during_submit_do_not_reach_payload():
    class RacingApi(FixtureTreatmentApi):
        workflow = None
        reentry = None

        def create_treatment(self, payload):
            form = self.workflow.form
            form.name = "changed mid-flight"
            form.treatment_plans[0].costs[0].quantity = 9
            form.treatment_plans.clear()
            self.reentry = self.workflow.submit()
            return super().create_treatment(payload)

    api = RacingApi()
    workflow = _workflow(api)
    api.workflow = workflow
    _walk_to_review(workflow)
    workflow.form.name = "Molar restoration"

    result = workflow.submit()

    assert result.ok
    assert api.reentry.ok is False
    assert len(api.created) == 1
    payload = api.created[0]
    assert payload["name"] == "Molar restoration"
    assert len(payload["treatmentPlans"]) == 1
    assert payload["treatmentPlans"][0]["costs"][0]["quantity"] == 1


def test_edit_mode_loads_and_updates_existing_treatment(fixture_api):
    workflow = _workflow(fixture_api, treatment_id="t1")
    assert workflow.is_edit_mode
    form = workflow.form
    assert form.patient_ref == PatientRef(id="p2", display_name="Ravi Kumar")
    assert form.status.value == "in-progress"
    assert form.diagnosis.chief_complaint == "Pain while chewing"
    assert sorted(form.tooth_issues) == [16, 17]
    assert form.treatment_plans[0].total_cost == 22000
    assert workflow.chart.form is form
    assert workflow.composer.form is form

    workflow.composer.edit_plan(0)
    workflow.composer.update_cost_line(1, "quantity", 2)
    workflow.composer.save_plan()
    result = workflow.submit()

    assert result.ok
    assert result.treatment.id == "t1"
    assert fixture_api.created == []
    treatment_id, payload = fixture_api.updated[0]
    assert treatment_id == "t1"
    assert payload["treatmentPlans"][0]["totalCost"] == 34000
    assert payload["toothIssues"]["16"] == {"issue": "Root Canal", "comment": "Tender on percussion"}


def test_missing_treatment_sets_alert():
    class MissingApi(FixtureTreatmentApi):
        def fetch_treatment(self, treatment_id):
            raise NotFoundError("GET /treatments/x returned 404", status_code=404)

    workflow = _workflow(MissingApi(), treatment_id="x")
    assert workflow.alert == FETCH_TREATMENT_FAILED
    assert workflow.form.patient_ref is None
    assert len(workflow.selector.patients) == 3


def test_patient_load_failure_sets_alert():
    workflow = _workflow(FailingApi(fail_on={"patients"}))
    assert workflow.alert == FETCH_PATIENTS_FAILED
    assert workflow.selector.patients == []
    assert workflow.is_loading is False


def test_cancel_discards_state_and_blocks_submit(started_workflow, fixture_api):
    _walk_to_review(started_workflow)
    started_workflow.cancel()
    assert started_workflow.is_cancelled
    assert started_workflow.form.treatment_plans == []
    assert started_workflow.composer.form is started_workflow.form
    assert started_workflow.submit().ok is False
    assert fixture_api.created == []


def test_context_from_settings_uses_catalog_file(tmp_path, fixture_api):
    path = tmp_path / "catalog.json"
    path.write_text('[{"_id": "x1", "name": "Scaling", "baseCost": 900}]', encoding="utf-8")
    context = IntakeContext.from_settings(Settings(CATEGORY_CATALOG_PATH=str(path)), api=fixture_api)
    assert [category.name for category in context.catalog] == ["Scaling"]
    assert context.api is fixture_api


def test_catalog_file_must_be_a_list(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text('{"categories": []}', encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a JSON list"):
        IntakeContext.from_settings(Settings(CATEGORY_CATALOG_PATH=str(path)), api=FixtureTreatmentApi())
