import pytest

from dental_intake.schemas.patient import PatientRef
from dental_intake.schemas.treatment import CostLine, FormState, TreatmentPlan
from dental_intake.services.catalog import default_catalog
from dental_intake.services.fixture_api import FixtureTreatmentApi
from dental_intake.services.workflow import IntakeContext, TreatmentIntakeWorkflow


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def fixture_api():
    return FixtureTreatmentApi()


@pytest.fixture
def form():
    return FormState()


@pytest.fixture
def workflow(fixture_api, catalog):
    return TreatmentIntakeWorkflow(IntakeContext(api=fixture_api, catalog=catalog))


@pytest.fixture
def started_workflow(workflow):
    workflow.start()
    return workflow


@pytest.fixture
def make_plan():
    def _make(name="Phase 1", lines=((8000, 1, 500),)):
        costs = [
            CostLine(
                category_id=str(index + 1),
                category_name=f"Line {index + 1}",
                base_cost=base,
                quantity=qty,
                material_cost=material,
            )
            for index, (base, qty, material) in enumerate(lines)
        ]
        return TreatmentPlan(name=name, start_date="2026-10-01", costs=costs)

    return _make


@pytest.fixture
def ready_form(make_plan):
    return FormState(
        patient_ref=PatientRef(id="p1", display_name="Jane Doe"),
        name="Molar restoration",
        treatment_plans=[make_plan()],
    )
