from dental_intake.schemas.treatment import FormState, ToothIssue
from dental_intake.services.summary_pdf import build_summary_pdf


def test_summary_pdf_renders(ready_form):
    ready_form.tooth_issues = {16: ToothIssue(issue="Cavity", comment="distal")}
    ready_form.diagnosis.chief_complaint = "Pain while chewing"
    pdf_bytes = build_summary_pdf(ready_form, clinic_name="Smile Dental")
    assert pdf_bytes.startswith(b"%PDF")
    assert len(pdf_bytes) > 500


def test_summary_pdf_for_empty_form():
    pdf_bytes = build_summary_pdf(FormState())
    assert pdf_bytes.startswith(b"%PDF")


def test_summary_pdf_spills_onto_extra_pages(ready_form, make_plan):
    many_lines = tuple((1000 + index, 1, 10) for index in range(30))
    ready_form.treatment_plans = [make_plan(f"Phase {index}", many_lines) for index in range(4)]
    ready_form.tooth_issues = {tooth: ToothIssue(issue="Cavity") for tooth in (11, 12, 13, 14, 15, 16, 17, 18)}
    single = build_summary_pdf(ready_form.model_copy(update={"treatment_plans": ready_form.treatment_plans[:1]}))
    multi = build_summary_pdf(ready_form)
    assert multi.startswith(b"%PDF")
    assert len(multi) > len(single)
