from __future__ import annotations

from decimal import Decimal
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from dental_intake.schemas.review import ReviewSummary
from dental_intake.schemas.treatment import FormState, TreatmentPlan
from dental_intake.services.currency import format_currency
from dental_intake.services.submission import NOT_SPECIFIED, build_summary

# Base-14 PDF fonts carry no rupee glyph.
PDF_CURRENCY_SYMBOL = "Rs. "
BOTTOM_MARGIN = 25 * mm
TOP_OF_BODY = 250 * mm


def _money(amount: Decimal) -> str:
    return format_currency(amount, symbol=PDF_CURRENCY_SYMBOL)


def _draw_header(pdf: canvas.Canvas, clinic_name: str, title: str) -> None:
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(20 * mm, 280 * mm, clinic_name)
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawRightString(190 * mm, 280 * mm, title)
    pdf.setStrokeColor(colors.lightgrey)
    pdf.line(20 * mm, 268 * mm, 190 * mm, 268 * mm)


def _new_page(pdf: canvas.Canvas, clinic_name: str) -> float:
    pdf.showPage()
    _draw_header(pdf, clinic_name, "Treatment Summary (cont.)")
    return TOP_OF_BODY


def _ensure_space(pdf: canvas.Canvas, y: float, needed: float, clinic_name: str) -> float:
    if y - needed < BOTTOM_MARGIN:
        return _new_page(pdf, clinic_name)
    return y


def _draw_patient_block(pdf: canvas.Canvas, summary: ReviewSummary) -> float:
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(20 * mm, 258 * mm, "Patient")
    pdf.setFont("Helvetica", 10)
    pdf.drawString(20 * mm, 253 * mm, summary.patient_name or "-")
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(120 * mm, 258 * mm, f"Treatment: {summary.name or '-'}")
    pdf.setFont("Helvetica", 10)
    pdf.drawString(120 * mm, 253 * mm, f"Status: {summary.status.value}")
    pdf.drawString(120 * mm, 248 * mm, f"Plans: {summary.plan_count}")
    y = 243 * mm
    if summary.description:
        pdf.drawString(20 * mm, y, summary.description)
        y -= 6 * mm
    return y


def _draw_diagnosis(pdf: canvas.Canvas, form: FormState, y: float) -> float:
    diagnosis = form.diagnosis
    rows = [
        ("Chief complaint", diagnosis.chief_complaint),
        ("Clinical findings", diagnosis.clinical_findings),
        ("Diagnosis", diagnosis.diagnosis),
        ("Plan narrative", diagnosis.treatment_plan),
    ]
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(20 * mm, y, "Diagnosis")
    y -= 6 * mm
    for label, value in rows:
        pdf.setFont("Helvetica-Bold", 9)
        pdf.drawString(20 * mm, y, f"{label}:")
        pdf.setFont("Helvetica", 9)
        pdf.drawString(55 * mm, y, value or NOT_SPECIFIED)
        y -= 5 * mm
    return y - 4 * mm


def _plan_table(plan: TreatmentPlan) -> Table:
    data = [["Treatment", "Qty", "Base", "Material", "Line total"]]
    for line in plan.costs:
        data.append(
            [
                line.category_name,
                str(line.quantity),
                _money(line.base_cost),
                _money(line.material_cost),
                _money(line.total_cost),
            ]
        )
    data.append(["Total", "", "", _money(plan.total_material_cost), _money(plan.total_cost)])
    table = Table(data, colWidths=[70 * mm, 15 * mm, 28 * mm, 28 * mm, 29 * mm])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f0f0f0")),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ]
        )
    )
    return table


def _draw_plan(pdf: canvas.Canvas, plan: TreatmentPlan, index: int, y: float, clinic_name: str) -> float:
    table = _plan_table(plan)
    _, height = table.wrapOn(pdf, 170 * mm, y)
    y = _ensure_space(pdf, y, height + 12 * mm, clinic_name)
    title = plan.name or f"Plan {index}"
    dates = " to ".join(part for part in (plan.start_date, plan.end_date) if part)
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(20 * mm, y, title)
    pdf.setFont("Helvetica", 9)
    pdf.drawRightString(190 * mm, y, f"{plan.status.value}  {dates}".strip())
    y -= 3 * mm
    table.drawOn(pdf, 20 * mm, y - height)
    return y - height - 8 * mm


def _draw_tooth_issues(pdf: canvas.Canvas, form: FormState, y: float, clinic_name: str) -> float:
    if not form.tooth_issues:
        return y
    y = _ensure_space(pdf, y, 12 * mm, clinic_name)
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(20 * mm, y, "Tooth issues")
    y -= 6 * mm
    pdf.setFont("Helvetica", 9)
    for tooth in sorted(form.tooth_issues):
        y = _ensure_space(pdf, y, 5 * mm, clinic_name)
        entry = form.tooth_issues[tooth]
        text = f"{tooth}: {entry.issue}"
        if entry.comment:
            text = f"{text} ({entry.comment})"
        pdf.setFont("Helvetica", 9)
        pdf.drawString(20 * mm, y, text)
        y -= 5 * mm
    return y - 4 * mm


def _draw_totals(pdf: canvas.Canvas, summary: ReviewSummary, y: float, clinic_name: str) -> None:
    y = _ensure_space(pdf, y, 12 * mm, clinic_name)
    pdf.setFont("Helvetica", 10)
    pdf.drawRightString(150 * mm, y, "Material cost")
    pdf.drawRightString(190 * mm, y, _money(summary.grand_material_total))
    y -= 6 * mm
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawRightString(150 * mm, y, "Total treatment cost")
    pdf.drawRightString(190 * mm, y, _money(summary.grand_total))


def build_summary_pdf(form: FormState, clinic_name: str = "Dental Clinic") -> bytes:
    summary = build_summary(form)
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle("Treatment Summary")
    _draw_header(pdf, clinic_name, "Treatment Summary")
    y = _draw_patient_block(pdf, summary)
    y = _draw_diagnosis(pdf, form, y)
    for index, plan in enumerate(form.treatment_plans, start=1):
        y = _draw_plan(pdf, plan, index, y, clinic_name)
    y = _draw_tooth_issues(pdf, form, y, clinic_name)
    _draw_totals(pdf, summary, y, clinic_name)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
