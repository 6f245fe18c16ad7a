from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from dental_intake.schemas.treatment import (
    CostLine,
    FormState,
    TreatmentCategory,
    TreatmentPlan,
    TreatmentStatus,
)
from dental_intake.services.catalog import CategoryCatalog

DEFAULT_VISIBLE_CATEGORIES = 6

COST_FIELDS = {
    "baseCost": "base_cost",
    "base_cost": "base_cost",
    "quantity": "quantity",
    "materialCost": "material_cost",
    "material_cost": "material_cost",
}


@dataclass(frozen=True)
class PlanTotals:
    total_cost: Decimal = Decimal(0)
    total_material_cost: Decimal = Decimal(0)


def plan_totals(plan: TreatmentPlan) -> PlanTotals:
    total_cost = Decimal(0)
    total_material_cost = Decimal(0)
    for line in plan.costs:
        total_cost += line.total_cost
        total_material_cost += line.material_cost
    return PlanTotals(total_cost=total_cost, total_material_cost=total_material_cost)


class PlanComposer:
    def __init__(self, form: FormState, catalog: CategoryCatalog) -> None:
        self.form = form
        self.catalog = catalog
        self.draft: TreatmentPlan | None = None
        self.editing_index: int | None = None
        self.errors: dict[str, str] = {}
        self.category_query = ""
        self.show_all_categories = False

    @property
    def is_open(self) -> bool:
        return self.draft is not None

    def add_plan(self) -> TreatmentPlan:
        self.draft = TreatmentPlan(start_date=date.today().isoformat())
        self.editing_index = None
        self.errors = {}
        return self.draft

    def edit_plan(self, index: int) -> TreatmentPlan | None:
        if not 0 <= index < len(self.form.treatment_plans):
            return None
        self.draft = self.form.treatment_plans[index].model_copy(deep=True)
        self.editing_index = index
        self.errors = {}
        return self.draft

    def _set(self, attr: str, value: Any) -> bool:
        if self.draft is None:
            return False
        setattr(self.draft, attr, value)
        return True

    def set_name(self, value: str) -> bool:
        return self._set("name", value or "")

    def set_start_date(self, value: str) -> bool:
        return self._set("start_date", value or "")

    def set_end_date(self, value: str) -> bool:
        return self._set("end_date", value or "")

    def set_notes(self, value: str) -> bool:
        return self._set("notes", value or "")

    def set_status(self, value: TreatmentStatus | str) -> bool:
        return self._set("status", TreatmentStatus(value))

    def add_cost_line(self, category_id: str) -> CostLine | None:
        if self.draft is None:
            return None
        category = self.catalog.get(category_id)
        if category is None:
            self.errors["categoryId"] = f"Unknown treatment category: {category_id}"
            return None
        line = CostLine.from_category(category)
        self.draft.costs.append(line)
        self.errors.pop("categoryId", None)
        return line

    def remove_cost_line(self, index: int) -> bool:
        if self.draft is None or not 0 <= index < len(self.draft.costs):
            return False
        del self.draft.costs[index]
        self.errors = {key: msg for key, msg in self.errors.items() if not key.startswith("costs.")}
        return True

    def update_cost_line(self, index: int, field: str, value: Any) -> bool:
        attr = COST_FIELDS.get(field)
        if attr is None:
            raise KeyError(field)
        if self.draft is None or not 0 <= index < len(self.draft.costs):
            return False
        error_key = f"costs.{index}.{to_camel(attr)}"
        if value is None:
            self.errors[error_key] = "Value is required"
            return False
        try:
            updated = self.draft.costs[index].with_value(attr, value)
        except ValidationError as exc:
            self.errors[error_key] = exc.errors()[0]["msg"]
            return False
        self.draft.costs[index] = updated
        self.errors.pop(error_key, None)
        return True

    def plan_totals(self, plan: TreatmentPlan | None = None) -> PlanTotals:
        plan = plan if plan is not None else self.draft
        if plan is None:
            return PlanTotals()
        return plan_totals(plan)

    def save_plan(self, plan: TreatmentPlan | None = None, index: int | None = None) -> int | None:
        plan = plan if plan is not None else self.draft
        if plan is None:
            return None
        if index is None:
            index = self.editing_index
        plans = self.form.treatment_plans
        if index is None:
            plans.append(plan)
            saved_index = len(plans) - 1
        elif 0 <= index < len(plans):
            plans[index] = plan
            saved_index = index
        else:
            return None
        self.cancel()
        return saved_index

    def delete_plan(self, index: int) -> bool:
        plans = self.form.treatment_plans
        if not 0 <= index < len(plans):
            return False
        del plans[index]
        if self.editing_index is not None:
            if self.editing_index == index:
                self.cancel()
            elif self.editing_index > index:
                self.editing_index -= 1
        return True

    def cancel(self) -> None:
        self.draft = None
        self.editing_index = None
        self.errors = {}

    def set_category_query(self, query: str) -> None:
        self.category_query = query or ""

    def toggle_show_all(self) -> bool:
        self.show_all_categories = not self.show_all_categories
        return self.show_all_categories

    @property
    def filtered_categories(self) -> list[TreatmentCategory]:
        return self.catalog.filter(self.category_query)

    @property
    def displayed_categories(self) -> list[TreatmentCategory]:
        categories = self.filtered_categories
        if self.show_all_categories:
            return categories
        return categories[:DEFAULT_VISIBLE_CATEGORIES]

    @property
    def hidden_category_count(self) -> int:
        return len(self.filtered_categories) - len(self.displayed_categories)
