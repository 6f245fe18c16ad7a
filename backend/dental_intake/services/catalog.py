from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from dental_intake.schemas.treatment import TreatmentCategory

_DEFAULT_ROWS: tuple[tuple[str, str, int, str], ...] = (
    ("1", "Dental Checkup", 500, "Regular dental examination"),
    ("2", "Filling", 1500, "Tooth filling procedure"),
    ("3", "Extraction", 2000, "Tooth extraction"),
    ("4", "Root Canal", 8000, "Root canal treatment"),
    ("5", "Crown", 12000, "Dental crown placement"),
    ("6", "Cleaning", 800, "Professional dental cleaning"),
    ("7", "Bonding", 2000, "Dental bonding procedure"),
    ("8", "Veneers", 15000, "Dental veneers"),
    ("9", "Bridges", 18000, "Dental bridge placement"),
    ("10", "Implants", 35000, "Dental implant surgery"),
    ("11", "Orthodontics", 50000, "Braces and alignment"),
    ("12", "Whitening", 3000, "Teeth whitening treatment"),
    ("13", "Gum Treatment", 4000, "Periodontal treatment"),
    ("14", "Wisdom Tooth", 5000, "Wisdom tooth extraction"),
    ("15", "Emergency", 2500, "Emergency dental care"),
)

DEFAULT_CATEGORIES: tuple[TreatmentCategory, ...] = tuple(
    TreatmentCategory(id=cat_id, name=name, base_cost=base_cost, description=description)
    for cat_id, name, base_cost, description in _DEFAULT_ROWS
)


class CategoryCatalog:
    def __init__(self, categories: Iterable[TreatmentCategory]) -> None:
        self._categories = tuple(categories)
        self._by_id = {category.id: category for category in self._categories}

    def __iter__(self):
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    @property
    def categories(self) -> tuple[TreatmentCategory, ...]:
        return self._categories

    def get(self, category_id: str) -> TreatmentCategory | None:
        return self._by_id.get(str(category_id))

    def filter(self, query: str | None) -> list[TreatmentCategory]:
        if not (query or "").strip():
            return list(self._categories)
        needle = query.lower()
        return [
            category
            for category in self._categories
            if needle in category.name.lower() or needle in (category.description or "").lower()
        ]


def default_catalog() -> CategoryCatalog:
    return CategoryCatalog(DEFAULT_CATEGORIES)


def load_catalog(path: Path | str) -> CategoryCatalog:
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list.")
    return CategoryCatalog(TreatmentCategory.model_validate(item) for item in data)
