from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

from dental_intake.schemas.patient import Patient
from dental_intake.schemas.treatment import TreatmentRecord
from dental_intake.services.api_client import NotFoundError, TreatmentApi


class FixtureTreatmentApi(TreatmentApi):
    def __init__(self, base_path: Path | None = None) -> None:
        if base_path is None:
            base_path = Path(__file__).resolve().parent / "fixtures"
        self.base_path = base_path
        self._patients = self._load_json("patients.json")
        self._treatments: dict[str, dict[str, Any]] = {
            str(item["_id"]): item for item in self._load_json("treatments.json")
        }
        self._next_id = len(self._treatments) + 1
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []

    def fetch_patients(self) -> list[Patient]:
        return [Patient.model_validate(item) for item in self._patients]

    def fetch_treatment(self, treatment_id: str) -> TreatmentRecord:
        item = self._treatments.get(str(treatment_id))
        if item is None:
            raise NotFoundError(f"Treatment {treatment_id} not found", status_code=404)
        return TreatmentRecord.model_validate(copy.deepcopy(item))

    def create_treatment(self, payload: dict[str, Any]) -> TreatmentRecord:
        treatment_id = f"t{self._next_id}"
        while treatment_id in self._treatments:
            self._next_id += 1
            treatment_id = f"t{self._next_id}"
        self._next_id += 1
        stored = {**copy.deepcopy(payload), "_id": treatment_id}
        self._treatments[treatment_id] = stored
        self.created.append(copy.deepcopy(payload))
        return TreatmentRecord.model_validate(copy.deepcopy(stored))

    def update_treatment(self, treatment_id: str, payload: dict[str, Any]) -> TreatmentRecord:
        treatment_id = str(treatment_id)
        if treatment_id not in self._treatments:
            raise NotFoundError(f"Treatment {treatment_id} not found", status_code=404)
        stored = {**copy.deepcopy(payload), "_id": treatment_id}
        self._treatments[treatment_id] = stored
        self.updated.append((treatment_id, copy.deepcopy(payload)))
        return TreatmentRecord.model_validate(copy.deepcopy(stored))

    def _load_json(self, filename: str) -> list[dict]:
        path = self.base_path / filename
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON list.")
        return data
