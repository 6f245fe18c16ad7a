from __future__ import annotations

from typing import Iterable

from dental_intake.schemas.patient import Patient, PatientRef
from dental_intake.schemas.treatment import FormState
from dental_intake.services.api_client import TreatmentApi


def matches_patient(patient: Patient, query: str) -> bool:
    needle = query.lower()
    return (
        needle in patient.full_name.lower()
        or needle in (patient.phone or "").lower()
        or needle in (patient.email or "").lower()
    )


class PatientSelector:
    def __init__(self, form: FormState, patients: Iterable[Patient] = ()) -> None:
        self.form = form
        self.patients: list[Patient] = list(patients)
        self.query = ""
        self.is_open = False

    def set_patients(self, patients: Iterable[Patient]) -> None:
        self.patients = list(patients)

    def load(self, api: TreatmentApi) -> list[Patient]:
        self.set_patients(api.fetch_patients())
        return self.patients

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def search(self, query: str) -> list[Patient]:
        self.query = query or ""
        if not self.query.strip():
            return list(self.patients)
        return [patient for patient in self.patients if matches_patient(patient, self.query)]

    @property
    def results(self) -> list[Patient]:
        return self.search(self.query)

    def select(self, patient: Patient) -> None:
        self.form.patient_ref = PatientRef.from_patient(patient)
        self.close()

    def select_by_id(self, patient_id: str) -> bool:
        for patient in self.patients:
            if patient.id == str(patient_id):
                self.select(patient)
                return True
        return False
