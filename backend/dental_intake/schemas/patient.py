from __future__ import annotations

from pydantic import Field

from dental_intake.schemas.base import WireModel


class Patient(WireModel):
    id: str = Field(alias="_id")
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    date_of_birth: str | None = None
    gender: str | None = None
    address: str | None = None
    city: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PatientRef(WireModel):
    id: str
    display_name: str = ""

    @classmethod
    def from_patient(cls, patient: Patient) -> "PatientRef":
        return cls(id=patient.id, display_name=patient.full_name)
