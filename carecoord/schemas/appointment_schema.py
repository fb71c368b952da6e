"""Clinic appointment records, stored under ``appointments/{patientId}_{slotId}``."""

from enum import Enum
from typing import Any, Optional

from pydantic import Field

from carecoord.schemas.booking_schema import CamelModel, Location
from carecoord.schemas.provider_schema import ClinicSlot


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Appointment(CamelModel):
    """A patient's claim on one clinic slot."""

    id: str = ""
    doctor_id: str
    doctor_name: str = ""
    doctor_specialization: Optional[str] = None
    patient_id: str
    patient_name: Optional[str] = None
    clinic_index: int
    clinic_address: Location = Field(default_factory=Location)
    slot_id: str
    slot_info: ClinicSlot
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    created_at: str = ""

    @classmethod
    def from_record(cls, appointment_id: str, record: dict[str, Any]) -> "Appointment":
        return cls.model_validate({**record, "id": appointment_id})

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True, mode="json")
