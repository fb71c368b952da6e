"""Booking data models.

Records are persisted with camelCase keys under ``bookings/{id}``; the
models expose snake_case attributes and accept either spelling on input.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase store keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServiceType(str, Enum):
    EMERGENCY = "EMERGENCY"
    HOME_CARE = "HOME_CARE"
    REGULAR_CHECKUP = "REGULAR_CHECKUP"
    POST_SURGERY = "POST_SURGERY"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


SERVICE_DESCRIPTIONS: dict[ServiceType, tuple[str, str]] = {
    ServiceType.EMERGENCY: (
        "Emergency Care",
        "Immediate medical attention for urgent situations",
    ),
    ServiceType.HOME_CARE: (
        "Home Care",
        "Regular medical care provided at your home",
    ),
    ServiceType.REGULAR_CHECKUP: (
        "Regular Checkup",
        "Routine health monitoring and basic medical services",
    ),
    ServiceType.POST_SURGERY: (
        "Post Surgery Care",
        "Specialized care after surgical procedures",
    ),
}


class Schedule(CamelModel):
    """A single contiguous time window."""

    date: str
    start_time: str
    end_time: str
    duration_hours: Union[int, float]


class Location(CamelModel):
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    landmark: Optional[str] = None


class RequesterDetails(CamelModel):
    """Free-text description of the requester's situation."""

    condition: str = ""
    symptoms: list[str] = Field(default_factory=list)
    special_requirements: Optional[str] = None
    medical_history: Optional[str] = None

    @field_validator("symptoms", mode="before")
    @classmethod
    def _split_symptoms(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return value


class AuditInfo(CamelModel):
    """Who changed a record and from which client."""

    action_by: Optional[str] = None
    platform: str = ""
    browser: str = ""
    language: str = ""
    user_agent: str = ""
    timestamp: str = ""


class Booking(CamelModel):
    """A stored request for a provider's time."""

    id: str = ""
    requester_id: str
    provider_id: str
    service_type: ServiceType
    status: BookingStatus = BookingStatus.PENDING
    schedule: Schedule
    location: Location = Field(default_factory=Location)
    requester_details: RequesterDetails = Field(default_factory=RequesterDetails)
    created_at: str = ""
    updated_at: str = ""
    creator_info: Optional[AuditInfo] = None
    updater_info: Optional[AuditInfo] = None

    @classmethod
    def from_record(cls, booking_id: str, record: dict[str, Any]) -> "Booking":
        """Build a Booking from a stored value and its key."""
        return cls.model_validate({**record, "id": booking_id})

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase shape, without the key."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True, mode="json")


class ScheduleRequest(CamelModel):
    """Requested window before an end time has been computed."""

    date: str
    start_time: str
    duration_hours: Union[int, float]


class BookingRequest(CamelModel):
    """Validated booking request data."""

    provider_id: str
    service_type: ServiceType
    schedule: ScheduleRequest
    location: Location = Field(default_factory=Location)
    requester_details: RequesterDetails = Field(default_factory=RequesterDetails)
