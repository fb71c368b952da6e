"""Provider profile and availability models (read-only to the booking engine)."""

from typing import Any, Optional

from pydantic import Field, field_validator

from carecoord.schemas.booking_schema import CamelModel


class ServiceArea(CamelModel):
    city: str = ""
    state: str = ""
    pincode: str = ""


class Availability(CamelModel):
    """Declared working hours of a provider."""

    days: list[str] = Field(default_factory=list)
    start_time: str = ""
    end_time: str = ""
    service_area: Optional[ServiceArea] = None


class ClinicTimings(CamelModel):
    days: list[str] = Field(default_factory=list)
    start_time: str = ""
    end_time: str = ""


class ClinicSlot(CamelModel):
    """One numbered appointment slot published by a doctor at a clinic."""

    id: str = ""
    slot_number: int = 0
    start_time: str = ""
    end_time: str = ""
    duration: Optional[float] = None
    price: Optional[float] = None
    is_booked: bool = False


class ClinicAddress(CamelModel):
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    timings: Optional[ClinicTimings] = None
    slots: dict[str, ClinicSlot] = Field(default_factory=dict)


class Provider(CamelModel):
    """A user record that can be booked."""

    uid: str = ""
    name: str = ""
    role: str = ""
    rating: Optional[float] = None
    experience: Optional[int] = None
    specialization: Optional[str] = None
    availability: Optional[Availability] = None
    service_area: Optional[ServiceArea] = None
    clinic_addresses: list[ClinicAddress] = Field(default_factory=list)

    @field_validator("clinic_addresses", mode="before")
    @classmethod
    def _index_map_to_list(cls, value: Any) -> Any:
        # the store keeps arrays as maps keyed "0", "1", ...
        if isinstance(value, dict):
            try:
                return [value[k] for k in sorted(value, key=int)]
            except ValueError:
                return value
        return value

    @classmethod
    def from_record(cls, uid: str, record: dict[str, Any]) -> "Provider":
        return cls.model_validate({**record, "uid": record.get("uid") or uid})

    @property
    def area(self) -> Optional[ServiceArea]:
        """Service area from the profile, falling back to the availability block."""
        if self.service_area is not None:
            return self.service_area
        if self.availability is not None:
            return self.availability.service_area
        return None
