"""
Clinic appointment slots.

Doctors publish numbered slots under each clinic address. A slot is open
until an appointment claims it, at which point it is flagged ``isBooked``
and drops out of every open-slot listing.
"""

from datetime import date
from typing import Optional

from carecoord.booking.availability import weekday_name
from carecoord.errors import ProviderUnavailableError
from carecoord.schemas.provider_schema import ClinicAddress, ClinicSlot, Provider


def open_slots(clinic: ClinicAddress) -> list[ClinicSlot]:
    """Unbooked slots of ``clinic`` ordered by slot number, ids filled from their keys."""
    slots = [
        slot.model_copy(update={"id": slot_id})
        for slot_id, slot in clinic.slots.items()
        if not slot.is_booked
    ]
    slots.sort(key=lambda s: (s.slot_number, s.id))
    return slots


def is_clinic_open(clinic: ClinicAddress, day: date) -> bool:
    if clinic.timings is None:
        return False
    wanted = weekday_name(day).lower()
    return wanted in {d.strip().lower() for d in clinic.timings.days}


def get_clinic(provider: Provider, clinic_index: int) -> ClinicAddress:
    if not 0 <= clinic_index < len(provider.clinic_addresses):
        raise ProviderUnavailableError(
            f"Provider {provider.uid} has no clinic at index {clinic_index}"
        )
    return provider.clinic_addresses[clinic_index]


def find_open_slot(
    provider: Provider, clinic_index: int, slot_id: str
) -> tuple[ClinicAddress, ClinicSlot]:
    """
    Locate a bookable slot.

    Raises:
        ProviderUnavailableError: If the clinic or slot does not exist, or
            the slot is already booked.
    """
    clinic = get_clinic(provider, clinic_index)
    slot: Optional[ClinicSlot] = clinic.slots.get(slot_id)
    if slot is None:
        raise ProviderUnavailableError(
            f"Slot {slot_id} not found at clinic {clinic_index} of {provider.uid}"
        )
    if slot.is_booked:
        raise ProviderUnavailableError(f"Slot {slot_id} is already booked")
    return clinic, slot.model_copy(update={"id": slot_id})


def appointment_key(patient_id: str, slot_id: str) -> str:
    return f"{patient_id}_{slot_id}"
