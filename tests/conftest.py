"""Shared test fixtures and helpers."""

from typing import Any, Optional

import pytest

from carecoord.booking.service import BookingService
from carecoord.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    Location,
    RequesterDetails,
    Schedule,
    ScheduleRequest,
    ServiceType,
)
from carecoord.schemas.provider_schema import Availability, Provider, ServiceArea
from carecoord.seed_data import seed_tree
from carecoord.session import Session
from carecoord.store.gateway import InMemoryDocumentStore, WriteMode

# 2024-02-01 is a Thursday, 2024-01-29 a Monday, 2024-02-02 a Friday.
THURSDAY = "2024-02-01"
MONDAY = "2024-01-29"
FRIDAY = "2024-02-02"

PUNE = Location(address="12 MG Road", city="Pune", state="Maharashtra", pincode="411001")


class FailingStore(InMemoryDocumentStore):
    """In-memory store whose operations can be switched to fail."""

    def __init__(
        self,
        initial: Optional[dict[str, Any]] = None,
        fail_reads: bool = False,
        fail_writes: bool = False,
        fail_subscribe: bool = False,
    ) -> None:
        super().__init__(initial)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.fail_subscribe = fail_subscribe

    async def read(self, path: str) -> Any:
        if self.fail_reads:
            raise RuntimeError("store offline")
        return await super().read(path)

    async def write(self, path: str, value: Any = None, mode: WriteMode = WriteMode.UPDATE):
        if self.fail_writes:
            raise RuntimeError("store offline")
        return await super().write(path, value, mode)

    async def subscribe(self, path, on_change, on_error=None):
        if self.fail_subscribe:
            raise RuntimeError("store offline")
        return await super().subscribe(path, on_change, on_error)


@pytest.fixture
def store():
    return InMemoryDocumentStore(seed_tree())


@pytest.fixture
def service(store):
    return BookingService(store)


@pytest.fixture
def customer_session():
    return Session(actor_id="uid-customer-1", role="customer", display_name="Priya Desai")


@pytest.fixture
def other_customer_session():
    return Session(actor_id="uid-customer-2", role="customer", display_name="Arjun Rao")


def make_request(
    provider_id: str = "uid-paramedic-1",
    date: str = THURSDAY,
    start_time: str = "10:00",
    duration_hours: Any = 1,
    location: Optional[Location] = None,
    condition: str = "Recovering from knee surgery",
    service_type: ServiceType = ServiceType.HOME_CARE,
) -> BookingRequest:
    """Helper to create a BookingRequest with sensible defaults."""
    return BookingRequest(
        provider_id=provider_id,
        service_type=service_type,
        schedule=ScheduleRequest(date=date, start_time=start_time, duration_hours=duration_hours),
        location=location or PUNE,
        requester_details=RequesterDetails(condition=condition, symptoms="swelling, pain"),
    )


def make_booking(
    booking_id: str = "b1",
    status: BookingStatus = BookingStatus.PENDING,
    requester_id: str = "uid-customer-1",
    provider_id: str = "uid-paramedic-1",
    created_at: str = "2024-01-20T10:00:00+00:00",
    date: str = THURSDAY,
    start_time: str = "10:00",
    duration_hours: Any = 1,
    condition: str = "Recovering from knee surgery",
    service_type: ServiceType = ServiceType.HOME_CARE,
    city: str = "Pune",
) -> Booking:
    """Helper to create a stored Booking without going through the service."""
    return Booking(
        id=booking_id,
        requester_id=requester_id,
        provider_id=provider_id,
        service_type=service_type,
        status=status,
        schedule=Schedule(
            date=date, start_time=start_time, end_time="", duration_hours=duration_hours
        ),
        location=Location(address="1 Test Lane", city=city, state="Maharashtra", pincode="411001"),
        requester_details=RequesterDetails(condition=condition),
        created_at=created_at,
        updated_at=created_at,
    )


def make_provider(
    uid: str = "p1",
    name: str = "Asha Verma",
    rating: Optional[float] = 4.5,
    days: Optional[list[str]] = None,
    start_time: str = "09:00",
    end_time: str = "17:00",
    area: Optional[ServiceArea] = None,
) -> Provider:
    """Helper to create a Provider available on ``days`` (Monday by default)."""
    return Provider(
        uid=uid,
        name=name,
        role="paramedic",
        rating=rating,
        availability=Availability(
            days=days if days is not None else ["Monday"],
            start_time=start_time,
            end_time=end_time,
        ),
        service_area=area,
    )
