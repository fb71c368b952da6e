"""
Booking CRUD surface used by UI collaborators.

Ties the lifecycle rules and the availability predicate to the document
store: every validation runs before any write, and every write goes
through the audited ``mutate`` helper.

Status changes read the booking, validate the edge, then write. The read
and the write are not atomic: two concurrent transitions on one booking
are resolved last-write-wins.
"""

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from carecoord.booking.availability import (
    compute_end_time,
    match_providers,
    provider_matches,
    validate_schedule,
)
from carecoord.booking.lifecycle import check_creation, check_transition
from carecoord.booking.slots import appointment_key, find_open_slot, get_clinic, open_slots
from carecoord.config import AppConfig, settings
from carecoord.errors import (
    BookingNotFoundError,
    BookingValidationError,
    FetchError,
    ProviderUnavailableError,
)
from carecoord.logging_context import actor_scope
from carecoord.roles import RoleKind, parse_role, role_kind
from carecoord.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    Location,
    Schedule,
    ScheduleRequest,
)
from carecoord.schemas.appointment_schema import Appointment
from carecoord.schemas.provider_schema import ClinicSlot, Provider
from carecoord.session import Session
from carecoord.store.fetch import FetchController, SubscriptionHub, fetch_once, shared_hub
from carecoord.store.gateway import DocumentStore, WriteMode
from carecoord.store.mutate import mutate
from carecoord.store.query import build_query
from carecoord.utils import join_path, utc_now_iso
from carecoord.views.projection import RoleProjection, to_bookings

logger = logging.getLogger(__name__)

REQUIRED_LOCATION_FIELDS = ("address", "city", "state", "pincode")


class BookingService:
    """Create, transition, list, and match bookings against a document store."""

    def __init__(
        self,
        store: DocumentStore,
        hub: Optional[SubscriptionHub] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._store = store
        self._hub = hub or shared_hub(store)
        self._config = config or settings

    @property
    def bookings_path(self) -> str:
        return self._config.store.bookings_path

    @property
    def users_path(self) -> str:
        return self._config.store.users_path

    @property
    def appointments_path(self) -> str:
        return self._config.store.appointments_path

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get_booking(self, booking_id: str) -> Booking:
        """
        Load one booking.

        Raises:
            BookingNotFoundError: If nothing is stored under the id.
            FetchError: If the store read fails.
        """
        path = join_path(self.bookings_path, booking_id)
        record = await fetch_once(self._store, build_query(path))
        if not isinstance(record, dict):
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        try:
            return Booking.from_record(booking_id, record)
        except ValidationError as exc:
            raise FetchError(f"Stored booking {booking_id} is malformed", cause=exc) from exc

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        record = await fetch_once(self._store, build_query(join_path(self.users_path, provider_id)))
        if not isinstance(record, dict):
            return None
        try:
            return Provider.from_record(provider_id, record)
        except ValidationError as exc:
            raise FetchError(f"Stored user {provider_id} is malformed", cause=exc) from exc

    async def list_providers(self, role: Optional[str] = None) -> list[Provider]:
        """
        All users holding the provider role (defaults to the configured one).

        User records that do not parse as providers are logged and skipped.
        """
        wanted = (role or self._config.booking.provider_role).lower()
        users = await fetch_once(self._store, build_query(self.users_path))
        providers = []
        for uid, record in (users or {}).items():
            if not isinstance(record, dict) or str(record.get("role", "")).lower() != wanted:
                continue
            try:
                providers.append(Provider.from_record(uid, record))
            except ValidationError as e:
                logger.warning("Skipping malformed provider %s: %s", uid, e.error_count())
        return providers

    async def user_names(self) -> dict[str, str]:
        """Map of user id to display name, for search and display."""
        users = await fetch_once(self._store, build_query(self.users_path))
        return {
            uid: record.get("name", "")
            for uid, record in (users or {}).items()
            if isinstance(record, dict)
        }

    def list_bookings(
        self,
        actor_id: str,
        actor_role: object,
        search: str = "",
        status: Optional[Any] = None,
        names: Optional[Mapping[str, str]] = None,
        live: bool = True,
    ) -> FetchController:
        """
        Build a controller over the bookings visible to the actor.

        The controller is not started; use it as an async context manager.
        Identical live listings share a single store subscription.

        Raises:
            InvalidQueryError: If ``status`` is not a known booking status.
        """
        descriptor = build_query(
            self.bookings_path,
            flatten_to_array=True,
            transform=RoleProjection.build(actor_role, actor_id, search, status, names),
            live=live,
        )
        return FetchController(self._store, descriptor, hub=self._hub)

    async def match_providers(
        self,
        schedule: ScheduleRequest,
        location: Optional[Location] = None,
        exclude_double_booked: bool = False,
    ) -> list[Provider]:
        """
        Candidate providers for a requested window, best rated first.

        ``exclude_double_booked`` additionally drops providers with an
        overlapping CONFIRMED booking.
        """
        validate_schedule(schedule, self._config.booking.max_duration_hours)
        providers = await self.list_providers()
        existing = None
        if exclude_double_booked:
            records = await fetch_once(
                self._store, build_query(self.bookings_path, flatten_to_array=True)
            )
            existing = to_bookings(records)
        return match_providers(
            providers,
            schedule,
            location,
            existing_bookings=existing,
            max_hours=self._config.booking.max_duration_hours,
        )

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def _check_request(self, request: BookingRequest, session: Session) -> None:
        validate_schedule(request.schedule, self._config.booking.max_duration_hours)

        missing = [
            f"location.{name}"
            for name in REQUIRED_LOCATION_FIELDS
            if not str(getattr(request.location, name) or "").strip()
        ]
        if not request.requester_details.condition.strip():
            missing.append("requesterDetails.condition")
        if not request.provider_id.strip():
            missing.append("providerId")
        if missing:
            raise BookingValidationError(
                f"Cannot create booking - missing required fields: {', '.join(missing)}."
            )
        if request.provider_id == session.actor_id:
            raise BookingValidationError("A provider cannot book themselves")

    async def create_booking(
        self, request: Union[BookingRequest, Mapping[str, Any]], session: Session
    ) -> str:
        """
        Validate a request and store it as a PENDING booking.

        ``request`` may be a raw camelCase mapping as submitted by a form.
        Only requester roles may create bookings.

        Returns:
            The store-generated booking id.

        Raises:
            UnauthorizedError: If the session role is unknown or may not request bookings.
            MalformedScheduleError: If the date or start time is malformed.
            InvalidDurationError: If the duration is not positive or too long.
            BookingValidationError: If required fields are missing or malformed.
            ProviderUnavailableError: If the provider does not match the request.
            FetchError: If a store read or write fails.
        """
        with actor_scope(session.actor_id):
            return await self._create_booking(request, session)

    async def _create_booking(
        self, request: Union[BookingRequest, Mapping[str, Any]], session: Session
    ) -> str:
        check_creation(session.role)
        if not isinstance(request, BookingRequest):
            request = parse_request(request)
        self._check_request(request, session)

        provider = await self._require_provider(request.provider_id)
        if not provider_matches(provider, request.schedule, request.location):
            raise ProviderUnavailableError(
                f"Provider {request.provider_id} is not available on {request.schedule.date} "
                f"at {request.schedule.start_time} for {request.schedule.duration_hours}h"
            )

        now = utc_now_iso()
        booking = Booking(
            requester_id=session.actor_id,
            provider_id=request.provider_id,
            service_type=request.service_type,
            status=BookingStatus.PENDING,
            schedule=Schedule(
                date=request.schedule.date,
                start_time=request.schedule.start_time,
                end_time=compute_end_time(
                    request.schedule.start_time, request.schedule.duration_hours
                ),
                duration_hours=request.schedule.duration_hours,
            ),
            location=request.location,
            requester_details=request.requester_details,
            created_at=now,
            updated_at=now,
        )
        result = await mutate(
            self._store,
            self.bookings_path,
            booking.to_record(),
            WriteMode.CREATE_WITH_ID,
            actor_id=session.actor_id,
        )
        booking_id = result["id"]
        logger.info(
            "Booking created: %s for provider %s on %s at %s",
            booking_id, request.provider_id, request.schedule.date, request.schedule.start_time,
        )
        return booking_id

    async def _require_provider(self, provider_id: str) -> Provider:
        provider = await self.get_provider(provider_id)
        if provider is None or role_kind_of(provider.role) != RoleKind.PROVIDER:
            raise ProviderUnavailableError(f"Provider {provider_id} not found")
        return provider

    async def transition(
        self, booking_id: str, new_status: object, actor_id: str, actor_role: object
    ) -> Booking:
        """
        Move a booking to ``new_status`` on behalf of an actor.

        Returns:
            The booking as written.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            InvalidTransitionError: If the lifecycle has no such edge.
            UnauthorizedError: If the actor may not apply the edge.
            FetchError: If a store read or write fails.
        """
        with actor_scope(actor_id):
            booking = await self.get_booking(booking_id)
            edge = check_transition(booking, new_status, actor_id, actor_role)

            updated_at = max(utc_now_iso(), booking.updated_at)
            await mutate(
                self._store,
                join_path(self.bookings_path, booking_id),
                {"status": edge.to_status.value, "updatedAt": updated_at},
                WriteMode.UPDATE,
                actor_id=actor_id,
            )
            logger.info(
                "Booking %s: %s -> %s", booking_id, booking.status.value, edge.to_status.value
            )
        return booking.model_copy(update={"status": edge.to_status, "updated_at": updated_at})

    # ------------------------------------------------------------------ #
    # Clinic slots
    # ------------------------------------------------------------------ #

    async def list_open_slots(self, doctor_id: str, clinic_index: int) -> list[ClinicSlot]:
        """Open slots at one of a doctor's clinics, by slot number."""
        provider = await self._require_provider(doctor_id)
        return open_slots(get_clinic(provider, clinic_index))

    async def book_slot(
        self, doctor_id: str, clinic_index: int, slot_id: str, session: Session
    ) -> str:
        """
        Claim a clinic slot for the session's patient.

        Writes the appointment, then flags the slot ``isBooked``. As with
        status changes, the open-slot check and the writes are not atomic.

        Returns:
            The appointment key, ``{patientId}_{slotId}``.

        Raises:
            UnauthorizedError: If the session role may not request bookings.
            BookingValidationError: If a doctor books their own slot.
            ProviderUnavailableError: If the doctor, clinic or slot is missing,
                or the slot is already booked.
            FetchError: If a store read or write fails.
        """
        with actor_scope(session.actor_id):
            check_creation(session.role)
            if doctor_id == session.actor_id:
                raise BookingValidationError("A provider cannot book themselves")
            provider = await self._require_provider(doctor_id)
            clinic, slot = find_open_slot(provider, clinic_index, slot_id)

            key = appointment_key(session.actor_id, slot_id)
            appointment = Appointment(
                doctor_id=provider.uid,
                doctor_name=provider.name,
                doctor_specialization=provider.specialization,
                patient_id=session.actor_id,
                patient_name=session.display_name,
                clinic_index=clinic_index,
                clinic_address=Location(
                    address=clinic.address,
                    city=clinic.city,
                    state=clinic.state,
                    pincode=clinic.pincode,
                ),
                slot_id=slot_id,
                slot_info=slot,
                created_at=utc_now_iso(),
            )
            await mutate(
                self._store,
                join_path(self.appointments_path, key),
                appointment.to_record(),
                WriteMode.CREATE,
                actor_id=session.actor_id,
            )
            await mutate(
                self._store,
                join_path(
                    self.users_path, doctor_id, "clinicAddresses", str(clinic_index),
                    "slots", slot_id,
                ),
                {"isBooked": True},
                WriteMode.UPDATE,
                actor_id=session.actor_id,
            )
            logger.info("Slot %s of %s booked as appointment %s", slot_id, doctor_id, key)
        return key

    async def get_appointment(self, appointment_id: str) -> Appointment:
        """
        Load one appointment.

        Raises:
            BookingNotFoundError: If nothing is stored under the id.
            FetchError: If the store read fails or the record is malformed.
        """
        path = join_path(self.appointments_path, appointment_id)
        record = await fetch_once(self._store, build_query(path))
        if not isinstance(record, dict):
            raise BookingNotFoundError(f"Appointment {appointment_id} not found")
        try:
            return Appointment.from_record(appointment_id, record)
        except ValidationError as exc:
            raise FetchError(
                f"Stored appointment {appointment_id} is malformed", cause=exc
            ) from exc


def role_kind_of(raw_role: object) -> Optional[RoleKind]:
    role = parse_role(raw_role)
    return role_kind(role) if role is not None else None


def parse_request(data: Mapping[str, Any]) -> BookingRequest:
    """Validate raw request input, reporting problems as BookingValidationError."""
    try:
        return BookingRequest.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise BookingValidationError(
            f"Cannot create booking - invalid fields: {', '.join(fields)}."
        ) from exc
