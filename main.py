"""
Command-line entry point for the booking coordination core.

Runs against an in-memory document store seeded with sample users, so
no database or credentials are needed.

Usage:
    Scenario demo:      python main.py demo
    Provider matching:  python main.py match --date 2024-02-01 --start 10:00 --hours 1
    Clinic slots:       python main.py slots --doctor uid-doctor-1 --clinic 0
    Session context:    python main.py login --actor-id uid-customer-1 --role customer
                        python main.py whoami
                        python main.py logout
"""

import argparse
import asyncio
import sys
from typing import Optional

from carecoord.booking.service import BookingService
from carecoord.config import settings
from carecoord.errors import CareCoordError
from carecoord.roles import Role, dashboard_title
from carecoord.schemas.booking_schema import (
    SERVICE_DESCRIPTIONS,
    BookingRequest,
    Location,
    RequesterDetails,
    ScheduleRequest,
    ServiceType,
)
from carecoord.seed_data import seed_tree
from carecoord.session import Session, SessionStore
from carecoord.store.fetch import QueryState
from carecoord.store.gateway import InMemoryDocumentStore

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_LOCATION = Location(
    address="12 MG Road", city="Pune", state="Maharashtra", pincode="411001"
)


def _banner(title: str) -> None:
    print(f"\n{BOLD}{'=' * 60}{RESET}")
    print(f"{BOLD}  {title}{RESET}")
    print(f"{BOLD}{'=' * 60}{RESET}")


def _step(text: str) -> None:
    print(f"{GREEN}{text}{RESET}")


def _log(text: str) -> None:
    print(f"{DIM}  >> {text}{RESET}")


def _print_view(label: str, state: QueryState) -> None:
    if state.error is not None:
        _log(f"{label}: error {state.error.code}: {state.error}")
        return
    rows = [f"{b.id[:10]}.. {b.status.value}" for b in state.data or []]
    _log(f"{label}: {', '.join(rows) or 'no bookings'}")


def _build_service() -> BookingService:
    store = InMemoryDocumentStore(seed_tree(settings.store.users_path))
    return BookingService(store)


async def run_demo() -> int:
    """Create a booking, confirm it as the provider, then retry as the requester."""
    service = _build_service()
    requester = Session(actor_id="uid-customer-1", role="customer", display_name="Priya Desai")
    provider_id = "uid-paramedic-1"

    _banner(f"{settings.app_name.upper()} - Booking lifecycle demo")

    schedule = ScheduleRequest(date="2024-02-01", start_time="10:00", duration_hours=1)
    candidates = await service.match_providers(schedule, DEMO_LOCATION)
    _step(f"Providers free on Thursday {schedule.date} {schedule.start_time} for 1h:")
    for provider in candidates:
        _log(f"{provider.name} ({provider.uid}) rating {provider.rating}")

    names = await service.user_names()
    provider_view = service.list_bookings(provider_id, "paramedic", names=names)
    requester_view = service.list_bookings(requester.actor_id, requester.role, names=names)

    provider_view.add_listener(lambda s: _print_view(dashboard_title(Role.PARAMEDIC), s))
    requester_view.add_listener(lambda s: _print_view(dashboard_title(Role.CUSTOMER), s))

    async with provider_view, requester_view:
        title, _ = SERVICE_DESCRIPTIONS[ServiceType.HOME_CARE]
        request = BookingRequest(
            provider_id=provider_id,
            service_type=ServiceType.HOME_CARE,
            schedule=schedule,
            location=DEMO_LOCATION,
            requester_details=RequesterDetails(
                condition="Recovering from knee surgery",
                symptoms="swelling, limited mobility",
            ),
        )
        _step(f"\n{requester.display_name} requests {title} from {names[provider_id]}")
        booking_id = await service.create_booking(request, requester)
        booking = await service.get_booking(booking_id)
        _log(f"Booking {booking_id} is {booking.status.value}, ends at {booking.schedule.end_time}")

        _step("\nProvider confirms")
        booking = await service.transition(booking_id, "CONFIRMED", provider_id, "paramedic")
        _log(f"Booking {booking_id} is {booking.status.value}")

        _step("\nRequester tries to confirm the same booking")
        try:
            await service.transition(booking_id, "CONFIRMED", requester.actor_id, requester.role)
        except CareCoordError as e:
            print(f"{RED}  {e.code}: {e}{RESET}")
        else:
            print(f"{YELLOW}  Unexpectedly accepted{RESET}")
            return 1

    doctor_id = "uid-doctor-1"
    slots = await service.list_open_slots(doctor_id, 0)
    _step(f"\n{requester.display_name} books the first open slot with {names[doctor_id]}")
    _log(", ".join(f"#{s.slot_number} {s.start_time}-{s.end_time}" for s in slots))
    appointment_id = await service.book_slot(doctor_id, 0, slots[0].id, requester)
    _log(f"Appointment {appointment_id} scheduled; {len(slots) - 1} slot(s) left open")

    _banner("Demo complete.")
    return 0


async def run_match(
    date: str, start: str, hours: float, city: str = "", state: str = "", pincode: str = ""
) -> int:
    service = _build_service()
    location = None
    if city or pincode:
        location = Location(city=city, state=state, pincode=pincode)
    schedule = ScheduleRequest(date=date, start_time=start, duration_hours=hours)
    try:
        candidates = await service.match_providers(schedule, location)
    except CareCoordError as e:
        print(f"{RED}{e.code}: {e}{RESET}")
        return 2
    if not candidates:
        print(f"{YELLOW}No providers available.{RESET}")
        return 0
    for provider in candidates:
        print(f"{provider.uid}\t{provider.name}\t{provider.rating}")
    return 0


async def run_slots(doctor_id: str, clinic_index: int) -> int:
    service = _build_service()
    try:
        slots = await service.list_open_slots(doctor_id, clinic_index)
    except CareCoordError as e:
        print(f"{RED}{e.code}: {e}{RESET}")
        return 2
    if not slots:
        print(f"{YELLOW}No open slots.{RESET}")
        return 0
    for slot in slots:
        print(f"{slot.id}\t#{slot.slot_number}\t{slot.start_time}-{slot.end_time}\t{slot.price}")
    return 0


def _session_store() -> SessionStore:
    return SessionStore(settings.session.session_file)


def run_login(actor_id: str, role: str) -> int:
    session = Session(actor_id=actor_id, role=role)
    if session.parsed_role is None:
        print(f"{RED}Unknown role: {role}{RESET}")
        return 2
    _session_store().save(session)
    print(f"Signed in as {actor_id} - {dashboard_title(session.parsed_role)}")
    return 0


def run_whoami() -> int:
    session = _session_store().load()
    if session is None:
        print("Not signed in.")
        return 1
    title = dashboard_title(session.parsed_role) if session.parsed_role else session.role
    print(f"{session.actor_id} ({session.role}) - {title}")
    return 0


def run_logout() -> int:
    _session_store().clear()
    print("Signed out.")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Care booking coordination tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("demo", help="Run the booking lifecycle demo")

    match = sub.add_parser("match", help="List providers free for a window")
    match.add_argument("--date", required=True, help="YYYY-MM-DD")
    match.add_argument("--start", required=True, help="HH:MM")
    match.add_argument("--hours", type=float, default=1)
    match.add_argument("--city", default="")
    match.add_argument("--state", default="")
    match.add_argument("--pincode", default="")

    slots = sub.add_parser("slots", help="List open clinic slots of a doctor")
    slots.add_argument("--doctor", required=True)
    slots.add_argument("--clinic", type=int, default=0)

    login = sub.add_parser("login", help="Persist a session context")
    login.add_argument("--actor-id", required=True)
    login.add_argument("--role", required=True)

    sub.add_parser("whoami", help="Show the persisted session")
    sub.add_parser("logout", help="Remove the persisted session")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "demo":
        return asyncio.run(run_demo())
    if args.command == "match":
        return asyncio.run(run_match(
            args.date, args.start, args.hours, args.city, args.state, args.pincode
        ))
    if args.command == "slots":
        return asyncio.run(run_slots(args.doctor, args.clinic))
    if args.command == "login":
        return run_login(args.actor_id, args.role)
    if args.command == "whoami":
        return run_whoami()
    return run_logout()


if __name__ == "__main__":
    sys.exit(main())
