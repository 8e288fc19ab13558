"""
Pytest configuration and fixtures.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from vems_booking.config import DatabaseConfig, Settings
from vems_booking.core.models import (
    BookingRequest,
    BookingServiceRequest,
    ContractServiceRecord,
    FacilityRecord,
    PatientRecord,
    PractitionerRecord,
)
from vems_booking.services.booking import BookingService, ConsentGate, ServiceFulfillmentController
from vems_booking.services.external import DirectoryService, NotificationService
from vems_booking.services.otp import OtpChallengeManager
from vems_booking.services.storage import KeyedLocks, SQLiteStore
from vems_booking.services.worklist import WorklistProjector
from vems_booking.utils.date import DateParser, utc_now
from vems_booking.utils.event_log import set_log_path


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self):
        self.now = utc_now()

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def event_log(tmp_path):
    """Send audit events to a per-test file."""
    path = tmp_path / "events.jsonl"
    set_log_path(path)
    return path


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_path=str(tmp_path / "bookings.db"),
        event_log_path=str(tmp_path / "events.jsonl"),
        sms_backend="log",
        otp_expose_code=True,
        otp_ttl_seconds=300,
        notification_timeout=1.0,
        default_per_page=15,
        max_per_page=50,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(settings):
    return SQLiteStore(DatabaseConfig.from_settings(settings))


@pytest.fixture
def locks():
    return KeyedLocks()


@pytest.fixture
def notifier():
    """Mock SMS gateway that accepts everything."""
    service = Mock(spec=NotificationService)
    service.send = AsyncMock(return_value=None)
    return service


@pytest.fixture
def directory():
    """Mock directory with one patient, one facility and any requested service."""
    service = Mock(spec=DirectoryService)
    service.get_patient = AsyncMock(
        side_effect=lambda pid: PatientRecord(
            id=pid, name="Jane Wanjiku", phone="0712345678", identification_no="28765432"
        )
    )
    service.get_facility = AsyncMock(
        side_effect=lambda fid: FacilityRecord(
            id=fid, name="Kiambu Level 5 Hospital", fr_code="FR-1001", phone="0722000111"
        )
    )
    service.get_contract_service = AsyncMock(
        side_effect=lambda sid: ContractServiceRecord(
            id=sid,
            code=f"SVC-{sid}",
            name=f"Scan {sid}",
            tariff=Decimal("1500.00"),
            facility_share=Decimal("600.00"),
            vendor_share=Decimal("900.00"),
        )
    )
    service.get_practitioner = AsyncMock(
        side_effect=lambda pid: PractitionerRecord(id=pid, name=f"Dr. {pid}")
    )
    return service


@pytest.fixture
def otp_manager(store, notifier, locks, settings, clock):
    return OtpChallengeManager(store, notifier, locks, settings, clock=clock)


@pytest.fixture
def consent(otp_manager):
    return ConsentGate(otp_manager)


@pytest.fixture
def fulfillment(otp_manager):
    return ServiceFulfillmentController(otp_manager)


@pytest.fixture
def booking_service(directory, consent, fulfillment):
    return BookingService(directory, consent)


@pytest.fixture
def worklist(store, settings, clock):
    return WorklistProjector(store, settings, clock=clock)


@pytest.fixture
def today(settings, clock):
    return DateParser(settings.timezone).local_date(clock())


@pytest.fixture
def booking_request(today):
    """Build a booking request for ``count`` services scheduled from today on."""

    def _build(count: int = 3, override: bool = False, practitioner_id=None, **extra) -> BookingRequest:
        return BookingRequest(
            facility_id="fac-1",
            patient_id=extra.pop("patient_id", "pat-1"),
            services=[
                BookingServiceRequest(
                    contract_service_id=f"cs-{i + 1}",
                    scheduled_date=today + timedelta(days=i),
                    practitioner_id=practitioner_id,
                )
                for i in range(count)
            ],
            override=override,
            **extra,
        )

    return _build


@pytest.fixture
def create_booking(booking_service, booking_request):
    """Create a booking through the service and return (booking, consent challenge)."""

    async def _create(count: int = 3, **kwargs):
        return await booking_service.create(booking_request(count, **kwargs), created_by="user-1")

    return _create


@pytest.fixture
def active_booking(create_booking, consent):
    """Create a booking and confirm it with its consent code."""

    async def _create(count: int = 3, **kwargs):
        booking, challenge = await create_booking(count, **kwargs)
        return await consent.validate(challenge.session_id, challenge.code)

    return _create
