"""
Wiring of the booking core's services.
"""

from datetime import datetime
from typing import Callable, Optional

from ..config import DatabaseConfig, ExternalAPIConfig, Settings, get_settings
from ..services.booking import BookingService, ConsentGate, ServiceFulfillmentController
from ..services.external import DirectoryService, NotificationService
from ..services.otp import OtpChallengeManager
from ..services.storage import KeyedLocks, SQLiteStore
from ..services.worklist import WorklistProjector
from ..utils.date import utc_now


class ServiceContainer:
    """Builds one instance of every service, sharing the store and locks."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SQLiteStore] = None,
        directory: Optional[DirectoryService] = None,
        notifier: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        api_config = ExternalAPIConfig.from_settings(self.settings)

        self.store = store or SQLiteStore(DatabaseConfig.from_settings(self.settings))
        self.locks = KeyedLocks()
        self.directory = directory or DirectoryService(api_config)
        self.notifier = notifier or NotificationService(api_config)

        self.otp = OtpChallengeManager(self.store, self.notifier, self.locks, self.settings, clock=clock)
        self.consent = ConsentGate(self.otp)
        self.fulfillment = ServiceFulfillmentController(self.otp)
        self.bookings = BookingService(self.directory, self.consent)
        self.worklist = WorklistProjector(self.store, self.settings, clock=clock)
