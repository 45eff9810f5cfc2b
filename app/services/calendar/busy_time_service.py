# ===== app/services/calendar/busy_time_service.py =====
"""
External calendar free/busy lookups.

Lookups are best effort: a missing integration, a provider error or a slow
provider all degrade to "no external busy periods" so slot computation never
fails because of a third-party API. The returned status tells the two cases
apart for the caller.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.models import CalendarIntegration
from app.schemas.availability import CalendarStatus, FreeBusyResult
from app.services.calendar.google_calendar_service import GoogleCalendarService
from app.services.calendar.outlook_service import OutlookCalendarService

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, Callable] = {
    'google': GoogleCalendarService,
    'outlook': OutlookCalendarService,
}


class BusyTimeProvider(Protocol):
    async def get_busy_times(self, user_id: UUID, start: datetime, end: datetime) -> FreeBusyResult:
        ...


class NoExternalCalendar:
    """Provider for deployments without calendar integrations"""

    async def get_busy_times(self, user_id: UUID, start: datetime, end: datetime) -> FreeBusyResult:
        return FreeBusyResult(status=CalendarStatus.NOT_CONNECTED)


class CalendarBusyService:
    """Free/busy lookups against the user's connected calendar"""

    def __init__(self, db: Session, timeout_seconds: Optional[float] = None):
        self.db = db
        self.timeout_seconds = timeout_seconds or get_settings().EXTERNAL_CALENDAR_TIMEOUT_SECONDS

    def _get_integration(self, user_id: UUID) -> Optional[CalendarIntegration]:
        return (
            self.db.query(CalendarIntegration)
            .filter_by(user_id=user_id, is_active=True)
            .order_by(CalendarIntegration.is_primary.desc())
            .first()
        )

    async def get_busy_times(self, user_id: UUID, start: datetime, end: datetime) -> FreeBusyResult:
        integration = self._get_integration(user_id)
        if not integration:
            return FreeBusyResult(status=CalendarStatus.NOT_CONNECTED)

        provider_cls = PROVIDERS.get(integration.provider)
        if provider_cls is None:
            logger.error(f"Unknown calendar provider: {integration.provider}")
            return FreeBusyResult(status=CalendarStatus.NOT_CONNECTED)

        try:
            provider = provider_cls()
            fetch = provider.prepare_busy_fetch(integration)
            intervals, token_update = await asyncio.wait_for(
                asyncio.to_thread(fetch, start, end),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"{integration.provider} free/busy for user {user_id} timed out after "
                f"{self.timeout_seconds}s, continuing without external busy times"
            )
            return FreeBusyResult(status=CalendarStatus.UNAVAILABLE)
        except Exception as e:
            logger.warning(
                f"{integration.provider} free/busy for user {user_id} failed: {e}, "
                f"continuing without external busy times"
            )
            return FreeBusyResult(status=CalendarStatus.UNAVAILABLE)

        if token_update:
            try:
                provider.apply_token_update(integration, token_update, self.db)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to store refreshed {integration.provider} token for user {user_id}: {e}")

        return FreeBusyResult(intervals=intervals, status=CalendarStatus.OK)
