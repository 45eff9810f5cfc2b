# app/services/calendar/google_calendar_service.py
from datetime import timedelta, datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from app.config.settings import get_settings
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from cryptography.fernet import Fernet
from sqlalchemy.orm import Session
import logging
from app.models import CalendarIntegration
from app.schemas.availability import BusyInterval
from app.utils.time_utils import ensure_utc

settings = get_settings()

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


def _parse_rfc3339(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GoogleCalendarService:
    SCOPES = ['https://www.googleapis.com/auth/calendar.readonly']

    def __init__(self):
        self.fernet = Fernet(settings.CALENDAR_ENCRYPTION_KEY.encode())

    def get_credentials(self, integration: CalendarIntegration) -> Credentials:
        """Decrypt stored tokens into google-auth credentials"""
        access_token = self.fernet.decrypt(integration.access_token_encrypted).decode()
        refresh_token = None
        if integration.refresh_token_encrypted:
            refresh_token = self.fernet.decrypt(integration.refresh_token_encrypted).decode()
        return Credentials(
            token=access_token,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            scopes=self.SCOPES,
        )

    def needs_refresh(self, integration: CalendarIntegration) -> bool:
        if integration.token_expires_at is None:
            return False
        now = datetime.now(timezone.utc)
        return ensure_utc(integration.token_expires_at) <= now + timedelta(minutes=5)

    def prepare_busy_fetch(
            self,
            integration: CalendarIntegration
    ) -> Callable[[datetime, datetime], Tuple[List[BusyInterval], Optional[Dict]]]:
        """
        Snapshot everything the network call needs so it can run off the
        request thread without touching the database session.
        """
        credentials = self.get_credentials(integration)
        refresh = self.needs_refresh(integration)
        calendar_id = (integration.provider_config or {}).get('selected_calendar_id', 'primary')

        def fetch(start: datetime, end: datetime):
            token_update = None
            if refresh:
                credentials.refresh(Request())
                token_update = {"access_token": credentials.token, "expires_at": credentials.expiry}
            return self.query_free_busy(credentials, calendar_id, start, end), token_update

        return fetch

    def query_free_busy(
            self,
            credentials: Credentials,
            calendar_id: str,
            start: datetime,
            end: datetime
    ) -> List[BusyInterval]:
        """Busy periods of one calendar between start and end"""
        service = build('calendar', 'v3', credentials=credentials, cache_discovery=False)
        response = service.freebusy().query(body={
            "timeMin": ensure_utc(start).isoformat(),
            "timeMax": ensure_utc(end).isoformat(),
            "items": [{"id": calendar_id}],
        }).execute()

        calendar = response.get("calendars", {}).get(calendar_id, {})
        if calendar.get("errors"):
            raise ValueError(f"Google free/busy error for calendar {calendar_id}: {calendar['errors']}")

        busy = [
            BusyInterval(start=_parse_rfc3339(b["start"]), end=_parse_rfc3339(b["end"]))
            for b in calendar.get("busy", [])
        ]
        logger.info(f"Google returned {len(busy)} busy periods for calendar {calendar_id}")
        return busy

    def apply_token_update(self, integration: CalendarIntegration, token_update: Dict, db: Session):
        """Persist a refreshed access token"""
        integration.access_token_encrypted = self.fernet.encrypt(token_update["access_token"].encode())
        expires_at = token_update.get("expires_at")
        if expires_at is not None:
            integration.token_expires_at = ensure_utc(expires_at)
        db.commit()
