# app/services/calendar/outlook_service.py
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple
import logging

import msal
import requests
from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.models import CalendarIntegration
from app.schemas.availability import BusyInterval
from app.utils.time_utils import ensure_utc

settings = get_settings()

logger = logging.getLogger(__name__)


def _parse_graph_datetime(value: str) -> datetime:
    # Graph returns UTC wall times without an offset and with seven fractional digits
    value = value.rstrip("Z")
    if "." in value:
        whole, fraction = value.split(".", 1)
        value = f"{whole}.{fraction[:6]}"
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class OutlookCalendarService:
    SCOPES = ['Calendars.Read']
    AUTHORITY = 'https://login.microsoftonline.com/common'
    GRAPH_ENDPOINT = 'https://graph.microsoft.com/v1.0'
    REQUEST_TIMEOUT = 10

    def __init__(self):
        self.client_id = settings.MICROSOFT_CLIENT_ID
        self.client_secret = settings.MICROSOFT_CLIENT_SECRET
        self.fernet = Fernet(settings.CALENDAR_ENCRYPTION_KEY.encode())

    def needs_refresh(self, integration: CalendarIntegration) -> bool:
        if integration.token_expires_at is None:
            return False
        now = datetime.now(timezone.utc)
        return ensure_utc(integration.token_expires_at) <= now + timedelta(minutes=5)

    def refresh_access_token(self, refresh_token: str) -> Dict:
        """Exchange the refresh token for a new access token"""
        app = msal.ConfidentialClientApplication(
            self.client_id,
            authority=self.AUTHORITY,
            client_credential=self.client_secret
        )

        result = app.acquire_token_by_refresh_token(
            refresh_token=refresh_token,
            scopes=self.SCOPES
        )

        if "error" in result:
            raise ValueError(f"Token refresh failed: {result.get('error_description')}")

        return {
            "access_token": result['access_token'],
            "expires_at": datetime.now(timezone.utc) + timedelta(seconds=result['expires_in']),
        }

    def prepare_busy_fetch(
            self,
            integration: CalendarIntegration
    ) -> Callable[[datetime, datetime], Tuple[List[BusyInterval], Optional[Dict]]]:
        """Snapshot tokens and config so the Graph calls can run off the request thread"""
        access_token = self.fernet.decrypt(integration.access_token_encrypted).decode()
        refresh_token = None
        if integration.refresh_token_encrypted:
            refresh_token = self.fernet.decrypt(integration.refresh_token_encrypted).decode()
        refresh = self.needs_refresh(integration) and refresh_token is not None
        calendar_id = (integration.provider_config or {}).get('selected_calendar_id')

        def fetch(start: datetime, end: datetime):
            token_update = None
            token = access_token
            if refresh:
                token_update = self.refresh_access_token(refresh_token)
                token = token_update["access_token"]
            return self.query_busy_periods(token, calendar_id, start, end), token_update

        return fetch

    def query_busy_periods(
            self,
            access_token: str,
            calendar_id: Optional[str],
            start: datetime,
            end: datetime
    ) -> List[BusyInterval]:
        """Busy periods from the calendar view, ignoring declined and free events"""
        if end <= start:
            raise ValueError(f"end ({end}) must be after start ({start})")

        headers = {
            'Authorization': f'Bearer {access_token}',
            'Prefer': 'outlook.timezone="UTC"',
        }
        if calendar_id:
            url = f"{self.GRAPH_ENDPOINT}/me/calendars/{calendar_id}/calendarView"
        else:
            url = f"{self.GRAPH_ENDPOINT}/me/calendarView"

        response = requests.get(
            url,
            headers=headers,
            params={
                'startDateTime': ensure_utc(start).isoformat(),
                'endDateTime': ensure_utc(end).isoformat(),
            },
            timeout=self.REQUEST_TIMEOUT,
        )

        if response.status_code != 200:
            logger.error(f"Microsoft Graph API error: {response.text}")
            raise ValueError(f"Failed to fetch calendar events: {response.status_code}")

        busy_periods = []
        for event in response.json().get('value', []):
            if event.get('responseStatus', {}).get('response') == 'declined':
                continue
            if event.get('showAs') == 'free':
                continue
            busy_periods.append(BusyInterval(
                start=_parse_graph_datetime(event['start']['dateTime']),
                end=_parse_graph_datetime(event['end']['dateTime']),
            ))

        busy_periods.sort(key=lambda b: b.start)
        logger.info(f"Outlook returned {len(busy_periods)} busy periods")
        return busy_periods

    def apply_token_update(self, integration: CalendarIntegration, token_update: Dict, db: Session):
        """Persist a refreshed access token"""
        integration.access_token_encrypted = self.fernet.encrypt(token_update['access_token'].encode())
        integration.token_expires_at = token_update['expires_at']
        db.commit()
