"""Tests for Google and Outlook free/busy parsing with the HTTP layer mocked."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from cryptography.fernet import Fernet

from app.models import CalendarIntegration
from app.services.calendar import google_calendar_service, outlook_service
from app.services.calendar.google_calendar_service import GoogleCalendarService
from app.services.calendar.outlook_service import OutlookCalendarService
from tests.conftest import MONDAY, busy, utc

START, END = utc(MONDAY, "00:00"), utc(MONDAY, "23:59")


@pytest.fixture
def fernet_key(monkeypatch):
    key = Fernet.generate_key().decode()
    monkeypatch.setattr(google_calendar_service.settings, "CALENDAR_ENCRYPTION_KEY", key)
    monkeypatch.setattr(outlook_service.settings, "CALENDAR_ENCRYPTION_KEY", key)
    return key


@pytest.fixture
def integration(fernet_key):
    fernet = Fernet(fernet_key.encode())
    return CalendarIntegration(
        provider="outlook",
        access_token_encrypted=fernet.encrypt(b"access"),
        refresh_token_encrypted=fernet.encrypt(b"refresh"),
        token_expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        provider_config={"selected_calendar_id": "work"},
    )


class TestOutlookCalendar:

    def test_busy_periods_skip_free_and_declined(self, integration, monkeypatch):
        response = MagicMock(status_code=200)
        response.json.return_value = {"value": [
            {"start": {"dateTime": "2026-03-02T11:00:00.0000000"}, "end": {"dateTime": "2026-03-02T11:30:00.0000000"},
             "showAs": "busy"},
            {"start": {"dateTime": "2026-03-02T09:00:00.0000000"}, "end": {"dateTime": "2026-03-02T10:00:00.0000000"},
             "showAs": "busy"},
            {"start": {"dateTime": "2026-03-02T12:00:00.0000000"}, "end": {"dateTime": "2026-03-02T13:00:00.0000000"},
             "showAs": "free"},
            {"start": {"dateTime": "2026-03-02T14:00:00.0000000"}, "end": {"dateTime": "2026-03-02T15:00:00.0000000"},
             "responseStatus": {"response": "declined"}},
        ]}
        get = MagicMock(return_value=response)
        monkeypatch.setattr(outlook_service.requests, "get", get)

        fetch = OutlookCalendarService().prepare_busy_fetch(integration)
        intervals, token_update = fetch(START, END)

        assert intervals == [busy(MONDAY, "09:00", "10:00"), busy(MONDAY, "11:00", "11:30")]
        assert token_update is None
        assert get.call_args.args[0].endswith("/me/calendars/work/calendarView")
        assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer access"

    def test_graph_error_raises(self, integration, monkeypatch):
        monkeypatch.setattr(outlook_service.requests, "get", MagicMock(return_value=MagicMock(status_code=401)))

        fetch = OutlookCalendarService().prepare_busy_fetch(integration)

        with pytest.raises(ValueError):
            fetch(START, END)

    def test_expiring_token_refreshed(self, integration, monkeypatch):
        integration.token_expires_at = datetime.now(timezone.utc) + timedelta(minutes=1)
        response = MagicMock(status_code=200)
        response.json.return_value = {"value": []}
        get = MagicMock(return_value=response)
        monkeypatch.setattr(outlook_service.requests, "get", get)
        monkeypatch.setattr(
            OutlookCalendarService, "refresh_access_token",
            lambda self, refresh_token: {"access_token": "renewed", "expires_at": END},
        )

        intervals, token_update = OutlookCalendarService().prepare_busy_fetch(integration)(START, END)

        assert intervals == []
        assert token_update["access_token"] == "renewed"
        assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer renewed"

    def test_token_update_stored_encrypted(self, integration, fernet_key):
        db = MagicMock()

        OutlookCalendarService().apply_token_update(integration, {"access_token": "renewed", "expires_at": END}, db)

        assert Fernet(fernet_key.encode()).decrypt(integration.access_token_encrypted) == b"renewed"
        assert integration.token_expires_at == END
        db.commit.assert_called_once()


class TestGoogleCalendar:

    def test_free_busy_query(self, integration, monkeypatch):
        service = MagicMock()
        service.freebusy.return_value.query.return_value.execute.return_value = {
            "calendars": {"work": {"busy": [
                {"start": "2026-03-02T10:00:00Z", "end": "2026-03-02T10:45:00Z"},
            ]}}
        }
        build = MagicMock(return_value=service)
        monkeypatch.setattr(google_calendar_service, "build", build)

        intervals, token_update = GoogleCalendarService().prepare_busy_fetch(integration)(START, END)

        assert intervals == [busy(MONDAY, "10:00", "10:45")]
        assert token_update is None
        body = service.freebusy.return_value.query.call_args.kwargs["body"]
        assert body["items"] == [{"id": "work"}]

    def test_calendar_errors_raise(self, integration, monkeypatch):
        service = MagicMock()
        service.freebusy.return_value.query.return_value.execute.return_value = {
            "calendars": {"work": {"errors": [{"reason": "notFound"}]}}
        }
        monkeypatch.setattr(google_calendar_service, "build", MagicMock(return_value=service))

        with pytest.raises(ValueError):
            GoogleCalendarService().prepare_busy_fetch(integration)(START, END)

    def test_credentials_decrypted(self, integration):
        credentials = GoogleCalendarService().get_credentials(integration)

        assert credentials.token == "access"
        assert credentials.refresh_token == "refresh"
