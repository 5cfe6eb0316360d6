from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List
from zoneinfo import ZoneInfo
import logging
import os

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from .config import ConfigError
from .models import CalendarEvent, CalendarHandle, CalendarNotFoundError, CalendarWriteError

logger = logging.getLogger(__name__)

# Failures of a single patch or insert request.
WRITE_ERRORS = (HttpError, HttpLib2Error, GoogleAuthError, OSError)

SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
]


def _get_creds(credentials_path: str, token_path: str) -> Credentials:
    creds = None
    if token_path and os.path.exists(token_path):
        creds = Credentials.from_authorized_user_file(token_path, SCOPES)
    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    else:
        if not os.path.exists(credentials_path):
            raise ConfigError(f"Google OAuth client file not found: {credentials_path}")
        flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
        creds = flow.run_local_server(port=0)
    token_dir = os.path.dirname(token_path)
    if token_dir:
        os.makedirs(token_dir, exist_ok=True)
    with open(token_path, "w", encoding="utf-8") as f:
        f.write(creds.to_json())
    return creds


def parse_event(item: Dict[str, Any], calendar_id: str, tz: ZoneInfo) -> CalendarEvent:
    start_obj = item.get("start", {})
    end_obj = item.get("end", {})

    # All-day events have "date" not "dateTime"
    if "date" in start_obj:
        start = datetime.fromisoformat(start_obj["date"]).replace(tzinfo=tz)
        end = datetime.fromisoformat(end_obj["date"]).replace(tzinfo=tz)
        all_day = True
    else:
        start = datetime.fromisoformat(start_obj["dateTime"]).astimezone(tz)
        end = datetime.fromisoformat(end_obj["dateTime"]).astimezone(tz)
        all_day = False

    return CalendarEvent(
        event_id=item["id"],
        title=item.get("summary", "(No title)"),
        start=start,
        end=end,
        all_day=all_day,
        location=item.get("location"),
        calendar_id=calendar_id,
    )


def _time_body(when: datetime, tz: ZoneInfo) -> Dict[str, str]:
    return {"dateTime": when.isoformat(), "timeZone": str(tz)}


class GoogleCalendarProvider:
    """Calendar reads and writes through the Google Calendar v3 API."""

    def __init__(self, service, tz: ZoneInfo) -> None:
        self._service = service
        self._tz = tz

    @classmethod
    def from_files(cls, credentials_path: str, token_path: str, tz: ZoneInfo) -> "GoogleCalendarProvider":
        creds = _get_creds(credentials_path, token_path)
        return cls(build("calendar", "v3", credentials=creds, cache_discovery=False), tz)

    def resolve(self, calendar_id: str) -> CalendarHandle:
        try:
            cal = self._service.calendars().get(calendarId=calendar_id).execute()
        except HttpError as e:
            raise CalendarNotFoundError(f"Calendar {calendar_id!r} could not be resolved: {e}") from e
        return CalendarHandle(
            calendar_id=cal.get("id", calendar_id),
            summary=cal.get("summary", ""),
            time_zone=cal.get("timeZone", ""),
        )

    def get_events(self, handle: CalendarHandle, start: datetime, end: datetime) -> List[CalendarEvent]:
        events: List[CalendarEvent] = []
        page_token = None
        while True:
            resp = self._service.events().list(
                calendarId=handle.calendar_id,
                timeMin=start.isoformat(),
                timeMax=end.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            ).execute()
            for item in resp.get("items", []):
                if item.get("status") == "cancelled":
                    continue
                events.append(parse_event(item, handle.calendar_id, self._tz))
            page_token = resp.get("nextPageToken")
            if not page_token:
                break
        logger.debug("Fetched %d events in [%s, %s)", len(events), start.isoformat(), end.isoformat())
        return events

    def set_event_time(self, event: CalendarEvent, start: datetime, end: datetime) -> CalendarEvent:
        body = {"start": _time_body(start, self._tz), "end": _time_body(end, self._tz)}
        try:
            item = self._service.events().patch(
                calendarId=event.calendar_id,
                eventId=event.event_id,
                body=body,
            ).execute()
        except WRITE_ERRORS as e:
            raise CalendarWriteError(str(e)) from e
        return parse_event(item, event.calendar_id, self._tz)

    def create_event(self, handle: CalendarHandle, title: str, start: datetime, end: datetime) -> CalendarEvent:
        body = {
            "summary": title,
            "start": _time_body(start, self._tz),
            "end": _time_body(end, self._tz),
        }
        try:
            item = self._service.events().insert(calendarId=handle.calendar_id, body=body).execute()
        except WRITE_ERRORS as e:
            raise CalendarWriteError(str(e)) from e
        return parse_event(item, handle.calendar_id, self._tz)
