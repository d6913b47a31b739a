"""Discover City Council meetings on the municipal meeting calendar."""

import logging
import re
import secrets
import time
from datetime import datetime
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

import httpx
from bs4 import BeautifulSoup

from cicero import db
from cicero.config import CALENDAR_MEETING_MARKER, CALENDAR_TIMEZONE, CALENDAR_URL
from cicero.http_client import get_client
from cicero.schemas.meeting import MeetingType, ScrapedMeeting
from cicero.schemas.results import ScrapeResult

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(
    r"(\d{2})/(\d{2})/(\d{4})\s*-\s*(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE
)
DOCUMENT_ID_PATTERN = re.compile(r"MEET-(?:Agenda|Packet)-([a-f0-9-]+)\.pdf", re.IGNORECASE)
DETAILS_ID_PATTERN = re.compile(r"/page/(.+)$")


def parse_meeting_type(title: str) -> MeetingType:
    """Classify a meeting from its title. 'work session' wins over 'special'."""
    lower_title = title.lower()
    if "work session" in lower_title:
        return "work_session"
    if "special" in lower_title:
        return "special"
    return "regular"


def extract_municode_id(agenda_url: str | None = None, details_path: str | None = None) -> str:
    """Derive the calendar's stable meeting identifier.

    Agenda and packet PDFs are named ``MEET-Agenda-<id>.pdf``; detail pages
    end in ``/page/<slug>``. Rows with neither get a time-seeded placeholder.
    """
    if agenda_url:
        match = DOCUMENT_ID_PATTERN.search(agenda_url)
        if match:
            return match.group(1)
    if details_path:
        match = DETAILS_ID_PATTERN.search(details_path)
        if match:
            return match.group(1)
    return f"unknown-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def parse_meeting_date(date_str: str, tz: str = CALENDAR_TIMEZONE) -> datetime | None:
    """Parse the calendar's ``MM/DD/YYYY - H:MMam`` format.

    Args:
        date_str: Date cell text, e.g. "01/14/2026 - 6:00pm"
        tz: Time zone the calendar is published in

    Returns:
        Aware datetime in ``tz``, or None if the text does not match
    """
    match = DATE_PATTERN.search(date_str)
    if not match:
        return None

    month, day, year, hour_str, minute, ampm = match.groups()
    hour = int(hour_str)
    if ampm.lower() == "pm" and hour != 12:
        hour += 12
    elif ampm.lower() == "am" and hour == 12:
        hour = 0

    try:
        return datetime(
            int(year), int(month), int(day), hour, int(minute), tzinfo=ZoneInfo(tz)
        )
    except ValueError:
        return None


def _href(row, selector: str) -> str | None:
    link = row.select_one(selector)
    if link is None:
        return None
    return link.get("href") or None


def parse_meetings_from_html(html: str, base_url: str = CALENDAR_URL) -> list[ScrapedMeeting]:
    """Extract council meetings from the calendar page.

    Args:
        html: Calendar page HTML
        base_url: Used to make relative video links absolute

    Returns:
        Parsed meetings in page order
    """
    soup = BeautifulSoup(html, "html.parser")
    meetings = []

    for row in soup.select("table tr"):
        cells = row.find_all("td")
        if len(cells) < 2:
            continue

        date_cell = cells[0].get_text(" ", strip=True)
        meeting_cell = cells[1].get_text(" ", strip=True)
        if not date_cell or not meeting_cell:
            continue

        if CALENDAR_MEETING_MARKER not in meeting_cell.lower():
            continue

        agenda_link = _href(row, 'a[href*="MEET-Agenda"]')
        packet_link = _href(row, 'a[href*="MEET-Packet"]')
        details_link = _href(row, 'a[href*="/page/"]')
        video_link = _href(row, 'a[title*="Video"]')

        date = parse_meeting_date(date_cell)
        date_unparsed = date is None
        if date_unparsed:
            logger.warning(f"Unparseable meeting date {date_cell!r} for {meeting_cell!r}")
            date = datetime.now(ZoneInfo(CALENDAR_TIMEZONE))

        meetings.append(
            ScrapedMeeting(
                municode_id=extract_municode_id(agenda_link, details_link),
                date=date,
                title=meeting_cell,
                type=parse_meeting_type(meeting_cell),
                agenda_url=agenda_link,
                agenda_packet_url=packet_link,
                video_page_url=urljoin(base_url, video_link) if video_link else None,
                date_unparsed=date_unparsed,
            )
        )

    return meetings


async def fetch_calendar(url: str = CALENDAR_URL) -> str:
    client = get_client()
    response = await client.get(url)
    response.raise_for_status()
    return response.text


async def scrape_and_store_meetings() -> ScrapeResult:
    """Scrape the calendar and insert meetings not seen before as pending."""
    try:
        html = await fetch_calendar()
    except httpx.HTTPStatusError as e:
        logger.error(f"Calendar fetch failed: {e.response.status_code}")
        return ScrapeResult(
            success=False, reason=f"Failed to fetch calendar: {e.response.status_code}"
        )
    except httpx.HTTPError as e:
        logger.error(f"Calendar fetch failed: {e}")
        return ScrapeResult(success=False, reason=f"Failed to fetch calendar: {e}")

    scraped = parse_meetings_from_html(html)
    new_meetings = 0
    skipped = 0

    try:
        for meeting in scraped:
            if await db.meeting_exists(meeting.municode_id):
                skipped += 1
                continue

            # A concurrent scrape may have inserted it since the check
            if await db.create_meeting(meeting) is None:
                skipped += 1
                continue

            new_meetings += 1
            logger.info(f"New meeting {meeting.municode_id}: {meeting.title}")
    except Exception as e:
        logger.error(f"Storing scraped meetings failed: {e}", exc_info=True)
        return ScrapeResult(
            scraped=len(scraped),
            new_meetings=new_meetings,
            skipped=skipped,
            success=False,
            reason=str(e),
        )

    logger.info(f"Scraped {len(scraped)} meetings: {new_meetings} new, {skipped} skipped")
    return ScrapeResult(scraped=len(scraped), new_meetings=new_meetings, skipped=skipped)
