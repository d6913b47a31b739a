"""Resolve a meeting's recording from the Cablecast video catalog."""

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

import httpx

from cicero import db
from cicero.config import (
    CABLECAST_API_BASE,
    CABLECAST_DOWNLOAD_FIELD,
    CABLECAST_PAGE_SIZE,
    CABLECAST_SEARCH,
    CALENDAR_TIMEZONE,
)
from cicero.http_client import get_client
from cicero.schemas.meeting import Meeting
from cicero.schemas.results import BatchItem, BatchResult, VideoResult

logger = logging.getLogger(__name__)

# Title marker a catalog show must contain for each meeting type
TYPE_MARKERS = {
    "regular": "regular",
    "work_session": "work session",
    "special": "special",
}


def local_date(value: datetime | str, tz: str = CALENDAR_TIMEZONE) -> date:
    """Calendar day of a timestamp in the meeting time zone.

    Naive values (and ISO strings without an offset) are taken as local time.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    zone = ZoneInfo(tz)
    if value.tzinfo is None:
        return value.replace(tzinfo=zone).date()
    return value.astimezone(zone).date()


def download_url(show: dict) -> str | None:
    """Value of the show's download custom field, if populated."""
    for field in show.get("customFields") or []:
        if field.get("fieldName") == CABLECAST_DOWNLOAD_FIELD and field.get("value"):
            return field["value"]
    return None


def find_matching_show(meeting: Meeting, shows: list[dict]) -> dict | None:
    """First show recorded on the meeting's day whose title names its type."""
    meeting_day = local_date(meeting.date)
    marker = TYPE_MARKERS[meeting.type]

    for show in shows:
        event_date = show.get("eventDate")
        if not event_date:
            continue
        try:
            show_day = local_date(event_date)
        except ValueError:
            logger.debug(f"Skipping show {show.get('id')} with bad eventDate {event_date!r}")
            continue

        if show_day == meeting_day and marker in (show.get("title") or "").lower():
            return show

    return None


async def search_shows() -> list[dict]:
    """Query the catalog for recent council recordings."""
    client = get_client()
    response = await client.get(
        f"{CABLECAST_API_BASE}/shows",
        params={"search": CABLECAST_SEARCH, "pageSize": CABLECAST_PAGE_SIZE},
        headers={"Accept": "application/json"},
    )
    response.raise_for_status()
    return response.json().get("shows", [])


async def extract_video_url_for_meeting(meeting_id: str) -> VideoResult:
    """Find and store the direct video URL for a meeting.

    Failures are returned, never raised, and never change the meeting's
    status: an unmatched meeting stays pending for a later run.
    """
    try:
        meeting = await db.get_meeting(meeting_id)
        if meeting is None:
            return VideoResult(reason="Meeting not found")

        if meeting.video_url:
            return VideoResult(success=True, video_url=meeting.video_url)

        try:
            shows = await search_shows()
        except httpx.HTTPStatusError as e:
            return VideoResult(reason=f"Cablecast API error: {e.response.status_code}")

        show = find_matching_show(meeting, shows)
        if show is None:
            return VideoResult(
                reason=(
                    f"No matching Cablecast show found for {meeting.title} "
                    f"on {local_date(meeting.date).isoformat()}"
                )
            )

        video_url = download_url(show)
        if not video_url:
            return VideoResult(
                reason=(
                    "Cablecast show found but no video URL available yet "
                    f"(show ID: {show.get('id')})"
                )
            )

        await db.update_video_url(meeting_id, video_url)
        logger.info(f"Resolved video for meeting {meeting_id}: {video_url}")
        return VideoResult(success=True, video_url=video_url)

    except Exception as e:
        logger.error(f"Video extraction failed for {meeting_id}: {e}", exc_info=True)
        return VideoResult(reason=f"Video extraction failed: {e}")


async def extract_video_urls_for_pending_meetings() -> BatchResult:
    """Resolve videos for every pending meeting that lacks one."""
    meetings = await db.get_pending_meetings_without_video()
    items = []

    for meeting in meetings:
        result = await extract_video_url_for_meeting(meeting.id)
        items.append(
            BatchItem(
                meeting_id=meeting.id,
                title=meeting.title,
                success=result.success,
                video_url=result.video_url,
                failed_step=None if result.success else "videoExtraction",
                reason=result.reason,
            )
        )

    return BatchResult.from_items(items)
