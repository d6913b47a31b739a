"""Tests for Cablecast video extraction."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cicero.video import (
    download_url,
    extract_video_url_for_meeting,
    extract_video_urls_for_pending_meetings,
    find_matching_show,
    local_date,
)

VOD_URL = "https://reflect-vod-fcgov.cablecast.tv/store-2/1234-City-Council-Regular-v1/vod.mp4"


def make_show(show_id=1234, title="City Council Regular Meeting 1/14/26",
              event_date="2026-01-14T18:00:00", url=VOD_URL):
    fields = [{"fieldName": "Download VOD", "value": url}] if url else []
    return {"id": show_id, "title": title, "eventDate": event_date, "customFields": fields}


def test_local_date_converts_utc_to_meeting_zone():
    # 01:00 UTC on the 15th is still the evening of the 14th in Denver
    assert local_date(datetime(2026, 1, 15, 1, 0, tzinfo=timezone.utc)).isoformat() == "2026-01-14"
    assert local_date("2026-01-15T01:00:00Z").isoformat() == "2026-01-14"


def test_local_date_naive_is_local():
    assert local_date("2026-01-14T23:30:00").isoformat() == "2026-01-14"


def test_download_url():
    assert download_url(make_show()) == VOD_URL
    assert download_url(make_show(url=None)) is None
    assert download_url({"customFields": [{"fieldName": "Other", "value": "x"}]}) is None
    assert download_url({}) is None


def test_find_matching_show_requires_same_day_and_type(make_meeting):
    meeting = make_meeting()
    shows = [
        make_show(1, title="City Council Work Session"),
        make_show(2, event_date="2026-01-13T18:00:00"),
        make_show(3),
    ]

    assert find_matching_show(meeting, shows)["id"] == 3


def test_find_matching_show_work_session(make_meeting):
    meeting = make_meeting(type="work_session", title="City Council Work Session")
    shows = [make_show(1), make_show(2, title="Council WORK SESSION")]

    assert find_matching_show(meeting, shows)["id"] == 2


def test_find_matching_show_skips_bad_event_dates(make_meeting):
    shows = [make_show(1, event_date="not a date"), {"id": 2, "title": "Regular"}]

    assert find_matching_show(make_meeting(), shows) is None


@pytest.mark.asyncio
async def test_extract_video_url_already_set_makes_no_http_call(make_meeting):
    meeting = make_meeting(video_url=VOD_URL)

    with (
        patch("cicero.video.db.get_meeting", AsyncMock(return_value=meeting)),
        patch("cicero.video.get_client") as mock_get_client,
        patch("cicero.video.db.update_video_url") as mock_update,
    ):
        result = await extract_video_url_for_meeting("meeting-1")

    assert result.success is True
    assert result.video_url == VOD_URL
    mock_get_client.assert_not_called()
    mock_update.assert_not_called()


@pytest.mark.asyncio
async def test_extract_video_url_stores_match(make_meeting, http_response):
    client = MagicMock()
    client.get = AsyncMock(return_value=http_response({"shows": [make_show()]}))

    with (
        patch("cicero.video.db.get_meeting", AsyncMock(return_value=make_meeting())),
        patch("cicero.video.get_client", return_value=client),
        patch("cicero.video.db.update_video_url", AsyncMock(return_value=True)) as mock_update,
    ):
        result = await extract_video_url_for_meeting("meeting-1")

    assert result.success is True
    assert result.video_url == VOD_URL
    mock_update.assert_awaited_once_with("meeting-1", VOD_URL)

    _, kwargs = client.get.call_args
    assert kwargs["params"] == {"search": "city council", "pageSize": 50}


@pytest.mark.asyncio
async def test_extract_video_url_meeting_not_found():
    with patch("cicero.video.db.get_meeting", AsyncMock(return_value=None)):
        result = await extract_video_url_for_meeting("missing")

    assert result.success is False
    assert result.reason == "Meeting not found"


@pytest.mark.asyncio
async def test_extract_video_url_api_error(make_meeting, http_response):
    client = MagicMock()
    client.get = AsyncMock(return_value=http_response(status_code=502, text="bad gateway"))

    with (
        patch("cicero.video.db.get_meeting", AsyncMock(return_value=make_meeting())),
        patch("cicero.video.get_client", return_value=client),
        patch("cicero.video.db.update_video_url") as mock_update,
    ):
        result = await extract_video_url_for_meeting("meeting-1")

    assert result.success is False
    assert result.reason == "Cablecast API error: 502"
    mock_update.assert_not_called()


@pytest.mark.asyncio
async def test_extract_video_url_no_match(make_meeting, http_response):
    client = MagicMock()
    client.get = AsyncMock(return_value=http_response({"shows": []}))

    with (
        patch("cicero.video.db.get_meeting", AsyncMock(return_value=make_meeting())),
        patch("cicero.video.get_client", return_value=client),
    ):
        result = await extract_video_url_for_meeting("meeting-1")

    assert result.success is False
    assert result.reason == (
        "No matching Cablecast show found for City Council Regular Meeting on 2026-01-14"
    )


@pytest.mark.asyncio
async def test_extract_video_url_show_without_download(make_meeting, http_response):
    client = MagicMock()
    client.get = AsyncMock(return_value=http_response({"shows": [make_show(url=None)]}))

    with (
        patch("cicero.video.db.get_meeting", AsyncMock(return_value=make_meeting())),
        patch("cicero.video.get_client", return_value=client),
        patch("cicero.video.db.update_video_url") as mock_update,
    ):
        result = await extract_video_url_for_meeting("meeting-1")

    assert result.success is False
    assert result.reason == "Cablecast show found but no video URL available yet (show ID: 1234)"
    mock_update.assert_not_called()


@pytest.mark.asyncio
async def test_extract_video_url_unexpected_error_is_returned(make_meeting):
    with patch("cicero.video.db.get_meeting", AsyncMock(side_effect=RuntimeError("pool closed"))):
        result = await extract_video_url_for_meeting("meeting-1")

    assert result.success is False
    assert result.reason == "Video extraction failed: pool closed"


@pytest.mark.asyncio
async def test_extract_video_urls_for_pending_meetings(make_meeting):
    meetings = [make_meeting(id="m1"), make_meeting(id="m2", title="City Council Special Meeting")]
    outcomes = {
        "m1": MagicMock(success=True, video_url=VOD_URL, reason=None),
        "m2": MagicMock(success=False, video_url=None, reason="No matching show"),
    }

    async def extract(meeting_id):
        return outcomes[meeting_id]

    with (
        patch("cicero.video.db.get_pending_meetings_without_video", AsyncMock(return_value=meetings)),
        patch("cicero.video.extract_video_url_for_meeting", side_effect=extract),
    ):
        result = await extract_video_urls_for_pending_meetings()

    assert result.processed == 2
    assert result.successful == 1
    assert result.failed == 1
    assert result.results[1].failed_step == "videoExtraction"
    assert result.results[1].reason == "No matching show"
