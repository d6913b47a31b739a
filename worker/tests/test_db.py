"""Tests for Postgres database operations."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from cicero.db import (
    claim_meeting,
    complete_summary,
    create_meeting,
    get_blob,
    get_meeting,
    get_summary_by_meeting_id,
    meeting_exists,
    reset_to_pending,
    save_transcript_ref,
    update_status,
    update_video_url,
)
from cicero.lifecycle import InvalidTransitionError
from cicero.schemas.meeting import ScrapedMeeting


@pytest.fixture
def scraped_meeting():
    return ScrapedMeeting(
        municode_id="abc-123",
        date=datetime(2026, 1, 15, 1, 0, tzinfo=timezone.utc),
        title="City Council Regular Meeting",
        type="regular",
        agenda_url="https://x/MEET-Agenda-abc-123.pdf",
    )


@pytest.mark.asyncio
async def test_meeting_exists(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {"?column?": 1}

    with patch("cicero.db.get_pool", return_value=pool):
        assert await meeting_exists("abc-123") is True

        conn.fetchrow.return_value = None
        assert await meeting_exists("abc-123") is False


@pytest.mark.asyncio
async def test_create_meeting(mock_pool, scraped_meeting):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {"id": "meeting-1"}

    with patch("cicero.db.get_pool", return_value=pool):
        meeting_id = await create_meeting(scraped_meeting)

    assert meeting_id == "meeting-1"
    query, *params = conn.fetchrow.call_args.args
    assert "ON CONFLICT (municode_id) DO NOTHING" in query
    assert params[0] == "abc-123"
    assert params[3] == "regular"


@pytest.mark.asyncio
async def test_create_meeting_duplicate(mock_pool, scraped_meeting):
    pool, conn = mock_pool
    conn.fetchrow.return_value = None

    with patch("cicero.db.get_pool", return_value=pool):
        assert await create_meeting(scraped_meeting) is None


@pytest.mark.asyncio
async def test_get_meeting(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {
        "id": "meeting-1",
        "municode_id": "abc-123",
        "date": datetime(2026, 1, 15, 1, 0, tzinfo=timezone.utc),
        "title": "City Council Regular Meeting",
        "type": "regular",
        "agenda_url": None,
        "agenda_packet_url": None,
        "video_page_url": None,
        "video_url": None,
        "status": "pending",
        "error_message": None,
        "processed_at": None,
        "date_unparsed": False,
    }

    with patch("cicero.db.get_pool", return_value=pool):
        meeting = await get_meeting("meeting-1")

    assert meeting.id == "meeting-1"
    assert meeting.status == "pending"


@pytest.mark.asyncio
async def test_update_video_url_only_when_unset(mock_pool):
    pool, conn = mock_pool

    with patch("cicero.db.get_pool", return_value=pool):
        conn.execute.return_value = "UPDATE 1"
        assert await update_video_url("meeting-1", "https://x/vod.mp4") is True

        conn.execute.return_value = "UPDATE 0"
        assert await update_video_url("meeting-1", "https://x/other.mp4") is False

    query = conn.execute.call_args.args[0]
    assert "video_url IS NULL" in query


@pytest.mark.asyncio
async def test_update_status_legal_transition(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {"status": "processing"}
    processed_at = datetime(2026, 1, 16, tzinfo=timezone.utc)

    with patch("cicero.db.get_pool", return_value=pool):
        await update_status("meeting-1", "complete", processed_at=processed_at)

    assert "FOR UPDATE" in conn.fetchrow.call_args.args[0]
    args = conn.execute.call_args.args
    assert args[1:] == ("meeting-1", "complete", None, processed_at)


@pytest.mark.asyncio
async def test_update_status_illegal_transition(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {"status": "complete"}

    with patch("cicero.db.get_pool", return_value=pool):
        with pytest.raises(InvalidTransitionError):
            await update_status("meeting-1", "processing")

    conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_update_status_missing_meeting(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = None

    with patch("cicero.db.get_pool", return_value=pool):
        with pytest.raises(KeyError):
            await update_status("missing", "processing")


@pytest.mark.asyncio
async def test_reset_to_pending(mock_pool):
    pool, conn = mock_pool

    with patch("cicero.db.get_pool", return_value=pool):
        conn.fetchrow.return_value = {"status": "failed"}
        assert await reset_to_pending("meeting-1") is True
        assert conn.execute.call_args.args[1:3] == ("meeting-1", "pending")
        assert conn.execute.call_args.args[3] is None

        conn.fetchrow.return_value = None
        assert await reset_to_pending("missing") is False


@pytest.mark.asyncio
async def test_claim_meeting(mock_pool):
    pool, conn = mock_pool

    with patch("cicero.db.get_pool", return_value=pool):
        conn.fetchrow.return_value = {"id": "meeting-1"}
        assert await claim_meeting("meeting-1", "worker-a", 60) is True

        conn.fetchrow.return_value = None
        assert await claim_meeting("meeting-1", "worker-b", 60) is False

    assert conn.fetchrow.call_args.args[1:] == ("meeting-1", "worker-b", 60.0)


@pytest.mark.asyncio
async def test_save_transcript_ref_upserts(mock_pool):
    pool, conn = mock_pool

    with patch("cicero.db.get_pool", return_value=pool):
        await save_transcript_ref("meeting-1", "blob-1")

    query, meeting_id, ref = conn.execute.call_args.args
    assert "ON CONFLICT (meeting_id) DO UPDATE" in query
    assert (meeting_id, ref) == ("meeting-1", "blob-1")


@pytest.mark.asyncio
async def test_complete_summary_writes_status_and_record_together(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {"status": "processing"}
    processed_at = datetime(2026, 1, 15, tzinfo=timezone.utc)
    record = {
        "tldr": "Short",
        "keyTopics": [{"title": "Budget", "summary": "Passed"}],
        "decisions": [],
        "actionSteps": [],
        "keyMoments": [{"timestamp": "0:10", "timestampSeconds": 10.0}],
    }

    with patch("cicero.db.get_pool", return_value=pool):
        await complete_summary("meeting-1", "summary-1", record, processed_at)

    conn.transaction.assert_called_once()
    status_args, summary_args = (c.args for c in conn.execute.call_args_list)
    assert status_args[1:] == ("meeting-1", "complete", None, processed_at)

    assert summary_args[1] == "summary-1"
    assert summary_args[2] == "Short"
    assert summary_args[3] == record["keyTopics"]
    assert summary_args[6] is None
    assert summary_args[7] == record["keyMoments"]


@pytest.mark.asyncio
async def test_complete_summary_rejected_for_failed_meeting(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {"status": "failed"}

    with patch("cicero.db.get_pool", return_value=pool):
        with pytest.raises(InvalidTransitionError):
            await complete_summary("meeting-1", "summary-1", {"tldr": "Short"}, None)

    conn.execute.assert_not_called()
    # The exception leaves the transaction block, which rolls it back
    exc_type = conn.transaction.return_value.__aexit__.call_args.args[0]
    assert exc_type is InvalidTransitionError


@pytest.mark.asyncio
async def test_complete_summary_missing_meeting(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = None

    with patch("cicero.db.get_pool", return_value=pool):
        with pytest.raises(KeyError):
            await complete_summary("missing", "summary-1", {"tldr": "Short"}, None)

    conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_get_summary_by_meeting_id(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow.return_value = {
        "id": "summary-1",
        "meeting_id": "meeting-1",
        "tldr": "",
        "key_topics": [],
        "decisions": [],
        "action_steps": [],
        "transcript_ref": "blob-1",
        "speaker_opinions": None,
        "key_moments": None,
    }

    with patch("cicero.db.get_pool", return_value=pool):
        summary = await get_summary_by_meeting_id("meeting-1")

    assert summary.transcript_ref == "blob-1"


@pytest.mark.asyncio
async def test_get_blob(mock_pool):
    pool, conn = mock_pool

    with patch("cicero.db.get_pool", return_value=pool):
        conn.fetchrow.return_value = {"content": b"transcript"}
        assert await get_blob("blob-1") == b"transcript"

        conn.fetchrow.return_value = None
        assert await get_blob("missing") is None
