"""Transcribe meeting recordings with AssemblyAI."""

import asyncio
import logging
import time

from cicero import db, storage
from cicero.config import (
    ASSEMBLYAI_API_KEY,
    ASSEMBLYAI_API_URL,
    TRANSCRIPTION_MAX_WAIT,
    TRANSCRIPTION_POLL_INTERVAL,
)
from cicero.http_client import get_client
from cicero.lifecycle import InvalidTransitionError
from cicero.schemas.results import BatchItem, BatchResult, TranscriptionResult

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 500


class TranscriptionError(RuntimeError):
    """The transcription job could not be run to completion."""


def _headers() -> dict[str, str]:
    if not ASSEMBLYAI_API_KEY:
        raise TranscriptionError("ASSEMBLYAI_API_KEY environment variable is required")
    return {"Authorization": ASSEMBLYAI_API_KEY}


async def submit_transcript(audio_url: str) -> str:
    """Create a transcription job.

    Returns:
        Provider transcript ID
    """
    client = get_client()
    response = await client.post(
        f"{ASSEMBLYAI_API_URL}/transcript",
        json={"audio_url": audio_url},
        headers=_headers(),
    )
    response.raise_for_status()
    return response.json()["id"]


async def wait_for_transcript(
    transcript_id: str,
    poll_interval: float = TRANSCRIPTION_POLL_INTERVAL,
    max_wait: float = TRANSCRIPTION_MAX_WAIT,
) -> dict:
    """Poll a transcription job until it completes or errors.

    Returns:
        Final job payload; ``status`` is ``completed`` or ``error``

    Raises:
        TranscriptionError: The job did not finish within ``max_wait`` seconds
    """
    client = get_client()
    deadline = time.monotonic() + max_wait
    polls = 0

    while True:
        response = await client.get(
            f"{ASSEMBLYAI_API_URL}/transcript/{transcript_id}", headers=_headers()
        )
        response.raise_for_status()
        job = response.json()
        polls += 1

        status = job.get("status")
        if status in ("completed", "error"):
            logger.info(f"Transcript {transcript_id} {status} after {polls} poll(s)")
            return job

        if polls % 20 == 0:
            logger.debug(f"Transcript {transcript_id} still {status} (poll {polls})")

        if time.monotonic() >= deadline:
            raise TranscriptionError(
                f"Transcript {transcript_id} not finished after {int(max_wait)}s"
            )
        await asyncio.sleep(poll_interval)


async def transcribe(audio_url: str) -> dict:
    """Submit a recording and wait for the finished job."""
    transcript_id = await submit_transcript(audio_url)
    logger.info(f"Transcription job {transcript_id} created for {audio_url}")
    return await wait_for_transcript(transcript_id)


async def _mark_failed(meeting_id: str, reason: str) -> None:
    try:
        await db.update_status(meeting_id, "failed", error_message=reason)
    except Exception as e:
        logger.error(f"Could not mark meeting {meeting_id} failed: {e}")


async def transcribe_meeting(meeting_id: str) -> TranscriptionResult:
    """Transcribe a meeting's video and attach the transcript to its summary.

    The meeting is ``processing`` while the job runs and stays there on
    success for the summarizer to pick up. Any error marks it ``failed``.
    """
    try:
        meeting = await db.get_meeting(meeting_id)
        if meeting is None:
            return TranscriptionResult(reason="Meeting not found")

        if not meeting.video_url:
            return TranscriptionResult(reason="No video URL available for this meeting")

        await db.update_status(meeting_id, "processing")
    except InvalidTransitionError as e:
        return TranscriptionResult(reason=str(e))
    except Exception as e:
        logger.error(f"Could not start transcription for {meeting_id}: {e}", exc_info=True)
        return TranscriptionResult(reason=f"Could not start transcription: {e}")

    try:
        job = await transcribe(meeting.video_url)

        if job.get("status") == "error":
            reason = job.get("error") or "Transcription failed"
            logger.warning(f"Transcription failed for meeting {meeting_id}: {reason}")
            await _mark_failed(meeting_id, reason)
            return TranscriptionResult(transcript_id=job.get("id"), reason=reason)

        text = job.get("text") or ""
        ref = await storage.store_text(text)
        await db.save_transcript_ref(meeting_id, ref)

        logger.info(f"Stored transcript for meeting {meeting_id} ({len(text)} chars)")
        preview = text[:PREVIEW_CHARS] + ("..." if len(text) > PREVIEW_CHARS else "")
        return TranscriptionResult(success=True, transcript_id=job.get("id"), text=preview)

    except Exception as e:
        logger.error(f"Transcription error for meeting {meeting_id}: {e}", exc_info=True)
        reason = str(e) or "Unknown error"
        await _mark_failed(meeting_id, reason)
        return TranscriptionResult(reason=reason)


async def transcribe_pending_meetings() -> BatchResult:
    """Transcribe every pending meeting that already has a video URL."""
    meetings = await db.get_meetings_ready_for_transcription()
    items = []

    for meeting in meetings:
        result = await transcribe_meeting(meeting.id)
        items.append(
            BatchItem(
                meeting_id=meeting.id,
                title=meeting.title,
                success=result.success,
                failed_step=None if result.success else "transcription",
                reason=result.reason,
            )
        )

    return BatchResult.from_items(items)
