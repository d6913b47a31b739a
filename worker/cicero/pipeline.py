"""Run the full video, transcription and summarization pipeline."""

import asyncio
import logging
import os
import socket
import uuid

from cicero import db
from cicero.config import PIPELINE_CONCURRENCY, PIPELINE_LEASE_SECONDS
from cicero.schemas.meeting import Meeting
from cicero.schemas.results import (
    BatchItem,
    BatchResult,
    PipelineResult,
    SummarizeResult,
    TranscriptionResult,
    VideoResult,
)
from cicero.summarizer import summarize_meeting
from cicero.transcriber import transcribe_meeting
from cicero.video import extract_video_url_for_meeting

logger = logging.getLogger(__name__)

WORKER_ID = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


async def _run_stage(step: str, stage, meeting_id: str, result_type):
    try:
        return await stage(meeting_id)
    except Exception as e:
        logger.error(f"{step} raised for meeting {meeting_id}: {e}", exc_info=True)
        return result_type(reason=str(e) or "Unknown error")


async def process_one_meeting(meeting_id: str, worker_id: str = WORKER_ID) -> PipelineResult:
    """Run every stage for one meeting, stopping at the first failure.

    The meeting's lease is held for the whole run so two workers never
    process the same meeting at once. A stage that raises is reported as
    that stage's failure.

    Args:
        meeting_id: Meeting ID
        worker_id: Lease holder identity

    Returns:
        PipelineResult with each attempted step's outcome
    """
    result = PipelineResult(meeting_id=meeting_id)

    try:
        if await db.get_meeting(meeting_id) is None:
            result.steps.video_extraction = VideoResult(reason="Meeting not found")
            return result

        claimed = await db.claim_meeting(meeting_id, worker_id, PIPELINE_LEASE_SECONDS)
    except Exception as e:
        logger.error(f"Could not start pipeline for meeting {meeting_id}: {e}", exc_info=True)
        result.steps.video_extraction = VideoResult(reason=f"Could not start pipeline: {e}")
        return result

    if not claimed:
        logger.info(f"Meeting {meeting_id} is leased by another worker, skipping")
        result.reason = "Meeting is already being processed"
        return result

    try:
        result.steps.video_extraction = await _run_stage(
            "videoExtraction", extract_video_url_for_meeting, meeting_id, VideoResult
        )
        if not result.steps.video_extraction.success:
            return result

        result.steps.transcription = await _run_stage(
            "transcription", transcribe_meeting, meeting_id, TranscriptionResult
        )
        if not result.steps.transcription.success:
            return result

        result.steps.summarization = await _run_stage(
            "summarization", summarize_meeting, meeting_id, SummarizeResult
        )
        result.overall_success = result.steps.summarization.success
        return result
    finally:
        try:
            await db.release_meeting(meeting_id, worker_id)
        except Exception as e:
            logger.error(f"Could not release lease on meeting {meeting_id}: {e}")


async def _process_item(meeting: Meeting) -> BatchItem:
    try:
        result = await process_one_meeting(meeting.id)
    except Exception as e:
        logger.error(f"Pipeline error for meeting {meeting.id}: {e}", exc_info=True)
        return BatchItem(
            meeting_id=meeting.id,
            title=meeting.title,
            success=False,
            failed_step="unknown",
            reason=str(e) or "Unknown error",
        )

    if result.overall_success:
        return BatchItem(
            meeting_id=meeting.id,
            title=meeting.title,
            success=True,
            video_url=result.steps.video_extraction.video_url,
        )

    failed_step, reason = result.failure()
    logger.info(f"Meeting {meeting.id} stopped at {failed_step}: {reason}")
    return BatchItem(
        meeting_id=meeting.id,
        title=meeting.title,
        success=False,
        failed_step=failed_step,
        video_url=result.steps.video_extraction.video_url,
        reason=reason,
    )


async def process_pending_meetings(limit: int | None = None) -> BatchResult:
    """Run the pipeline for pending meetings that have no video yet.

    Meetings are taken oldest first. With PIPELINE_CONCURRENCY above 1 they
    run concurrently, but results keep the input order.

    Args:
        limit: Maximum number of meetings to process

    Returns:
        BatchResult with one item per meeting
    """
    meetings = await db.get_pending_meetings_without_video()
    if limit is not None:
        meetings = meetings[:limit]

    logger.info(f"Processing {len(meetings)} pending meeting(s)")

    if PIPELINE_CONCURRENCY <= 1:
        items = [await _process_item(meeting) for meeting in meetings]
    else:
        semaphore = asyncio.Semaphore(PIPELINE_CONCURRENCY)

        async def bounded(meeting: Meeting) -> BatchItem:
            async with semaphore:
                return await _process_item(meeting)

        items = list(await asyncio.gather(*(bounded(m) for m in meetings)))

    return BatchResult.from_items(items)


async def reset_to_pending(meeting_id: str) -> bool:
    """Put a failed or finished meeting back in the queue."""
    reset = await db.reset_to_pending(meeting_id)
    if reset:
        logger.info(f"Meeting {meeting_id} reset to pending")
    return reset
