"""Turn meeting transcripts into structured summaries with an LLM."""

import json
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from cicero import council, db, emailer, storage
from cicero.adapters import get_adapter
from cicero.config import (
    CALENDAR_TIMEZONE,
    NOTIFY_SUBSCRIBERS,
    RESEND_API_KEY,
    SUMMARY_MAX_TRANSCRIPT_CHARS,
    SUMMARY_MIN_TRANSCRIPT_CHARS,
)
from cicero.lifecycle import InvalidTransitionError, transition
from cicero.schemas.meeting import CouncilMember, Meeting
from cicero.schemas.results import BatchItem, BatchResult, SummarizeResult
from cicero.schemas.summary import SYSTEM_PROMPT, USER_PROMPT, SummaryOutput

logger = logging.getLogger(__name__)


class SummaryParseError(ValueError):
    """The LLM response did not contain a JSON object."""


def extract_json_object(text: str) -> dict:
    """Pull the JSON object out of an LLM response.

    The whole response is tried first. Models sometimes wrap the object in
    prose or a code fence, so the span from the first ``{`` to the last ``}``
    is tried next.

    Raises:
        SummaryParseError: No JSON object could be decoded
    """
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        value = None
    if isinstance(value, dict):
        return value

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise SummaryParseError("Could not parse JSON from LLM response")

    try:
        value = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise SummaryParseError(f"Could not parse JSON from LLM response: {e}") from e

    if not isinstance(value, dict):
        raise SummaryParseError("LLM response JSON is not an object")
    return value


def strip_nulls(value):
    """Recursively drop None from dicts and lists."""
    if isinstance(value, dict):
        return {k: strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_nulls(v) for v in value if v is not None]
    return value


def truncate_transcript(text: str, limit: int = SUMMARY_MAX_TRANSCRIPT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_system_prompt(members: list[CouncilMember]) -> str:
    if members:
        roster = council.format_roster(members)
    else:
        roster = council.format_roster(
            [CouncilMember(id="", is_active=True, **m) for m in council.DEFAULT_ROSTER]
        )
    return SYSTEM_PROMPT.format(city=council.CITY_NAME, roster=roster)


def format_meeting_date(value: datetime) -> str:
    local = value.astimezone(ZoneInfo(CALENDAR_TIMEZONE))
    return f"{local:%B} {local.day}, {local.year}"


async def _mark_failed(meeting_id: str, reason: str) -> None:
    try:
        await db.update_status(meeting_id, "failed", error_message=reason)
    except Exception as e:
        logger.error(f"Could not mark meeting {meeting_id} failed: {e}")


async def _notify(meeting: Meeting, tldr: str) -> None:
    if not (NOTIFY_SUBSCRIBERS and RESEND_API_KEY):
        return
    try:
        result = await emailer.notify_all_subscribers(
            meeting.id, meeting.title, format_meeting_date(meeting.date), tldr
        )
        if result.failed:
            logger.warning(
                f"{result.failed} notification(s) failed for meeting {meeting.id}: "
                f"{result.errors}"
            )
    except Exception as e:
        logger.error(f"Subscriber notification failed for meeting {meeting.id}: {e}", exc_info=True)


async def summarize_meeting(meeting_id: str) -> SummarizeResult:
    """Generate and store the summary for a transcribed meeting.

    Missing inputs, and meetings that are not ``processing``, are reported
    without touching the meeting. Once the LLM is involved, any error marks
    the meeting ``failed``; success marks it ``complete`` and emails
    subscribers.

    Args:
        meeting_id: Meeting ID

    Returns:
        SummarizeResult with the TL;DR on success
    """
    try:
        summary = await db.get_summary_by_meeting_id(meeting_id)
        if summary is None:
            return SummarizeResult(reason="No summary record found for this meeting")

        if not summary.transcript_ref:
            return SummarizeResult(reason="No transcript available for this meeting")

        meeting = await db.get_meeting(meeting_id)
        if meeting is None:
            return SummarizeResult(reason="Meeting not found")

        # Only a processing meeting may complete; anything else is left as is
        transition(meeting.status, "complete")

        transcript = await storage.get_text(summary.transcript_ref)
        if transcript is None:
            return SummarizeResult(reason="Could not retrieve transcript from storage")

        if len(transcript) < SUMMARY_MIN_TRANSCRIPT_CHARS:
            return SummarizeResult(reason="Transcript too short to summarize")
    except InvalidTransitionError as e:
        return SummarizeResult(reason=str(e))
    except Exception as e:
        logger.error(f"Could not start summarization for {meeting_id}: {e}", exc_info=True)
        return SummarizeResult(reason=f"Could not start summarization: {e}")

    try:
        members = await council.list_active()
        adapter = get_adapter()

        response = await adapter.complete(
            build_system_prompt(members), USER_PROMPT + truncate_transcript(transcript)
        )
        data = strip_nulls(extract_json_object(response))

        try:
            output = SummaryOutput.model_validate(data)
        except ValidationError as e:
            raise SummaryParseError(f"LLM response failed validation: {e}") from e

        if output.speaker_opinions:
            council.attach_speaker_ids(output.speaker_opinions, members)

        await db.complete_summary(
            meeting_id, summary.id, output.to_record(), datetime.now(timezone.utc)
        )

    except InvalidTransitionError as e:
        # Status changed while the LLM ran; the summary write was rolled back
        logger.warning(f"Summary for meeting {meeting_id} discarded: {e}")
        return SummarizeResult(reason=str(e))
    except Exception as e:
        logger.error(f"Summarization error for meeting {meeting_id}: {e}", exc_info=True)
        reason = str(e) or "Unknown error"
        await _mark_failed(meeting_id, reason)
        return SummarizeResult(reason=reason)

    logger.info(f"Summarized meeting {meeting_id} ({len(transcript)} transcript chars)")

    await _notify(meeting, output.tldr)

    return SummarizeResult(success=True, tldr=output.tldr)


async def summarize_pending_meetings() -> BatchResult:
    """Summarize every transcribed meeting still waiting for its summary."""
    meetings = await db.get_meetings_ready_for_summarization()
    items = []

    for meeting in meetings:
        result = await summarize_meeting(meeting.id)
        items.append(
            BatchItem(
                meeting_id=meeting.id,
                title=meeting.title,
                success=result.success,
                failed_step=None if result.success else "summarization",
                reason=result.reason,
            )
        )

    return BatchResult.from_items(items)
