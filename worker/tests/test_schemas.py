"""Tests for summary and result schemas."""

import pytest
from pydantic import ValidationError

from cicero.schemas.results import (
    BatchItem,
    BatchResult,
    PipelineResult,
    SummarizeResult,
    TranscriptionResult,
    VideoResult,
)
from cicero.schemas.summary import USER_PROMPT, KeyMoment, SummaryOutput


def test_summary_output_accepts_camel_case():
    output = SummaryOutput.model_validate(
        {
            "tldr": "Budget passed.",
            "actionSteps": [
                {"action": "Attend", "details": "Council chambers", "contactEmail": "a@b.gov"}
            ],
        }
    )

    assert output.action_steps[0].contact_email == "a@b.gov"
    assert output.key_topics == []
    assert output.speaker_opinions is None


def test_summary_output_requires_tldr():
    with pytest.raises(ValidationError):
        SummaryOutput.model_validate({"keyTopics": []})


def test_summary_output_rejects_unknown_enum():
    with pytest.raises(ValidationError):
        SummaryOutput.model_validate(
            {"tldr": "x", "keyTopics": [{"title": "t", "summary": "s", "sentiment": "angry"}]}
        )


def test_to_record_omits_none_and_uses_camel_case():
    output = SummaryOutput(tldr="x", decisions=[{"title": "Vote", "description": "Passed"}])
    record = output.to_record()

    assert record == {
        "tldr": "x",
        "keyTopics": [],
        "decisions": [{"title": "Vote", "description": "Passed"}],
        "actionSteps": [],
    }


def test_key_moment_fills_seconds_from_timestamp():
    moment = KeyMoment.model_validate(
        {"timestamp": "0:45:00", "title": "Vote", "description": "d", "momentType": "vote"}
    )

    assert moment.timestamp_seconds == 2700


def test_key_moment_keeps_given_seconds():
    moment = KeyMoment.model_validate(
        {
            "timestamp": "0:45:00",
            "timestampSeconds": 2710,
            "title": "Vote",
            "description": "d",
            "momentType": "vote",
        }
    )

    assert moment.timestamp_seconds == 2710


def test_user_prompt_ends_with_transcript_marker():
    assert USER_PROMPT.endswith("TRANSCRIPT:\n")


def test_pipeline_failure_reports_first_failed_step():
    result = PipelineResult(meeting_id="m1")
    result.steps.video_extraction = VideoResult(success=True, video_url="https://x/vod.mp4")
    result.steps.transcription = TranscriptionResult(reason="Download error")

    assert result.failure() == ("transcription", "Download error")

    result.steps.transcription = TranscriptionResult(success=True)
    result.steps.summarization = SummarizeResult()
    assert result.failure() == ("summarization", "Unknown error")


def test_batch_result_from_items():
    items = [
        BatchItem(meeting_id="m1", title="A", success=True),
        BatchItem(meeting_id="m2", title="B", success=False, failed_step="transcription"),
    ]

    result = BatchResult.from_items(items)

    assert (result.processed, result.successful, result.failed) == (2, 1, 1)
    assert result.results == items
