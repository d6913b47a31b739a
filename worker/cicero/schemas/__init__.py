"""Record, summary and result schemas."""

from cicero.schemas.meeting import (
    CouncilMember,
    Meeting,
    MeetingStatus,
    MeetingType,
    ScrapedMeeting,
    Subscriber,
)
from cicero.schemas.results import (
    BatchItem,
    BatchResult,
    NotificationOutcome,
    NotificationResult,
    PipelineResult,
    PipelineSteps,
    ScrapeResult,
    SubscribeResult,
    SummarizeResult,
    TranscriptionResult,
    VideoResult,
)
from cicero.schemas.summary import Summary, SummaryOutput

__all__ = [
    "BatchItem",
    "BatchResult",
    "CouncilMember",
    "Meeting",
    "MeetingStatus",
    "MeetingType",
    "NotificationOutcome",
    "NotificationResult",
    "PipelineResult",
    "PipelineSteps",
    "ScrapeResult",
    "ScrapedMeeting",
    "SubscribeResult",
    "Subscriber",
    "Summary",
    "SummaryOutput",
    "SummarizeResult",
    "TranscriptionResult",
    "VideoResult",
]
