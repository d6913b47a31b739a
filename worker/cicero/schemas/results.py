"""Result objects returned by every trigger."""

from pydantic import BaseModel, Field


class ScrapeResult(BaseModel):
    scraped: int = 0
    new_meetings: int = 0
    skipped: int = 0
    success: bool = True
    reason: str | None = None


class VideoResult(BaseModel):
    success: bool = False
    video_url: str | None = None
    reason: str | None = None


class TranscriptionResult(BaseModel):
    success: bool = False
    transcript_id: str | None = None
    text: str | None = None  # preview only
    reason: str | None = None


class SummarizeResult(BaseModel):
    success: bool = False
    tldr: str | None = None
    reason: str | None = None


class PipelineSteps(BaseModel):
    video_extraction: VideoResult = Field(default_factory=VideoResult)
    transcription: TranscriptionResult = Field(default_factory=TranscriptionResult)
    summarization: SummarizeResult = Field(default_factory=SummarizeResult)


class PipelineResult(BaseModel):
    """Outcome of running all stages for one meeting."""

    meeting_id: str
    steps: PipelineSteps = Field(default_factory=PipelineSteps)
    overall_success: bool = False
    reason: str | None = None

    def failure(self) -> tuple[str, str]:
        """Return (failed_step, reason) for an unsuccessful run."""
        if self.reason:
            return "lease", self.reason
        for step, outcome in (
            ("videoExtraction", self.steps.video_extraction),
            ("transcription", self.steps.transcription),
            ("summarization", self.steps.summarization),
        ):
            if not outcome.success:
                return step, outcome.reason or "Unknown error"
        return "unknown", "Unknown error"


class BatchItem(BaseModel):
    meeting_id: str
    title: str
    success: bool
    failed_step: str | None = None
    video_url: str | None = None
    reason: str | None = None


class BatchResult(BaseModel):
    processed: int = 0
    successful: int = 0
    failed: int = 0
    results: list[BatchItem] = []

    @classmethod
    def from_items(cls, items: list[BatchItem]) -> "BatchResult":
        successful = sum(1 for item in items if item.success)
        return cls(
            processed=len(items),
            successful=successful,
            failed=len(items) - successful,
            results=items,
        )


class NotificationOutcome(BaseModel):
    success: bool
    error: str | None = None


class NotificationResult(BaseModel):
    sent: int = 0
    failed: int = 0
    errors: list[str] = []


class SubscribeResult(BaseModel):
    success: bool
    message: str
