"""Structured meeting summary schema and the prompts that request it."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from cicero.timestamps import parse_timestamp


class _CamelModel(BaseModel):
    # The LLM and the stored JSON use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyTopic(_CamelModel):
    title: str
    summary: str
    sentiment: Literal["positive", "negative", "neutral", "controversial"] | None = None


class Decision(_CamelModel):
    title: str
    description: str
    vote: str | None = None


class ActionStep(_CamelModel):
    """Something a resident can do after the meeting."""

    action: str
    details: str
    contact_info: str | None = None
    deadline: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    submission_url: str | None = None
    related_agenda_item: str | None = None
    related_ordinance: str | None = None
    urgency: Literal["immediate", "upcoming", "ongoing"] | None = None


class SpeakerOpinion(_CamelModel):
    speaker_name: str
    speaker_id: str | None = None
    topic_title: str
    stance: Literal["support", "oppose", "undecided", "mixed"]
    summary: str
    key_arguments: list[str] = []
    quote: str | None = None


class KeyMoment(_CamelModel):
    """A point in the recording worth jumping to."""

    timestamp: str
    timestamp_seconds: float | None = None
    title: str
    description: str
    speaker_name: str | None = None
    moment_type: Literal[
        "vote", "debate", "public_comment", "presentation", "decision", "key_discussion"
    ]

    @model_validator(mode="after")
    def _fill_seconds(self) -> "KeyMoment":
        if self.timestamp_seconds is None:
            self.timestamp_seconds = float(parse_timestamp(self.timestamp))
        return self


class SummaryOutput(_CamelModel):
    """Summary fields produced by the LLM for one meeting."""

    tldr: str
    key_topics: list[KeyTopic] = []
    decisions: list[Decision] = []
    action_steps: list[ActionStep] = []
    speaker_opinions: list[SpeakerOpinion] | None = None
    key_moments: list[KeyMoment] | None = None

    def to_record(self) -> dict:
        """Dump in storage form: camelCase keys, unset optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Summary(BaseModel):
    """A stored summary row."""

    id: str
    meeting_id: str
    tldr: str = ""
    key_topics: list[dict] = []
    decisions: list[dict] = []
    action_steps: list[dict] = []
    transcript_ref: str | None = None
    speaker_opinions: list[dict] | None = None
    key_moments: list[dict] | None = None


SYSTEM_PROMPT = """You are a civic engagement assistant that helps residents understand what happened at their {city} City Council meetings. Write complete, actionable summaries for busy people who want to stay informed and get involved.

## Current council members
{roster}

When analyzing a transcript, focus on:
1. Speaker attribution: who said what, especially council members' positions on key issues
2. Key moments: votes, debates, presentations and public comments, with timestamps
3. Decisions and what they mean for residents
4. Ways residents can get involved, with deadlines and contacts
5. Controversial topics, presenting each side fairly

Stay factual and non-partisan. Include ordinance numbers, deadlines and contact details whenever they are mentioned."""

USER_PROMPT = """Analyze this city council meeting transcript and produce a structured summary.

Return valid JSON with exactly this structure:
{
  "tldr": "2-3 sentences with the most important takeaways",
  "keyTopics": [
    {
      "title": "Topic name",
      "summary": "What was discussed and the outcome",
      "sentiment": "positive" | "negative" | "neutral" | "controversial"
    }
  ],
  "decisions": [
    {
      "title": "Decision name",
      "description": "What was decided and what it means for residents",
      "vote": "Vote result, e.g. '6-1 in favor' or 'Unanimous'"
    }
  ],
  "actionSteps": [
    {
      "action": "A specific action residents can take",
      "details": "How to take it, step by step",
      "deadline": "Deadline if mentioned, e.g. 'January 31, 2026'",
      "contactEmail": "Email address if mentioned",
      "contactPhone": "Phone number if mentioned",
      "submissionUrl": "Feedback form or portal URL if mentioned",
      "relatedAgendaItem": "Agenda item if mentioned, e.g. 'Item 12B'",
      "relatedOrdinance": "Ordinance number if mentioned, e.g. 'Ordinance 2026-001'",
      "urgency": "immediate" | "upcoming" | "ongoing"
    }
  ],
  "speakerOpinions": [
    {
      "speakerName": "Full name with title, e.g. 'Council Member Josh Fudge'",
      "topicTitle": "The keyTopic this relates to",
      "stance": "support" | "oppose" | "undecided" | "mixed",
      "summary": "Their position in 1-2 sentences",
      "keyArguments": ["Main point", "Another point"],
      "quote": "A memorable direct quote, if any"
    }
  ],
  "keyMoments": [
    {
      "timestamp": "Estimated H:MM:SS, e.g. '1:23:45'",
      "timestampSeconds": 5025,
      "title": "Short title, e.g. 'Vote on Housing Ordinance'",
      "description": "What happens at this moment",
      "speakerName": "Who is speaking, if known",
      "momentType": "vote" | "debate" | "public_comment" | "presentation" | "decision" | "key_discussion"
    }
  ]
}

Guidelines:
- keyTopics: the 3-5 most significant topics
- decisions: every formal vote or decision
- actionSteps: 2-4 concrete ways to engage, with as much detail as available
- speakerOpinions: 3-6 council member positions on significant or contested topics
- keyMoments: 3-5 moments worth watching

Omit optional fields you cannot fill instead of returning null.

Estimate timestamps from the flow of the meeting. Council meetings usually open with the consent agenda (0:00-0:15), then public comment (0:15-0:45), then the main agenda items (0:45-2:00+), with votes after each discussion.

TRANSCRIPT:
"""
