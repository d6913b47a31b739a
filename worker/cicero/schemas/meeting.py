"""Meeting, subscriber and council member records."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

MeetingType = Literal["regular", "work_session", "special"]
MeetingStatus = Literal["pending", "processing", "complete", "failed"]
SubscriberStatus = Literal["active", "unsubscribed"]
CouncilRole = Literal["mayor", "mayor_pro_tem", "council_member"]


class ScrapedMeeting(BaseModel):
    """A council meeting parsed from the calendar page, not yet stored."""

    municode_id: str
    date: datetime
    title: str
    type: MeetingType
    agenda_url: str | None = None
    agenda_packet_url: str | None = None
    video_page_url: str | None = None
    date_unparsed: bool = False


class Meeting(BaseModel):
    """A stored meeting and its processing state."""

    id: str
    municode_id: str
    date: datetime
    title: str
    type: MeetingType
    agenda_url: str | None = None
    agenda_packet_url: str | None = None
    video_page_url: str | None = None
    video_url: str | None = None
    status: MeetingStatus = "pending"
    error_message: str | None = None
    processed_at: datetime | None = None
    date_unparsed: bool = False


class Subscriber(BaseModel):
    id: str
    email: str
    status: SubscriberStatus = "active"
    last_emailed_at: datetime | None = None


class CouncilMember(BaseModel):
    id: str
    name: str
    role: CouncilRole
    district: int | None = None
    email: str
    is_active: bool = True
