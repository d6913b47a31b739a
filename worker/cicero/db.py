"""Postgres database client using asyncpg connection pool."""

import json
import logging
from datetime import datetime

import asyncpg

from cicero.config import DATABASE_URL
from cicero.lifecycle import transition
from cicero.schemas.meeting import CouncilMember, Meeting, ScrapedMeeting, Subscriber
from cicero.schemas.summary import Summary

logger = logging.getLogger(__name__)

# Global connection pool
_pool: asyncpg.Pool | None = None

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS meetings (
    id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
    municode_id text NOT NULL UNIQUE,
    date timestamptz NOT NULL,
    title text NOT NULL,
    type text NOT NULL CHECK (type IN ('regular', 'work_session', 'special')),
    agenda_url text,
    agenda_packet_url text,
    video_page_url text,
    video_url text,
    status text NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'processing', 'complete', 'failed')),
    error_message text,
    processed_at timestamptz,
    date_unparsed boolean NOT NULL DEFAULT false,
    claimed_by text,
    claimed_until timestamptz,
    created_at timestamptz NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS meetings_status_idx ON meetings (status);
CREATE INDEX IF NOT EXISTS meetings_date_idx ON meetings (date);

CREATE TABLE IF NOT EXISTS blobs (
    id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
    content bytea NOT NULL,
    content_type text NOT NULL DEFAULT 'application/octet-stream',
    created_at timestamptz NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS summaries (
    id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
    meeting_id text NOT NULL UNIQUE REFERENCES meetings (id),
    tldr text NOT NULL DEFAULT '',
    key_topics jsonb NOT NULL DEFAULT '[]',
    decisions jsonb NOT NULL DEFAULT '[]',
    action_steps jsonb NOT NULL DEFAULT '[]',
    transcript_ref text REFERENCES blobs (id),
    speaker_opinions jsonb,
    key_moments jsonb,
    created_at timestamptz NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS subscribers (
    id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
    email text NOT NULL UNIQUE,
    status text NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'unsubscribed')),
    last_emailed_at timestamptz,
    created_at timestamptz NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS subscribers_status_idx ON subscribers (status);

CREATE TABLE IF NOT EXISTS council_members (
    id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
    name text NOT NULL,
    role text NOT NULL CHECK (role IN ('mayor', 'mayor_pro_tem', 'council_member')),
    district integer,
    email text NOT NULL,
    is_active boolean NOT NULL DEFAULT true
);
CREATE INDEX IF NOT EXISTS council_members_name_idx ON council_members (name);
"""

MEETING_COLUMNS = """
    id, municode_id, date, title, type, agenda_url, agenda_packet_url,
    video_page_url, video_url, status, error_message, processed_at, date_unparsed
"""

SUMMARY_COLUMNS = """
    id, meeting_id, tldr, key_topics, decisions, action_steps, transcript_ref,
    speaker_opinions, key_moments
"""


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog"
    )


async def get_pool() -> asyncpg.Pool:
    """Get or create the asyncpg connection pool.

    Returns:
        asyncpg connection pool
    """
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            DATABASE_URL,
            min_size=1,
            max_size=10,
            command_timeout=60,
            init=_init_connection,
        )
        logger.info("Database connection pool created")
    return _pool


async def close_pool() -> None:
    """Close the connection pool."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")


async def init_schema() -> None:
    """Create tables and indexes if they do not exist yet."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("Database schema ready")


# ----------------------------------------------------------------------------
# Meetings
# ----------------------------------------------------------------------------


async def meeting_exists(municode_id: str) -> bool:
    """Check whether a meeting with this external identifier is stored."""
    pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            "SELECT 1 FROM meetings WHERE municode_id = $1", municode_id
        )
        return row is not None


async def create_meeting(meeting: ScrapedMeeting) -> str | None:
    """Insert a scraped meeting as pending.

    Args:
        meeting: Parsed calendar entry

    Returns:
        New meeting ID, or None if the external identifier already exists
    """
    pool = await get_pool()

    query = """
        INSERT INTO meetings (
            municode_id, date, title, type, agenda_url, agenda_packet_url,
            video_page_url, date_unparsed, status
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 'pending')
        ON CONFLICT (municode_id) DO NOTHING
        RETURNING id
    """

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            query,
            meeting.municode_id,
            meeting.date,
            meeting.title,
            meeting.type,
            meeting.agenda_url,
            meeting.agenda_packet_url,
            meeting.video_page_url,
            meeting.date_unparsed,
        )
        return row["id"] if row else None


async def get_meeting(meeting_id: str) -> Meeting | None:
    pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            f"SELECT {MEETING_COLUMNS} FROM meetings WHERE id = $1", meeting_id
        )
        return Meeting(**dict(row)) if row else None


async def get_pending_meetings_without_video() -> list[Meeting]:
    """Pending meetings that still need a video URL, oldest first."""
    pool = await get_pool()

    query = f"""
        SELECT {MEETING_COLUMNS} FROM meetings
        WHERE status = 'pending' AND video_url IS NULL
        ORDER BY date, created_at
    """

    async with pool.acquire() as conn:
        rows = await conn.fetch(query)
        return [Meeting(**dict(row)) for row in rows]


async def get_meetings_ready_for_transcription() -> list[Meeting]:
    """Pending meetings that already have a video URL."""
    pool = await get_pool()

    query = f"""
        SELECT {MEETING_COLUMNS} FROM meetings
        WHERE status = 'pending' AND video_url IS NOT NULL
        ORDER BY date, created_at
    """

    async with pool.acquire() as conn:
        rows = await conn.fetch(query)
        return [Meeting(**dict(row)) for row in rows]


async def get_meetings_ready_for_summarization() -> list[Meeting]:
    """Processing meetings whose summary row holds a transcript but no tldr."""
    pool = await get_pool()

    query = """
        SELECT m.id, m.municode_id, m.date, m.title, m.type, m.agenda_url,
               m.agenda_packet_url, m.video_page_url, m.video_url, m.status,
               m.error_message, m.processed_at, m.date_unparsed
        FROM meetings m
        JOIN summaries s ON s.meeting_id = m.id
        WHERE m.status = 'processing'
            AND s.transcript_ref IS NOT NULL
            AND s.tldr = ''
        ORDER BY m.date, m.created_at
    """

    async with pool.acquire() as conn:
        rows = await conn.fetch(query)
        return [Meeting(**dict(row)) for row in rows]


async def update_video_url(meeting_id: str, video_url: str) -> bool:
    """Record the resolved video URL unless one is already set.

    Returns:
        True if the URL was written
    """
    pool = await get_pool()

    query = """
        UPDATE meetings SET video_url = $2
        WHERE id = $1 AND video_url IS NULL
    """

    async with pool.acquire() as conn:
        result = await conn.execute(query, meeting_id, video_url)
        return result == "UPDATE 1"


async def update_status(
    meeting_id: str,
    status: str,
    error_message: str | None = None,
    processed_at: datetime | None = None,
) -> None:
    """Move a meeting to a new status.

    The current status is locked and checked against the lifecycle before the
    write, so an illegal move raises instead of being applied.

    Args:
        meeting_id: Meeting ID
        status: Target status
        error_message: Error to record (cleared when None)
        processed_at: Completion time, left untouched when None

    Raises:
        KeyError: Meeting does not exist
        InvalidTransitionError: Move is not allowed from the current status
    """
    pool = await get_pool()

    async with pool.acquire() as conn:
        async with conn.transaction():
            await _set_status(conn, meeting_id, status, error_message, processed_at)

    logger.debug(f"Meeting {meeting_id} -> {status}")


async def _set_status(
    conn: asyncpg.Connection,
    meeting_id: str,
    status: str,
    error_message: str | None,
    processed_at: datetime | None,
) -> None:
    # Must run inside a transaction; the row stays locked until it ends
    row = await conn.fetchrow(
        "SELECT status FROM meetings WHERE id = $1 FOR UPDATE", meeting_id
    )
    if row is None:
        raise KeyError(f"Meeting {meeting_id} not found")

    transition(row["status"], status)

    await conn.execute(
        """
        UPDATE meetings
        SET status = $2,
            error_message = $3,
            processed_at = COALESCE($4, processed_at)
        WHERE id = $1
        """,
        meeting_id,
        status,
        error_message,
        processed_at,
    )


async def claim_meeting(meeting_id: str, worker_id: str, lease_seconds: int) -> bool:
    """Take the per-meeting lease.

    Succeeds when the meeting is unclaimed, its lease has expired, or this
    worker already holds it.

    Returns:
        True if the lease is now held by worker_id
    """
    pool = await get_pool()

    query = """
        UPDATE meetings
        SET claimed_by = $2,
            claimed_until = now() + make_interval(secs => $3)
        WHERE id = $1
            AND (claimed_until IS NULL OR claimed_until < now() OR claimed_by = $2)
        RETURNING id
    """

    async with pool.acquire() as conn:
        row = await conn.fetchrow(query, meeting_id, worker_id, float(lease_seconds))
        return row is not None


async def release_meeting(meeting_id: str, worker_id: str) -> None:
    pool = await get_pool()

    query = """
        UPDATE meetings
        SET claimed_by = NULL,
            claimed_until = NULL
        WHERE id = $1 AND claimed_by = $2
    """

    async with pool.acquire() as conn:
        await conn.execute(query, meeting_id, worker_id)


async def reset_to_pending(meeting_id: str) -> bool:
    """Clear the error and put a meeting back to pending (operator retry).

    Returns:
        True if the meeting exists
    """
    try:
        await update_status(meeting_id, "pending", error_message=None)
    except KeyError:
        return False
    return True


# ----------------------------------------------------------------------------
# Summaries and transcript blobs
# ----------------------------------------------------------------------------


async def get_summary_by_meeting_id(meeting_id: str) -> Summary | None:
    pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            f"SELECT {SUMMARY_COLUMNS} FROM summaries WHERE meeting_id = $1", meeting_id
        )
        return Summary(**dict(row)) if row else None


async def save_transcript_ref(meeting_id: str, transcript_ref: str) -> None:
    """Attach a transcript to the meeting's summary row.

    Creates an empty placeholder summary when the meeting has none yet,
    otherwise only the transcript reference is changed.
    """
    pool = await get_pool()

    query = """
        INSERT INTO summaries (meeting_id, transcript_ref)
        VALUES ($1, $2)
        ON CONFLICT (meeting_id) DO UPDATE
        SET transcript_ref = EXCLUDED.transcript_ref
    """

    async with pool.acquire() as conn:
        await conn.execute(query, meeting_id, transcript_ref)


async def complete_summary(
    meeting_id: str, summary_id: str, record: dict, processed_at: datetime
) -> None:
    """Write the generated summary and mark its meeting complete.

    Both writes share one transaction, so a meeting that may not move to
    ``complete`` keeps its previous summary as well as its status.

    Args:
        meeting_id: Meeting ID
        summary_id: Summary row ID
        record: Summary in storage form (camelCase keys, no null values)
        processed_at: Completion time

    Raises:
        KeyError: Meeting does not exist
        InvalidTransitionError: Meeting is not in a status that can complete
    """
    pool = await get_pool()

    query = """
        UPDATE summaries
        SET tldr = $2,
            key_topics = $3,
            decisions = $4,
            action_steps = $5,
            speaker_opinions = $6,
            key_moments = $7
        WHERE id = $1
    """

    async with pool.acquire() as conn:
        async with conn.transaction():
            await _set_status(conn, meeting_id, "complete", None, processed_at)
            await conn.execute(
                query,
                summary_id,
                record["tldr"],
                record.get("keyTopics", []),
                record.get("decisions", []),
                record.get("actionSteps", []),
                record.get("speakerOpinions"),
                record.get("keyMoments"),
            )

    logger.debug(f"Meeting {meeting_id} -> complete")


async def insert_blob(content: bytes, content_type: str) -> str:
    pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            "INSERT INTO blobs (content, content_type) VALUES ($1, $2) RETURNING id",
            content,
            content_type,
        )
        return row["id"]


async def get_blob(blob_id: str) -> bytes | None:
    pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow("SELECT content FROM blobs WHERE id = $1", blob_id)
        return bytes(row["content"]) if row else None


# ----------------------------------------------------------------------------
# Subscribers
# ----------------------------------------------------------------------------


async def get_subscriber_by_email(email: str) -> Subscriber | None:
    pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            "SELECT id, email, status, last_emailed_at FROM subscribers WHERE email = $1",
            email,
        )
        return Subscriber(**dict(row)) if row else None


async def insert_subscriber(email: str) -> str:
    pool = await get_pool()

    query = """
        INSERT INTO subscribers (email, status)
        VALUES ($1, 'active')
        ON CONFLICT (email) DO UPDATE SET status = 'active'
        RETURNING id
    """

    async with pool.acquire() as conn:
        row = await conn.fetchrow(query, email)
        return row["id"]


async def set_subscriber_status(subscriber_id: str, status: str) -> None:
    pool = await get_pool()

    async with pool.acquire() as conn:
        await conn.execute(
            "UPDATE subscribers SET status = $2 WHERE id = $1", subscriber_id, status
        )


async def get_active_subscribers() -> list[Subscriber]:
    pool = await get_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT id, email, status, last_emailed_at FROM subscribers
            WHERE status = 'active'
            ORDER BY created_at
            """
        )
        return [Subscriber(**dict(row)) for row in rows]


async def count_active_subscribers() -> int:
    pool = await get_pool()

    async with pool.acquire() as conn:
        return await conn.fetchval("SELECT count(*) FROM subscribers WHERE status = 'active'")


async def update_last_emailed(subscriber_id: str) -> None:
    pool = await get_pool()

    async with pool.acquire() as conn:
        await conn.execute(
            "UPDATE subscribers SET last_emailed_at = now() WHERE id = $1", subscriber_id
        )


# ----------------------------------------------------------------------------
# Council members
# ----------------------------------------------------------------------------


async def count_council_members() -> int:
    pool = await get_pool()

    async with pool.acquire() as conn:
        return await conn.fetchval("SELECT count(*) FROM council_members")


async def insert_council_member(
    name: str, role: str, email: str, district: int | None = None, is_active: bool = True
) -> str:
    pool = await get_pool()

    query = """
        INSERT INTO council_members (name, role, district, email, is_active)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id
    """

    async with pool.acquire() as conn:
        row = await conn.fetchrow(query, name, role, district, email, is_active)
        return row["id"]


async def list_active_council_members() -> list[CouncilMember]:
    pool = await get_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT id, name, role, district, email, is_active FROM council_members
            WHERE is_active
            ORDER BY district NULLS FIRST, name
            """
        )
        return [CouncilMember(**dict(row)) for row in rows]
