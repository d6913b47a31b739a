import asyncio
import json
import logging
import time

import redis.asyncio as aioredis
from pydantic import BaseModel

from cicero import council, db, emailer, pipeline, subscribers
from cicero.config import RESULT_KEY_PREFIX, RESULT_TTL_SECONDS, TRIGGER_QUEUE
from cicero.http_client import close_client
from cicero.redis_client import close_redis, get_redis
from cicero.scraper import scrape_and_store_meetings
from cicero.summarizer import format_meeting_date, summarize_meeting, summarize_pending_meetings
from cicero.transcriber import transcribe_meeting, transcribe_pending_meetings
from cicero.video import extract_video_url_for_meeting, extract_video_urls_for_pending_meetings

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s"
)
logger = logging.getLogger(__name__)


class TriggerError(ValueError):
    """A trigger message is malformed or names an unknown operation."""


def _require_meeting_id(trigger: dict) -> str:
    meeting_id = trigger.get("meetingId")
    if not meeting_id:
        raise TriggerError(f"Operation {trigger.get('op')!r} requires meetingId")
    return str(meeting_id)


async def _extract_video(trigger: dict):
    if trigger.get("meetingId"):
        return await extract_video_url_for_meeting(_require_meeting_id(trigger))
    return await extract_video_urls_for_pending_meetings()


async def _transcribe(trigger: dict):
    if trigger.get("meetingId"):
        return await transcribe_meeting(_require_meeting_id(trigger))
    return await transcribe_pending_meetings()


async def _summarize(trigger: dict):
    if trigger.get("meetingId"):
        return await summarize_meeting(_require_meeting_id(trigger))
    return await summarize_pending_meetings()


async def _process(trigger: dict):
    return await pipeline.process_one_meeting(_require_meeting_id(trigger))


async def _process_pending(trigger: dict):
    limit = trigger.get("limit")
    return await pipeline.process_pending_meetings(int(limit) if limit is not None else None)


async def _reset(trigger: dict):
    meeting_id = _require_meeting_id(trigger)
    return {"meetingId": meeting_id, "success": await pipeline.reset_to_pending(meeting_id)}


async def _notify(trigger: dict):
    meeting_id = _require_meeting_id(trigger)
    meeting = await db.get_meeting(meeting_id)
    summary = await db.get_summary_by_meeting_id(meeting_id)
    if meeting is None or summary is None or not summary.tldr:
        return {"success": False, "reason": "No completed summary for this meeting"}
    return await emailer.notify_all_subscribers(
        meeting.id, meeting.title, format_meeting_date(meeting.date), summary.tldr
    )


async def _seed_council(trigger: dict):
    return {"success": True, "inserted": await council.seed_council_members()}


async def _subscribe(trigger: dict):
    email = trigger.get("email")
    if not email:
        raise TriggerError("Operation 'subscribe' requires email")
    return await subscribers.subscribe(email)


async def _unsubscribe(trigger: dict):
    email = trigger.get("email")
    if not email:
        raise TriggerError("Operation 'unsubscribe' requires email")
    return await subscribers.unsubscribe(email)


async def _discover(trigger: dict):
    return await scrape_and_store_meetings()


OPERATIONS = {
    "discover": _discover,
    "extract_video": _extract_video,
    "transcribe": _transcribe,
    "summarize": _summarize,
    "process": _process,
    "process_pending": _process_pending,
    "reset": _reset,
    "notify": _notify,
    "seed_council": _seed_council,
    "subscribe": _subscribe,
    "unsubscribe": _unsubscribe,
}


def _to_payload(result) -> dict:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


async def dispatch(trigger: dict) -> dict:
    """Run the operation a trigger names.

    Args:
        trigger: Decoded trigger message

    Returns:
        JSON-serializable result

    Raises:
        TriggerError: Unknown operation or missing arguments
    """
    op = trigger.get("op")
    handler = OPERATIONS.get(op)
    if handler is None:
        raise TriggerError(f"Unknown operation: {op!r}")
    return _to_payload(await handler(trigger))


async def process_trigger(redis_client: aioredis.Redis, raw: str) -> None:
    """Decode, run and report one trigger. Never raises."""
    try:
        trigger = json.loads(raw)
        if not isinstance(trigger, dict):
            raise TriggerError("Trigger must be a JSON object")
    except (json.JSONDecodeError, TriggerError) as e:
        logger.error(f"Dropping malformed trigger {raw!r}: {e}")
        return

    op = trigger.get("op")
    trigger_id = trigger.get("triggerId")
    start_time = time.time()

    try:
        result = await dispatch(trigger)
    except TriggerError as e:
        logger.error(f"Dropping trigger {trigger_id}: {e}")
        result = {"success": False, "reason": str(e)}
    except Exception as e:
        logger.error(f"Trigger {trigger_id} ({op}) failed: {e}", exc_info=True)
        result = {"success": False, "reason": str(e) or "Unknown error"}

    elapsed_ms = int((time.time() - start_time) * 1000)

    # Log structured completion event
    logger.info(
        json.dumps(
            {
                "event": "trigger_complete",
                "op": op,
                "triggerId": trigger_id,
                "meetingId": trigger.get("meetingId"),
                "success": result.get("success", result.get("failed", 0) == 0),
                "elapsed_ms": elapsed_ms,
            }
        )
    )

    if trigger_id:
        key = f"{RESULT_KEY_PREFIX}{trigger_id}"
        try:
            await redis_client.lpush(key, json.dumps({"op": op, "result": result}))
            await redis_client.expire(key, RESULT_TTL_SECONDS)
        except Exception as e:
            logger.error(f"Could not publish result for trigger {trigger_id}: {e}")


async def worker_loop() -> None:
    """Consume triggers until cancelled."""
    redis_client = get_redis()
    await db.init_schema()

    logger.info(f"Worker {pipeline.WORKER_ID} listening on queue: {TRIGGER_QUEUE}")

    try:
        while True:
            try:
                # Wait for a trigger (blocking)
                _, raw = await redis_client.brpop(TRIGGER_QUEUE)
                await process_trigger(redis_client, raw)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in worker loop: {e}", exc_info=True)
                # Brief pause before retrying to avoid tight error loop
                await asyncio.sleep(1)
    finally:
        await close_client()
        await close_redis()
        await db.close_pool()


def main():
    """Entry point for the Cicero worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")


if __name__ == "__main__":
    main()
