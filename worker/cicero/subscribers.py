"""Email subscriptions for new meeting summaries."""

import logging
import re

from cicero import db
from cicero.config import SUBSCRIBE_RATE_LIMIT_MAX_ATTEMPTS, SUBSCRIBE_RATE_LIMIT_WINDOW
from cicero.redis_client import get_redis
from cicero.schemas.results import SubscribeResult

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RATE_LIMIT_KEY_PREFIX = "cicero:subscribe:"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email))


async def check_rate_limit(email: str) -> bool:
    """Count a subscribe attempt for this address.

    Returns:
        True if the attempt is within the limit
    """
    redis = get_redis()
    key = f"{RATE_LIMIT_KEY_PREFIX}{email}"

    attempts = await redis.incr(key)
    if attempts == 1:
        await redis.expire(key, SUBSCRIBE_RATE_LIMIT_WINDOW)

    return attempts <= SUBSCRIBE_RATE_LIMIT_MAX_ATTEMPTS


async def subscribe(email: str) -> SubscribeResult:
    """Subscribe an address, or reactivate it if it unsubscribed earlier."""
    email = normalize_email(email)

    if not is_valid_email(email):
        return SubscribeResult(success=False, message="Invalid email format")

    if not await check_rate_limit(email):
        logger.warning(f"Subscribe rate limit hit for {email}")
        return SubscribeResult(
            success=False, message="Too many attempts. Please try again in a minute."
        )

    existing = await db.get_subscriber_by_email(email)
    if existing is not None:
        if existing.status == "active":
            return SubscribeResult(success=True, message="Already subscribed")
        await db.set_subscriber_status(existing.id, "active")
        logger.info(f"Reactivated subscriber {existing.id}")
        return SubscribeResult(success=True, message="Subscription reactivated")

    subscriber_id = await db.insert_subscriber(email)
    logger.info(f"New subscriber {subscriber_id}")
    return SubscribeResult(success=True, message="Successfully subscribed")


async def unsubscribe(email: str) -> SubscribeResult:
    email = normalize_email(email)

    existing = await db.get_subscriber_by_email(email)
    if existing is None:
        return SubscribeResult(success=False, message="Email not found")

    if existing.status == "unsubscribed":
        return SubscribeResult(success=True, message="Already unsubscribed")

    await db.set_subscriber_status(existing.id, "unsubscribed")
    logger.info(f"Unsubscribed {existing.id}")
    return SubscribeResult(success=True, message="Successfully unsubscribed")


async def count_active() -> int:
    return await db.count_active_subscribers()
