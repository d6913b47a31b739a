"""Email subscribers when a meeting summary is published (Resend API)."""

import html
import logging
from urllib.parse import quote

import httpx

from cicero import db
from cicero.config import APP_BASE_URL, EMAIL_FROM, RESEND_API_KEY, RESEND_API_URL
from cicero.http_client import get_client
from cicero.schemas.meeting import Subscriber
from cicero.schemas.results import NotificationOutcome, NotificationResult

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
  <h1 style="font-size: 24px; margin-bottom: 8px;">New Meeting Summary</h1>
  <p style="color: #666; margin-top: 0;">{title} &bull; {date}</p>
  <div style="background: #f5f5f5; padding: 16px; border-radius: 8px; margin: 24px 0;">
    <h2 style="font-size: 16px; margin: 0 0 8px 0; color: #333;">TL;DR</h2>
    <p style="margin: 0; line-height: 1.6;">{tldr}</p>
  </div>
  <a href="{meeting_url}" style="display: inline-block; background: #000; color: #fff; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: 500;">Read Full Summary</a>
  <hr style="border: none; border-top: 1px solid #eee; margin: 32px 0;">
  <p style="font-size: 12px; color: #999;">
    You're receiving this because you subscribed to Cicero updates.<br>
    <a href="{unsubscribe_url}" style="color: #999;">Unsubscribe</a>
  </p>
</body>
</html>
"""


def meeting_url(meeting_id: str) -> str:
    return f"{APP_BASE_URL}/meetings/{meeting_id}"


def unsubscribe_url(email: str) -> str:
    return f"{APP_BASE_URL}/unsubscribe?email={quote(email, safe='')}"


def render_email(
    email: str, meeting_title: str, meeting_date: str, tldr: str, url: str
) -> str:
    return EMAIL_TEMPLATE.format(
        title=html.escape(meeting_title),
        date=html.escape(meeting_date),
        tldr=html.escape(tldr),
        meeting_url=html.escape(url, quote=True),
        unsubscribe_url=html.escape(unsubscribe_url(email), quote=True),
    )


async def send_summary_notification(
    subscriber: Subscriber,
    meeting_title: str,
    meeting_date: str,
    tldr: str,
    url: str,
) -> NotificationOutcome:
    """Send one summary email and record the send time."""
    if not RESEND_API_KEY:
        return NotificationOutcome(success=False, error="RESEND_API_KEY is not configured")

    client = get_client()

    try:
        response = await client.post(
            f"{RESEND_API_URL}/emails",
            headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
            json={
                "from": EMAIL_FROM,
                "to": subscriber.email,
                "subject": f"New City Council Summary: {meeting_title}",
                "html": render_email(subscriber.email, meeting_title, meeting_date, tldr, url),
            },
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.warning(
            f"Email to {subscriber.email} rejected: {e.response.status_code} {e.response.text}"
        )
        return NotificationOutcome(
            success=False, error=f"Resend API error: {e.response.status_code}"
        )
    except httpx.HTTPError as e:
        logger.warning(f"Email to {subscriber.email} failed: {e}")
        return NotificationOutcome(success=False, error=str(e) or "Unknown error")

    await db.update_last_emailed(subscriber.id)
    return NotificationOutcome(success=True)


async def notify_all_subscribers(
    meeting_id: str, meeting_title: str, meeting_date: str, tldr: str
) -> NotificationResult:
    """Email every active subscriber. Per-recipient failures are only counted."""
    subscribers = await db.get_active_subscribers()
    url = meeting_url(meeting_id)
    result = NotificationResult()

    for subscriber in subscribers:
        try:
            outcome = await send_summary_notification(
                subscriber, meeting_title, meeting_date, tldr, url
            )
        except Exception as e:
            logger.error(f"Notification to {subscriber.email} failed: {e}", exc_info=True)
            outcome = NotificationOutcome(success=False, error=str(e) or "Unknown error")

        if outcome.success:
            result.sent += 1
        else:
            result.failed += 1
            if outcome.error:
                result.errors.append(f"{subscriber.email}: {outcome.error}")

    logger.info(
        f"Notified subscribers for meeting {meeting_id}: {result.sent} sent, {result.failed} failed"
    )
    return result
