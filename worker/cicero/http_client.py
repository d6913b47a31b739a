"""Shared HTTP client for the external services the pipeline calls."""

import logging

import httpx

from cicero.config import HTTP_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)

# Global HTTP client
_client: httpx.AsyncClient | None = None


def get_client() -> httpx.AsyncClient:
    """Get or create the httpx async client.

    Returns:
        httpx async client with the Cicero User-Agent and default timeout
    """
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(HTTP_TIMEOUT),
            follow_redirects=True,
            http2=True,
        )
        logger.info("HTTP client created")
    return _client


async def close_client() -> None:
    """Close the HTTP client."""
    global _client
    if _client:
        await _client.aclose()
        _client = None
        logger.info("HTTP client closed")
