import logging
from urllib.parse import urlparse

import httpx

from adstudio.errors import FetchError

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 500

# First attempt: look like a desktop Chrome navigation
BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,fr;q=0.8",
    "Cache-Control": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "cross-site",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
    "Referer": "https://www.google.com/",
}

# Fallback when the site blocks browsers it can't fingerprint: many let crawlers through
CRAWLER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
    "Accept": "text/html,*/*",
}

BLOCKED_STATUSES = (401, 403)


def validate_url(url: str) -> str:
    """Return the stripped URL, or raise FetchError if it is not absolute."""
    url = (url or "").strip()
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise FetchError(f"Invalid URL: {url!r}")
    return url


async def fetch_html(url: str, *, timeout: float, client: httpx.AsyncClient | None = None) -> str:
    """GET a page's HTML, retrying once with crawler headers when blocked.

    `timeout` is applied to each attempt. Raises FetchError with the final
    status and a truncated body when no attempt succeeds.
    """
    url = validate_url(url)

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    try:
        resp = await _get(client, url, BROWSER_HEADERS, timeout)
        if resp.status_code in BLOCKED_STATUSES:
            logger.info(f"[fetch] {url} returned {resp.status_code} to browser headers, retrying as crawler")
            resp = await _get(client, url, CRAWLER_HEADERS, timeout)
    finally:
        if owns_client:
            await client.aclose()

    if not resp.is_success:
        body = resp.text[:MAX_ERROR_BODY] if resp.text else None
        logger.warning(f"[fetch] {url} failed with HTTP {resp.status_code}")
        raise FetchError(
            f"Failed to fetch website: HTTP {resp.status_code}",
            status=resp.status_code,
            body=body,
        )

    html = resp.text
    logger.info(f"[fetch] {url}: {len(html)} chars HTML")
    return html


async def _get(client: httpx.AsyncClient, url: str, headers: dict, timeout: float) -> httpx.Response:
    try:
        return await client.get(url, headers=headers, timeout=timeout)
    except httpx.TimeoutException as e:
        raise FetchError(f"Timed out fetching website after {timeout}s") from e
    except httpx.HTTPError as e:
        raise FetchError(f"Could not reach website: {e}") from e
