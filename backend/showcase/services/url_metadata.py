"""
Page metadata for submitted project URLs.

Only the description is used: when a project is submitted without one, the
OpenGraph / Twitter / plain meta description of its page fills the gap.
"""
from __future__ import annotations

import html
import logging
import re

import httpx

from showcase.settings import get_settings

logger = logging.getLogger(__name__)

_META_RE = re.compile(r"<meta\s+[^>]*>", re.IGNORECASE)
_ATTR_RE = re.compile(r'([a-zA-Z:_-]+)\s*=\s*("([^"]*)"|\'([^\']*)\')')

DESCRIPTION_KEYS = ("og:description", "twitter:description", "description")


def _client() -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=settings.url_metadata_timeout_sec,
        follow_redirects=True,
        headers={"User-Agent": f"{settings.app_name}-metadata/1.0"},
    )


def extract_description(page: str) -> str | None:
    """Pick the best description from a page's meta tags."""
    found: dict[str, str] = {}
    for tag in _META_RE.findall(page):
        attrs = {
            m.group(1).lower(): m.group(3) if m.group(3) is not None else m.group(4)
            for m in _ATTR_RE.finditer(tag)
        }
        key = (attrs.get("property") or attrs.get("name") or "").lower()
        content = attrs.get("content")
        if key in DESCRIPTION_KEYS and content and key not in found:
            found[key] = html.unescape(content).strip()
    for key in DESCRIPTION_KEYS:
        if found.get(key):
            return found[key]
    return None


async def fetch_description(url: str) -> str | None:
    if not get_settings().url_metadata_enabled:
        return None
    try:
        async with _client() as client:
            r = await client.get(url)
            r.raise_for_status()
            return extract_description(r.text)
    except httpx.HTTPError as e:
        logger.warning(f"[url_metadata] fetch failed for {url}: {e}")
        return None
