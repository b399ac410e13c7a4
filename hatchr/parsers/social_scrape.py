"""Scrape project social links out of a token's launch page HTML."""

import re

import httpx
from loguru import logger

_X_RE = re.compile(r"https?://(?:www\.)?(?:twitter\.com|x\.com)/[A-Za-z0-9_./-]+", re.I)
_FARCASTER_RE = re.compile(
    r"https?://warpcast\.com/~/profiles/\d+|https?://warpcast\.com/[A-Za-z0-9_./-]+", re.I
)
_TELEGRAM_RE = re.compile(r"https?://t\.me/[A-Za-z0-9_./-]+", re.I)
_ANY_URL_RE = re.compile(r"https?://[A-Za-z0-9.-]+\.[A-Za-z]{2,}(?:/[^\s\"'<>]*)?", re.I)

_AGGREGATOR_RE = re.compile(r"clanker\.world|zora\.co|dexscreener|coingecko|etherscan|basescan", re.I)
# hosts that are captured by a dedicated field, never the project website
_SOCIAL_HOST_RE = re.compile(r"//(?:www\.)?(?:twitter\.com|x\.com|warpcast\.com|farcaster\.xyz|t\.me)\b", re.I)
# asset and framework hosts that show up in every page's markup
_ASSET_HOST_RE = re.compile(r"fonts\.|googleapis|gstatic|w3\.org|schema\.org|ipfs\.|cloudflare|vercel", re.I)

_TRAILING = "\"'<>)]}.,;"


def _clean(url: str) -> str:
    return url.rstrip(_TRAILING)


def extract_socials(html: str) -> dict[str, str]:
    """Return the first X, Farcaster, Telegram and external website URL found."""
    found: dict[str, str] = {}
    if not html:
        return found

    for field, pattern in (
        ("x_url", _X_RE),
        ("farcaster_url", _FARCASTER_RE),
        ("telegram_url", _TELEGRAM_RE),
    ):
        match = pattern.search(html)
        if match:
            found[field] = _clean(match.group(0))

    for match in _ANY_URL_RE.finditer(html):
        url = match.group(0)
        if _AGGREGATOR_RE.search(url) or _SOCIAL_HOST_RE.search(url) or _ASSET_HOST_RE.search(url):
            continue
        found["website_url"] = _clean(url)
        break

    return found


class SocialScraper:
    def __init__(self, timeout: float = 8.0, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "text/html"},
        )

    async def scrape(self, source_url: str) -> dict[str, str]:
        """Social links from the page; empty on any fetch failure."""
        if not source_url:
            return {}
        try:
            response = await self._client.get(source_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"[SCRAPE] {source_url}: {type(e).__name__}")
            return {}
        return extract_socials(response.text)

    async def close(self) -> None:
        await self._client.aclose()
