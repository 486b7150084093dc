"""
Kolscan leaderboard scraper.

The leaderboard page is third-party HTML whose markup changes without notice,
so extraction is a list of strategies tried in order; the first one that
yields any entries wins. A page none of them understands produces an empty
scrape, which is not an error. Only network failures raise.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx
import structlog
from bs4 import BeautifulSoup, Tag
from redis.exceptions import RedisError

from ratemykol.config import get_settings
from ratemykol.redis_client import get_redis, redis_key

logger = structlog.get_logger()

CACHE_KEY = redis_key("kolscan", "leaderboard")
USER_AGENT = "Mozilla/5.0 (compatible; RateMyKOL/1.0; +https://ratemykol.app)"

# Solana addresses are base58, 32-44 characters
WALLET_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
ACCOUNT_HREF_RE = re.compile(r"/account/([1-9A-HJ-NP-Za-km-z]{32,44})")
TWITTER_HREF_RE = re.compile(r"^https?://(?:www\.)?(?:twitter\.com|x\.com)/", re.IGNORECASE)

_WALLET_KEYS = ("wallet_address", "walletAddress", "wallet", "account", "address")
_NAME_KEYS = ("name", "username", "displayName", "display_name", "twitter_name")
_TWITTER_KEYS = ("twitter_url", "twitterUrl", "twitter", "twitter_username", "x")
_PARENT_SEARCH_DEPTH = 4


class LeaderboardFetchError(Exception):
    """Raised when the leaderboard page cannot be downloaded."""


@dataclass(frozen=True)
class LeaderboardEntry:
    name: str
    wallet_address: str
    twitter_url: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LeaderboardScrape:
    """Result of one scrape. `strategy` names the extractor that matched, if any."""

    entries: tuple[LeaderboardEntry, ...] = field(default_factory=tuple)
    strategy: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.entries


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_wallet_address(value: str) -> bool:
    return bool(WALLET_RE.match(value.strip()))


def normalize_twitter(value: str | None) -> str | None:
    """Turn a Twitter/X URL or bare handle into a canonical https://x.com URL."""
    if not value:
        return None
    value = value.strip()
    if TWITTER_HREF_RE.match(value):
        handle = TWITTER_HREF_RE.sub("", value).split("/")[0].split("?")[0]
    else:
        handle = value.lstrip("@")
    if not re.fullmatch(r"[A-Za-z0-9_]{1,15}", handle):
        return None
    return f"https://x.com/{handle}"


def _short_name(wallet: str) -> str:
    return f"{wallet[:4]}...{wallet[-4:]}"


def _twitter_near(tag: Tag, depth: int = _PARENT_SEARCH_DEPTH) -> str | None:
    """First Twitter/X link inside the tag or one of its nearest `depth - 1` ancestors.

    Stops climbing once an ancestor holds more than one account, so a link
    is never borrowed from a neighbouring entry.
    """
    node: Tag | None = tag
    for _ in range(depth):
        if node is None or len(node.find_all("a", href=ACCOUNT_HREF_RE, limit=2)) > 1:
            break
        link = node.find("a", href=TWITTER_HREF_RE)
        if isinstance(link, Tag):
            return normalize_twitter(str(link["href"]))
        node = node.parent if isinstance(node.parent, Tag) else None
    return None


def _text_name(tag: Tag, wallet: str) -> str:
    text = " ".join(tag.get_text(" ", strip=True).split())
    if not text or wallet in text or is_wallet_address(text):
        return _short_name(wallet)
    return text[:255]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _walk_json(node: Any) -> Iterator[dict[str, Any]]:  # noqa: ANN401
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from _walk_json(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_json(item)


def _first_str(obj: dict[str, Any], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_from_next_data(soup: BeautifulSoup) -> list[LeaderboardEntry]:
    """Entries from the JSON the Next.js frontend embeds in the page."""
    script = soup.find("script", id="__NEXT_DATA__")
    if not isinstance(script, Tag) or not script.string:
        return []
    try:
        payload = json.loads(script.string)
    except json.JSONDecodeError:
        return []

    entries = []
    for obj in _walk_json(payload):
        wallet = _first_str(obj, _WALLET_KEYS)
        if not wallet or not is_wallet_address(wallet):
            continue
        name = _first_str(obj, _NAME_KEYS) or _short_name(wallet)
        entries.append(LeaderboardEntry(name[:255], wallet, normalize_twitter(_first_str(obj, _TWITTER_KEYS))))
    return entries


def extract_from_account_links(soup: BeautifulSoup) -> list[LeaderboardEntry]:
    """Entries from links of the form /account/<wallet>."""
    entries = []
    for link in soup.find_all("a", href=ACCOUNT_HREF_RE):
        match = ACCOUNT_HREF_RE.search(str(link["href"]))
        if match is None:
            continue
        wallet = match.group(1)
        entries.append(LeaderboardEntry(_text_name(link, wallet), wallet, _twitter_near(link)))
    return entries


def extract_from_table_rows(soup: BeautifulSoup) -> list[LeaderboardEntry]:
    """Entries from <table> rows containing a wallet address cell."""
    entries = []
    for row in soup.select("table tr"):
        cells = row.find_all("td")
        wallet = next((c.get_text(strip=True) for c in cells if is_wallet_address(c.get_text(strip=True))), None)
        if wallet is None:
            continue
        name = next(
            (
                c.get_text(" ", strip=True)
                for c in cells
                if c.get_text(strip=True)
                and not is_wallet_address(c.get_text(strip=True))
                and not c.get_text(strip=True).lstrip("#").isdigit()
            ),
            _short_name(wallet),
        )
        entries.append(LeaderboardEntry(name[:255], wallet, _twitter_near(row, depth=1)))
    return entries


def extract_from_data_attributes(soup: BeautifulSoup) -> list[LeaderboardEntry]:
    """Entries from elements tagged with data-wallet / data-address."""
    entries = []
    for tag in soup.select("[data-wallet], [data-address]"):
        wallet = str(tag.get("data-wallet") or tag.get("data-address") or "").strip()
        if not is_wallet_address(wallet):
            continue
        name = str(tag.get("data-name") or "").strip() or _text_name(tag, wallet)
        entries.append(LeaderboardEntry(name[:255], wallet, _twitter_near(tag, depth=1)))
    return entries


Strategy = Callable[[BeautifulSoup], list[LeaderboardEntry]]

STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("next_data", extract_from_next_data),
    ("account_links", extract_from_account_links),
    ("table_rows", extract_from_table_rows),
    ("data_attributes", extract_from_data_attributes),
)


def _dedupe(entries: Iterable[LeaderboardEntry], limit: int) -> tuple[LeaderboardEntry, ...]:
    seen: set[str] = set()
    unique = []
    for entry in entries:
        if entry.wallet_address in seen:
            continue
        seen.add(entry.wallet_address)
        unique.append(entry)
        if len(unique) >= limit:
            break
    return tuple(unique)


def parse_leaderboard(html: str, max_entries: int | None = None) -> LeaderboardScrape:
    """Run the strategies in order over the page and keep the first non-empty result."""
    limit = max_entries if max_entries is not None else get_settings().kolscan_max_entries
    soup = BeautifulSoup(html, "html.parser")
    for name, strategy in STRATEGIES:
        entries = _dedupe(strategy(soup), limit)
        if entries:
            return LeaderboardScrape(entries=entries, strategy=name)
    return LeaderboardScrape()


# ---------------------------------------------------------------------------
# Fetching & caching
# ---------------------------------------------------------------------------


async def _cache_get() -> LeaderboardScrape | None:
    try:
        raw = await get_redis().get(CACHE_KEY)
    except RuntimeError:
        return None  # Redis not initialized
    except RedisError:
        logger.warning("kolscan_cache_unavailable", exc_info=True)
        return None
    if not raw:
        return None
    data = json.loads(raw)
    return LeaderboardScrape(
        entries=tuple(LeaderboardEntry(**e) for e in data["entries"]),
        strategy=data.get("strategy"),
    )


async def _cache_set(scrape: LeaderboardScrape) -> None:
    payload = json.dumps({"entries": [e.as_dict() for e in scrape.entries], "strategy": scrape.strategy})
    try:
        await get_redis().set(CACHE_KEY, payload, ex=get_settings().kolscan_cache_ttl_seconds)
    except RuntimeError:
        return
    except RedisError:
        logger.warning("kolscan_cache_unavailable", exc_info=True)


async def fetch_leaderboard(
    client: httpx.AsyncClient | None = None,
    use_cache: bool = True,
) -> LeaderboardScrape:
    """
    Download and parse the leaderboard.

    Raises:
        LeaderboardFetchError: On timeout, connection failure, or a non-2xx response.
    """
    if use_cache:
        cached = await _cache_get()
        if cached is not None:
            return cached

    settings = get_settings()
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=settings.kolscan_timeout_seconds, follow_redirects=True)
    try:
        response = await client.get(settings.kolscan_url, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("kolscan_fetch_failed", url=settings.kolscan_url, error=str(e))
        msg = f"Failed to fetch kolscan leaderboard: {e}"
        raise LeaderboardFetchError(msg) from e
    finally:
        if owns_client:
            await client.aclose()

    scrape = parse_leaderboard(response.text, settings.kolscan_max_entries)
    logger.info("kolscan_scraped", entries=len(scrape.entries), strategy=scrape.strategy)
    if not scrape.is_empty and use_cache:
        await _cache_set(scrape)
    return scrape
