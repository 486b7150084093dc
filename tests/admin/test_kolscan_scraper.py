"""Unit tests for the kolscan leaderboard scraper."""

from __future__ import annotations

import json

import httpx
import pytest

from ratemykol.admin.scraper import (
    USER_AGENT,
    LeaderboardEntry,
    LeaderboardFetchError,
    fetch_leaderboard,
    is_wallet_address,
    normalize_twitter,
    parse_leaderboard,
)
from ratemykol.config import get_settings

WALLET_A = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
WALLET_B = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
WALLET_C = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"


def _next_data_page(payload: dict) -> str:
    return (
        "<html><head>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(payload)}</script>'
        "</head><body></body></html>"
    )


ACCOUNT_LINKS_PAGE = f"""
<html><body>
  <div class="row">
    <a href="/account/{WALLET_A}">Cupsey</a>
    <a href="https://twitter.com/cupseyy">twitter</a>
  </div>
  <div class="row">
    <a href="/account/{WALLET_B}">{WALLET_B}</a>
  </div>
</body></html>
"""

TABLE_PAGE = f"""
<html><body><table>
  <tr><th>Rank</th><th>Trader</th><th>Wallet</th><th>Socials</th></tr>
  <tr><td>#1</td><td>Cupsey</td><td>{WALLET_A}</td><td></td></tr>
  <tr><td>2</td><td>Jidn</td><td>{WALLET_B}</td><td><a href="https://x.com/jidn_w">@jidn_w</a></td></tr>
</table></body></html>
"""

DATA_ATTRIBUTES_PAGE = f"""
<html><body><ul>
  <li data-wallet="{WALLET_A}" data-name="Cupsey"><a href="https://x.com/cupseyy">x</a></li>
  <li data-address="{WALLET_B}">Orange</li>
  <li data-wallet="not-a-wallet">Broken</li>
</ul></body></html>
"""


class TestHelpers:
    def test_wallet_addresses(self):
        assert is_wallet_address(WALLET_A) is True
        assert is_wallet_address(f"  {WALLET_B} ") is True
        assert is_wallet_address("0x52908400098527886E0F7030069857D2E4169EE7") is False
        assert is_wallet_address("short") is False

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("@cupseyy", "https://x.com/cupseyy"),
            ("cupseyy", "https://x.com/cupseyy"),
            ("https://twitter.com/cupseyy", "https://x.com/cupseyy"),
            ("https://www.x.com/cupseyy/status/123", "https://x.com/cupseyy"),
            ("https://x.com/cupseyy?s=20", "https://x.com/cupseyy"),
            ("not a handle!", None),
            ("", None),
            (None, None),
        ],
    )
    def test_normalize_twitter(self, value, expected):
        assert normalize_twitter(value) == expected


class TestParseLeaderboard:
    def test_next_data(self):
        page = _next_data_page({
            "props": {
                "pageProps": {
                    "leaderboard": [
                        {"name": "Cupsey", "wallet_address": WALLET_A, "twitter": "@cupseyy"},
                        {"username": "Jidn", "account": WALLET_B},
                    ]
                }
            }
        })
        scrape = parse_leaderboard(page)
        assert scrape.strategy == "next_data"
        assert scrape.entries == (
            LeaderboardEntry("Cupsey", WALLET_A, "https://x.com/cupseyy"),
            LeaderboardEntry("Jidn", WALLET_B, None),
        )

    def test_account_links(self):
        scrape = parse_leaderboard(ACCOUNT_LINKS_PAGE)
        assert scrape.strategy == "account_links"
        assert scrape.entries[0] == LeaderboardEntry("Cupsey", WALLET_A, "https://x.com/cupseyy")
        # Link text that is just the wallet falls back to a shortened address
        assert scrape.entries[1] == LeaderboardEntry("9WzD...AWWM", WALLET_B, None)

    def test_table_rows(self):
        scrape = parse_leaderboard(TABLE_PAGE)
        assert scrape.strategy == "table_rows"
        assert scrape.entries == (
            LeaderboardEntry("Cupsey", WALLET_A, None),
            LeaderboardEntry("Jidn", WALLET_B, "https://x.com/jidn_w"),
        )

    def test_data_attributes(self):
        scrape = parse_leaderboard(DATA_ATTRIBUTES_PAGE)
        assert scrape.strategy == "data_attributes"
        assert scrape.entries == (
            LeaderboardEntry("Cupsey", WALLET_A, "https://x.com/cupseyy"),
            LeaderboardEntry("Orange", WALLET_B, None),
        )

    def test_falls_through_to_next_strategy(self):
        page = ACCOUNT_LINKS_PAGE.replace(
            "<body>",
            '<body><script id="__NEXT_DATA__" type="application/json">{"props": {"pageProps": {}}}</script>',
        )
        assert parse_leaderboard(page).strategy == "account_links"

    def test_broken_next_data_is_ignored(self):
        page = ACCOUNT_LINKS_PAGE.replace(
            "<body>",
            '<body><script id="__NEXT_DATA__" type="application/json">{not json</script>',
        )
        assert parse_leaderboard(page).strategy == "account_links"

    def test_deduplicates_and_caps(self):
        links = "".join(f'<div><a href="/account/{w}">T{i}</a></div>' for i, w in enumerate(
            [WALLET_A, WALLET_A, WALLET_B, WALLET_C]
        ))
        scrape = parse_leaderboard(f"<html><body>{links}</body></html>", max_entries=2)
        assert [e.wallet_address for e in scrape.entries] == [WALLET_A, WALLET_B]

    def test_unrecognised_page_is_empty(self):
        scrape = parse_leaderboard("<html><body><p>Leaderboard coming soon</p></body></html>")
        assert scrape.is_empty
        assert scrape.strategy is None


class TestFetchLeaderboard:
    async def test_fetch_parses_page(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=TABLE_PAGE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            scrape = await fetch_leaderboard(client=client)

        assert scrape.strategy == "table_rows"
        assert len(scrape.entries) == 2
        assert str(seen[0].url) == get_settings().kolscan_url
        assert seen[0].headers["User-Agent"] == USER_AGENT

    async def test_empty_page_is_not_an_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html></html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            scrape = await fetch_leaderboard(client=client, use_cache=False)

        assert scrape.is_empty

    async def test_http_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="maintenance")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(LeaderboardFetchError):
                await fetch_leaderboard(client=client, use_cache=False)

    async def test_connection_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(LeaderboardFetchError, match="connection refused"):
                await fetch_leaderboard(client=client, use_cache=False)
