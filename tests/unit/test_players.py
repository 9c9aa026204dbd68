"""
Unit tests for PlayerRoster.
"""

import pytest

from cipherhunt.chain.simulated import sample_players
from cipherhunt.core.models import PlayerData
from cipherhunt.players import PlayerRoster


NOW_MS = 1700000000000
PLAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def _source(address, now_ms=NOW_MS):
    return sample_players(address, now_ms=now_ms)


class TestPlayerRoster:

    @pytest.mark.asyncio
    async def test_load_from_sync_source(self):
        roster = PlayerRoster(_source)

        assert await roster.load(PLAYER) == 5
        assert len(roster) == 5
        assert roster.players[-1].id == PLAYER

    @pytest.mark.asyncio
    async def test_load_from_async_source(self):
        async def source(address):
            return [PlayerData(id="p1", name="Solo", score=10, last_active=NOW_MS)]

        roster = PlayerRoster(source)

        assert await roster.load(None) == 1

    @pytest.mark.asyncio
    async def test_ranking_by_score(self):
        roster = PlayerRoster(_source)
        await roster.load(PLAYER)

        names = [p.name for p in roster.ranking()]

        assert names == ["ShadowRunner", "CryptoNinja", "FHEGhost", "BlockSeeker", "You"]

    @pytest.mark.asyncio
    async def test_active_count_uses_day_window(self):
        def source(address):
            return [
                PlayerData(id="p1", name="Recent", last_active=NOW_MS - 1000),
                PlayerData(id="p2", name="Stale", last_active=NOW_MS - 2 * 86400 * 1000),
            ]

        roster = PlayerRoster(source)
        await roster.load(None)

        assert roster.active_count(NOW_MS) == 1

    @pytest.mark.asyncio
    async def test_is_online_uses_five_minute_window(self):
        roster = PlayerRoster(_source)
        await roster.load(PLAYER)
        you = roster.players[-1]
        ghost = roster.players[2]

        assert roster.is_online(you, NOW_MS) is True
        assert roster.is_online(ghost, NOW_MS) is False

    @pytest.mark.asyncio
    async def test_score_for(self):
        roster = PlayerRoster(_source)
        await roster.load(PLAYER)

        assert roster.score_for(PLAYER) == 450
        assert roster.score_for("0xunknown") == 0
        assert roster.score_for(None) == 0

    def test_sample_players_without_address(self):
        players = sample_players(now_ms=NOW_MS)

        assert players[-1].id == "player5"
        assert players[-1].last_active == NOW_MS
