"""
PICK LEAGUE — Integration Tests for the SQL Stores
Manual prices, competitions, participants and picks on a throwaway SQLite file.
"""
import pytest
import pytest_asyncio
from datetime import date

from pickleague.config.settings import CompetitionSettings
from pickleague.data.errors import AlreadyExists, InvalidInput, NotConfigured, NotFound, PickLimitExceeded
from pickleague.data.models import CompetitionContext, PriceProvider
from pickleague.data.overrides import SqlManualOverrideStore
from pickleague.db.repository import CompetitionRepository
from pickleague.db.schema import init_db
from pickleague.engines.picks import PickService
from pickleague.engines.resolver import PriceResolver


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    return await init_db(f"sqlite+aiosqlite:///{tmp_path}/league.db")


@pytest_asyncio.fixture
async def competition(session_factory):
    repo = CompetitionRepository(session_factory)
    return await repo.save_competition(CompetitionContext(
        id=0,
        name="2026 Stock Competition",
        entry_price_date=date(2026, 1, 1),
        price_provider=PriceProvider.YAHOO_FINANCE,
    ))


class TestSqlManualOverrideStore:
    @pytest.mark.asyncio
    async def test_add_lookup_update_delete(self, session_factory, competition):
        store = SqlManualOverrideStore(session_factory)
        added = await store.add(competition.id, "aapl", 150.0)
        assert added.ticker == "AAPL"
        assert await store.lookup(competition.id, "AAPL") == 150.0
        assert await store.lookup(competition.id + 1, "AAPL") is None

        updated = await store.update(added.id, 155.5)
        assert updated.price == 155.5
        assert [p.ticker for p in await store.list(competition.id)] == ["AAPL"]

        await store.delete(added.id)
        assert await store.lookup(competition.id, "AAPL") is None

    @pytest.mark.asyncio
    async def test_duplicate_ticker_already_exists(self, session_factory, competition):
        store = SqlManualOverrideStore(session_factory)
        await store.add(competition.id, "AAPL", 150.0)
        with pytest.raises(AlreadyExists) as exc:
            await store.add(competition.id, "aapl", 151.0)
        assert "Use update" in exc.value.message
        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    async def test_rejects_non_positive_price(self, session_factory, competition):
        store = SqlManualOverrideStore(session_factory)
        with pytest.raises(InvalidInput):
            await store.add(competition.id, "AAPL", 0.0)

    @pytest.mark.asyncio
    async def test_missing_row(self, session_factory):
        store = SqlManualOverrideStore(session_factory)
        with pytest.raises(NotFound):
            await store.update(999, 10.0)
        with pytest.raises(NotFound):
            await store.delete(999)


class TestCompetitionRepository:
    @pytest.mark.asyncio
    async def test_no_competition_is_not_configured(self, session_factory):
        with pytest.raises(NotConfigured):
            await CompetitionRepository(session_factory).get_current_competition()

    @pytest.mark.asyncio
    async def test_save_and_update_competition(self, session_factory, competition):
        repo = CompetitionRepository(session_factory)
        assert (await repo.get_current_competition()).id == competition.id
        changed = await repo.save_competition(competition.model_copy(update={"refresh_interval": 30}))
        assert changed.id == competition.id
        assert (await repo.get_current_competition()).refresh_interval == 30

    @pytest.mark.asyncio
    async def test_participants_with_holdings(self, session_factory, competition):
        repo = CompetitionRepository(session_factory)
        alice = await repo.add_participant(competition.id, "Alice")
        bob = await repo.add_participant(competition.id, "Bob")
        await repo.add_pick(competition.id, alice.id, "AAPL", 150.0, 6.6667)

        participants = await repo.list_participants(competition.id)
        assert [p.display_name for p in participants] == ["Alice", "Bob"]
        assert [h.ticker for h in participants[0].holdings] == ["AAPL"]
        assert participants[1].holdings == []

        with pytest.raises(AlreadyExists):
            await repo.add_pick(competition.id, alice.id, "AAPL", 150.0, 6.6667)

        holding = participants[0].holdings[0]
        await repo.remove_pick(holding.id)
        assert (await repo.get_participant(alice.id)).holdings == []
        with pytest.raises(NotFound):
            await repo.get_participant(bob.id + 100)


class TestPickService:
    @pytest.mark.asyncio
    async def test_pick_captures_entry_price(self, session_factory, competition, yahoo, cache):
        repo = CompetitionRepository(session_factory)
        resolver = PriceResolver({PriceProvider.YAHOO_FINANCE: yahoo}, cache, SqlManualOverrideStore(session_factory))
        service = PickService(repo, resolver, CompetitionSettings())
        alice = await repo.add_participant(competition.id, "Alice")

        holding, quote = await service.add_pick(competition, alice.id, "msft")
        # 2025-12-31 is the last close on or before the 2026-01-01 entry date
        assert quote.as_of == date(2025, 12, 31)
        assert holding.ticker == "MSFT"
        assert holding.entry_price == 400.0
        assert holding.quantity == 2.5

        with pytest.raises(AlreadyExists):
            await service.add_pick(competition, alice.id, "MSFT")

    @pytest.mark.asyncio
    async def test_manual_entry_price_wins(self, session_factory, competition, yahoo, cache):
        repo = CompetitionRepository(session_factory)
        overrides = SqlManualOverrideStore(session_factory)
        await overrides.add(competition.id, "AAPL", 125.0)
        service = PickService(repo, PriceResolver({PriceProvider.YAHOO_FINANCE: yahoo}, cache, overrides))
        alice = await repo.add_participant(competition.id, "Alice")

        holding, quote = await service.add_pick(competition, alice.id, "AAPL")
        assert quote.source == "manual"
        assert holding.quantity == 8.0
        assert yahoo.history_calls == []

    @pytest.mark.asyncio
    async def test_pick_limit(self, session_factory, competition, yahoo, cache):
        repo = CompetitionRepository(session_factory)
        resolver = PriceResolver({PriceProvider.YAHOO_FINANCE: yahoo}, cache, SqlManualOverrideStore(session_factory))
        service = PickService(repo, resolver, CompetitionSettings(max_picks=1))
        alice = await repo.add_participant(competition.id, "Alice")

        await service.add_pick(competition, alice.id, "AAPL")
        with pytest.raises(PickLimitExceeded):
            await service.add_pick(competition, alice.id, "MSFT")
