"""Unit of work boundaries and cache eviction."""

import pytest

from models import Account
from repositories import AccountRepository
from services.cache import CacheKeys, PortfolioCache
from services.unit_of_work import UnitOfWork


class TestUnitOfWork:

    def setup_method(self):
        self.cache = PortfolioCache()
        self.cache.put(CacheKeys.PORTFOLIO_SUMMARY, "stale")

    def test_commit_persists_and_evicts(self):
        with UnitOfWork(self.cache) as uow:
            AccountRepository.add(Account(name="Main", is_default=True), uow.session)
            uow.invalidate(CacheKeys.PORTFOLIO_SUMMARY)
            assert CacheKeys.PORTFOLIO_SUMMARY in self.cache

        assert CacheKeys.PORTFOLIO_SUMMARY not in self.cache
        assert [a.name for a in AccountRepository.get_all()] == ["Main"]

    def test_exception_rolls_back_everything_and_keeps_cache(self):
        with pytest.raises(RuntimeError):
            with UnitOfWork(self.cache) as uow:
                AccountRepository.add(Account(name="Main", is_default=True), uow.session)
                uow.invalidate(CacheKeys.PORTFOLIO_SUMMARY)
                raise RuntimeError("boom")

        assert AccountRepository.get_all() == []
        assert self.cache.get(CacheKeys.PORTFOLIO_SUMMARY) == "stale"


class TestPortfolioCache:

    def test_get_or_load_computes_once(self):
        cache = PortfolioCache()
        calls = []

        def loader():
            calls.append(1)
            return {"value": 1}

        assert cache.get_or_load("k", loader) is cache.get_or_load("k", loader)
        assert len(calls) == 1

    def test_position_keys(self):
        keys = CacheKeys.for_position("aapl", 3)
        assert keys == [
            "portfolio:summary",
            "portfolio:sectors",
            "portfolio:symbol:AAPL",
            "portfolio:summary:account:3",
        ]
        assert CacheKeys.for_position(None, None) == ["portfolio:summary", "portfolio:sectors"]

    def test_load_evicted_midway_is_not_stored(self):
        cache = PortfolioCache()
        loads = []

        def loader():
            loads.append(1)
            cache.evict([CacheKeys.PORTFOLIO_SUMMARY])  # a commit lands while loading
            return len(loads)

        assert cache.get_or_load(CacheKeys.PORTFOLIO_SUMMARY, loader) == 1
        assert CacheKeys.PORTFOLIO_SUMMARY not in cache
        assert cache.get_or_load(CacheKeys.PORTFOLIO_SUMMARY, lambda: "fresh") == "fresh"
        assert cache.get(CacheKeys.PORTFOLIO_SUMMARY) == "fresh"

    def test_load_spanning_clear_is_not_stored(self):
        cache = PortfolioCache()

        def loader():
            cache.clear()
            return "stale"

        assert cache.get_or_load("k", loader) == "stale"
        assert "k" not in cache
