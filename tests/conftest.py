"""
Shared fixtures: every test gets its own SQLite file, a fresh schema, an
empty portfolio cache and a market data provider that never goes online.
"""

import pytest

from config import reload_settings
from db_engine import dispose_engine, init_db
from exceptions import ExternalLookupError
from services.accounts import AccountService
from services.cache import get_portfolio_cache
from services.market_data import MarketDataService


class FakeMarketData:
    """Stand-in for yfinance: known profiles and prices, everything else fails."""

    def __init__(self):
        self.profiles = {}
        self.prices = {}
        self.profile_calls = []

    def fetch_stock_profile(self, symbol, market_type=None):
        self.profile_calls.append(symbol)
        if symbol not in self.profiles:
            raise ExternalLookupError(f"No profile data for {symbol}")
        return dict(self.profiles[symbol])

    def get_current_price(self, symbol, market_type):
        return self.prices.get(symbol)


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Point the engine at a temporary database file and create the schema."""
    db_file = tmp_path / "journal.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("SMTP_USERNAME", "")
    monkeypatch.setenv("SMTP_PASSWORD", "")
    reload_settings()
    dispose_engine()
    init_db()
    get_portfolio_cache().clear()
    yield db_file
    dispose_engine()
    get_portfolio_cache().clear()


@pytest.fixture(autouse=True)
def market_data(monkeypatch):
    fake = FakeMarketData()
    monkeypatch.setattr(MarketDataService, "fetch_stock_profile", staticmethod(fake.fetch_stock_profile))
    monkeypatch.setattr(MarketDataService, "get_current_price", staticmethod(fake.get_current_price))
    return fake


@pytest.fixture
def default_account():
    return AccountService.ensure_default_account()
