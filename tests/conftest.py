"""
Shared fixtures for the trading dashboard tests
"""

import pytest

from analytics.records import AiLearningRecord, CompletedTrade, TradingHistoryRecord
from app import create_app
from data_ingestion.seed_sample_data import seed_sample_data
from data_ingestion.trade_store import TradeStore


def make_trade(**fields):
    row = {'id': fields.pop('id', '1'), 'symbol': fields.pop('symbol', 'AAPL')}
    row.update(fields)
    return CompletedTrade.from_row(row)


def make_history(**fields):
    row = {'id': fields.pop('id', '1'), 'symbol': fields.pop('symbol', 'AAPL')}
    row.update(fields)
    return TradingHistoryRecord.from_row(row)


def make_ai(**fields):
    row = {'id': fields.pop('id', '1'), 'symbol': fields.pop('symbol', 'AAPL')}
    row.update(fields)
    return AiLearningRecord.from_row(row)


# =============================================================================
# Store / App Fixtures
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """Empty store backed by a temporary SQLite file."""
    trade_store = TradeStore(str(tmp_path / 'dashboard.db'))
    trade_store.create_schema()
    return trade_store


@pytest.fixture
def seeded_store(store):
    """Store loaded with the fixed sample data set."""
    seed_sample_data(store)
    return store


@pytest.fixture
def app(store):
    flask_app = create_app(store=store)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded_client(seeded_store):
    flask_app = create_app(store=seeded_store)
    flask_app.config.update(TESTING=True)
    return flask_app.test_client()
