"""
Trade Store - Integration Tests
SQLite reads/inserts, error wrapping and parallel fetches.
"""

import sqlite3

import pytest

from data_ingestion.seed_sample_data import SAMPLE_AI_DATA, SAMPLE_HISTORY, SAMPLE_TRADES, seed_sample_data
from data_ingestion.trade_store import StoreError, TradeStore, fetch_parallel


class TestSchemaAndSeed:

    def test_seed_counts(self, store):
        counts = seed_sample_data(store)
        assert counts == {'trades': 5, 'history': 6, 'aiData': 3}
        assert store.table_counts() == {
            'completed_trades': len(SAMPLE_TRADES),
            'trading_history': len(SAMPLE_HISTORY),
            'ai_learning_data': len(SAMPLE_AI_DATA),
        }

    def test_create_schema_is_idempotent(self, store):
        store.create_schema()
        assert store.table_counts()['completed_trades'] == 0

    def test_unknown_column_rejected(self, store):
        with pytest.raises(StoreError):
            store.insert_completed_trades([{'symbol': 'AAPL', 'not_a_column': 1}])

    def test_unknown_table_rejected(self, store):
        with pytest.raises(StoreError):
            store.insert_rows('orders', [{'symbol': 'AAPL'}])


class TestReads:

    def test_completed_trades_newest_first(self, seeded_store):
        trades = seeded_store.get_completed_trades()
        assert [trade.symbol for trade in trades] == ['NVDA', 'MSFT', 'GOOGL', 'TSLA', 'AAPL']

    def test_completed_trades_limit_and_symbol(self, seeded_store):
        assert [t.symbol for t in seeded_store.get_completed_trades(limit=2)] == ['NVDA', 'MSFT']
        assert [t.symbol for t in seeded_store.get_completed_trades(symbol='TSLA')] == ['TSLA']

    def test_completed_trades_date_range(self, seeded_store):
        trades = seeded_store.get_completed_trades(start_date='2024-08-03T00:00:00Z',
                                                   end_date='2024-08-06T23:59:59Z')
        assert sorted(t.symbol for t in trades) == ['GOOGL', 'TSLA']

    def test_history_by_symbols(self, seeded_store):
        history = seeded_store.get_trading_history(symbols=['AAPL', 'GOOGL'])
        assert {record.symbol for record in history} == {'AAPL', 'GOOGL'}
        assert len(history) == 4
        assert seeded_store.get_trading_history(symbols=[]) == []

    def test_ai_data_uses_analysis_date(self, seeded_store):
        records = seeded_store.get_ai_learning_data(start_date='2024-08-02T00:00:00Z')
        assert [record.symbol for record in records] == ['GOOGL', 'TSLA']
        assert records[0].analysis_date.isoformat().startswith('2024-08-05T10:30:00')

    def test_ping(self, store, tmp_path):
        assert store.ping() is True
        assert TradeStore(str(tmp_path / 'missing' / 'x.db')).ping() is False


class TestErrors:

    def test_missing_table_wrapped(self, tmp_path):
        bare = TradeStore(str(tmp_path / 'bare.db'))
        with pytest.raises(StoreError) as excinfo:
            bare.get_completed_trades()
        assert isinstance(excinfo.value.__cause__, sqlite3.Error)


class TestFetchParallel:

    def test_results_in_call_order(self):
        assert fetch_parallel(lambda: 1, lambda: 2, lambda: 3) == [1, 2, 3]

    def test_no_calls(self):
        assert fetch_parallel() == []

    def test_any_failure_fails_all(self):
        def broken():
            raise StoreError('boom')

        with pytest.raises(StoreError, match='boom'):
            fetch_parallel(lambda: 1, broken, max_workers=2)
