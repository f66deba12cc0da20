"""
Record Types - Unit Tests
Loose store rows become typed records; bad values become None.
"""

from datetime import datetime, timezone

from analytics.records import (
    AiLearningRecord,
    CompletedTrade,
    format_timestamp,
    parse_timestamp,
    to_bool,
    to_float,
)


class TestParsing:

    def test_timestamps_are_utc(self):
        parsed = parse_timestamp('2024-08-01T10:00:00+02:00')
        assert parsed == datetime(2024, 8, 1, 8, 0, tzinfo=timezone.utc)
        assert format_timestamp(parsed) == '2024-08-01T08:00:00Z'

    def test_naive_timestamp_assumed_utc(self):
        assert parse_timestamp('2024-08-01 10:00:00') == datetime(2024, 8, 1, 10, 0, tzinfo=timezone.utc)

    def test_bad_timestamp_is_none(self):
        assert parse_timestamp('not a date') is None
        assert parse_timestamp('') is None
        assert parse_timestamp(None) is None

    def test_relative_words_are_not_dates(self):
        """Words pandas resolves against the clock must not turn into the current time"""
        assert parse_timestamp('now') is None
        assert parse_timestamp('today') is None
        assert parse_timestamp(' Tomorrow ') is None

    def test_to_float(self):
        assert to_float('1.5') == 1.5
        assert to_float('abc') is None
        assert to_float(float('nan')) is None
        assert to_float(True) is None

    def test_to_bool(self):
        assert to_bool(1) is True
        assert to_bool('false') is False
        assert to_bool(None) is None


class TestRecords:

    def test_completed_trade_from_row(self):
        trade = CompletedTrade.from_row({
            'id': 7, 'symbol': 'NVDA', 'sold_quantity': '50', 'realized_pnl': '-750',
            'win_loss': 'LOSS', 'exit_date': '2024-08-10T11:30:00Z', 'vix_level': 'bad'
        })
        assert trade.id == '7'
        assert trade.quantity == 50.0
        assert trade.realized_pnl == -750.0
        assert trade.win_loss == 'loss'
        assert trade.is_win is False
        assert trade.vix_level is None
        assert trade.closed_at == datetime(2024, 8, 10, 11, 30, tzinfo=timezone.utc)

    def test_closed_at_prefers_trade_date(self):
        trade = CompletedTrade.from_row({
            'id': 1, 'symbol': 'AAPL',
            'exit_date': '2024-08-02T15:30:00Z', 'trade_date': '2024-08-03T00:00:00Z'
        })
        assert trade.closed_at.day == 3

    def test_ai_record_prediction_date_alias(self):
        record = AiLearningRecord.from_row({
            'id': 1, 'symbol': 'AAPL', 'prediction_date': '2024-08-01T09:00:00Z',
            'overconfidence_detected': 0
        })
        assert record.analysis_date == datetime(2024, 8, 1, 9, 0, tzinfo=timezone.utc)
        assert record.overconfidence_detected is False

    def test_analyzed_at_falls_back_to_created_at(self):
        record = AiLearningRecord.from_row({'id': 1, 'symbol': 'AAPL', 'created_at': '2024-08-04T00:00:00Z'})
        assert record.analyzed_at.day == 4

    def test_to_dict_renders_timestamps(self):
        trade = CompletedTrade.from_row({'id': 1, 'symbol': 'AAPL', 'trade_date': '2024-08-03T00:00:00Z'})
        data = trade.to_dict()
        assert data['trade_date'] == '2024-08-03T00:00:00Z'
        assert data['exit_date'] is None
        assert data['symbol'] == 'AAPL'
