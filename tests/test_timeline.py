"""
Trade Timeline - Unit Tests
Merging history, AI snapshots and the exit record for one symbol.
"""

from datetime import datetime, timezone

import pytest

from analytics.decision_factors import AI_FALLBACK, HISTORY_FALLBACK
from analytics.timeline import build_trade_timeline, describe_history, describe_timeline
from conftest import make_ai, make_history, make_trade

NOW = datetime(2024, 8, 11, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def buy():
    return make_history(id='h1', symbol='AAPL', trade_date='2024-08-01T10:00:00Z', action='buy',
                        position_size=100, entry_price=150.0, ai_confidence=85,
                        technical_recommendation='BUY', sentiment_score=0.72)


@pytest.fixture
def sell():
    return make_trade(id='t1', symbol='AAPL', entry_price=150.0, exit_price=155.5, quantity=100,
                      realized_pnl=550.0, profit_percentage=3.67, win_loss='win',
                      entry_date='2024-08-01T10:00:00Z', exit_date='2024-08-02T15:30:00Z',
                      rsi_signal='BUY', vix_level=18.5)


class TestTimelineStatus:

    def test_history_and_completed_trade(self, buy, sell):
        timeline = build_trade_timeline('AAPL', [sell], [buy], [], now=NOW)
        assert [event.type for event in timeline.events] == ['buy', 'sell']
        assert timeline.summary.status == 'completed'
        assert timeline.summary.final_pnl == 550.0
        assert timeline.summary.final_percentage == 3.67
        # 29.5 hours rounds up to 2 days
        assert timeline.summary.total_days == 2

    def test_history_only_is_active(self, buy):
        timeline = build_trade_timeline('AAPL', [], [buy], [], now=NOW)
        assert timeline.summary.status == 'active'
        assert timeline.summary.sell_date is None
        assert timeline.summary.total_days == 10

        summary = timeline.to_dict()['summary']
        assert 'sell_date' not in summary
        assert 'final_pnl' not in summary

    def test_no_records_returns_none(self):
        assert build_trade_timeline('AAPL', [], [], [], now=NOW) is None

    def test_other_symbols_ignored(self, buy, sell):
        assert build_trade_timeline('MSFT', [sell], [buy], [make_ai(symbol='MSFT')], now=NOW) is None

    def test_completed_trade_without_history(self, sell):
        timeline = build_trade_timeline('AAPL', [sell], [], [], now=NOW)
        assert [event.type for event in timeline.events] == ['sell']
        assert timeline.summary.total_days == 0

    def test_undated_completed_trade_keeps_sell_event(self):
        """A completed trade with no dates at all still yields a completed timeline"""
        trade = make_trade(id='t1', realized_pnl=10.0, win_loss='win')
        timeline = build_trade_timeline('AAPL', [trade], [], [], now=NOW)

        assert timeline is not None
        assert [event.type for event in timeline.events] == ['sell']
        assert timeline.summary.status == 'completed'
        assert timeline.summary.final_pnl == 10.0
        assert timeline.summary.total_days == 0

        payload = describe_timeline(timeline)
        assert payload['events'][0]['date'] is None
        assert payload['summary']['buy_date'] == ''
        assert 'sell_date' not in payload['summary']
        assert payload['summary']['holding_period'] == 'Intraday'

    def test_undated_sell_event_goes_last(self, buy):
        """Dated history stays first; the undated exit is appended after it"""
        trade = make_trade(id='t1', realized_pnl=-5.0, profit_percentage=-1.0, win_loss='loss')
        check = make_history(id='h2', symbol='AAPL', trade_date='2024-08-03T10:00:00Z')
        timeline = build_trade_timeline('AAPL', [trade], [check, buy], [], now=NOW)

        assert [event.type for event in timeline.events] == ['buy', 'check', 'sell']
        assert timeline.summary.status == 'completed'
        assert timeline.summary.sell_date is None
        # measured to the last dated event, not to the clock
        assert timeline.summary.total_days == 2

    def test_latest_completed_trade_is_used(self, buy, sell):
        older = make_trade(id='t0', symbol='AAPL', realized_pnl=-10.0, profit_percentage=-1.0,
                           exit_date='2024-07-20T10:00:00Z', trade_date='2024-07-20T10:00:00Z')
        timeline = build_trade_timeline('AAPL', [older, sell], [buy], [], now=NOW)
        sells = [event for event in timeline.events if event.type == 'sell']
        assert len(sells) == 1
        assert sells[0].id == 'completed-t1'


class TestTimelineEvents:

    def test_events_sorted_across_sources(self, buy, sell):
        check = make_history(id='h2', symbol='AAPL', trade_date='2024-08-02T09:00:00Z',
                             current_price=153.0, unrealized_pl=300.0)
        ai = make_ai(id='a1', symbol='AAPL', analysis_date='2024-08-01T09:00:00Z',
                     predicted_confidence_initial=0.8, market_regime='bullish')
        timeline = build_trade_timeline('AAPL', [sell], [check, buy], [ai], now=NOW)

        assert [event.type for event in timeline.events] == ['ai_analysis', 'buy', 'check', 'sell']
        dates = [event.date for event in timeline.events]
        assert dates == sorted(dates)
        assert timeline.events[0].confidence == pytest.approx(80.0)

    def test_descriptions(self, buy, sell):
        timeline = build_trade_timeline('AAPL', [sell], [buy], [], now=NOW)
        buy_event, sell_event = timeline.events
        assert buy_event.description == 'Bought 100 shares of AAPL at $150'
        assert sell_event.description == 'Sold 100 shares of AAPL at $155.5 - +$550.00 gain (3.7%)'
        assert sell_event.result == {'pnl': 550.0, 'percentage': 3.67}

    def test_check_description(self):
        check = make_history(current_price=148.25, unrealized_pl=-175.0)
        assert describe_history(check, is_first_entry=False) == \
            'Position check - current price $148.25, -$175.00 loss'

    def test_decision_factors(self, buy, sell):
        timeline = build_trade_timeline('AAPL', [sell], [buy], [], now=NOW)
        buy_event, sell_event = timeline.events
        assert buy_event.decision_factors == [
            'Technical analysis: BUY',
            'Market sentiment: positive (72 pts)',
        ]
        assert sell_event.decision_factors == [
            'RSI: BUY',
            'Low volatility market (VIX 18.5)',
        ]

    def test_fallback_factors(self):
        history = make_history(trade_date='2024-08-01T10:00:00Z')
        ai = make_ai(analysis_date='2024-08-02T10:00:00Z')
        timeline = build_trade_timeline('AAPL', [], [history], [ai], now=NOW)
        assert timeline.events[0].decision_factors == [HISTORY_FALLBACK]
        assert timeline.events[1].decision_factors == [AI_FALLBACK]

    def test_undated_ai_records_skipped(self, buy):
        timeline = build_trade_timeline('AAPL', [], [buy], [make_ai(id='a9')], now=NOW)
        assert [event.type for event in timeline.events] == ['buy']

    def test_decision_summaries(self, buy, sell):
        """Every event carries a one-line decision summary built from its own signals"""
        ai = make_ai(id='a1', symbol='AAPL', analysis_date='2024-08-01T09:00:00Z',
                     predicted_confidence_initial=0.75, market_regime='bullish')
        timeline = build_trade_timeline('AAPL', [sell], [buy], [ai], now=NOW)
        ai_event, buy_event, sell_event = timeline.events

        assert ai_event.decision_summary == (
            'Analysis result: Bull market - sustained uptrend, '
            'Moderate confidence (75%) - reasonable conviction'
        )
        assert buy_event.decision_summary == (
            'Buy decision: Technical buy - upward signal confirmed, '
            'Positive market mood (72 pts) - rising expectations, '
            'High confidence (85%) - reliable prediction'
        )
        assert sell_event.decision_summary == (
            'Sell decision: RSI buy signal - rebound from oversold zone, '
            'Stable market (VIX 18.5) - normal volatility'
        )

    def test_fractional_history_confidence_is_scaled(self):
        history = make_history(trade_date='2024-08-01T10:00:00Z', ai_confidence=0.5)
        timeline = build_trade_timeline('AAPL', [], [history], [], now=NOW)
        assert timeline.events[0].decision_summary == \
            'Buy decision: Very low confidence (50%) - high uncertainty'

    def test_check_position_status(self, buy):
        """Checks are measured against the buy row's entry price"""
        gain = make_history(id='h2', symbol='AAPL', trade_date='2024-08-02T09:00:00Z',
                            current_price=153.0, unrealized_pl=300.0)
        loss = make_history(id='h3', symbol='AAPL', trade_date='2024-08-03T09:00:00Z',
                            current_price=147.0, unrealized_pl=-300.0)
        unpriced = make_history(id='h4', symbol='AAPL', trade_date='2024-08-04T09:00:00Z')
        timeline = build_trade_timeline('AAPL', [], [buy, gain, loss, unpriced], [], now=NOW)
        buy_event, gain_event, loss_event, unpriced_event = timeline.events

        assert buy_event.position_status is None
        assert gain_event.position_status == {
            'status': 'profit', 'description': 'Unrealized gain +$300.00 (+2.0%)'
        }
        assert loss_event.position_status == {
            'status': 'loss', 'description': 'Unrealized loss -$300.00 (-2.0%)'
        }
        assert unpriced_event.position_status is None

        events = describe_timeline(timeline)['events']
        assert 'position_status' not in events[0]
        assert events[1]['position_status']['status'] == 'profit'
        assert events[1]['decision_summary'] == 'Decision based on composite indicator analysis'


class TestTimelinePayload:

    def test_describe_timeline(self, buy, sell):
        payload = describe_timeline(build_trade_timeline('AAPL', [sell], [buy], [], now=NOW))
        assert payload['symbol'] == 'AAPL'
        assert payload['summary']['buy_date'] == '2024-08-01T10:00:00Z'
        assert payload['summary']['sell_date'] == '2024-08-02T15:30:00Z'
        assert payload['summary']['holding_period'] == 'Short-term hold (2 days)'
        assert payload['summary']['result']['resultType'] == 'small_win'
        assert payload['events'][0]['id'] == 'history-h1'
        assert payload['events'][0]['confidence'] == 85
        assert 'result' not in payload['events'][0]
