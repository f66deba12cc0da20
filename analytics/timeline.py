"""
Trade Timeline Reconstruction
=============================
Rebuilds the life of one position from three record streams:
1. trading_history rows  -> first one is the "buy", later ones are "check"s
2. ai_learning_data rows -> "ai_analysis" snapshots
3. the completed trade   -> terminal "sell"

Events are ordered by timestamp regardless of source, each with a
description and the decision factors found on its record.
"""

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from analytics.decision_factors import (
    extract_ai_factors,
    extract_history_factors,
    extract_trade_factors,
    generate_decision_summary,
    translate_holding_period,
    translate_position_status,
    translate_trade_result,
)
from analytics.records import (
    AiLearningRecord,
    CompletedTrade,
    TimelineEvent,
    TimelineSummary,
    TradeTimeline,
    TradingHistoryRecord,
)

SECONDS_PER_DAY = 24 * 60 * 60
DATE_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def _number(value: Optional[float]) -> str:
    """Prices and quantities as the store holds them (150.0 -> 150, 155.5 -> 155.5)"""
    if value is None:
        return 'N/A'
    return str(int(value)) if float(value).is_integer() else str(value)


def _pnl_text(pnl: float) -> str:
    if pnl >= 0:
        return f"+${pnl:.2f} gain"
    return f"-${abs(pnl):.2f} loss"


def describe_history(history: TradingHistoryRecord, is_first_entry: bool) -> str:
    if is_first_entry:
        return (f"Bought {_number(history.position_size)} shares of {history.symbol} "
                f"at ${_number(history.entry_price)}")
    return (f"Position check - current price ${_number(history.current_price)}, "
            f"{_pnl_text(history.unrealized_pl or 0.0)}")


def describe_completed_trade(trade: CompletedTrade) -> str:
    return (f"Sold {_number(trade.quantity)} shares of {trade.symbol} at ${_number(trade.exit_price)} - "
            f"{_pnl_text(trade.realized_pnl or 0.0)} ({trade.profit_percentage or 0.0:.1f}%)")


def describe_ai_analysis(ai: AiLearningRecord) -> str:
    confidence = ''
    if ai.predicted_confidence_initial:
        confidence = f" confidence {ai.predicted_confidence_initial * 100:.0f}%"
    return f"AI analysis update - {ai.market_regime or 'market analysis'}{confidence}"


def _latest_completed_trade(symbol: str, trades: Sequence[CompletedTrade]) -> Optional[CompletedTrade]:
    matches = [trade for trade in trades if trade.symbol == symbol]
    if not matches:
        return None
    return max(matches, key=lambda trade: trade.closed_at or DATE_FLOOR)


def _percent(confidence: Optional[float]) -> Optional[float]:
    """Confidence on a 0-100 scale (rows hold either 0-1 fractions or points)"""
    if confidence is None:
        return None
    return confidence * 100 if confidence <= 1 else confidence


def position_status_for(history: TradingHistoryRecord,
                        entry_price: Optional[float]) -> Optional[Dict[str, str]]:
    if history.current_price is None or not entry_price:
        return None
    return translate_position_status(history.unrealized_pl or 0.0, history.current_price, entry_price)


def build_history_events(history: Sequence[TradingHistoryRecord]) -> List[TimelineEvent]:
    events = []
    entry_price = None
    for index, record in enumerate(history):
        is_first_entry = index == 0
        if is_first_entry:
            entry_price = record.entry_price
        events.append(TimelineEvent(
            id=f"history-{record.id}",
            date=record.trade_date,
            type='buy' if is_first_entry else 'check',
            title='Buy decision' if is_first_entry else 'Position check',
            description=describe_history(record, is_first_entry),
            data=record.to_dict(),
            decision_factors=extract_history_factors(record),
            confidence=record.ai_confidence,
            decision_summary=generate_decision_summary(
                'buy' if is_first_entry else 'hold',
                recommendation=record.technical_recommendation,
                sentiment=record.sentiment_score,
                confidence=_percent(record.ai_confidence),
            ),
            position_status=None if is_first_entry else position_status_for(
                record, record.entry_price or entry_price
            ),
        ))
    return events


def build_ai_events(ai_records: Sequence[AiLearningRecord]) -> List[TimelineEvent]:
    events = []
    for record in ai_records:
        # Snapshots without any timestamp cannot be placed on the timeline
        if record.analyzed_at is None:
            continue
        confidence = None
        if record.predicted_confidence_initial is not None:
            confidence = record.predicted_confidence_initial * 100
        events.append(TimelineEvent(
            id=f"ai-{record.id}",
            date=record.analyzed_at,
            type='ai_analysis',
            title='AI analysis update',
            description=describe_ai_analysis(record),
            data=record.to_dict(),
            decision_factors=extract_ai_factors(record),
            confidence=confidence,
            decision_summary=generate_decision_summary(
                'analysis',
                market_regime=record.market_regime,
                vix=record.vix_level,
                confidence=confidence,
            ),
        ))
    return events


def build_sell_event(trade: CompletedTrade, sell_date: Optional[datetime]) -> TimelineEvent:
    return TimelineEvent(
        id=f"completed-{trade.id}",
        date=sell_date,
        type='sell',
        title='Sell completed',
        description=describe_completed_trade(trade),
        data=trade.to_dict(),
        decision_factors=extract_trade_factors(trade),
        confidence=trade.ai_confidence,
        result={'pnl': trade.realized_pnl, 'percentage': trade.profit_percentage},
        decision_summary=generate_decision_summary(
            'sell',
            rsi_signal=trade.rsi_signal,
            macd_signal=trade.macd_signal,
            sentiment=trade.sentiment_score,
            vix=trade.vix_level,
            confidence=_percent(trade.ai_confidence),
        ),
    )


def build_trade_timeline(symbol: str,
                         completed_trades: Sequence[CompletedTrade],
                         history: Sequence[TradingHistoryRecord],
                         ai_records: Sequence[AiLearningRecord],
                         now: Optional[datetime] = None) -> Optional[TradeTimeline]:
    """
    Merge the three streams for one symbol into an ordered timeline

    Returns None when the symbol has neither a completed trade nor any
    trading history. A completed trade without any date still gets its
    sell event, placed after every dated event.
    """
    completed_trade = _latest_completed_trade(symbol, completed_trades)
    symbol_history = [record for record in history if record.symbol == symbol]

    if completed_trade is None and not symbol_history:
        return None

    dated_history = sorted(
        (record for record in symbol_history if record.trade_date is not None),
        key=lambda record: record.trade_date
    )
    symbol_ai = [record for record in ai_records if record.symbol == symbol]

    events = build_history_events(dated_history)
    events.extend(build_ai_events(symbol_ai))

    sell_date = None
    if completed_trade is not None:
        sell_date = completed_trade.exit_date or completed_trade.trade_date
        events.append(build_sell_event(completed_trade, sell_date))

    events.sort(key=lambda event: (event.date is None, event.date or DATE_FLOOR))

    if now is None:
        now = datetime.now(timezone.utc)
    dated = [event.date for event in events if event.date is not None]
    buy_date = dated[0] if dated else None

    if buy_date is None:
        total_days = 0
    else:
        if completed_trade is None:
            end_date = now
        else:
            end_date = sell_date or dated[-1]
        total_days = math.ceil((end_date - buy_date).total_seconds() / SECONDS_PER_DAY)

    summary = TimelineSummary(
        total_days=total_days,
        buy_date=buy_date,
        status='completed' if completed_trade is not None else 'active',
        sell_date=sell_date,
        final_pnl=completed_trade.realized_pnl if completed_trade else None,
        final_percentage=completed_trade.profit_percentage if completed_trade else None,
    )
    return TradeTimeline(symbol=symbol, events=events, summary=summary)


def describe_timeline(timeline: TradeTimeline) -> dict:
    """Response shape for the timeline view, with holding period and result labels"""
    payload = timeline.to_dict()
    summary = timeline.summary
    payload['summary']['holding_period'] = translate_holding_period(max(summary.total_days, 0))
    if summary.final_percentage is not None:
        payload['summary']['result'] = translate_trade_result(
            summary.final_percentage, summary.final_pnl or 0.0
        )
    return payload
