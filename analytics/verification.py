"""
Data Verification
=================
Diagnostic view used to check that the dashboard numbers line up with the
store: raw counts, open positions per symbol (duplicates flagged) and the
full metric set recomputed over the last N days.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from analytics.records import CompletedTrade, TradingHistoryRecord
from analytics.trade_metrics import calculate_trading_metrics

DUPLICATE_DETAIL_LIMIT = 10


def within_days(value: Optional[datetime], days: int, now: datetime) -> bool:
    if value is None:
        return False
    return now - timedelta(days=days) <= value <= now


def active_positions(history: Sequence[TradingHistoryRecord]) -> List[TradingHistoryRecord]:
    """History rows that still hold shares"""
    return [record for record in history if record.has_position]


def position_snapshot(record: TradingHistoryRecord) -> Dict:
    # Confidence is clamped to the 0-100 scale the dashboard displays
    confidence = min(max(record.ai_confidence or 0.0, 0.0), 100.0)
    return {
        'id': record.id,
        'symbol': record.symbol,
        'entry_price': record.entry_price,
        'current_price': record.current_price,
        'position_size': record.position_size,
        'trade_date': record.to_dict()['trade_date'],
        'ai_confidence': confidence,
        'unrealized_pl': record.unrealized_pl,
    }


def find_duplicate_symbols(positions: Sequence[TradingHistoryRecord]) -> Dict:
    """
    Symbols that appear on more than one open position

    `repeats` lists every occurrence after the first, `symbols` each
    duplicated symbol once, in first-seen order.
    """
    counts = Counter(position.symbol for position in positions)
    seen = set()
    repeats = []
    for position in positions:
        if position.symbol in seen:
            repeats.append(position.symbol)
        seen.add(position.symbol)

    symbols = [symbol for symbol in dict.fromkeys(p.symbol for p in positions) if counts[symbol] > 1]
    details = [position_snapshot(p) for p in positions if counts[p.symbol] > 1]

    return {
        'repeats': repeats,
        'symbols': symbols,
        'unique_count': len(counts),
        'details': details[:DUPLICATE_DETAIL_LIMIT],
    }


def build_verification_report(completed: Sequence[CompletedTrade],
                              history: Sequence[TradingHistoryRecord],
                              days: int = 30,
                              now: Optional[datetime] = None) -> Dict:
    """Counts, duplicate analysis and recomputed metrics for the last `days` days"""
    if now is None:
        now = datetime.now(timezone.utc)

    positions = active_positions(history)
    recent_completed = [trade for trade in completed if within_days(trade.closed_at, days, now)]
    recent_positions = [p for p in positions if within_days(p.trade_date, days, now)]

    duplicates = find_duplicate_symbols(positions)
    metrics = calculate_trading_metrics(recent_completed, recent_positions,
                                        period_label=f"Last {days} days")

    return {
        'status': 'success',
        'totalTrades': len(completed),
        'activeTrades': {
            'total': len(history),
            'withPosition': len(positions),
            'filtered': len(recent_positions),
            'uniqueSymbols': duplicates['unique_count'],
            'duplicateSymbols': duplicates['repeats'],
            'duplicateCount': len(duplicates['repeats'])
        },
        'duplicateAnalysis': {
            'hasDuplicates': bool(duplicates['repeats']),
            'duplicateSymbols': duplicates['symbols'],
            'duplicateDetails': duplicates['details']
        },
        'dashboardMetrics': metrics
    }
