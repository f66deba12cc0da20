"""
Trade Metrics Calculator
========================
Aggregates completed trades into the numbers shown on the dashboard:
- Headline metrics (win rate, total P&L, average return, best/worst trade)
- Daily P&L buckets with a running cumulative sum
- Per-symbol performance
- Verification metrics (investment/recovery, profit factor, Sharpe, max drawdown)

All functions are pure: they only read the trades passed in.
"""

import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from analytics.records import CompletedTrade, DailyPnLPoint, TradingHistoryRecord, format_timestamp


def round_half_up(value, places: int = 2) -> float:
    """Round half away from zero at the given decimal place (2.675 -> 2.68, -2.675 -> -2.68)"""
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def empty_trade_metrics() -> Dict[str, float]:
    return {
        'totalTrades': 0,
        'winRate': 0,
        'totalPnL': 0,
        'averageReturn': 0,
        'bestTrade': 0,
        'worstTrade': 0,
        'totalWins': 0,
        'totalLosses': 0
    }


def calculate_trade_metrics(trades: Sequence[CompletedTrade]) -> Dict[str, float]:
    """
    Headline metrics for a set of completed trades

    winRate = wins / total * 100
    totalPnL = sum of realized P&L
    averageReturn = mean of profit percentage
    bestTrade / worstTrade = max / min realized P&L
    """
    if not trades:
        return empty_trade_metrics()

    total_trades = len(trades)
    total_wins = sum(1 for trade in trades if trade.is_win)
    total_losses = total_trades - total_wins

    pnl_values = [trade.realized_pnl or 0.0 for trade in trades]
    returns = [trade.profit_percentage or 0.0 for trade in trades]

    # fsum is exactly rounded, so the total does not depend on row order
    total_pnl = math.fsum(pnl_values)
    average_return = math.fsum(returns) / total_trades

    return {
        'totalTrades': total_trades,
        'winRate': round_half_up(total_wins / total_trades * 100),
        'totalPnL': round_half_up(total_pnl),
        'averageReturn': round_half_up(average_return),
        'bestTrade': round_half_up(max(pnl_values)),
        'worstTrade': round_half_up(min(pnl_values)),
        'totalWins': total_wins,
        'totalLosses': total_losses
    }


# =============================================================================
# DAILY P&L
# =============================================================================

def _utc_date(value: datetime) -> date:
    return value.astimezone(timezone.utc).date()


def _accumulate(daily_totals) -> List[DailyPnLPoint]:
    """Turn (date, pnl) pairs into points with a running cumulative sum"""
    points = []
    cumulative = 0.0
    for day, pnl in daily_totals:
        daily = round_half_up(pnl)
        # Summing the rounded daily values keeps cumulative[i] == cumulative[i-1] + daily[i]
        cumulative = round_half_up(cumulative + daily)
        points.append(DailyPnLPoint(date=day.isoformat(), pnl=daily, cumulative_pnl=cumulative))
    return points


def calculate_daily_pnl(trades: Iterable[CompletedTrade], days: int = 30,
                        today: Optional[date] = None) -> List[DailyPnLPoint]:
    """
    One bucket per calendar day in [today - days, today], zero-filled

    Each trade's realized P&L lands in the bucket of its closing date
    (UTC). Trades closed outside the window are ignored.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()
    elif isinstance(today, datetime):
        today = _utc_date(today)

    start = today - timedelta(days=days)
    buckets = {day: 0.0 for day in pd.date_range(start, today, freq='D').date}

    for trade in trades:
        closed_at = trade.closed_at
        if closed_at is None:
            continue
        day = _utc_date(closed_at)
        if day in buckets:
            buckets[day] += trade.realized_pnl or 0.0

    return _accumulate(sorted(buckets.items()))


def calculate_daily_pnl_series(trades: Iterable[CompletedTrade]) -> List[DailyPnLPoint]:
    """Daily P&L for every date that has at least one trade, no window applied"""
    buckets: Dict[date, float] = {}
    for trade in trades:
        closed_at = trade.closed_at
        if closed_at is None:
            continue
        day = _utc_date(closed_at)
        buckets[day] = buckets.get(day, 0.0) + (trade.realized_pnl or 0.0)

    return _accumulate(sorted(buckets.items()))


# =============================================================================
# SYMBOL PERFORMANCE
# =============================================================================

def calculate_symbol_performance(trades: Sequence[CompletedTrade]) -> List[Dict]:
    """Per-symbol totals, sorted by total P&L (best first)"""
    if not trades:
        return []

    df = pd.DataFrame([
        {
            'symbol': trade.symbol,
            'pnl': trade.realized_pnl or 0.0,
            'return_pct': trade.profit_percentage or 0.0,
            'win': 1 if trade.is_win else 0
        }
        for trade in trades
    ])

    grouped = df.groupby('symbol').agg(
        total_trades=('pnl', 'size'),
        total_pnl=('pnl', 'sum'),
        wins=('win', 'sum'),
        average_return=('return_pct', 'mean'),
        best_trade=('return_pct', 'max'),
        worst_trade=('return_pct', 'min')
    ).reset_index()
    grouped = grouped.sort_values(['total_pnl', 'symbol'], ascending=[False, True])

    return [
        {
            'symbol': row['symbol'],
            'totalTrades': int(row['total_trades']),
            'totalPnL': round_half_up(row['total_pnl']),
            'winRate': round_half_up(row['wins'] / row['total_trades'] * 100),
            'averageReturn': round_half_up(row['average_return']),
            'bestTrade': round_half_up(row['best_trade']),
            'worstTrade': round_half_up(row['worst_trade'])
        }
        for _, row in grouped.iterrows()
    ]


# =============================================================================
# VERIFICATION METRICS
# =============================================================================

def calculate_trade_investment(trade: CompletedTrade) -> float:
    """
    Capital committed to a trade

    When the realized P&L and both prices are known the quantity is
    recovered from pnl / (exit - entry); otherwise entry x quantity.
    """
    entry_price = trade.entry_price or 0.0
    if trade.exit_price is not None and trade.realized_pnl is not None:
        price_diff = trade.exit_price - entry_price
        if abs(price_diff) > 0.001:
            return entry_price * abs(trade.realized_pnl / price_diff)
    return entry_price * (trade.quantity or 0.0)


def calculate_profit_factor(trades: Sequence[CompletedTrade]) -> Optional[float]:
    """
    Gross profit / gross loss

    Returns None when there are winning trades but no losses (unbounded).
    """
    gross_profit = math.fsum(trade.realized_pnl or 0.0 for trade in trades if trade.win_loss == 'win')
    gross_loss = abs(math.fsum(trade.realized_pnl or 0.0 for trade in trades if trade.win_loss == 'loss'))

    if gross_loss > 0:
        return gross_profit / gross_loss
    return None if gross_profit > 0 else 0.0


def calculate_sharpe_ratio(returns: Sequence[float]) -> float:
    """
    Simplified per-trade Sharpe Ratio
    Sharpe = mean(returns) / std(returns), population standard deviation
    """
    if len(returns) < 2:
        return 0.0

    values = np.asarray(returns, dtype=float)
    std_return = values.std()
    if std_return == 0:
        return 0.0
    return float(values.mean() / std_return)


def calculate_max_drawdown(trades: Sequence[CompletedTrade]) -> float:
    """
    Largest decline of cumulative realized P&L from its running peak, in percent

    Drawdown is only measured once the curve has made a positive peak.
    """
    dated = [trade for trade in trades if trade.closed_at is not None]
    if not dated:
        return 0.0

    dated.sort(key=lambda trade: trade.closed_at)
    cumulative_pnl = pd.Series([trade.realized_pnl or 0.0 for trade in dated]).cumsum()
    running_max = cumulative_pnl.cummax().clip(lower=0)

    positive_peak = running_max > 0
    if not positive_peak.any():
        return 0.0

    drawdown = (running_max[positive_peak] - cumulative_pnl[positive_peak]) / running_max[positive_peak] * 100
    return float(max(drawdown.max(), 0.0))


def calculate_trading_metrics(completed: Sequence[CompletedTrade],
                              active: Sequence[TradingHistoryRecord],
                              period_label: Optional[str] = None) -> Dict:
    """Full metric set used by the data verification view"""
    total_investment = math.fsum(calculate_trade_investment(trade) for trade in completed)
    total_recovery = math.fsum((trade.exit_price or 0.0) * (trade.quantity or 0.0) for trade in completed)
    net_pnl = math.fsum(trade.realized_pnl or 0.0 for trade in completed)

    total_trades = len(completed)
    total_wins = sum(1 for trade in completed if trade.win_loss == 'win')
    total_losses = sum(1 for trade in completed if trade.win_loss == 'loss')
    win_rate = total_wins / total_trades * 100 if total_trades > 0 else 0

    returns = [trade.profit_percentage or 0.0 for trade in completed]
    average_return = math.fsum(returns) / len(returns) if returns else 0
    best_trade = max(returns) if returns else 0
    worst_trade = min(returns) if returns else 0

    profit_factor = calculate_profit_factor(completed)

    return {
        'totalInvestment': round_half_up(total_investment),
        'totalRecovery': round_half_up(total_recovery),
        'netPnL': round_half_up(net_pnl),
        'totalTrades': total_trades,
        'winRate': round_half_up(win_rate),
        'totalWins': total_wins,
        'totalLosses': total_losses,
        'activePositions': len(active),
        'averageReturn': round_half_up(average_return),
        'bestTrade': round_half_up(best_trade),
        'worstTrade': round_half_up(worst_trade),
        'profitFactor': round_half_up(profit_factor) if profit_factor is not None else None,
        'sharpeRatio': round_half_up(calculate_sharpe_ratio(returns)),
        'maxDrawdown': round_half_up(calculate_max_drawdown(completed)),
        'filteredPeriod': period_label or 'All'
    }


# =============================================================================
# RECENT TRADES
# =============================================================================

def confidence_at_close(trade: CompletedTrade,
                        history: Sequence[TradingHistoryRecord]) -> Optional[float]:
    """
    AI confidence to show next to a completed trade

    The trade's own ai_confidence wins. Otherwise the latest history row
    for the same symbol dated at or before the trade's closing date is used.
    """
    if trade.ai_confidence is not None:
        return trade.ai_confidence

    closed_at = trade.closed_at
    candidates = [
        record for record in history
        if record.symbol == trade.symbol
        and record.ai_confidence is not None
        and record.trade_date is not None
        and (closed_at is None or record.trade_date <= closed_at)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda record: record.trade_date).ai_confidence


def summarize_recent_trades(trades: Sequence[CompletedTrade],
                            history: Sequence[TradingHistoryRecord]) -> List[Dict]:
    """Rows for the recent trades table, in the order the trades were given"""
    return [
        {
            'id': trade.id,
            'symbol': trade.symbol,
            'date': format_timestamp(trade.closed_at),
            'pnl': trade.realized_pnl or 0,
            'winLoss': trade.win_loss,
            'aiConfidence': confidence_at_close(trade, history)
        }
        for trade in trades
    ]
