"""
Trading Record Types
====================
Structured records for the three tables the dashboard reads:
- completed_trades  -> CompletedTrade
- trading_history   -> TradingHistoryRecord
- ai_learning_data  -> AiLearningRecord

plus the derived shapes returned by the aggregation layer
(DailyPnLPoint, TimelineEvent, TradeTimeline).

Rows coming from the store are loosely typed. Values that are missing or
cannot be parsed become None instead of raising.
"""

import math
import re
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

ISO_DATE_PREFIX = re.compile(r'^\d{4}-\d{2}-\d{2}')


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a store timestamp into a timezone-aware UTC datetime"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    # pandas also understands words such as "now" and "today"
    if isinstance(value, str) and not ISO_DATE_PREFIX.match(value.strip()):
        return None
    try:
        ts = pd.to_datetime(value, utc=True)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a UTC datetime the way the store writes it (ISO-8601, Z suffix)"""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def to_float(value) -> Optional[float]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def to_bool(value) -> Optional[bool]:
    if value is None or value == '':
        return None
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 't')
    return bool(value)


def to_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _serialize(value):
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value


class _Record:
    """Shared dict conversion for the flat source records"""

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}


# =============================================================================
# SOURCE RECORDS
# =============================================================================

@dataclass
class CompletedTrade(_Record):
    id: str
    symbol: str
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    quantity: Optional[float] = None
    realized_pnl: Optional[float] = None
    profit_percentage: Optional[float] = None
    win_loss: Optional[str] = None
    entry_date: Optional[datetime] = None
    exit_date: Optional[datetime] = None
    trade_date: Optional[datetime] = None
    rsi_signal: Optional[str] = None
    macd_signal: Optional[str] = None
    sentiment_score: Optional[float] = None
    vix_level: Optional[float] = None
    ai_confidence: Optional[float] = None
    strategy: Optional[str] = None
    notes: Optional[str] = None
    trade_duration_hours: Optional[float] = None

    @property
    def closed_at(self) -> Optional[datetime]:
        """Date the trade is booked on: trade_date, else exit_date"""
        return self.trade_date or self.exit_date

    @property
    def is_win(self) -> bool:
        return self.win_loss == 'win'

    @classmethod
    def from_row(cls, row: Mapping) -> 'CompletedTrade':
        row = dict(row)
        win_loss = to_text(row.get('win_loss'))
        quantity = row.get('sold_quantity')
        if quantity is None:
            quantity = row.get('quantity')
        return cls(
            id=to_text(row.get('id')) or '',
            symbol=to_text(row.get('symbol')) or '',
            entry_price=to_float(row.get('entry_price')),
            exit_price=to_float(row.get('exit_price')),
            quantity=to_float(quantity),
            realized_pnl=to_float(row.get('realized_pnl')),
            profit_percentage=to_float(row.get('profit_percentage')),
            win_loss=win_loss.lower() if win_loss else None,
            entry_date=parse_timestamp(row.get('entry_date')),
            exit_date=parse_timestamp(row.get('exit_date')),
            trade_date=parse_timestamp(row.get('trade_date')),
            rsi_signal=to_text(row.get('rsi_signal')),
            macd_signal=to_text(row.get('macd_signal')),
            sentiment_score=to_float(row.get('sentiment_score')),
            vix_level=to_float(row.get('vix_level')),
            ai_confidence=to_float(row.get('ai_confidence')),
            strategy=to_text(row.get('strategy')),
            notes=to_text(row.get('notes')),
            trade_duration_hours=to_float(row.get('trade_duration_hours')),
        )


@dataclass
class TradingHistoryRecord(_Record):
    id: str
    symbol: str
    trade_date: Optional[datetime] = None
    action: Optional[str] = None
    ai_confidence: Optional[float] = None
    technical_confidence: Optional[float] = None
    position_size: Optional[float] = None
    entry_price: Optional[float] = None
    current_price: Optional[float] = None
    unrealized_pl: Optional[float] = None
    technical_recommendation: Optional[str] = None
    sentiment_score: Optional[float] = None
    combined_score: Optional[float] = None
    execution_status: Optional[str] = None
    strategy: Optional[str] = None
    notes: Optional[str] = None

    @property
    def has_position(self) -> bool:
        return bool(self.position_size and self.position_size > 0)

    @classmethod
    def from_row(cls, row: Mapping) -> 'TradingHistoryRecord':
        row = dict(row)
        action = to_text(row.get('action'))
        return cls(
            id=to_text(row.get('id')) or '',
            symbol=to_text(row.get('symbol')) or '',
            trade_date=parse_timestamp(row.get('trade_date')),
            action=action.lower() if action else None,
            ai_confidence=to_float(row.get('ai_confidence')),
            technical_confidence=to_float(row.get('technical_confidence')),
            position_size=to_float(row.get('position_size')),
            entry_price=to_float(row.get('entry_price')),
            current_price=to_float(row.get('current_price')),
            unrealized_pl=to_float(row.get('unrealized_pl')),
            technical_recommendation=to_text(row.get('technical_recommendation')),
            sentiment_score=to_float(row.get('sentiment_score')),
            combined_score=to_float(row.get('combined_score')),
            execution_status=to_text(row.get('execution_status')),
            strategy=to_text(row.get('strategy')),
            notes=to_text(row.get('notes')),
        )


@dataclass
class AiLearningRecord(_Record):
    id: str
    symbol: str
    trade_date: Optional[datetime] = None
    analysis_date: Optional[datetime] = None
    actual_result: Optional[str] = None
    actual_profit_percentage: Optional[float] = None
    actual_holding_days: Optional[float] = None
    predicted_confidence_initial: Optional[float] = None
    predicted_confidence_final: Optional[float] = None
    confidence_volatility: Optional[float] = None
    rsi_accuracy_score: Optional[float] = None
    macd_accuracy_score: Optional[float] = None
    ma_accuracy_score: Optional[float] = None
    best_indicator: Optional[str] = None
    sentiment_accuracy_score: Optional[float] = None
    sentiment_price_correlation: Optional[float] = None
    market_regime: Optional[str] = None
    volatility_environment: Optional[str] = None
    vix_level: Optional[float] = None
    overconfidence_detected: Optional[bool] = None
    optimal_threshold_suggested: Optional[float] = None
    decision_quality_score: Optional[float] = None
    roi_vs_market: Optional[float] = None
    risk_adjusted_return: Optional[float] = None
    created_at: Optional[datetime] = None

    @property
    def analyzed_at(self) -> Optional[datetime]:
        return self.analysis_date or self.created_at

    @classmethod
    def from_row(cls, row: Mapping) -> 'AiLearningRecord':
        row = dict(row)
        analysis_date = row.get('analysis_date')
        if analysis_date is None:
            analysis_date = row.get('prediction_date')
        return cls(
            id=to_text(row.get('id')) or '',
            symbol=to_text(row.get('symbol')) or '',
            trade_date=parse_timestamp(row.get('trade_date')),
            analysis_date=parse_timestamp(analysis_date),
            actual_result=to_text(row.get('actual_result')),
            actual_profit_percentage=to_float(row.get('actual_profit_percentage')),
            actual_holding_days=to_float(row.get('actual_holding_days')),
            predicted_confidence_initial=to_float(row.get('predicted_confidence_initial')),
            predicted_confidence_final=to_float(row.get('predicted_confidence_final')),
            confidence_volatility=to_float(row.get('confidence_volatility')),
            rsi_accuracy_score=to_float(row.get('rsi_accuracy_score')),
            macd_accuracy_score=to_float(row.get('macd_accuracy_score')),
            ma_accuracy_score=to_float(row.get('ma_accuracy_score')),
            best_indicator=to_text(row.get('best_indicator')),
            sentiment_accuracy_score=to_float(row.get('sentiment_accuracy_score')),
            sentiment_price_correlation=to_float(row.get('sentiment_price_correlation')),
            market_regime=to_text(row.get('market_regime')),
            volatility_environment=to_text(row.get('volatility_environment')),
            vix_level=to_float(row.get('vix_level')),
            overconfidence_detected=to_bool(row.get('overconfidence_detected')),
            optimal_threshold_suggested=to_float(row.get('optimal_threshold_suggested')),
            decision_quality_score=to_float(row.get('decision_quality_score')),
            roi_vs_market=to_float(row.get('roi_vs_market')),
            risk_adjusted_return=to_float(row.get('risk_adjusted_return')),
            created_at=parse_timestamp(row.get('created_at')),
        )


# =============================================================================
# DERIVED RECORDS
# =============================================================================

@dataclass
class DailyPnLPoint:
    date: str
    pnl: float
    cumulative_pnl: float

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date, 'pnl': self.pnl, 'cumulativePnL': self.cumulative_pnl}


@dataclass
class TimelineEvent:
    id: str
    date: Optional[datetime]
    type: str  # buy | check | sell | ai_analysis
    title: str
    description: str
    data: Dict[str, Any]
    decision_factors: List[str] = field(default_factory=list)
    confidence: Optional[float] = None
    result: Optional[Dict[str, Optional[float]]] = None
    decision_summary: Optional[str] = None
    position_status: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        event = {
            'id': self.id,
            'date': format_timestamp(self.date),
            'type': self.type,
            'title': self.title,
            'description': self.description,
            'data': self.data,
            'decision_factors': list(self.decision_factors),
        }
        if self.confidence is not None:
            event['confidence'] = self.confidence
        if self.result is not None:
            event['result'] = self.result
        if self.decision_summary is not None:
            event['decision_summary'] = self.decision_summary
        if self.position_status is not None:
            event['position_status'] = self.position_status
        return event


@dataclass
class TimelineSummary:
    total_days: int
    buy_date: Optional[datetime]
    status: str  # completed | active
    sell_date: Optional[datetime] = None
    final_pnl: Optional[float] = None
    final_percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        summary = {
            'total_days': self.total_days,
            'buy_date': format_timestamp(self.buy_date) or '',
            'status': self.status,
        }
        # Optional keys are left out entirely while the position is open
        if self.sell_date is not None:
            summary['sell_date'] = format_timestamp(self.sell_date)
        if self.final_pnl is not None:
            summary['final_pnl'] = self.final_pnl
        if self.final_percentage is not None:
            summary['final_percentage'] = self.final_percentage
        return summary


@dataclass
class TradeTimeline:
    symbol: str
    events: List[TimelineEvent]
    summary: TimelineSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'events': [event.to_dict() for event in self.events],
            'summary': self.summary.to_dict(),
        }
