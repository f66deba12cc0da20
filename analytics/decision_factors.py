"""
Decision Factor Translation
===========================
Turns the optional signal fields attached to trades and AI snapshots into
short human-readable strings:
- Technical signals (RSI / MACD) and technical recommendations
- Sentiment score (0-1) and VIX level bands
- Market regime, AI confidence, trade result and holding period

The extract_* functions build the decision-factor list for one timeline
event. Fields that are absent are skipped; an empty list falls back to a
single generic label.
"""

from typing import Dict, List, Optional

from analytics.records import AiLearningRecord, CompletedTrade, TradingHistoryRecord

HISTORY_FALLBACK = 'Composite indicator analysis'
TRADE_FALLBACK = 'Overall analysis'
AI_FALLBACK = 'AI composite analysis'


# =============================================================================
# BUCKETS
# =============================================================================

def sentiment_bucket(score: float) -> str:
    """0-1 sentiment score -> positive (> 0.6) / negative (< 0.4) / neutral"""
    if score > 0.6:
        return 'positive'
    if score < 0.4:
        return 'negative'
    return 'neutral'


def vix_bucket(vix_level: float) -> str:
    """VIX -> low (< 20) / high (> 30) / medium"""
    if vix_level < 20:
        return 'low'
    if vix_level > 30:
        return 'high'
    return 'medium'


def regime_label(market_regime: str) -> str:
    regime = market_regime.lower()
    if regime == 'bullish':
        return 'bull market'
    if regime == 'bearish':
        return 'bear market'
    return 'sideways market'


def _sentiment_factor(score: float) -> str:
    return f"Market sentiment: {sentiment_bucket(score)} ({score * 100:.0f} pts)"


def _vix_factor(vix_level: float) -> str:
    return f"{vix_bucket(vix_level).capitalize()} volatility market (VIX {vix_level:.1f})"


# =============================================================================
# PER-RECORD FACTORS
# =============================================================================

def extract_history_factors(history: TradingHistoryRecord) -> List[str]:
    factors = []

    if history.technical_recommendation:
        factors.append(f"Technical analysis: {history.technical_recommendation}")

    if history.sentiment_score is not None:
        factors.append(_sentiment_factor(history.sentiment_score))

    if history.combined_score is not None:
        factors.append(f"Composite score: {history.combined_score:.1f} pts")

    return factors or [HISTORY_FALLBACK]


def extract_trade_factors(trade: CompletedTrade) -> List[str]:
    factors = []

    if trade.rsi_signal:
        factors.append(f"RSI: {trade.rsi_signal}")

    if trade.macd_signal:
        factors.append(f"MACD: {trade.macd_signal}")

    if trade.sentiment_score is not None:
        factors.append(_sentiment_factor(trade.sentiment_score))

    if trade.vix_level is not None:
        factors.append(_vix_factor(trade.vix_level))

    if trade.ai_confidence is not None:
        factors.append(f"AI confidence: {trade.ai_confidence:.0f} pts")

    return factors or [TRADE_FALLBACK]


def extract_ai_factors(ai: AiLearningRecord) -> List[str]:
    factors = []

    if ai.market_regime:
        factors.append(f"Market environment: {regime_label(ai.market_regime)}")

    if ai.best_indicator:
        factors.append(f"Best indicator: {ai.best_indicator}")

    if ai.rsi_accuracy_score is not None:
        factors.append(f"RSI reliability: {ai.rsi_accuracy_score * 100:.0f}%")

    if ai.macd_accuracy_score is not None:
        factors.append(f"MACD reliability: {ai.macd_accuracy_score * 100:.0f}%")

    if ai.vix_level is not None:
        factors.append(_vix_factor(ai.vix_level))

    return factors or [AI_FALLBACK]


# =============================================================================
# NATURAL-LANGUAGE TRANSLATORS
# =============================================================================

RSI_SIGNALS = {
    'BUY': 'RSI buy signal - rebound from oversold zone',
    'SELL': 'RSI sell signal - overbought zone reached',
    'HOLD': 'RSI hold signal - staying in neutral zone',
    'STRONG_BUY': 'RSI strong buy signal - rising from a very low level',
    'STRONG_SELL': 'RSI strong sell signal - falling from a very high level',
    'NEUTRAL': 'RSI neutral signal'
}

MACD_SIGNALS = {
    'BUY': 'MACD buy signal - golden cross',
    'SELL': 'MACD sell signal - dead cross',
    'HOLD': 'MACD hold signal - trend continuing',
    'BULLISH': 'MACD bullish trend - sustained upward momentum',
    'BEARISH': 'MACD bearish trend - sustained downward momentum',
    'NEUTRAL': 'MACD neutral signal'
}

TECHNICAL_RECOMMENDATIONS = {
    'BUY': 'Technical buy - upward signal confirmed',
    'STRONG_BUY': 'Technical strong buy - strong upward signal',
    'SELL': 'Technical sell - downward signal confirmed',
    'STRONG_SELL': 'Technical strong sell - strong downward signal',
    'HOLD': 'Technical hold - keep current position',
    'WAIT': 'Technical wait - waiting for a clear signal',
    'NEUTRAL': 'Technical neutral signal'
}

MARKET_REGIMES = {
    'bullish': 'Bull market - sustained uptrend',
    'bearish': 'Bear market - sustained downtrend',
    'neutral': 'Flat market - range-bound',
    'sideways': 'Sideways market - moving inside a box',
    'volatile': 'Volatile market - sharp swings',
    'trending_up': 'Uptrend - steady rise',
    'trending_down': 'Downtrend - steady decline'
}


def translate_technical_signals(rsi_signal: Optional[str] = None,
                                macd_signal: Optional[str] = None) -> List[str]:
    signals = []
    if rsi_signal:
        signals.append(RSI_SIGNALS.get(rsi_signal.upper(), f"RSI: {rsi_signal}"))
    if macd_signal:
        signals.append(MACD_SIGNALS.get(macd_signal.upper(), f"MACD: {macd_signal}"))
    return signals


def translate_sentiment_score(score: float) -> str:
    points = f"{score * 100:.0f} pts"
    if score >= 0.8:
        return f"Very positive market mood ({points}) - optimism dominates"
    if score >= 0.6:
        return f"Positive market mood ({points}) - rising expectations"
    if score >= 0.4:
        return f"Neutral market mood ({points}) - wait-and-see"
    if score >= 0.2:
        return f"Negative market mood ({points}) - growing concern"
    return f"Very negative market mood ({points}) - fear spreading"


def translate_vix_level(vix_level: float) -> str:
    vix = f"VIX {vix_level:.1f}"
    if vix_level < 15:
        return f"Very stable market ({vix}) - low volatility"
    if vix_level < 20:
        return f"Stable market ({vix}) - normal volatility"
    if vix_level < 25:
        return f"Slightly nervous market ({vix}) - volatility picking up"
    if vix_level < 30:
        return f"Nervous market ({vix}) - high volatility"
    return f"Very nervous market ({vix}) - fear index at extremes"


def translate_market_regime(market_regime: str) -> str:
    return MARKET_REGIMES.get(market_regime.lower(), f"{market_regime} market environment")


def translate_confidence_score(confidence: float) -> str:
    value = f"{confidence:.0f}%"
    if confidence >= 90:
        return f"Very high confidence ({value}) - conviction prediction"
    if confidence >= 80:
        return f"High confidence ({value}) - reliable prediction"
    if confidence >= 70:
        return f"Moderate confidence ({value}) - reasonable conviction"
    if confidence >= 60:
        return f"Low confidence ({value}) - some uncertainty"
    return f"Very low confidence ({value}) - high uncertainty"


def translate_technical_recommendation(recommendation: str) -> str:
    return TECHNICAL_RECOMMENDATIONS.get(recommendation.upper(), f"Technical analysis: {recommendation}")


def translate_trade_result(profit_percentage: float, realized_pnl: float) -> Dict[str, str]:
    """Classify a closed trade by its return"""
    pct = abs(profit_percentage)
    amount = abs(realized_pnl)
    if profit_percentage >= 20:
        return {'resultType': 'big_win', 'description': f"Big win! {pct:.1f}% gain (+${amount:.2f})"}
    if profit_percentage >= 10:
        return {'resultType': 'win', 'description': f"Successful trade {pct:.1f}% gain (+${amount:.2f})"}
    if profit_percentage > 0:
        return {'resultType': 'small_win', 'description': f"Small gain {pct:.1f}% (+${amount:.2f})"}
    if profit_percentage >= -5:
        return {'resultType': 'small_loss', 'description': f"Small loss {pct:.1f}% (-${amount:.2f})"}
    if profit_percentage >= -15:
        return {'resultType': 'loss', 'description': f"Loss {pct:.1f}% (-${amount:.2f})"}
    return {'resultType': 'big_loss', 'description': f"Big loss {pct:.1f}% (-${amount:.2f})"}


def translate_position_status(unrealized_pnl: float, current_price: float,
                              entry_price: float) -> Dict[str, str]:
    """Describe an open position against its entry price"""
    percentage = (current_price - entry_price) / entry_price * 100 if entry_price else 0.0

    if abs(percentage) < 0.5:
        sign = '+' if percentage >= 0 else ''
        return {'status': 'breakeven', 'description': f"Near breakeven ({sign}{percentage:.1f}%)"}
    if unrealized_pnl > 0:
        return {'status': 'profit',
                'description': f"Unrealized gain +${unrealized_pnl:.2f} (+{percentage:.1f}%)"}
    return {'status': 'loss',
            'description': f"Unrealized loss -${abs(unrealized_pnl):.2f} ({percentage:.1f}%)"}


def translate_holding_period(days: int) -> str:
    if days == 0:
        return 'Intraday'
    if days == 1:
        return 'Held 1 day'
    if days <= 7:
        return f"Short-term hold ({days} days)"
    if days <= 30:
        return f"Medium-term hold ({days} days)"
    if days <= 90:
        return f"Long-term hold ({days} days)"
    return f"Very long-term hold ({days} days)"


ACTION_PREFIXES = {
    'buy': 'Buy decision:',
    'sell': 'Sell decision:',
    'hold': 'Hold decision:',
    'analysis': 'Analysis result:'
}


def generate_decision_summary(action: str, rsi_signal: Optional[str] = None,
                              macd_signal: Optional[str] = None,
                              recommendation: Optional[str] = None,
                              market_regime: Optional[str] = None,
                              sentiment: Optional[float] = None,
                              vix: Optional[float] = None,
                              confidence: Optional[float] = None) -> str:
    """One-line explanation of a decision built from whichever factors are present"""
    parts = translate_technical_signals(rsi_signal, macd_signal)

    if recommendation:
        parts.append(translate_technical_recommendation(recommendation))
    if market_regime:
        parts.append(translate_market_regime(market_regime))
    if sentiment is not None:
        parts.append(translate_sentiment_score(sentiment))
    if vix is not None:
        parts.append(translate_vix_level(vix))
    if confidence is not None:
        parts.append(translate_confidence_score(confidence))

    if not parts:
        return 'Decision based on composite indicator analysis'

    prefix = ACTION_PREFIXES.get(action, '')
    return f"{prefix} {', '.join(parts)}".strip()
