"""
AI Prediction Accuracy Analytics
================================
Summarises the pre-computed AI learning records:
- Average indicator accuracy (RSI / MACD / MA), reported in percentage points
- Overall directional accuracy of the initial confidence
- Market regime and volatility environment breakdowns
- Overconfidence rate and decision quality

Scores are stored on a 0-1 scale. Records that do not define a score are
left out of that score's average rather than counted as zero.
"""

from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from analytics.records import AiLearningRecord
from analytics.trade_metrics import round_half_up

INDICATOR_FIELDS = {
    'rsi': 'rsi_accuracy_score',
    'macd': 'macd_accuracy_score',
    'ma': 'ma_accuracy_score'
}


def _mean(values: Iterable[Optional[float]]) -> float:
    """Unweighted mean that skips missing values; 0 when nothing is defined"""
    series = pd.Series(list(values), dtype=float)
    if series.count() == 0:
        return 0.0
    return float(series.mean(skipna=True))


def average_accuracy(records: Sequence[AiLearningRecord], field: str) -> float:
    """
    Mean of a 0-1 accuracy score across the records that define it, x100
    e.g. scores 0.8, 0.6 and one missing -> 70.0
    """
    return round_half_up(_mean(getattr(record, field) for record in records) * 100)


def record_average_accuracy(record: AiLearningRecord) -> float:
    """Average of the indicator scores one record defines, in percentage points"""
    scores = [getattr(record, field) for field in INDICATOR_FIELDS.values()]
    return _mean(scores) * 100


def indicator_performance(records: Sequence[AiLearningRecord]) -> Dict[str, float]:
    return {name: average_accuracy(records, field) for name, field in INDICATOR_FIELDS.items()}


def empty_ai_metrics() -> Dict:
    return {
        'totalPredictions': 0,
        'overallAccuracy': 0,
        'avgConfidenceLevel': 0,
        'avgROIvsMarket': 0,
        'avgRiskAdjustedReturn': 0,
        'indicatorPerformance': {'rsi': 0, 'macd': 0, 'ma': 0},
        'marketRegimeAnalysis': {'bullish': 0, 'bearish': 0, 'neutral': 0},
        'volatilityEnvironment': {'low': 0, 'medium': 0, 'high': 0},
        'overconfidenceRate': 0,
        'avgDecisionQuality': 0
    }


def calculate_overall_accuracy(records: Sequence[AiLearningRecord]) -> float:
    """
    Share of predictions whose direction matched the outcome

    A prediction is bullish when its initial confidence is above 0.5 and
    is correct when the actual profit has the same sign. Records without
    an actual profit are not scored.
    """
    scored = [record for record in records if record.actual_profit_percentage is not None]
    if not scored:
        return 0.0

    correct = 0
    for record in scored:
        predicted_up = (record.predicted_confidence_initial or 0) > 0.5
        actual_up = record.actual_profit_percentage > 0
        if predicted_up == actual_up:
            correct += 1
    return correct / len(scored) * 100


def count_market_regimes(records: Sequence[AiLearningRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for record in records:
        regime = (record.market_regime or 'neutral').lower()
        counts[regime] = counts.get(regime, 0) + 1

    return {
        'bullish': counts.get('bullish', 0),
        'bearish': counts.get('bearish', 0),
        'neutral': counts.get('neutral', 0) + counts.get('sideways', 0)
    }


def count_volatility_environments(records: Sequence[AiLearningRecord]) -> Dict[str, int]:
    counts = {'low': 0, 'medium': 0, 'high': 0}
    for record in records:
        environment = (record.volatility_environment or 'medium').lower()
        if environment in counts:
            counts[environment] += 1
    return counts


def calculate_ai_metrics(records: Sequence[AiLearningRecord]) -> Dict:
    """Dashboard summary of the AI learning records"""
    if not records:
        return empty_ai_metrics()

    total = len(records)
    overconfident = sum(1 for record in records if record.overconfidence_detected is True)

    # Confidence missing on a record counts as zero confidence
    avg_confidence = sum(record.predicted_confidence_initial or 0 for record in records) / total

    return {
        'totalPredictions': total,
        'overallAccuracy': round_half_up(calculate_overall_accuracy(records)),
        'avgConfidenceLevel': round_half_up(avg_confidence),
        'avgROIvsMarket': round_half_up(_mean(record.roi_vs_market for record in records)),
        'avgRiskAdjustedReturn': round_half_up(_mean(record.risk_adjusted_return for record in records)),
        'indicatorPerformance': indicator_performance(records),
        'marketRegimeAnalysis': count_market_regimes(records),
        'volatilityEnvironment': count_volatility_environments(records),
        'overconfidenceRate': round_half_up(overconfident / total * 100),
        'avgDecisionQuality': round_half_up(_mean(record.decision_quality_score for record in records))
    }


def top_symbols_by_roi(records: Sequence[AiLearningRecord], limit: int = 5) -> List[Dict]:
    """Symbols ranked by mean ROI vs market (records without it are skipped)"""
    rows = [
        {'symbol': record.symbol, 'roi': record.roi_vs_market}
        for record in records if record.roi_vs_market is not None
    ]
    if not rows:
        return []

    stats = pd.DataFrame(rows).groupby('symbol')['roi'].agg(['mean', 'size']).reset_index()
    stats = stats.sort_values(['mean', 'symbol'], ascending=[False, True]).head(limit)
    return [
        {'symbol': row['symbol'], 'avgROI': float(row['mean']), 'count': int(row['size'])}
        for _, row in stats.iterrows()
    ]
