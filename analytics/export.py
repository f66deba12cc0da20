"""
AI Learning Data Export
=======================
Serialises AI learning records for download:
- CSV: header row first, every field double-quoted, fixed column order
- JSON: export timestamp, record count and the records (optionally metrics)
- Metrics report: two-column CSV of the analytics summary
- Summary report: plain-text overview with recommendations

Filters are applied conjunctively before serialisation. Exporting an empty
record set is an error, not an empty file.
"""

import csv
import json
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from analytics.ai_accuracy import record_average_accuracy, top_symbols_by_roi
from analytics.records import AiLearningRecord, format_timestamp, parse_timestamp


class ExportError(ValueError):
    """Raised when an export cannot produce any rows"""


# (header, record attribute) in output order
CSV_COLUMNS = [
    ('ID', 'id'),
    ('Symbol', 'symbol'),
    ('Trade Date', 'trade_date'),
    ('Analysis Date', 'analysis_date'),
    ('Actual Result', 'actual_result'),
    ('Actual Profit %', 'actual_profit_percentage'),
    ('Actual Holding Days', 'actual_holding_days'),
    ('Initial Confidence', 'predicted_confidence_initial'),
    ('Final Confidence', 'predicted_confidence_final'),
    ('Confidence Volatility', 'confidence_volatility'),
    ('RSI Accuracy', 'rsi_accuracy_score'),
    ('MACD Accuracy', 'macd_accuracy_score'),
    ('MA Accuracy', 'ma_accuracy_score'),
    ('Best Indicator', 'best_indicator'),
    ('Sentiment Accuracy', 'sentiment_accuracy_score'),
    ('Sentiment Correlation', 'sentiment_price_correlation'),
    ('Market Regime', 'market_regime'),
    ('Volatility Environment', 'volatility_environment'),
    ('VIX Level', 'vix_level'),
    ('Overconfidence Detected', 'overconfidence_detected'),
    ('Optimal Threshold', 'optimal_threshold_suggested'),
    ('Decision Quality Score', 'decision_quality_score'),
    ('ROI vs Market', 'roi_vs_market'),
    ('Risk Adjusted Return', 'risk_adjusted_return'),
    ('Created At', 'created_at'),
]

CSV_HEADERS = [header for header, _ in CSV_COLUMNS]

MIMETYPES = {
    'csv': 'text/csv',
    'json': 'application/json'
}


@dataclass
class ExportFilters:
    symbol: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    min_accuracy: Optional[float] = None
    market_regime: Optional[str] = None

    def active(self) -> Dict[str, object]:
        """Filters that are actually set, in declaration order"""
        values = {
            'symbol': self.symbol,
            'dateFrom': self.date_from,
            'dateTo': self.date_to,
            'minAccuracy': self.min_accuracy,
            'marketRegime': self.market_regime,
        }
        return {key: value for key, value in values.items() if value is not None and value != ''}


def _is_date_only(value: str) -> bool:
    return len(value.strip()) == 10


def _upper_bound(date_to: str) -> Optional[datetime]:
    bound = parse_timestamp(date_to)
    if bound is not None and _is_date_only(date_to):
        # A bare date includes the whole day
        bound = datetime.combine(bound.date(), time.max, tzinfo=timezone.utc)
    return bound


def filter_records(records: Sequence[AiLearningRecord],
                   filters: Optional[ExportFilters] = None) -> List[AiLearningRecord]:
    """Apply every set filter (AND). Date bounds are inclusive and compare analysis_date."""
    filtered = list(records)
    if filters is None:
        return filtered

    if filters.symbol:
        needle = filters.symbol.lower()
        filtered = [r for r in filtered if needle in r.symbol.lower()]

    if filters.date_from:
        lower = parse_timestamp(filters.date_from)
        if lower is not None:
            filtered = [r for r in filtered if r.analysis_date is not None and r.analysis_date >= lower]

    if filters.date_to:
        upper = _upper_bound(filters.date_to)
        if upper is not None:
            filtered = [r for r in filtered if r.analysis_date is not None and r.analysis_date <= upper]

    if filters.min_accuracy is not None:
        filtered = [r for r in filtered if record_average_accuracy(r) >= filters.min_accuracy]

    if filters.market_regime:
        filtered = [r for r in filtered if r.market_regime == filters.market_regime]

    return filtered


def _csv_value(value) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _require_records(records: Sequence[AiLearningRecord]):
    if not records:
        raise ExportError('No records to export: the selected data set is empty')


def export_to_csv(records: Sequence[AiLearningRecord]) -> str:
    _require_records(records)

    rows = []
    for record in records:
        row = [_csv_value(getattr(record, attribute)) for _, attribute in CSV_COLUMNS]
        # Missing flag reads as not detected
        if record.overconfidence_detected is None:
            row[CSV_HEADERS.index('Overconfidence Detected')] = 'FALSE'
        rows.append(row)

    df = pd.DataFrame(rows, columns=CSV_HEADERS, dtype=str)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')


def export_to_json(records: Sequence[AiLearningRecord], metrics: Optional[Dict] = None,
                   exported_at: Optional[datetime] = None) -> str:
    _require_records(records)

    export_data = {
        'exportDate': format_timestamp(exported_at or datetime.now(timezone.utc)),
        'totalRecords': len(records),
        'data': [record.to_dict() for record in records]
    }
    if metrics:
        export_data['metrics'] = metrics
    return json.dumps(export_data, indent=2)


def export_filename(prefix: str, fmt: str, filters: Optional[ExportFilters] = None,
                    today: Optional[str] = None) -> str:
    today = today or datetime.now(timezone.utc).date().isoformat()
    parts = [prefix]
    if filters is not None:
        parts.extend(f"{key}_{value}" for key, value in filters.active().items())
    parts.append(today)
    return f"{'_'.join(parts)}.{fmt}".replace('/', '-').replace(' ', '-')


def export_filtered_data(records: Sequence[AiLearningRecord], filters: Optional[ExportFilters] = None,
                         fmt: str = 'csv', metrics: Optional[Dict] = None) -> Tuple[str, str, str]:
    """
    Filter then serialise

    Returns (filename, content, mimetype). Raises ExportError for an
    unknown format or when no record survives the filters.
    """
    fmt = (fmt or 'csv').lower()
    if fmt not in MIMETYPES:
        raise ExportError(f"Unsupported export format: {fmt}")

    filtered = filter_records(records, filters)
    prefix = 'ai_filtered_data' if filters is not None and filters.active() else 'ai_learning_data'
    filename = export_filename(prefix, fmt, filters)

    if fmt == 'csv':
        content = export_to_csv(filtered)
    else:
        content = export_to_json(filtered, metrics)
    return filename, content, MIMETYPES[fmt]


def export_metrics_report(metrics: Dict) -> str:
    """Two-column CSV (Metric, Value) of the AI analytics summary"""
    indicators = metrics['indicatorPerformance']
    regimes = metrics['marketRegimeAnalysis']
    volatility = metrics['volatilityEnvironment']
    report = [
        ('Total Predictions', metrics['totalPredictions']),
        ('Overall Accuracy (%)', metrics['overallAccuracy']),
        ('Average Confidence Level (%)', metrics['avgConfidenceLevel']),
        ('Average ROI vs Market (%)', metrics['avgROIvsMarket']),
        ('Average Risk Adjusted Return', metrics['avgRiskAdjustedReturn']),
        ('RSI Performance (%)', indicators['rsi']),
        ('MACD Performance (%)', indicators['macd']),
        ('MA Performance (%)', indicators['ma']),
        ('Bullish Market Predictions', regimes['bullish']),
        ('Bearish Market Predictions', regimes['bearish']),
        ('Neutral Market Predictions', regimes['neutral']),
        ('Low Volatility Environment', volatility['low']),
        ('Medium Volatility Environment', volatility['medium']),
        ('High Volatility Environment', volatility['high']),
        ('Overconfidence Rate (%)', metrics['overconfidenceRate']),
        ('Average Decision Quality (%)', metrics['avgDecisionQuality']),
    ]
    df = pd.DataFrame([(name, str(value)) for name, value in report], columns=['Metric', 'Value'])
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')


def generate_recommendations(metrics: Dict) -> List[str]:
    recommendations = []

    if metrics['overallAccuracy'] < 60:
        recommendations.append('- Overall accuracy is below 60%. The model needs improvement.')
    if metrics['overconfidenceRate'] > 30:
        recommendations.append('- Overconfidence rate is high. Consider adjusting the confidence threshold.')
    if metrics['avgDecisionQuality'] < 0.7:
        recommendations.append('- Decision quality is low. Review data quality and feature engineering.')

    indicators = metrics['indicatorPerformance']
    best_name = max(indicators, key=indicators.get)
    recommendations.append(
        f"- The best performing indicator is {best_name.upper()} ({indicators[best_name]:.1f}%)."
    )

    if len(recommendations) == 1:
        recommendations.insert(0, '- Overall performance is healthy. Keep the current strategy.')
    return recommendations


def generate_summary_report(records: Sequence[AiLearningRecord], metrics: Dict,
                            generated_at: Optional[datetime] = None) -> str:
    """Plain-text report; records are expected newest first"""
    generated_at = generated_at or datetime.now(timezone.utc)

    dated = [r.analysis_date for r in records if r.analysis_date is not None]
    if dated:
        period = f"{min(dated).date().isoformat()} ~ {max(dated).date().isoformat()}"
    else:
        period = 'N/A'

    indicators = metrics['indicatorPerformance']
    regimes = metrics['marketRegimeAnalysis']
    volatility = metrics['volatilityEnvironment']

    lines = [
        'AI Learning Data Analysis Report',
        f"Generated: {generated_at.date().isoformat()}",
        f"Analysis period: {period}",
        '',
        '=== Overall Performance ===',
        f"Total predictions: {metrics['totalPredictions']}",
        f"Overall accuracy: {metrics['overallAccuracy']:.2f}%",
        f"Average confidence: {metrics['avgConfidenceLevel']:.2f}%",
        f"Average ROI vs market: {metrics['avgROIvsMarket']:.2f}%",
        f"Risk adjusted return: {metrics['avgRiskAdjustedReturn']:.3f}",
        f"Overconfidence rate: {metrics['overconfidenceRate']:.2f}%",
        f"Average decision quality: {metrics['avgDecisionQuality'] * 100:.0f} pts",
        '',
        '=== Technical Indicators ===',
        f"RSI accuracy: {indicators['rsi']:.2f}%",
        f"MACD accuracy: {indicators['macd']:.2f}%",
        f"Moving average accuracy: {indicators['ma']:.2f}%",
        '',
        '=== Market Environment ===',
        f"Bullish predictions: {regimes['bullish']}",
        f"Bearish predictions: {regimes['bearish']}",
        f"Sideways predictions: {regimes['neutral']}",
        '',
        '=== Volatility Environment ===',
        f"Low volatility: {volatility['low']}",
        f"Medium volatility: {volatility['medium']}",
        f"High volatility: {volatility['high']}",
        '',
        '=== Top Symbols (Top 5) ===',
    ]

    for index, symbol in enumerate(top_symbols_by_roi(records, 5), start=1):
        lines.append(f"{index}. {symbol['symbol']}: {symbol['avgROI']:.2f}% ({symbol['count']} records)")

    lines.extend(['', '=== Recent Predictions (latest 10) ==='])
    for record in list(records)[:10]:
        confidence = (record.predicted_confidence_initial or 0) * 100
        actual = record.actual_profit_percentage
        actual_text = f"{actual:.2f}" if actual is not None else 'N/A'
        analysis_date = format_timestamp(record.analysis_date) or 'N/A'
        lines.append(f"{record.symbol} | {analysis_date} | confidence: {confidence:.1f}% | actual: {actual_text}%")

    lines.extend(['', '=== Recommendations ==='])
    lines.extend(generate_recommendations(metrics))
    return '\n'.join(lines)
