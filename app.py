"""
Flask Backend for the Trading Activity Dashboard
Read-only API serving trade, history and AI learning analytics
"""

import logging
import time
from datetime import datetime, time as dt_time, timedelta, timezone

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import config
from analytics.ai_accuracy import average_accuracy, calculate_ai_metrics
from analytics.export import (
    MIMETYPES,
    ExportFilters,
    export_filename,
    export_filtered_data,
    export_metrics_report,
    generate_summary_report,
)
from analytics.records import format_timestamp
from analytics.timeline import build_trade_timeline, describe_timeline
from analytics.trade_metrics import (
    calculate_daily_pnl,
    calculate_daily_pnl_series,
    calculate_symbol_performance,
    calculate_trade_metrics,
    summarize_recent_trades,
)
from analytics.verification import build_verification_report
from data_ingestion.seed_sample_data import seed_sample_data
from data_ingestion.trade_store import StoreError, TradeStore, fetch_parallel

api = Blueprint('api', __name__)

STORE_ERROR_MESSAGE = 'Failed to fetch data from the database'


def create_app(store=None, config_overrides=None):
    """Build the Flask app around an explicitly constructed TradeStore"""
    app = Flask(__name__)
    app.config.update(
        DB_PATH=config.DB_PATH,
        DEFAULT_DAILY_PNL_DAYS=config.DEFAULT_DAILY_PNL_DAYS,
        MAX_DAILY_PNL_DAYS=config.MAX_DAILY_PNL_DAYS,
        DEFAULT_RECENT_TRADES_LIMIT=config.DEFAULT_RECENT_TRADES_LIMIT,
        MAX_RECENT_TRADES_LIMIT=config.MAX_RECENT_TRADES_LIMIT,
        VERIFY_PERIOD_DAYS=config.VERIFY_PERIOD_DAYS,
        FETCH_WORKERS=config.FETCH_WORKERS,
        API_VERSION=config.API_VERSION,
        STARTED_AT=time.monotonic(),
    )
    if config_overrides:
        app.config.update(config_overrides)

    if store is None:
        store = TradeStore(app.config['DB_PATH'])
        store.create_schema()
    app.extensions['trade_store'] = store

    CORS(app)
    app.register_blueprint(api)
    app.register_error_handler(Exception, handle_error)
    return app


def get_store() -> TradeStore:
    return current_app.extensions['trade_store']


def handle_error(error):
    """Every failure is reported as a 500; store errors hide the database message"""
    if isinstance(error, HTTPException):
        return error
    current_app.logger.exception("Request to %s failed", request.path)
    if isinstance(error, StoreError):
        return jsonify({'error': STORE_ERROR_MESSAGE}), 500
    return jsonify({'error': str(error)}), 500


def parallel(*calls):
    return fetch_parallel(*calls, max_workers=current_app.config['FETCH_WORKERS'])


def int_arg(name, default, minimum=0, maximum=None):
    """Integer query parameter; missing, malformed or out of range values use the default"""
    value = request.args.get(name, default, type=int)
    if value < minimum or (maximum is not None and value > maximum):
        return default
    return value


def float_arg(name):
    return request.args.get(name, None, type=float)


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@api.route('/api/dashboard/complete-data')
def get_complete_data():
    """Everything the dashboard page needs in one response"""
    store = get_store()
    history, completed, ai_data = parallel(
        store.get_trading_history,
        store.get_completed_trades,
        store.get_ai_learning_data
    )

    metrics = calculate_trade_metrics(completed)
    metrics['avgRsiAccuracy'] = average_accuracy(ai_data, 'rsi_accuracy_score')
    metrics['avgMacdAccuracy'] = average_accuracy(ai_data, 'macd_accuracy_score')

    symbols = sorted({record.symbol for record in [*history, *completed, *ai_data]})

    return jsonify({
        'tradingHistory': [record.to_dict() for record in history],
        'completedTrades': [trade.to_dict() for trade in completed],
        'aiLearningData': [record.to_dict() for record in ai_data],
        'metrics': metrics,
        'symbols': symbols,
        'dailyPnL': [point.to_dict() for point in calculate_daily_pnl_series(completed)]
    })


@api.route('/api/dashboard/daily-pnl')
def get_daily_pnl():
    """Zero-filled daily P&L for the last `days` days"""
    days = int_arg('days', current_app.config['DEFAULT_DAILY_PNL_DAYS'],
                   maximum=current_app.config['MAX_DAILY_PNL_DAYS'])

    now = datetime.now(timezone.utc)
    start = datetime.combine(now.date() - timedelta(days=days), dt_time.min, tzinfo=timezone.utc)
    trades = get_store().get_completed_trades(
        start_date=format_timestamp(start),
        end_date=format_timestamp(now)
    )

    return jsonify([point.to_dict() for point in calculate_daily_pnl(trades, days=days, today=now.date())])


@api.route('/api/dashboard/metrics')
def get_metrics():
    return jsonify(calculate_trade_metrics(get_store().get_completed_trades()))


@api.route('/api/dashboard/recent-trades')
def get_recent_trades():
    """Latest completed trades with the AI confidence behind them"""
    limit = int_arg('limit', current_app.config['DEFAULT_RECENT_TRADES_LIMIT'], minimum=1,
                    maximum=current_app.config['MAX_RECENT_TRADES_LIMIT'])

    store = get_store()
    trades = store.get_completed_trades(limit=limit)
    history = store.get_trading_history(symbols=[trade.symbol for trade in trades])

    return jsonify(summarize_recent_trades(trades, history))


@api.route('/api/dashboard/symbol-performance')
def get_symbol_performance():
    return jsonify(calculate_symbol_performance(get_store().get_completed_trades()))


@api.route('/api/dashboard/sample-data', methods=['POST'])
def create_sample_data():
    counts = seed_sample_data(get_store())
    current_app.logger.info("Sample data created: %s", counts)
    return jsonify({
        'success': True,
        'message': 'Sample data created successfully',
        'data': counts
    })


@api.route('/api/verify-data')
def verify_data():
    """Diagnostic counts, duplicate open positions and recomputed metrics"""
    store = get_store()
    completed, history = parallel(store.get_completed_trades, store.get_trading_history)
    return jsonify(build_verification_report(
        completed, history, days=current_app.config['VERIFY_PERIOD_DAYS']
    ))


# =============================================================================
# TIMELINE ENDPOINTS
# =============================================================================

@api.route('/api/timeline/<symbol>')
def get_trade_timeline(symbol):
    """Reconstructed life of a position; null when the symbol has no trades"""
    store = get_store()
    completed, history, ai_data = parallel(
        lambda: store.get_completed_trades(symbol=symbol),
        lambda: store.get_trading_history(symbol=symbol),
        lambda: store.get_ai_learning_data(symbol=symbol)
    )

    timeline = build_trade_timeline(symbol, completed, history, ai_data)
    if timeline is None:
        return jsonify(None)
    return jsonify(describe_timeline(timeline))


# =============================================================================
# AI LEARNING ENDPOINTS
# =============================================================================

@api.route('/api/ai-learning')
def get_ai_learning_data():
    records = get_store().get_ai_learning_data(
        symbol=request.args.get('symbol') or None,
        start_date=request.args.get('start_date') or None,
        end_date=request.args.get('end_date') or None
    )
    return jsonify([record.to_dict() for record in records])


@api.route('/api/ai-learning/metrics')
def get_ai_learning_metrics():
    return jsonify(calculate_ai_metrics(get_store().get_ai_learning_data()))


@api.route('/api/ai-learning/metrics/export')
def export_ai_learning_metrics():
    """AI analytics summary as a two-column CSV attachment"""
    metrics = calculate_ai_metrics(get_store().get_ai_learning_data())
    filename = export_filename('ai_learning_metrics', 'csv')

    return Response(
        export_metrics_report(metrics),
        mimetype=MIMETYPES['csv'],
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@api.route('/api/ai-learning/export')
def export_ai_learning_data():
    """Filtered AI learning data as a CSV or JSON attachment"""
    fmt = request.args.get('format', 'csv')
    filters = ExportFilters(
        symbol=request.args.get('symbol') or None,
        date_from=request.args.get('date_from') or None,
        date_to=request.args.get('date_to') or None,
        min_accuracy=float_arg('min_accuracy'),
        market_regime=request.args.get('market_regime') or None
    )

    records = get_store().get_ai_learning_data()
    metrics = calculate_ai_metrics(records)
    filename, content, mimetype = export_filtered_data(records, filters, fmt, metrics)

    return Response(
        content,
        mimetype=mimetype,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@api.route('/api/ai-learning/report')
def get_ai_learning_report():
    records = get_store().get_ai_learning_data()
    report = generate_summary_report(records, calculate_ai_metrics(records))
    return Response(report, mimetype='text/plain')


# =============================================================================
# HEALTH
# =============================================================================

@api.route('/api/health')
def health_check():
    database = 'healthy' if get_store().ping() else 'unhealthy'
    return jsonify({
        'status': 'ok',
        'timestamp': format_timestamp(datetime.now(timezone.utc)),
        'uptime': round(time.monotonic() - current_app.config['STARTED_AT'], 3),
        'version': current_app.config['API_VERSION'],
        'services': {
            'database': database,
            'api': 'healthy'
        }
    })


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    create_app().run(debug=True, port=5000)
