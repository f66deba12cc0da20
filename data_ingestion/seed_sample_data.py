#!/usr/bin/env python3
"""
Sample Data Seeder

Loads a small fixed data set into the dashboard store:
1. 5 completed trades (AAPL, TSLA, GOOGL, MSFT, NVDA)
2. 6 trading history rows (buy/sell pairs for AAPL, TSLA, GOOGL)
3. 3 AI learning snapshots

Used by POST /api/dashboard/sample-data and from the command line:
    python -m data_ingestion.seed_sample_data [db_path]
"""

import logging
import sys
from typing import Dict, Optional

import config
from data_ingestion.trade_store import TradeStore

SAMPLE_TRADES = [
    {
        'symbol': 'AAPL',
        'entry_price': 150.00,
        'exit_price': 155.50,
        'realized_pnl': 550.00,
        'profit_percentage': 3.67,
        'win_loss': 'win',
        'entry_date': '2024-08-01T10:00:00Z',
        'exit_date': '2024-08-02T15:30:00Z',
        'quantity': 100
    },
    {
        'symbol': 'TSLA',
        'entry_price': 240.00,
        'exit_price': 232.00,
        'realized_pnl': -800.00,
        'profit_percentage': -3.33,
        'win_loss': 'loss',
        'entry_date': '2024-08-03T09:30:00Z',
        'exit_date': '2024-08-03T16:00:00Z',
        'quantity': 100
    },
    {
        'symbol': 'GOOGL',
        'entry_price': 140.00,
        'exit_price': 147.20,
        'realized_pnl': 720.00,
        'profit_percentage': 5.14,
        'win_loss': 'win',
        'entry_date': '2024-08-05T11:00:00Z',
        'exit_date': '2024-08-06T14:45:00Z',
        'quantity': 100
    },
    {
        'symbol': 'MSFT',
        'entry_price': 410.00,
        'exit_price': 425.50,
        'realized_pnl': 1550.00,
        'profit_percentage': 3.78,
        'win_loss': 'win',
        'entry_date': '2024-08-07T10:15:00Z',
        'exit_date': '2024-08-08T13:20:00Z',
        'quantity': 100
    },
    {
        'symbol': 'NVDA',
        'entry_price': 450.00,
        'exit_price': 442.50,
        'realized_pnl': -750.00,
        'profit_percentage': -1.67,
        'win_loss': 'loss',
        'entry_date': '2024-08-09T09:45:00Z',
        'exit_date': '2024-08-10T11:30:00Z',
        'quantity': 100
    }
]

SAMPLE_HISTORY = [
    {'symbol': 'AAPL', 'trade_date': '2024-08-01T10:00:00Z', 'action': 'buy',
     'ai_confidence': 0.85, 'technical_confidence': 0.78, 'execution_success': True},
    {'symbol': 'AAPL', 'trade_date': '2024-08-02T15:30:00Z', 'action': 'sell',
     'ai_confidence': 0.82, 'technical_confidence': 0.88, 'execution_success': True},
    {'symbol': 'TSLA', 'trade_date': '2024-08-03T09:30:00Z', 'action': 'buy',
     'ai_confidence': 0.72, 'technical_confidence': 0.65, 'execution_success': True},
    {'symbol': 'TSLA', 'trade_date': '2024-08-03T16:00:00Z', 'action': 'sell',
     'ai_confidence': 0.58, 'technical_confidence': 0.70, 'execution_success': True},
    {'symbol': 'GOOGL', 'trade_date': '2024-08-05T11:00:00Z', 'action': 'buy',
     'ai_confidence': 0.91, 'technical_confidence': 0.89, 'execution_success': True},
    {'symbol': 'GOOGL', 'trade_date': '2024-08-06T14:45:00Z', 'action': 'sell',
     'ai_confidence': 0.87, 'technical_confidence': 0.92, 'execution_success': True}
]

SAMPLE_AI_DATA = [
    {
        'symbol': 'AAPL',
        'actual_profit_percentage': 3.67,
        'rsi_accuracy_score': 0.85,
        'macd_accuracy_score': 0.78,
        'market_regime': 'trending_up',
        'vix_level': 18.5,
        'analysis_date': '2024-08-01T09:00:00Z'
    },
    {
        'symbol': 'TSLA',
        'actual_profit_percentage': -3.33,
        'rsi_accuracy_score': 0.65,
        'macd_accuracy_score': 0.72,
        'market_regime': 'volatile',
        'vix_level': 22.1,
        'analysis_date': '2024-08-03T08:30:00Z'
    },
    {
        'symbol': 'GOOGL',
        'actual_profit_percentage': 5.14,
        'rsi_accuracy_score': 0.92,
        'macd_accuracy_score': 0.88,
        'market_regime': 'trending_up',
        'vix_level': 16.8,
        'analysis_date': '2024-08-05T10:30:00Z'
    }
]


def seed_sample_data(store: TradeStore) -> Dict[str, int]:
    """Insert the sample rows; returns how many rows went into each table"""
    store.create_schema()
    return {
        'trades': store.insert_completed_trades(SAMPLE_TRADES),
        'history': store.insert_trading_history(SAMPLE_HISTORY),
        'aiData': store.insert_ai_learning_data(SAMPLE_AI_DATA)
    }


def main(db_path: Optional[str] = None):
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    info = config.get_active_db_info(db_path)

    print("=" * 80)
    print("TRADING DASHBOARD - SAMPLE DATA")
    print("=" * 80)
    print(f"\nDatabase: {info['name']}")
    print(f"Path: {info['path']}")

    store = TradeStore(info['path'])
    counts = seed_sample_data(store)

    print(f"\n   ✓ Completed trades: {counts['trades']}")
    print(f"   ✓ Trading history:  {counts['history']}")
    print(f"   ✓ AI learning data: {counts['aiData']}")

    print("\n" + "=" * 80)
    print("SEEDING COMPLETE")
    print("=" * 80)
    for table, count in store.table_counts().items():
        print(f"{table}: {count:,} rows")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
