"""
Trade Store
===========
SQLite-backed access to the three tables the dashboard reads:
- completed_trades   (closed positions with realized P&L)
- trading_history    (entry / check records of open positions)
- ai_learning_data   (pre-computed AI prediction accuracy snapshots)

A TradeStore is constructed explicitly and handed to the Flask app; every
call opens and closes its own connection so reads can run on worker
threads. fetch_parallel() runs several reads at once and fails as a whole
if any single read fails.
"""

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from analytics.records import AiLearningRecord, CompletedTrade, TradingHistoryRecord

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """A read or write against the store failed"""


SCHEMA = {
    'completed_trades': """
    CREATE TABLE IF NOT EXISTS completed_trades (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL,

        -- Prices & size
        entry_price REAL,
        exit_price REAL,
        quantity REAL,

        -- Outcome
        realized_pnl REAL,
        profit_percentage REAL,
        win_loss TEXT,

        -- Timestamps (ISO-8601, UTC)
        entry_date TEXT,
        exit_date TEXT,
        trade_date TEXT,

        -- Signals at exit
        rsi_signal TEXT,
        macd_signal TEXT,
        sentiment_score REAL,
        vix_level REAL,
        ai_confidence REAL,

        strategy TEXT,
        notes TEXT,
        trade_duration_hours REAL,
        created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
    )
    """,
    'trading_history': """
    CREATE TABLE IF NOT EXISTS trading_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL,
        trade_date TEXT,
        action TEXT,

        -- Confidence
        ai_confidence REAL,
        technical_confidence REAL,

        -- Position
        position_size REAL,
        entry_price REAL,
        current_price REAL,
        unrealized_pl REAL,

        -- Signals
        technical_recommendation TEXT,
        sentiment_score REAL,
        combined_score REAL,

        execution_status TEXT,
        execution_success INTEGER,
        strategy TEXT,
        notes TEXT,
        created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
    )
    """,
    'ai_learning_data': """
    CREATE TABLE IF NOT EXISTS ai_learning_data (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL,
        trade_date TEXT,
        analysis_date TEXT,

        -- Outcome
        actual_result TEXT,
        actual_profit_percentage REAL,
        actual_holding_days REAL,

        -- Confidence
        predicted_confidence_initial REAL,
        predicted_confidence_final REAL,
        confidence_volatility REAL,

        -- Indicator accuracy (0-1)
        rsi_accuracy_score REAL,
        macd_accuracy_score REAL,
        ma_accuracy_score REAL,
        best_indicator TEXT,
        sentiment_accuracy_score REAL,
        sentiment_price_correlation REAL,

        -- Market context
        market_regime TEXT,
        volatility_environment TEXT,
        vix_level REAL,

        -- Quality
        overconfidence_detected INTEGER,
        optimal_threshold_suggested REAL,
        decision_quality_score REAL,
        roi_vs_market REAL,
        risk_adjusted_return REAL,

        created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
    )
    """
}

TABLES = tuple(SCHEMA)

# Date column each table is ordered / range-filtered on
CLOSED_AT = 'COALESCE(trade_date, exit_date)'
ANALYZED_AT = 'COALESCE(analysis_date, created_at)'


def fetch_parallel(*calls: Callable, max_workers: int = 4) -> List:
    """
    Run independent store reads concurrently and wait for all of them

    Results come back in call order. If any read raises, that exception
    propagates and the other results are discarded.
    """
    if not calls:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(calls)))) as executor:
        futures = [executor.submit(call) for call in calls]
        return [future.result() for future in futures]


class TradeStore:
    """Read/insert access to the dashboard tables"""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def __repr__(self):
        return f"TradeStore({self.db_path!r})"

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def create_schema(self):
        """Create the dashboard tables if they do not exist"""
        conn = self.get_connection()
        try:
            for table, ddl in SCHEMA.items():
                conn.execute(ddl)
                logger.debug("Ensured table %s", table)
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create schema: {e}") from e
        finally:
            conn.close()

    def ping(self) -> bool:
        """True when the database answers a trivial query"""
        try:
            conn = self.get_connection()
            try:
                conn.execute('SELECT 1').fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning("Store ping failed for %s: %s", self.db_path, e)
            return False
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _query(self, table: str, query: str, params: Sequence = ()) -> List[sqlite3.Row]:
        try:
            conn = self.get_connection()
            try:
                rows = conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to fetch {table}: {e}") from e
        logger.debug("Fetched %d rows from %s", len(rows), table)
        return rows

    def get_completed_trades(self, symbol: Optional[str] = None,
                             start_date: Optional[str] = None,
                             end_date: Optional[str] = None,
                             limit: Optional[int] = None) -> List[CompletedTrade]:
        """Completed trades, newest closing date first"""
        query = 'SELECT * FROM completed_trades WHERE 1=1'
        params = []

        if symbol:
            query += ' AND symbol = ?'
            params.append(symbol)
        if start_date:
            query += f' AND datetime({CLOSED_AT}) >= datetime(?)'
            params.append(start_date)
        if end_date:
            query += f' AND datetime({CLOSED_AT}) <= datetime(?)'
            params.append(end_date)

        query += f' ORDER BY datetime({CLOSED_AT}) DESC, id DESC'
        if limit is not None:
            query += ' LIMIT ?'
            params.append(limit)

        return [CompletedTrade.from_row(row) for row in self._query('completed_trades', query, params)]

    def get_trading_history(self, symbol: Optional[str] = None,
                            symbols: Optional[Iterable[str]] = None) -> List[TradingHistoryRecord]:
        """Trading history, newest first"""
        query = 'SELECT * FROM trading_history WHERE 1=1'
        params = []

        if symbol:
            query += ' AND symbol = ?'
            params.append(symbol)
        if symbols is not None:
            symbols = sorted(set(symbols))
            if not symbols:
                return []
            query += f" AND symbol IN ({', '.join('?' for _ in symbols)})"
            params.extend(symbols)

        query += ' ORDER BY datetime(trade_date) DESC, id DESC'
        return [TradingHistoryRecord.from_row(row) for row in self._query('trading_history', query, params)]

    def get_ai_learning_data(self, symbol: Optional[str] = None,
                             start_date: Optional[str] = None,
                             end_date: Optional[str] = None) -> List[AiLearningRecord]:
        """AI learning records, newest analysis first"""
        query = 'SELECT * FROM ai_learning_data WHERE 1=1'
        params = []

        if symbol:
            query += ' AND symbol = ?'
            params.append(symbol)
        if start_date:
            query += f' AND datetime({ANALYZED_AT}) >= datetime(?)'
            params.append(start_date)
        if end_date:
            query += f' AND datetime({ANALYZED_AT}) <= datetime(?)'
            params.append(end_date)

        query += f' ORDER BY datetime({ANALYZED_AT}) DESC, id DESC'
        return [AiLearningRecord.from_row(row) for row in self._query('ai_learning_data', query, params)]

    def table_counts(self) -> Dict[str, int]:
        counts = {}
        for table in TABLES:
            row = self._query(table, f'SELECT COUNT(*) AS n FROM "{table}"')[0]
            counts[table] = row['n']
        return counts

    # -------------------------------------------------------------------------
    # Inserts (sample data only)
    # -------------------------------------------------------------------------

    def _columns(self, conn: sqlite3.Connection, table: str) -> List[str]:
        return [col['name'] for col in conn.execute(f'PRAGMA table_info("{table}")').fetchall()]

    def insert_rows(self, table: str, rows: Sequence[Mapping]) -> int:
        """Insert rows into one table; returns the number of rows written"""
        if table not in SCHEMA:
            raise StoreError(f"Unknown table: {table}")
        if not rows:
            return 0

        try:
            conn = self.get_connection()
            try:
                known = set(self._columns(conn, table))
                for row in rows:
                    unknown = set(row) - known
                    if unknown:
                        raise StoreError(f"Unknown columns for {table}: {', '.join(sorted(unknown))}")
                    columns = list(row)
                    placeholders = ', '.join('?' for _ in columns)
                    conn.execute(
                        f'INSERT INTO "{table}" ({", ".join(columns)}) VALUES ({placeholders})',
                        [row[column] for column in columns]
                    )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert into {table}: {e}") from e

        logger.info("Inserted %d rows into %s", len(rows), table)
        return len(rows)

    def insert_completed_trades(self, rows: Sequence[Mapping]) -> int:
        return self.insert_rows('completed_trades', rows)

    def insert_trading_history(self, rows: Sequence[Mapping]) -> int:
        return self.insert_rows('trading_history', rows)

    def insert_ai_learning_data(self, rows: Sequence[Mapping]) -> int:
        return self.insert_rows('ai_learning_data', rows)
