"""
Configuration file for the Trading Activity Dashboard

Every setting can be overridden with an environment variable of the same name:
- TRADING_DB_PATH: SQLite database holding completed_trades, trading_history
  and ai_learning_data
- DEFAULT_DAILY_PNL_DAYS / DEFAULT_RECENT_TRADES_LIMIT: endpoint defaults
- MAX_DAILY_PNL_DAYS / MAX_RECENT_TRADES_LIMIT: largest accepted query values
- VERIFY_PERIOD_DAYS: window used by the data verification endpoint
- FETCH_WORKERS: threads used for parallel store reads within one request
"""

import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Database path
DEFAULT_DB = os.path.join(BASE_DIR, "trading_dashboard.db")
DB_PATH = os.environ.get("TRADING_DB_PATH", DEFAULT_DB)

# Endpoint defaults
DEFAULT_DAILY_PNL_DAYS = int(os.environ.get("DEFAULT_DAILY_PNL_DAYS", 30))
DEFAULT_RECENT_TRADES_LIMIT = int(os.environ.get("DEFAULT_RECENT_TRADES_LIMIT", 10))

# Larger values fall back to the defaults above
MAX_DAILY_PNL_DAYS = int(os.environ.get("MAX_DAILY_PNL_DAYS", 3650))
MAX_RECENT_TRADES_LIMIT = int(os.environ.get("MAX_RECENT_TRADES_LIMIT", 1000))
VERIFY_PERIOD_DAYS = int(os.environ.get("VERIFY_PERIOD_DAYS", 30))

# Parallel store reads
FETCH_WORKERS = int(os.environ.get("FETCH_WORKERS", 4))

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

API_VERSION = "1.0.0"


def get_active_db_info(db_path=None):
    """Return info about the active database"""
    path = db_path or DB_PATH
    return {
        'name': os.path.basename(path),
        'description': 'Trading dashboard store (completed trades, trading history, AI learning data)',
        'path': path,
        'exists': os.path.exists(path)
    }


if __name__ == "__main__":
    info = get_active_db_info()
    print(f"Active Database: {info['name']}")
    print(f"Description: {info['description']}")
    print(f"Path: {info['path']}")
