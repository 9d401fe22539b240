import logging
import os
import sqlite3
from functools import wraps
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    'data',
    'liferpg_cache.db',
)


def require_connection(func: Callable) -> Callable:
    '''Decorator to ensure the cache is used within a context manager.'''

    @wraps(func)
    def wrapper(self: 'LocalCache', *args, **kwargs) -> Any:
        if not self.conn:
            raise RuntimeError('LocalCache is not open. Use "with cache:" or call get/set')
        return func(self, *args, **kwargs)

    return wrapper


class LocalCache:
    '''SQLite-backed key/value store living next to the bot.'''

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or os.getenv('LOCAL_CACHE_PATH') or DEFAULT_CACHE_PATH
        self.conn: Optional[sqlite3.Connection] = None
        # each call opens its own connection, so this must be a file
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        with self as cache:
            cache._execute(
                'CREATE TABLE IF NOT EXISTS kv_cache ('
                'key TEXT PRIMARY KEY, '
                'value TEXT NOT NULL, '
                'updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)'
            )

    def __enter__(self) -> 'LocalCache':
        self.conn = sqlite3.connect(self.db_path)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
            self.conn.close()
            self.conn = None

    @require_connection
    def _execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(query, params)  # type: ignore[union-attr]
        except sqlite3.Error as e:
            logger.error(f'SQLite error: {e}\nQuery: {query}')
            raise

    def get(self, key: str) -> Optional[str]:
        with self as cache:
            row = cache._execute('SELECT value FROM kv_cache WHERE key = ?', (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self as cache:
            cache._execute(
                'INSERT INTO kv_cache (key, value) VALUES (?, ?) '
                'ON CONFLICT(key) DO UPDATE SET value = excluded.value, '
                'updated_at = CURRENT_TIMESTAMP',
                (key, value),
            )

    def remove(self, key: str) -> None:
        with self as cache:
            cache._execute('DELETE FROM kv_cache WHERE key = ?', (key,))
