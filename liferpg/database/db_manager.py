import logging
from functools import wraps
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from liferpg.utils.env import require_env

T = TypeVar('T')

logger = logging.getLogger(__name__)


def require_connection(func: Callable) -> Callable:
    '''Decorator to ensure DBManager is used within a context manager.'''

    @wraps(func)
    def wrapper(self: 'DBManager', *args, **kwargs) -> Any:
        if not self._connected:
            raise RuntimeError(
                'DBManager is not in a context. Use "with DBManager() as db:"'
            )
        return func(self, *args, **kwargs)

    return wrapper


def _database_url(db_url: Optional[str] = None) -> str:
    return db_url or require_env('DATABASE_URL')


class DBManager:
    '''Postgres connection scope: commit on success, rollback on error.'''

    # Shared pool across the process
    _pool: Optional[ConnectionPool] = None

    def __init__(self) -> None:
        self._connected: bool = False
        self._conn: Any | None = None
        self._from_pool: bool = False

    @classmethod
    def init_pool(
        cls,
        db_url: Optional[str] = None,
        min_size: int = 1,
        max_size: int = 5,
    ) -> None:
        '''Initialize a global connection pool for reuse across commands.'''
        if cls._pool is not None:
            return
        cls._pool = ConnectionPool(
            conninfo=_database_url(db_url),
            min_size=min_size,
            max_size=max_size,
            kwargs={'row_factory': dict_row},
        )
        logger.info('Initialized Postgres connection pool')

    @classmethod
    def close_pool(cls) -> None:
        if cls._pool is not None:
            try:
                cls._pool.close()
            finally:
                cls._pool = None

    def _open(self) -> None:
        if self.__class__._pool is not None:
            self._conn = self.__class__._pool.getconn()
            self._from_pool = True
        else:
            self._conn = psycopg.connect(_database_url(), row_factory=dict_row)
            self._from_pool = False

    def _release(self) -> None:
        if self._conn is None:
            return
        try:
            if self._from_pool and self.__class__._pool is not None:
                # a broken connection is discarded by the pool on put
                self.__class__._pool.putconn(self._conn)
            else:
                self._conn.close()
        finally:
            self._conn = None
            self._from_pool = False

    def __enter__(self) -> 'DBManager':
        self._open()
        self._connected = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._connected:
            return
        try:
            if exc_type is None:
                self._conn.commit()
            else:
                self._conn.rollback()
        finally:
            self._release()
            self._connected = False

    def _run_with_retry(self, fn: Callable[[], T]) -> T:
        '''Run a statement; on a dropped connection reconnect and retry once.'''
        try:
            return fn()
        except (psycopg.OperationalError, psycopg.InterfaceError) as e:
            logger.warning(f'DB connection issue: {e}. Reconnecting and retrying once...')
            try:
                self._release()
            except psycopg.Error as close_error:
                logger.warning(f'Error while closing connection: {close_error}')
            self._open()
            return fn()

    def _select(
        self, query: str, params: Iterable[Any] | None
    ) -> Tuple[List[dict[str, Any]], List[str]]:
        assert self._conn is not None
        with self._conn.cursor() as cur:
            cur.execute(query, tuple(params or ()))
            rows: List[dict[str, Any]] = cur.fetchall() if cur.description else []
            cols = [d.name for d in cur.description] if cur.description else []
            return rows, cols

    def _exec(self, query: str, params: Iterable[Any] | None) -> None:
        assert self._conn is not None
        with self._conn.cursor() as cur:
            cur.execute(query, tuple(params or ()))

    @require_connection
    def execute(self, query: str, params: Iterable[Any] | None = None) -> None:
        '''Execute a statement that returns no rows.'''
        try:
            self._run_with_retry(lambda: self._exec(query, params))
        except psycopg.Error as e:
            logger.error(f'Postgres execute() error: {e}\nQuery: {query}')
            raise

    @require_connection
    def fetchall(
        self, query: str, params: Iterable[Any] | None = None
    ) -> List[dict[str, Any]]:
        try:
            rows, _ = self._run_with_retry(lambda: self._select(query, params))
            return rows
        except psycopg.Error as e:
            logger.error(f'Postgres fetchall() error: {e}\nQuery: {query}')
            raise

    @require_connection
    def fetchone(
        self, query: str, params: Iterable[Any] | None = None
    ) -> Optional[dict[str, Any]]:
        rows = self.fetchall(query, params)
        return rows[0] if rows else None
