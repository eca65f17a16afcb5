# =======================================================================================
# village_gate/database.py - Database Management
# =======================================================================================
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from sqlalchemy import Table, create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.sql import Executable

from .config import config
from .models.tables import metadata

logger = logging.getLogger(__name__)

Query = Union[str, Executable]


class DatabaseManager:
    """Manages database connections and transactions.

    Every public method runs in its own transaction, so one failed call never
    poisons the next one.
    """

    def __init__(self, url: Optional[str] = None, **engine_options: Any):
        self.url = url or config.DB_URL
        self.engine_options = engine_options or {
            "poolclass": QueuePool,
            "pool_size": config.DB_POOL_SIZE,
            "max_overflow": config.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
            "isolation_level": "READ COMMITTED",
        }
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.url, future=True, **self.engine_options)
        return self._engine

    @contextmanager
    def get_connection(self) -> Iterator[Connection]:
        """Get a database connection with automatic commit/rollback."""
        with self.engine.begin() as conn:
            yield conn

    @staticmethod
    def _statement(query: Query) -> Executable:
        return text(query) if isinstance(query, str) else query

    def execute_query(self, query: Query, params: Optional[dict] = None) -> int:
        """Execute a statement and return the affected row count."""
        with self.get_connection() as conn:
            return conn.execute(self._statement(query), params or {}).rowcount

    def fetch_one(self, query: Query, params: Optional[dict] = None):
        """Fetch a single result."""
        with self.get_connection() as conn:
            result = conn.execute(self._statement(query), params or {})
            return result.mappings().first()

    def fetch_all(self, query: Query, params: Optional[dict] = None):
        """Fetch all results."""
        with self.get_connection() as conn:
            result = conn.execute(self._statement(query), params or {})
            return result.mappings().all()

    def insert_one(self, table: Table, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a single row and return it."""
        with self.get_connection() as conn:
            conn.execute(table.insert(), row)
        return row

    def insert_many(self, table: Table, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert rows as one all-or-nothing operation and return the rows persisted."""
        if not rows:
            return []
        with self.get_connection() as conn:
            conn.execute(table.insert(), list(rows))
        return list(rows)

    def create_tables(self) -> None:
        logger.info("Creating tables: %s", ", ".join(metadata.tables))
        metadata.create_all(self.engine)

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


# Global database instance
db_manager = DatabaseManager()
