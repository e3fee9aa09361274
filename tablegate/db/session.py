from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.sql import TextClause

from ..config import StoreConfig
from .models import MutationSummary

logger = logging.getLogger(__name__)


def make_engine(config: StoreConfig) -> Engine:
    """
    Build the process-wide store engine.

    For SQLite the database directory is created if missing, lock waits are
    bounded by `busy_timeout_s`, and declared foreign keys are enforced on
    every new connection.
    """
    url = make_url(config.url)
    connect_args: dict[str, Any] = {}
    is_sqlite = url.get_backend_name() == "sqlite"

    if is_sqlite:
        connect_args["timeout"] = config.busy_timeout_s
        connect_args["check_same_thread"] = False
        database = url.database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=config.echo, connect_args=connect_args)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record) -> None:
            cursor = dbapi_conn.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
            finally:
                cursor.close()

    logger.info("Store engine created for %s", url.render_as_string(hide_password=True))
    return engine


class DbSession:
    """
    Transactional wrapper around a SQLAlchemy Engine connection.

    Each engine operation runs exactly one statement inside its own session,
    so atomicity is the store's statement-level atomicity.

    Use as:
        with DbSession(engine) as session:
            session.execute(...)
            row = session.fetch_one(...)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._conn: Connection | None = None
        self._tx = None

    def __enter__(self) -> "DbSession":
        if self._conn is not None:
            raise RuntimeError("DbSession is already active; nested sessions are not allowed")
        self._conn = self.engine.connect()
        self._tx = self._conn.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._tx is not None:
                if exc_type:
                    self._tx.rollback()
                else:
                    self._tx.commit()
        finally:
            if self._conn is not None:
                self._conn.close()

            self._conn = None
            self._tx = None

        # propagate exceptions (if any)
        return False

    def _connection(self) -> Connection:
        if self._conn is None:
            raise RuntimeError("DbSession is not active; use within a context manager")
        return self._conn

    def _run(self, sql: str | TextClause, params: Mapping[str, Any] | None):
        stmt = text(sql) if isinstance(sql, str) else sql
        return self._connection().execute(stmt, dict(params or {}))

    def execute(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> int:
        """
        Execute a non-SELECT statement and return affected row count.
        """
        result = self._run(sql, params)
        if result.rowcount is None:
            raise RuntimeError(
                "execute() received None rowcount for statement. "
                "This may indicate a DDL statement or unsupported operation type."
            )
        return int(result.rowcount)

    def execute_insert(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> MutationSummary:
        """
        Execute an INSERT and return the affected row count together with the
        id the store assigned to the new row.
        """
        result = self._run(sql, params)
        return MutationSummary(
            changes=int(result.rowcount or 0),
            last_insert_rowid=result.lastrowid,
        )

    def execute_scalar(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Execute a statement expected to return a single scalar value.
        """
        result = self._run(sql, params)
        return result.scalar_one_or_none()

    def fetch_one(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """
        Execute a SELECT expected to return 0 or 1 row. Raises if more than one row.
        """
        result = self._run(sql, params)
        row = result.mappings().one_or_none()
        if row is None:
            return None
        return dict(row)

    def fetch_all(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a SELECT expected to return multiple rows.
        """
        result = self._run(sql, params)
        return [dict(row) for row in result.mappings()]
