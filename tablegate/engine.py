from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .db.catalog import SchemaCatalog
from .db.metrics import observe_store_operation
from .db.models import MutationSummary, OperationKind, OperationResult, Outcome, TableName
from .db.query import QueryBuilder, Statement, coerce_id, parse_id_list
from .db.session import DbSession
from .errors import BadRequestError, ConstraintViolationError, MissingParameterError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class TableEngine:
    """
    Uniform operations over any table in the store.

    Every call is validated before the store is touched (a missing table
    name is a BadRequestError, a missing id a MissingParameterError), then
    resolved against the live catalog, then executed as exactly one
    statement in its own transaction. Store failures are logged and raised
    as StoreError (ConstraintViolationError for constraint rejections);
    nothing is retried.

    Empty results are successes with Outcome.EMPTY, never errors.

    Usage:
        engine = TableEngine(make_engine(StoreConfig()))
        result = engine.add("student", {"name": "Ann", "surname": "Lee", "birthYear": 2000})
        row = engine.get("student", result.data.last_insert_rowid).data
    """

    def __init__(
        self,
        engine: Engine,
        catalog: Optional[SchemaCatalog] = None,
        builder: Optional[QueryBuilder] = None,
    ) -> None:
        self.engine = engine
        self.catalog = catalog or SchemaCatalog(engine)
        self.builder = builder or QueryBuilder(engine.dialect)

    # -- validation -------------------------------------------------------

    @staticmethod
    def _require_table(table: Optional[str]) -> str:
        if _is_missing(table):
            raise BadRequestError("table name is required")
        return str(table).strip()

    @staticmethod
    def _require_id(id_value: Any) -> Any:
        if _is_missing(id_value):
            raise MissingParameterError("id is required")
        return id_value

    def _resolve(self, table: str) -> TableName:
        return self.catalog.resolve_table(table)

    def _resolve_values(self, table: TableName, values: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        values = dict(values or {})
        columns = self.catalog.resolve_columns(table, values.keys())
        duplicates = sorted({column for column in columns if columns.count(column) > 1})
        if duplicates:
            raise BadRequestError(f"column(s) supplied more than once: {', '.join(duplicates)}")
        return dict(zip(columns, values.values()))

    # -- execution --------------------------------------------------------

    def _execute(self, stmt: Statement, run: Callable[[DbSession, Statement], T]) -> T:
        start_time = time.monotonic()
        status = "success"
        try:
            with DbSession(self.engine) as session:
                return run(session, stmt)
        except IntegrityError as exc:
            status = "error"
            logger.error("%s on %r rejected by constraint: %s", stmt.op_type.value, stmt.table, exc.orig)
            raise ConstraintViolationError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            status = "error"
            logger.error("%s on %r failed: %s", stmt.op_type.value, stmt.table, exc)
            raise StoreError(str(exc)) from exc
        finally:
            observe_store_operation(stmt.table, stmt.op_type.value, status, time.monotonic() - start_time)

    @staticmethod
    def _result(kind: OperationKind, data: Any) -> OperationResult:
        empty = data is None or (isinstance(data, (list, tuple)) and not data)
        return OperationResult(kind=kind, outcome=Outcome.EMPTY if empty else Outcome.OK, data=data)

    # -- metadata verbs ---------------------------------------------------

    def list_tables(self) -> OperationResult:
        return self._result(OperationKind.LIST, self.catalog.list_tables())

    def info(self, table: Optional[str]) -> OperationResult:
        name = self._require_table(table)
        return self._result(OperationKind.INFO, self.catalog.column_info(name))

    def uniques(self, table: Optional[str]) -> OperationResult:
        name = self._require_table(table)
        return self._result(OperationKind.UNIQUES, self.catalog.unique_columns(name))

    def unique_constraints(self, table: Optional[str]) -> OperationResult:
        name = self._require_table(table)
        return self._result(OperationKind.UNIQUES, self.catalog.unique_constraints(name))

    def foreign_keys(self, table: Optional[str]) -> OperationResult:
        name = self._require_table(table)
        return self._result(OperationKind.FOREIGN_KEYS, self.catalog.foreign_keys(name))

    # -- data verbs -------------------------------------------------------

    def get(self, table: Optional[str], id_value: Any = None) -> OperationResult:
        """
        One row when `id_value` is given, otherwise every row in store order.
        """
        resolved = self._resolve(self._require_table(table))
        if _is_missing(id_value):
            stmt = self.builder.select_all(resolved)
            rows = self._execute(stmt, lambda s, st: s.fetch_all(st.sql, st.params))
            return self._result(OperationKind.GET, rows)

        stmt = self.builder.select_by_id(resolved, id_value)
        row = self._execute(stmt, lambda s, st: s.fetch_one(st.sql, st.params))
        return self._result(OperationKind.GET, row)

    def add(self, table: Optional[str], values: Optional[Mapping[str, Any]] = None) -> OperationResult:
        resolved = self._resolve(self._require_table(table))
        stmt = self.builder.insert(resolved, self._resolve_values(resolved, values))
        summary = self._execute(stmt, lambda s, st: s.execute_insert(st.sql, st.params))
        logger.debug("Inserted row %s into %r", summary.last_insert_rowid, resolved.value)
        return OperationResult(kind=OperationKind.ADD, outcome=Outcome.OK, data=summary)

    def update(
        self,
        table: Optional[str],
        id_value: Any,
        values: Optional[Mapping[str, Any]] = None,
    ) -> OperationResult:
        """
        Update the supplied columns of the row with `id_value`. An id that
        matches nothing is a success with changes == 0.
        """
        name = self._require_table(table)
        id_value = self._require_id(id_value)
        resolved = self._resolve(name)
        stmt = self.builder.update_by_id(resolved, id_value, self._resolve_values(resolved, values))
        changes = self._execute(stmt, lambda s, st: s.execute(st.sql, st.params))
        return OperationResult(
            kind=OperationKind.UPDATE, outcome=Outcome.OK, data=MutationSummary(changes=changes)
        )

    def delete(self, table: Optional[str], ids: Any) -> OperationResult:
        """
        Delete every row whose id is in `ids` (one id, a list, or a comma
        separated string).
        """
        name = self._require_table(table)
        id_list = parse_id_list(self._require_id(ids))
        resolved = self._resolve(name)
        stmt = self.builder.delete_by_ids(resolved, id_list)
        changes = self._execute(stmt, lambda s, st: s.execute(st.sql, st.params))
        return OperationResult(
            kind=OperationKind.DELETE, outcome=Outcome.OK, data=MutationSummary(changes=changes)
        )

    def next_id(self, table: Optional[str]) -> OperationResult:
        resolved = self._resolve(self._require_table(table))
        stmt = self.builder.next_id(resolved)
        value = self._execute(stmt, lambda s, st: s.execute_scalar(st.sql, st.params))
        return OperationResult(kind=OperationKind.NEXT_ID, outcome=Outcome.OK, data={"id": coerce_id(value)})


