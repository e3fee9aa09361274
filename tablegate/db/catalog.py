from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Mapping

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreError, UnknownColumnError, UnknownTableError
from .metrics import observe_store_operation
from .models import ColumnInfo, ForeignKeyInfo, TableName, UniqueConstraintInfo
from .session import DbSession

logger = logging.getLogger(__name__)

# Internal bookkeeping tables (sqlite_sequence, sqlite_stat1, ...) are never listed.
_LIST_TABLES_SQL = (
    "SELECT name FROM sqlite_master "
    "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'"
)
_TABLE_INFO_SQL = "SELECT * FROM pragma_table_info(:table) ORDER BY cid"
_INDEX_LIST_SQL = "SELECT * FROM pragma_index_list(:table) ORDER BY seq"
_INDEX_INFO_SQL = "SELECT * FROM pragma_index_info(:index) ORDER BY seqno"
_FOREIGN_KEY_LIST_SQL = "SELECT * FROM pragma_foreign_key_list(:table) ORDER BY id, seq"


def _metric_label(table: str | TableName | None) -> str:
    # unconfirmed names share one label value
    return table.value if isinstance(table, TableName) else "*"


class SchemaCatalog:
    """
    Read-only access to the store's system catalog.

    Nothing is cached: every call re-queries the store, so metadata always
    reflects the live schema. Table and index names are bound as statement
    parameters of the table-valued pragma functions; they never become part
    of the statement text.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _fetch_all(
        self,
        sql: str,
        params: Mapping[str, Any] | None = None,
        *,
        table: str | TableName | None = None,
        op_type: str,
    ) -> list[dict[str, Any]]:
        start_time = time.monotonic()
        status = "success"
        try:
            with DbSession(self.engine) as session:
                return session.fetch_all(sql, params)
        except SQLAlchemyError as exc:
            status = "error"
            logger.error("Catalog query %s failed for table %r: %s", op_type, str(table or ""), exc)
            raise StoreError(f"catalog query {op_type} failed: {exc}") from exc
        finally:
            latency_s = time.monotonic() - start_time
            observe_store_operation(_metric_label(table), op_type, status, latency_s)

    def list_tables(self) -> list[str]:
        rows = self._fetch_all(_LIST_TABLES_SQL, op_type="list_tables")
        return [str(row["name"]) for row in rows]

    def column_info(self, table: str | TableName) -> list[ColumnInfo]:
        """
        Column descriptors in declaration order. A table that does not
        exist yields an empty list.
        """
        name = str(table)
        rows = self._fetch_all(_TABLE_INFO_SQL, {"table": name}, table=table, op_type="table_info")
        return [
            ColumnInfo(
                cid=int(row["cid"]),
                name=str(row["name"]),
                type=str(row["type"] or ""),
                not_null=bool(row["notnull"]),
                default=row["dflt_value"],
                primary_key=int(row["pk"]),
            )
            for row in rows
        ]

    def unique_constraints(self, table: str | TableName) -> list[UniqueConstraintInfo]:
        """
        Every unique index on `table`, resolved to all of its columns.
        """
        name = str(table)
        indexes = self._fetch_all(_INDEX_LIST_SQL, {"table": name}, table=table, op_type="index_list")
        result: list[UniqueConstraintInfo] = []
        for index in indexes:
            if int(index["unique"]) != 1:
                continue
            index_name = str(index["name"])
            columns = self._fetch_all(
                _INDEX_INFO_SQL, {"index": index_name}, table=table, op_type="index_info"
            )
            result.append(
                UniqueConstraintInfo(
                    index_name=index_name,
                    # expression indexes report a NULL column name
                    columns=tuple(str(col["name"]) for col in columns if col["name"] is not None),
                )
            )
        return result

    def unique_columns(self, table: str | TableName) -> list[str]:
        """
        Column names covered by a unique index on `table`.

        Only the first column of each unique index is reported, so a
        composite key (a, b) shows up as just "a". Use unique_constraints()
        when the full column list matters.
        """
        names: list[str] = []
        for constraint in self.unique_constraints(table):
            if not constraint.columns:
                continue
            first = constraint.columns[0]
            if first not in names:
                names.append(first)
        return names

    def foreign_keys(self, table: str | TableName) -> list[ForeignKeyInfo]:
        name = str(table)
        rows = self._fetch_all(
            _FOREIGN_KEY_LIST_SQL, {"table": name}, table=table, op_type="foreign_key_list"
        )
        return [
            ForeignKeyInfo(
                id=int(row["id"]),
                seq=int(row["seq"]),
                column=str(row["from"]),
                referenced_table=str(row["table"]),
                referenced_column=row["to"],
                on_update=str(row["on_update"]),
                on_delete=str(row["on_delete"]),
                match=str(row["match"]),
            )
            for row in rows
        ]

    def resolve_table(self, name: str) -> TableName:
        """
        Confirm `name` against the live table list (case-insensitively) and
        return it with its declared spelling.

        Raises:
            UnknownTableError: If no such table exists
        """
        declared = {table.lower(): table for table in self.list_tables()}
        if name.lower() not in declared:
            raise UnknownTableError(f"no such table: {name!r}")
        return TableName(declared[name.lower()])

    def resolve_columns(self, table: TableName, names: Iterable[str]) -> list[str]:
        """
        Confirm every name in `names` is a declared column of `table` and
        return the declared spelling, in the order given. Column names match
        case-insensitively, as they do in SQLite.

        Raises:
            UnknownColumnError: Naming every column that does not exist
        """
        requested = list(names)
        declared = {column.name.lower(): column.name for column in self.column_info(table)}
        unknown = [name for name in requested if name.lower() not in declared]
        if unknown:
            raise UnknownColumnError(
                f"table {table.value!r} has no column(s): {', '.join(map(repr, unknown))}"
            )
        return [declared[name.lower()] for name in requested]
