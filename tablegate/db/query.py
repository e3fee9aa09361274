from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.elements import TextClause

from ..errors import BadRequestError, MissingParameterError
from .models import OperationKind, TableName

ID_COLUMN = "id"

_INTEGER_RE = re.compile(r"^-?\d+$")


def coerce_id(value: Any) -> Any:
    """
    Turn an integer-looking string into an int; anything else is passed
    through and left to the store's type affinity.
    """
    if isinstance(value, str):
        stripped = value.strip()
        if _INTEGER_RE.match(stripped):
            return int(stripped)
        return stripped
    return value


def parse_id_list(raw: Any) -> list[Any]:
    """
    Parse "1, 2,3" into [1, 2, 3]. Blank items are skipped.

    Raises:
        MissingParameterError: If no id is left after parsing
    """
    if raw is None:
        raise MissingParameterError("id is required")
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        items = str(raw).split(",")
    ids = [coerce_id(item) for item in items if str(item).strip() != ""]
    if not ids:
        raise MissingParameterError("id is required")
    return ids


@dataclass(frozen=True)
class Statement:
    """
    One executable statement. `sql` contains only quoted, catalog-validated
    identifiers; every value travels in `params`.
    """
    op_type: OperationKind
    table: str
    sql: TextClause
    params: dict[str, Any] = field(default_factory=dict)


class QueryBuilder:
    """
    Builds select/insert/update/delete/next-id statements for any table.

    Identifiers must already be validated against the live catalog (a
    TableName, and column names returned by SchemaCatalog.resolve_columns);
    they are quoted with the dialect's identifier rules. Values are always
    bound parameters.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self._preparer = dialect.identifier_preparer

    def quote(self, identifier: str) -> str:
        if not isinstance(identifier, str):
            raise TypeError(f"identifier must be a string, got {type(identifier).__name__}")
        if not identifier:
            raise ValueError("identifier cannot be empty")
        return self._preparer.quote_identifier(identifier)

    def _table(self, table: TableName) -> str:
        if not isinstance(table, TableName):
            raise TypeError(
                f"table must be a TableName resolved from the catalog, got {type(table).__name__}"
            )
        return self.quote(table.value)

    def select_all(self, table: TableName) -> Statement:
        sql = f"SELECT * FROM {self._table(table)}"
        return Statement(OperationKind.GET, table.value, text(sql))

    def select_by_id(self, table: TableName, id_value: Any) -> Statement:
        sql = (
            f"SELECT * FROM {self._table(table)} "
            f"WHERE {self.quote(ID_COLUMN)} = :id_value LIMIT 1"
        )
        return Statement(OperationKind.GET, table.value, text(sql), {"id_value": coerce_id(id_value)})

    def insert(self, table: TableName, values: Mapping[str, Any]) -> Statement:
        """
        INSERT listing exactly the supplied columns in the order supplied.
        An empty mapping inserts a row of defaults.
        """
        quoted_table = self._table(table)
        if not values:
            return Statement(OperationKind.ADD, table.value, text(f"INSERT INTO {quoted_table} DEFAULT VALUES"))

        cols: list[str] = []
        placeholders: list[str] = []
        params: dict[str, Any] = {}
        for i, (col, val) in enumerate(values.items()):
            cols.append(self.quote(col))
            placeholders.append(f":p{i}")
            params[f"p{i}"] = val

        sql = f"INSERT INTO {quoted_table} ({', '.join(cols)}) VALUES ({', '.join(placeholders)})"
        return Statement(OperationKind.ADD, table.value, text(sql), params)

    def update_by_id(self, table: TableName, id_value: Any, values: Mapping[str, Any]) -> Statement:
        if not values:
            raise BadRequestError("update requires at least one column value")

        set_clauses: list[str] = []
        params: dict[str, Any] = {"id_value": coerce_id(id_value)}
        for i, (col, val) in enumerate(values.items()):
            set_clauses.append(f"{self.quote(col)} = :p{i}")
            params[f"p{i}"] = val

        sql = (
            f"UPDATE {self._table(table)} SET {', '.join(set_clauses)} "
            f"WHERE {self.quote(ID_COLUMN)} = :id_value"
        )
        return Statement(OperationKind.UPDATE, table.value, text(sql), params)

    def delete_by_ids(self, table: TableName, ids: Any) -> Statement:
        id_list = parse_id_list(ids)
        sql = f"DELETE FROM {self._table(table)} WHERE {self.quote(ID_COLUMN)} IN :ids"
        stmt = text(sql).bindparams(bindparam("ids", expanding=True))
        return Statement(OperationKind.DELETE, table.value, stmt, {"ids": id_list})

    def next_id(self, table: TableName) -> Statement:
        """
        MAX(id) + 1. This is a hint for callers, not a reservation: two
        concurrent callers can see the same value.
        """
        id_col = self.quote(ID_COLUMN)
        sql = f"SELECT COALESCE(MAX({id_col}), 0) + 1 AS {id_col} FROM {self._table(table)}"
        return Statement(OperationKind.NEXT_ID, table.value, text(sql))
