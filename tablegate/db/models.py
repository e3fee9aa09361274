from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class OperationKind(str, Enum):
    LIST = "list"
    INFO = "info"
    UNIQUES = "uniques"
    FOREIGN_KEYS = "foreign_keys"
    GET = "get"
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    NEXT_ID = "next_id"


class Outcome(str, Enum):
    OK = "ok"
    EMPTY = "empty"


@dataclass(frozen=True)
class TableName:
    """
    A table name confirmed to exist in the live catalog.

    Only SchemaCatalog.resolve_table() should construct these; the query
    builder refuses plain strings.
    """
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ColumnInfo:
    cid: int
    name: str
    type: str
    not_null: bool
    default: Optional[str]
    primary_key: int  # 1-based position in the primary key, 0 if not part of it

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UniqueConstraintInfo:
    index_name: str
    columns: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"index_name": self.index_name, "columns": list(self.columns)}


@dataclass(frozen=True)
class ForeignKeyInfo:
    id: int
    seq: int
    column: str
    referenced_table: str
    referenced_column: Optional[str]
    on_update: str
    on_delete: str
    match: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MutationSummary:
    changes: int
    last_insert_rowid: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"changes": self.changes}
        if self.last_insert_rowid is not None:
            data["lastInsertRowid"] = self.last_insert_rowid
        return data


@dataclass
class OperationResult:
    """
    Outcome of one engine verb.

    `data` is a row dict, a list of rows, a metadata list, a mutation summary
    or the next-id mapping, depending on `kind`. EMPTY means the operation
    succeeded and produced nothing.
    """
    kind: OperationKind
    outcome: Outcome
    data: Any = None

    @property
    def is_empty(self) -> bool:
        return self.outcome is Outcome.EMPTY

    def payload(self) -> Any:
        """Return `data` converted to JSON-ready builtins."""
        return _to_builtin(self.data)


def _to_builtin(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    return value
