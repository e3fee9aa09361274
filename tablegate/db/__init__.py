from .catalog import SchemaCatalog
from .models import (
    ColumnInfo,
    ForeignKeyInfo,
    MutationSummary,
    OperationKind,
    OperationResult,
    Outcome,
    TableName,
    UniqueConstraintInfo,
)
from .query import QueryBuilder, Statement, parse_id_list
from .session import DbSession, make_engine

__all__ = [
    "ColumnInfo",
    "DbSession",
    "ForeignKeyInfo",
    "MutationSummary",
    "OperationKind",
    "OperationResult",
    "Outcome",
    "QueryBuilder",
    "SchemaCatalog",
    "Statement",
    "TableName",
    "UniqueConstraintInfo",
    "make_engine",
    "parse_id_list",
]
