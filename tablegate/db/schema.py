"""
Starting schema created once at process start.

The dynamic engine never reads these definitions: at runtime every table is
discovered through the catalog, so this module can be swapped for any
migration tool that yields the same tables.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, ForeignKey, Integer, MetaData, Table, Text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()


def _id() -> Column:
    return Column("id", Integer, primary_key=True, nullable=False)


def _ref(column: str, target: str, *, on_delete: str, nullable: bool = True) -> Column:
    return Column(
        column,
        Integer,
        ForeignKey(target, ondelete=on_delete, onupdate="CASCADE"),
        nullable=nullable,
    )


faculty = Table(
    "faculty",
    metadata,
    _id(),
    Column("name", Text, nullable=False, unique=True),
    Column("deanName", Text, nullable=False),
    Column("roomPhone", Integer, nullable=False),
    sqlite_autoincrement=True,
)

group = Table(
    "group",
    metadata,
    _id(),
    Column("name", Text, nullable=False),
    Column("number", Integer, nullable=False),
    Column("year", Integer, nullable=False),
    Column("course", Integer, nullable=False),
    Column("branch", Text, nullable=False),
    sqlite_autoincrement=True,
)

subject = Table(
    "subject",
    metadata,
    _id(),
    Column("name", Text, nullable=False),
    sqlite_autoincrement=True,
)

teacher = Table(
    "teacher",
    metadata,
    _id(),
    Column("surname", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("patronymic", Text, nullable=False),
    Column("category", Text, nullable=False),
    _ref("facultyId", "faculty.id", on_delete="SET NULL"),
    sqlite_autoincrement=True,
)

load = Table(
    "load",
    metadata,
    _id(),
    Column("year", Integer, nullable=False),
    _ref("groupId", "group.id", on_delete="SET NULL"),
    _ref("subjectId", "subject.id", on_delete="SET NULL"),
    _ref("teacherId", "teacher.id", on_delete="SET NULL"),
    sqlite_autoincrement=True,
)

certification = Table(
    "certification",
    metadata,
    _id(),
    Column("date", Text, nullable=False),
    Column("type", Text, nullable=False),
    _ref("loadId", "load.id", on_delete="SET NULL"),
    sqlite_autoincrement=True,
)

student = Table(
    "student",
    metadata,
    _id(),
    Column("name", Text, nullable=False),
    Column("surname", Text, nullable=False),
    Column("birthYear", Integer, nullable=False),
    _ref("groupId", "group.id", on_delete="CASCADE"),
    sqlite_autoincrement=True,
)

mark = Table(
    "mark",
    metadata,
    _id(),
    Column("mark", Integer),
    _ref("studentId", "student.id", on_delete="CASCADE", nullable=False),
    _ref("certificationId", "certification.id", on_delete="SET NULL"),
    sqlite_autoincrement=True,
)


def bootstrap(engine: Engine) -> None:
    """Create any missing starting tables. Existing tables are left untouched."""
    metadata.create_all(engine, checkfirst=True)
    logger.info("Schema bootstrap complete (%d tables declared)", len(metadata.tables))
