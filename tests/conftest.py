from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from tablegate.config import StoreConfig
from tablegate.db.schema import bootstrap
from tablegate.db.session import make_engine
from tablegate.engine import TableEngine


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "main.db"


@pytest.fixture
def store_config(db_path: Path) -> StoreConfig:
    return StoreConfig(url=f"sqlite:///{db_path}", busy_timeout_s=5.0)


@pytest.fixture
def engine(store_config: StoreConfig) -> Iterator[Engine]:
    """
    A fresh SQLite file per test, with the starting schema created.
    """
    eng = make_engine(store_config)
    bootstrap(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def table_engine(engine: Engine) -> TableEngine:
    return TableEngine(engine)


def _sanitize_table_name(name: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9_]+", "_", name).strip("_").lower()
    if not name:
        name = "t"
    return name[:48]


@pytest.fixture
def table_factory(engine: Engine, request: pytest.FixtureRequest) -> Iterator[Callable[[str], str]]:
    """
    Factory fixture creating per-test tables.

    Usage:
        table = table_factory("id INTEGER PRIMARY KEY, value INT NOT NULL")
    """
    created: list[str] = []

    def _create(schema_sql: str) -> str:
        base = _sanitize_table_name(f"t_{request.node.name}")
        suffix = uuid.uuid4().hex[:10]
        table = f"{base}_{suffix}"

        with engine.begin() as conn:
            conn.exec_driver_sql(f'DROP TABLE IF EXISTS "{table}"')
            conn.exec_driver_sql(f'CREATE TABLE "{table}" ({schema_sql})')

        created.append(table)
        return table

    yield _create

    with engine.begin() as conn:
        for table in created:
            conn.exec_driver_sql(f'DROP TABLE IF EXISTS "{table}"')


@pytest.fixture
def fresh_table(table_factory: Callable[[str], str]) -> str:
    """
    A default table schema used across DB unit tests.

    Includes:
    - PK `id`
    - `code` with a unique index
    - a composite unique index over (k1, k2)
    """
    schema_sql = """
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        k1 INTEGER NOT NULL DEFAULT 0,
        k2 INTEGER NOT NULL DEFAULT 0,
        value INTEGER NOT NULL DEFAULT 0,
        name TEXT NULL,
        code TEXT UNIQUE,
        UNIQUE (k1, k2)
    """
    return table_factory(schema_sql)
