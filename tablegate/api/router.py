"""
Table API endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..counter import RequestCounter
from ..db.models import OperationResult
from ..engine import TableEngine

router = APIRouter()


def get_table_engine(request: Request) -> TableEngine:
    return request.app.state.table_engine


def get_request_counter(request: Request) -> RequestCounter:
    return request.app.state.request_counter


def _respond(result: OperationResult) -> Response:
    if result.is_empty:
        return Response(status_code=204)
    return JSONResponse(status_code=200, content=jsonable_encoder(result.payload()))


def _column_values(request: Request) -> dict[str, str]:
    # Every query parameter is a column; repeated keys keep the last value.
    return dict(request.query_params)


@router.get("/list")
def list_tables(engine: TableEngine = Depends(get_table_engine)) -> Response:
    return _respond(engine.list_tables())


@router.get("/info/{table}")
def table_info(table: str, engine: TableEngine = Depends(get_table_engine)) -> Response:
    return _respond(engine.info(table))


@router.get("/getUniques/{table}")
def unique_columns(table: str, engine: TableEngine = Depends(get_table_engine)) -> Response:
    return _respond(engine.uniques(table))


@router.get("/uniqueConstraints/{table}")
def unique_constraints(table: str, engine: TableEngine = Depends(get_table_engine)) -> Response:
    return _respond(engine.unique_constraints(table))


@router.get("/foreignKeys/{table}")
def foreign_keys(table: str, engine: TableEngine = Depends(get_table_engine)) -> Response:
    return _respond(engine.foreign_keys(table))


@router.get("/get/{table}")
def get_rows(
    table: str,
    id: Optional[str] = Query(default=None),
    engine: TableEngine = Depends(get_table_engine),
) -> Response:
    return _respond(engine.get(table, id))


@router.post("/add/{table}")
def add_row(
    table: str,
    request: Request,
    engine: TableEngine = Depends(get_table_engine),
) -> Response:
    return _respond(engine.add(table, _column_values(request)))


@router.post("/update/{table}/{id}")
def update_row(
    table: str,
    id: str,
    request: Request,
    engine: TableEngine = Depends(get_table_engine),
) -> Response:
    return _respond(engine.update(table, id, _column_values(request)))


@router.delete("/delete/{table}/{ids}")
def delete_rows(
    table: str,
    ids: str,
    engine: TableEngine = Depends(get_table_engine),
) -> Response:
    return _respond(engine.delete(table, ids))


@router.get("/nextId/{table}")
def next_id(table: str, engine: TableEngine = Depends(get_table_engine)) -> Response:
    return _respond(engine.next_id(table))


@router.get("/stats")
def stats(counter: RequestCounter = Depends(get_request_counter)) -> dict:
    return counter.read()
