from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from tablegate.db.models import MutationSummary, OperationKind, Outcome
from tablegate.engine import TableEngine
from tablegate.errors import (
    BadRequestError,
    ConstraintViolationError,
    MissingParameterError,
    StoreError,
    UnknownColumnError,
    UnknownTableError,
)

ANN = {"name": "Ann", "surname": "Lee", "birthYear": "2000"}


def _add_group(table_engine: TableEngine) -> int:
    result = table_engine.add(
        "group", {"name": "CS", "number": 1, "year": 2024, "course": 1, "branch": "main"}
    )
    return result.data.last_insert_rowid


class TestStudentLifecycle:
    """The add / get / delete round trip on an empty table."""

    def test_full_scenario(self, table_engine: TableEngine) -> None:
        assert table_engine.next_id("student").data == {"id": 1}

        added = table_engine.add("student", ANN)
        assert added.kind is OperationKind.ADD
        assert added.data == MutationSummary(changes=1, last_insert_rowid=1)

        row = table_engine.get("student", 1)
        assert row.outcome is Outcome.OK
        assert row.data == {"id": 1, "name": "Ann", "surname": "Lee", "birthYear": 2000, "groupId": None}

        deleted = table_engine.delete("student", "1")
        assert deleted.data == MutationSummary(changes=1)

        assert table_engine.get("student").outcome is Outcome.EMPTY

    def test_get_all_returns_rows_in_insertion_order(self, table_engine: TableEngine) -> None:
        table_engine.add("student", ANN)
        table_engine.add("student", {**ANN, "name": "Bob"})

        rows = table_engine.get("student").data

        assert [r["name"] for r in rows] == ["Ann", "Bob"]

    def test_get_missing_id_is_empty_not_error(self, table_engine: TableEngine) -> None:
        result = table_engine.get("student", "42")

        assert result.is_empty
        assert result.data is None

    def test_blank_id_means_select_all(self, table_engine: TableEngine) -> None:
        table_engine.add("student", ANN)

        assert len(table_engine.get("student", "").data) == 1


class TestMutations:
    def test_update_changes_only_supplied_columns(self, table_engine: TableEngine) -> None:
        table_engine.add("student", ANN)

        result = table_engine.update("student", "1", {"surname": "Park"})

        assert result.data == MutationSummary(changes=1)
        row = table_engine.get("student", 1).data
        assert row["surname"] == "Park"
        assert row["name"] == "Ann"

    def test_update_unknown_id_reports_zero_changes(self, table_engine: TableEngine) -> None:
        result = table_engine.update("student", 999, {"name": "Nobody"})

        assert result.outcome is Outcome.OK
        assert result.data.changes == 0

    def test_delete_comma_list_deletes_only_listed_rows(self, table_engine: TableEngine) -> None:
        for name in ("a", "b", "c", "d"):
            table_engine.add("student", {**ANN, "name": name})

        result = table_engine.delete("student", "1,3,77")

        assert result.data.changes == 2
        remaining = [r["id"] for r in table_engine.get("student").data]
        assert remaining == [2, 4]

    def test_next_id_ignores_gaps(self, table_engine: TableEngine) -> None:
        for _ in range(3):
            table_engine.add("student", ANN)
        table_engine.delete("student", "2")

        assert table_engine.next_id("student").data == {"id": 4}

    def test_hostile_values_are_stored_literally(self, table_engine: TableEngine) -> None:
        hostile = "x'); DROP TABLE student; --"

        table_engine.add("student", {**ANN, "name": hostile})

        assert table_engine.get("student", 1).data["name"] == hostile
        assert "student" in table_engine.list_tables().data

    def test_column_names_resolve_case_insensitively(self, table_engine: TableEngine) -> None:
        table_engine.add("student", {"NAME": "Ann", "surname": "Lee", "birthyear": 1999})

        assert table_engine.get("student", 1).data["birthYear"] == 1999


class TestValidation:
    def test_missing_table_is_bad_request(self, table_engine: TableEngine) -> None:
        for call in (
            lambda: table_engine.info(None),
            lambda: table_engine.get(""),
            lambda: table_engine.add("  ", ANN),
            lambda: table_engine.next_id(None),
        ):
            with pytest.raises(BadRequestError) as excinfo:
                call()
            assert not isinstance(excinfo.value, MissingParameterError)

    def test_missing_id_is_distinct_outcome(self, table_engine: TableEngine) -> None:
        with pytest.raises(MissingParameterError):
            table_engine.update("student", None, {"name": "x"})
        with pytest.raises(MissingParameterError):
            table_engine.delete("student", " ")
        with pytest.raises(MissingParameterError):
            table_engine.delete("student", ",,")

    def test_validation_happens_before_store_access(self) -> None:
        catalog = MagicMock()
        table_engine = TableEngine(MagicMock(), catalog=catalog, builder=MagicMock())

        with pytest.raises(BadRequestError):
            table_engine.update("", "1", {"name": "x"})
        with pytest.raises(MissingParameterError):
            table_engine.update("student", "", {"name": "x"})
        with pytest.raises(MissingParameterError):
            table_engine.delete("student", None)

        catalog.assert_not_called()
        assert catalog.method_calls == []

    def test_update_without_columns_is_bad_request(self, table_engine: TableEngine) -> None:
        with pytest.raises(BadRequestError):
            table_engine.update("student", "1", {})

    def test_same_column_in_two_spellings_is_bad_request(self, table_engine: TableEngine) -> None:
        with pytest.raises(BadRequestError):
            table_engine.add("student", {**ANN, "NAME": "Bob"})
        assert table_engine.get("student").is_empty

        table_engine.add("student", ANN)
        with pytest.raises(BadRequestError):
            table_engine.update("student", 1, {"surname": "Park", "Surname": "Kim"})
        assert table_engine.get("student", 1).data["surname"] == "Lee"


class TestStoreFailures:
    def test_unknown_table_on_data_verbs(self, table_engine: TableEngine) -> None:
        for call in (
            lambda: table_engine.get("nope"),
            lambda: table_engine.add("nope", {"a": 1}),
            lambda: table_engine.update("nope", 1, {"a": 1}),
            lambda: table_engine.delete("nope", "1"),
            lambda: table_engine.next_id("nope"),
        ):
            with pytest.raises(UnknownTableError):
                call()

    def test_unknown_table_on_metadata_verbs_is_empty(self, table_engine: TableEngine) -> None:
        assert table_engine.info("nope").is_empty
        assert table_engine.uniques("nope").is_empty
        assert table_engine.foreign_keys("nope").is_empty

    def test_unknown_column_is_store_error(self, table_engine: TableEngine) -> None:
        with pytest.raises(UnknownColumnError):
            table_engine.add("student", {**ANN, "age": "20"})
        assert table_engine.get("student").is_empty

    def test_not_null_violation(self, table_engine: TableEngine) -> None:
        with pytest.raises(ConstraintViolationError):
            table_engine.add("student", {"name": "Ann"})

    def test_unique_violation(self, table_engine: TableEngine) -> None:
        faculty = {"name": "Math", "deanName": "Euler", "roomPhone": "100"}
        table_engine.add("faculty", faculty)

        with pytest.raises(ConstraintViolationError):
            table_engine.add("faculty", faculty)

    def test_foreign_key_violation(self, table_engine: TableEngine) -> None:
        with pytest.raises(ConstraintViolationError):
            table_engine.add("student", {**ANN, "groupId": "999"})

    def test_foreign_key_cascade_is_enforced(self, table_engine: TableEngine) -> None:
        group_id = _add_group(table_engine)
        table_engine.add("student", {**ANN, "groupId": group_id})

        table_engine.delete("group", group_id)

        assert table_engine.get("student").is_empty

    def test_constraint_violation_is_a_store_error(self) -> None:
        assert issubclass(ConstraintViolationError, StoreError)

    def test_driver_failure_becomes_store_error(self, table_engine: TableEngine, monkeypatch) -> None:
        def boom(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr("tablegate.db.session.DbSession.fetch_all", boom)

        with pytest.raises(StoreError) as excinfo:
            table_engine.list_tables()
        assert not isinstance(excinfo.value, ConstraintViolationError)


class TestMetadata:
    def test_list_tables(self, table_engine: TableEngine) -> None:
        result = table_engine.list_tables()

        assert result.kind is OperationKind.LIST
        assert "student" in result.data

    def test_info_payload_is_json_ready(self, table_engine: TableEngine) -> None:
        payload = table_engine.info("faculty").payload()

        assert payload[1] == {
            "cid": 1,
            "name": "name",
            "type": "TEXT",
            "not_null": True,
            "default": None,
            "primary_key": 0,
        }

    def test_uniques(self, table_engine: TableEngine) -> None:
        assert table_engine.uniques("faculty").data == ["name"]
        assert table_engine.uniques("student").is_empty

    def test_unique_constraints(self, table_engine: TableEngine) -> None:
        payload = table_engine.unique_constraints("faculty").payload()

        assert [c["columns"] for c in payload] == [["name"]]

    def test_foreign_keys(self, table_engine: TableEngine) -> None:
        result = table_engine.foreign_keys("mark")

        assert {fk.column for fk in result.data} == {"studentId", "certificationId"}
        assert table_engine.foreign_keys("faculty").is_empty
