from __future__ import annotations

import pytest
from pydantic import ValidationError

from rowstore.domain.results import Failure, OperationResult
from rowstore.domain.schema import Schema, is_identifier


class TestSchemaDefaults:
    def test_defaults(self):
        schema = Schema(table="notes")
        assert schema.primary_key == {"id": "%d"}
        assert schema.columns == {}
        assert schema.created_column == "created"
        assert schema.updated_column == "updated"
        assert schema.table_prefix is None

    def test_primary_key_accessors(self):
        schema = Schema(table="notes", primary_key={"note_id": "%d"})
        assert schema.primary_key_column == "note_id"
        assert schema.primary_key_format == "%d"

    def test_schema_is_frozen(self):
        schema = Schema(table="notes")
        with pytest.raises(ValidationError):
            schema.table = "other"


class TestSchemaValidation:
    @pytest.mark.parametrize("table", ["", "bad-name", "1starts_with_digit", "two words"])
    def test_invalid_table_names(self, table):
        with pytest.raises(ValidationError):
            Schema(table=table)

    def test_invalid_column_name(self):
        with pytest.raises(ValidationError):
            Schema(table="notes", columns={"title;": "%s"})

    def test_unknown_format(self):
        with pytest.raises(ValidationError):
            Schema(table="notes", columns={"title": "%x"})

    def test_composite_primary_key_rejected(self):
        with pytest.raises(ValidationError):
            Schema(table="notes", primary_key={"a": "%d", "b": "%d"})

    def test_timestamp_column_cannot_be_primary_key(self):
        with pytest.raises(ValidationError):
            Schema(table="notes", created_column="id")

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            Schema(table="notes", tablename="typo")


class TestFormats:
    def test_declared_and_default_formats(self):
        schema = Schema(table="notes", columns={"views": "%d", "score": "%f"})
        assert schema.column_format("views") == "%d"
        assert schema.column_format("score") == "%f"
        assert schema.column_format("anything") == "%s"

    def test_formats_follow_key_order(self):
        schema = Schema(table="notes", columns={"views": "%d"})
        assert schema.formats_for(["title", "views", "created"]) == ["%s", "%d", "%s"]

    def test_data_columns_exclude_primary_key(self):
        schema = Schema(table="notes", columns={"id": "%d", "title": "%s", "views": "%d"})
        assert schema.data_columns == ["title", "views"]


class TestPhysicalTable:
    def test_prefix_order(self):
        schema = Schema(table="notes", table_prefix="lms_")
        assert schema.physical_table("wp_", "app_") == "wp_lms_notes"

    def test_default_prefix_when_undeclared(self):
        assert Schema(table="notes").physical_table("wp_", "app_") == "wp_app_notes"


def test_is_identifier():
    assert is_identifier("created_at")
    assert is_identifier("_private")
    assert not is_identifier("a b")
    assert not is_identifier('x"')


class TestOperationResult:
    def test_success_is_truthy(self):
        result = OperationResult.success(rows_affected=2)
        assert result
        assert result.rows_affected == 2
        assert result.failure is None

    def test_failure_is_falsy(self):
        result = OperationResult.fail(Failure.EMPTY_INSERT, "nothing to write")
        assert not result
        assert result.failure is Failure.EMPTY_INSERT
        assert result.message == "nothing to write"
