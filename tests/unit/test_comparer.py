"""
Unit tests for key matching and row comparison
"""

import datetime

import pytest

from datadiff.compare.comparer import RowDataComparer
from datadiff.compare.literals import SqlLiteralFormatter
from datadiff.compare.matcher import find_match
from datadiff.compare.output import SqlTextOutput
from datadiff.connection import DatabaseType
from datadiff.errors import DataDiffError
from datadiff.storage import ColumnDescriptor, ResultShape, Row, SqlType, TableIdentifier

TABLE = TableIdentifier("person")


def shape(*names, keys=("id",)):
    return ResultShape(tuple(ColumnDescriptor(n) for n in names), update_table=TABLE, key_columns=keys)


REFERENCE = shape("id", "firstname", "lastname", "last_modified")
TARGET = shape("LASTNAME", "ID", "FIRSTNAME", "LAST_MODIFIED")


def reference_row(id_, first, last, modified=None):
    return Row(REFERENCE, [id_, first, last, modified])


def target_row(id_, first, last, modified=None):
    return Row(TARGET, [last, id_, first, modified])


def comparer(**kwargs):
    output = SqlTextOutput(DatabaseType.POSTGRESQL, SqlLiteralFormatter(DatabaseType.POSTGRESQL))
    return RowDataComparer(output, **kwargs)


class TestFindMatch:
    """Test key based row matching"""

    def test_match_across_column_orders(self):
        candidates = [target_row(1, "Ann", "Lee"), target_row(2, "Bob", "Ray")]
        assert find_match(candidates, reference_row(2, "Bob", "Ray"), ["id"]) == 1

    def test_no_match(self):
        assert find_match([target_row(1, "Ann", "Lee")], reference_row(3, "C", "D"), ["id"]) == -1

    def test_null_key_never_matches(self):
        row_shape = shape("id", "name", keys=())
        candidates = [Row(row_shape, [None, "x"])]
        assert find_match(candidates, Row(row_shape, [None, "x"]), ["id"]) == -1

    def test_null_candidate_key_is_skipped(self):
        row_shape = shape("code", "name", keys=())
        candidates = [Row(row_shape, [None, "a"]), Row(row_shape, ["A", "b"])]
        assert find_match(candidates, Row(row_shape, ["A", "z"]), ["code"]) == 1

    def test_first_duplicate_wins(self):
        candidates = [target_row(1, "Ann", "Lee"), target_row(1, "Ann", "Other")]
        assert find_match(candidates, reference_row(1, "Ann", "Lee"), ["id"]) == 0

    def test_missing_key_column(self):
        assert find_match([target_row(1, "A", "B")], reference_row(1, "A", "B"), ["code"]) == -1

    def test_composite_key_with_numeric_types(self):
        ref_shape = shape("a", "b", keys=("a", "b"))
        candidates = [Row(ref_shape, [1.0, "x"]), Row(ref_shape, [2, "y"])]
        assert find_match(candidates, Row(ref_shape, [2.0, "y"]), ["a", "b"]) == 1


class TestRowDataComparer:
    """Test INSERT/UPDATE decisions"""

    def test_insert_when_target_missing(self):
        c = comparer()
        c.set_rows(reference_row(1, "Ann", "Lee"), None)
        assert c.get_migration(1) == (
            "INSERT INTO person (id, firstname, lastname, last_modified) VALUES (1, 'Ann', 'Lee', NULL);"
        )

    def test_no_change(self):
        c = comparer()
        c.set_rows(reference_row(1, "Ann", "Lee"), target_row(1, "Ann", "Lee"))
        assert c.get_migration(1) is None

    def test_update_uses_target_column_names_and_key(self):
        target_columns = [ColumnDescriptor(n) for n in ("ID", "FIRSTNAME", "LASTNAME", "LAST_MODIFIED")]
        c = comparer(target_columns=target_columns)
        c.set_rows(reference_row(1, "Anne", "Lee"), target_row(1, "Ann", "Lee"))
        assert c.get_migration(1) == "UPDATE person SET \"FIRSTNAME\" = 'Anne' WHERE \"ID\" = 1;"

    def test_ignored_columns_never_updated(self):
        c = comparer()
        c.ignore_columns(["LAST_MODIFIED"])
        reference = reference_row(1, "Ann", "Lee", datetime.datetime(2024, 1, 1))
        target = target_row(1, "Ann", "Lee", datetime.datetime(2023, 1, 1))
        c.set_rows(reference, target)
        assert c.get_migration(1) is None

        c.set_rows(reference_row(1, "Ann", "Smith", datetime.datetime(2024, 1, 1)), target)
        assert c.get_migration(1) == "UPDATE person SET lastname = 'Smith' WHERE id = 1;"

    def test_ignored_columns_still_inserted(self):
        c = comparer()
        c.ignore_columns(["last_modified"])
        c.set_rows(reference_row(1, "Ann", "Lee", datetime.datetime(2024, 1, 1)), None)
        assert "last_modified" in c.get_migration(1)

    def test_excluded_columns_never_rendered(self):
        c = comparer()
        c.exclude_columns(["last_modified"])
        c.set_rows(reference_row(1, "Ann", "Lee", datetime.datetime(2024, 1, 1)), None)
        assert c.get_migration(1) == "INSERT INTO person (id, firstname, lastname) VALUES (1, 'Ann', 'Lee');"

    def test_key_columns_are_never_excluded(self):
        c = comparer()
        c.exclude_columns(["id"])
        c.set_rows(reference_row(1, "Ann", "Lee"), None)
        assert c.get_migration(1).startswith("INSERT INTO person (id, ")

    def test_key_only_difference_is_not_an_update(self):
        """Test rows matched by key value equality need no UPDATE for the key"""
        c = comparer()
        c.set_rows(reference_row(1, "Ann", "Lee"), target_row(1.0, "Ann", "Lee"))
        assert c.get_migration(1) is None

    def test_reference_column_missing_in_target_is_skipped(self):
        target_columns = [ColumnDescriptor(n) for n in ("id", "firstname", "lastname")]
        c = comparer(target_columns=target_columns)
        c.set_rows(reference_row(1, "Ann", "Lee", datetime.datetime(2024, 1, 1)), None)
        assert c.get_migration(1) == "INSERT INTO person (id, firstname, lastname) VALUES (1, 'Ann', 'Lee');"

    def test_alternate_key(self):
        c = comparer(key_columns=("firstname", "lastname"))
        c.ignore_columns(["id"])
        c.set_rows(reference_row(1, "Ann", "Lee", datetime.date(2024, 1, 1)),
                   target_row(99, "Ann", "Lee", None))
        assert c.get_migration(1) == (
            "UPDATE person SET last_modified = '2024-01-01'::date "
            "WHERE firstname = 'Ann' AND lastname = 'Lee';"
        )

    def test_explicit_table(self):
        c = comparer(table=TableIdentifier("people", "archive"))
        c.set_rows(reference_row(1, "Ann", "Lee"), None)
        assert c.get_migration(1).startswith("INSERT INTO archive.people ")

    def test_requires_reference_row(self):
        with pytest.raises(DataDiffError, match="No reference row"):
            comparer().get_migration(1)

    def test_requires_table(self):
        c = comparer()
        c.set_rows(Row(ResultShape((ColumnDescriptor("id", sql_type=SqlType.INTEGER),), key_columns=("id",)), [1]),
                   None)
        with pytest.raises(DataDiffError, match="No table"):
            c.get_migration(1)
