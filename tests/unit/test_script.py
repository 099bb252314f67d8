"""
Unit tests for per-table scripts and the main migration script
"""

from pathlib import Path

from datadiff.compare.data_diff import ComparisonStatus, DataDiffResult
from datadiff.config import DiffConfig
from datadiff.script import (
    DataDiffScript,
    TablePair,
    TableScriptResult,
    dependency_order,
    diff_table_pair,
    script_file_name,
)
from datadiff.storage import TableIdentifier
from conftest import PERSON_DDL, insert_persons, person_rows

ADDRESS_DDL = """
CREATE TABLE address (
    id INTEGER PRIMARY KEY,
    person_id INTEGER REFERENCES person(id),
    street VARCHAR(100)
);
"""


def pair(name):
    return TablePair(TableIdentifier(name), TableIdentifier(name))


class TestScriptFileName:
    """Test per-table script naming"""

    def test_plain_name(self):
        assert script_file_name(TableIdentifier("person", "public"), "insert", "sql") == "person_$insert.sql"

    def test_unsafe_characters_replaced(self):
        assert script_file_name(TableIdentifier("order items"), "delete", "xml") == "order_items_$delete.xml"


class TestDependencyOrder:
    """Test foreign key ordering of table pairs"""

    def test_parents_first(self):
        pairs = [pair("order_item"), pair("orders"), pair("customer")]
        references = {"order_item": ["orders"], "orders": ["customer"]}
        ordered = [p.target.name for p in dependency_order(pairs, references)]
        assert ordered == ["customer", "orders", "order_item"]

    def test_names_are_matched_by_policy(self):
        pairs = [pair("Address"), pair("Person")]
        ordered = dependency_order(pairs, {"address": ["PERSON"]})
        assert [p.target.name for p in ordered] == ["Person", "Address"]

    def test_self_and_unknown_references_are_ignored(self):
        pairs = [pair("employee")]
        assert dependency_order(pairs, {"employee": ["employee", "department"]}) == pairs

    def test_cycle_keeps_given_order(self):
        pairs = [pair("a"), pair("b")]
        assert dependency_order(pairs, {"a": ["b"], "b": ["a"]}) == pairs


class TestTableScriptResult:
    """Test result summaries"""

    def test_to_dicts(self):
        result = TableScriptResult(
            pair("person"),
            data=DataDiffResult("person", ComparisonStatus.OK, rows_processed=3, inserts=1),
            files={"insert": Path("out/person_$insert.sql")},
        )
        (summary,) = result.to_dicts()
        assert summary["table"] == "person"
        assert summary["status"] == "ok"
        assert summary["inserts"] == 1
        assert summary["files"] == {"insert": str(Path("out/person_$insert.sql"))}

    def test_no_results(self):
        assert TableScriptResult(pair("person")).to_dicts() == []


class TestDiffTablePair:
    """Test writing the scripts of one table pair"""

    def test_empty_scripts_are_removed(self, reference_db, target_db, tmp_path):
        insert_persons(reference_db, person_rows(3))
        insert_persons(target_db, person_rows(2))

        result = diff_table_pair(reference_db, target_db, pair("person"), DiffConfig(), tmp_path / "out")

        assert set(result.files) == {"insert"}
        assert result.files["insert"].name == "person_$insert.sql"
        assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["person_$insert.sql"]
        assert result.data.inserts == 1
        assert result.delete.deleted_rows == 0

    def test_fatal_status_skips_delete_sync(self, reference_db, target_db, tmp_path):
        result = diff_table_pair(reference_db, target_db, pair("nothing"), DiffConfig(), tmp_path)
        assert result.data.status == ComparisonStatus.REFERENCE_NOT_FOUND
        assert result.data.errors == ("Reference table nothing not found",)
        assert result.delete is None
        assert result.files == {}

    def test_without_deletes(self, reference_db, target_db, tmp_path):
        insert_persons(target_db, person_rows(2))
        result = diff_table_pair(reference_db, target_db, pair("person"), DiffConfig(), tmp_path,
                                 include_deletes=False)
        assert result.delete is None
        assert result.files == {}

    def test_xml_extension(self, reference_db, target_db, tmp_path):
        insert_persons(reference_db, person_rows(1))
        result = diff_table_pair(reference_db, target_db, pair("person"), DiffConfig(output_format="xml"),
                                 tmp_path)
        assert result.files["insert"].name == "person_$insert.xml"
        assert result.files["insert"].read_text(encoding="utf-8").startswith("<?xml")


class TestDataDiffScript:
    """Test multi-table runs and the main script"""

    def test_main_script(self, sqlite_db, tmp_path):
        reference = sqlite_db("reference", PERSON_DDL + ADDRESS_DDL)
        target = sqlite_db("target", PERSON_DDL + ADDRESS_DDL)
        insert_persons(reference, person_rows(3))
        insert_persons(target, person_rows(2) + person_rows(1, start=9))
        reference.raw.executemany("INSERT INTO address VALUES (?, ?, ?)", [(1, 1, "Main St"), (2, 3, "High St")])
        reference.raw.commit()
        target.raw.execute("INSERT INTO address VALUES (5, 9, 'Old Rd')")
        target.raw.commit()

        script = DataDiffScript(reference, target, output_dir=tmp_path)
        script.add_table("address")
        script.add_table("person")
        results = script.run()

        assert [r.pair.target.name for r in results] == ["person", "address"]
        lines = (tmp_path / "migrate.sql").read_text(encoding="utf-8").splitlines()
        assert lines[2] == "-- Run with: sqlite3"
        assert lines[5:] == [
            "BEGIN TRANSACTION;",
            ".read address_$delete.sql",
            ".read person_$delete.sql",
            ".read person_$insert.sql",
            ".read address_$insert.sql",
            "COMMIT;",
        ]

    def test_add_schema(self, sqlite_db, tmp_path):
        reference = sqlite_db("reference", PERSON_DDL + ADDRESS_DDL)
        target = sqlite_db("target", PERSON_DDL + ADDRESS_DDL)
        script = DataDiffScript(reference, target, output_dir=tmp_path)
        script.add_schema(exclude=["ADDRESS"])
        assert script.pairs == [TablePair(TableIdentifier("person"), TableIdentifier("person"))]

    def test_target_schema_applies_to_unmapped_tables(self, reference_db, target_db, tmp_path):
        script = DataDiffScript(reference_db, target_db, DiffConfig(target_schema="main"), tmp_path)
        script.add_table("person")
        script.add_table("person", "other.person")
        assert [p.target.schema for p in script.pairs] == ["main", "other"]

    def test_no_differences_no_main_script(self, reference_db, target_db, tmp_path):
        insert_persons(reference_db, person_rows(2))
        insert_persons(target_db, person_rows(2))
        script = DataDiffScript(reference_db, target_db, output_dir=tmp_path)
        script.add_table("person")
        results = script.run()
        assert results[0].files == {}
        assert not (tmp_path / "migrate.sql").exists()

    def test_cancelled_before_start(self, reference_db, target_db, tmp_path):
        insert_persons(reference_db, person_rows(2))
        script = DataDiffScript(reference_db, target_db, output_dir=tmp_path)
        script.add_table("person")
        assert script.write_main_script([]) is None
        script.cancel()
        # run() starts from a cleared token
        assert len(script.run()) == 1
