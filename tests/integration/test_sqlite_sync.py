"""
Integration tests running complete comparisons against SQLite databases.

Each scenario generates scripts, applies them to the target and checks
that a second comparison finds nothing left to do.

Run with: pytest tests/integration -m integration
"""

import io
import xml.etree.ElementTree as ET

import pytest

from datadiff.compare.data_diff import ComparisonStatus, TableDataDiff
from datadiff.compare.delete_sync import TableDeleteSync
from datadiff.config import DiffConfig
from datadiff.script import DataDiffScript
from conftest import PERSON_DDL, count_rows, insert_persons, person_rows

pytestmark = pytest.mark.integration

MISSING_IDS = {10, 50, 90, 130, 170}
CHANGED_IDS = {1, 2, 3, 100, 187}

ADDRESS_DDL = """
CREATE TABLE address (
    id INTEGER PRIMARY KEY,
    person_id INTEGER REFERENCES person(id),
    street VARCHAR(100)
);
"""


def all_rows(connection, table="person"):
    return connection.fetch_all(f"SELECT * FROM {table} ORDER BY id")


def data_diff(reference, target, config=None, reference_table="person", target_table="person"):
    inserts, updates = io.StringIO(), io.StringIO()
    diff = TableDataDiff(reference, target, config or DiffConfig())
    diff.set_output_writers(inserts, updates)
    status = diff.prepare(reference_table, target_table)
    return status, diff.execute(), inserts.getvalue(), updates.getvalue()


def apply(connection, *scripts):
    connection.raw.executescript("".join(scripts))


@pytest.fixture
def drifted(reference_db, target_db):
    """187 reference rows; the target misses 5 of them and has 5 changed salaries."""
    rows = person_rows(187)
    insert_persons(reference_db, rows)
    target_rows = []
    for row in rows:
        if row[0] in MISSING_IDS:
            continue
        if row[0] in CHANGED_IDS:
            row = row[:4] + (row[4] + 1,) + row[5:]
        target_rows.append(row)
    insert_persons(target_db, target_rows)
    return reference_db, target_db


class TestDataSynchronization:
    """Test INSERT/UPDATE generation end to end"""

    @pytest.mark.parametrize("chunk_size", [1, 5, 15, 500])
    def test_drifted_table(self, drifted, chunk_size):
        reference, target = drifted
        config = DiffConfig(chunk_size=chunk_size)

        status, result, insert_script, update_script = data_diff(reference, target, config)

        assert status == ComparisonStatus.OK
        assert (result.rows_processed, result.inserts, result.updates) == (187, 5, 5)
        assert insert_script.count("INSERT INTO person ") == 5
        assert update_script.count("UPDATE person SET salary = ") == 5

        apply(target, insert_script, update_script)

        assert all_rows(target) == all_rows(reference)
        _, again, insert_script, update_script = data_diff(reference, target, config)
        assert not again.has_differences
        assert insert_script == update_script == ""

    def test_ignored_column_not_updated(self, drifted):
        reference, target = drifted
        config = DiffConfig(ignore_columns="salary")

        _, result, insert_script, _ = data_diff(reference, target, config)

        assert (result.inserts, result.updates) == (5, 0)
        # Ignored columns are still part of INSERTs
        assert "salary" in insert_script

    def test_alternate_key(self, sqlite_db):
        reference = sqlite_db("reference", PERSON_DDL)
        target = sqlite_db("target", PERSON_DDL)
        insert_persons(reference, [(1, "Ada", "Lovelace", None, 100, None), (2, "Alan", "Turing", None, 200, None)])
        insert_persons(target, [(71, "Ada", "Lovelace", None, 150, None)])
        config = DiffConfig(alternate_keys={"person": "firstname,lastname"}, exclude_real_pk=True)

        _, result, insert_script, update_script = data_diff(reference, target, config)

        assert (result.inserts, result.updates) == (1, 1)
        assert "(firstname, lastname, birthday, salary, last_modified)" in insert_script
        assert "WHERE firstname = 'Ada' AND lastname = 'Lovelace';" in update_script

        apply(target, insert_script, update_script)

        assert target.fetch_all("SELECT firstname, salary FROM person ORDER BY firstname") == [
            ("Ada", 100),
            ("Alan", 200),
        ]
        assert target.fetch_value("SELECT id FROM person WHERE firstname = 'Ada'") == 71

    def test_column_missing_in_target(self, sqlite_db, reference_db):
        target = sqlite_db("target", "CREATE TABLE person (id INTEGER PRIMARY KEY, firstname TEXT, "
                                     "lastname TEXT, birthday DATE, last_modified TIMESTAMP);")
        insert_persons(reference_db, person_rows(3))

        status, result, insert_script, _ = data_diff(reference_db, target)

        assert status == ComparisonStatus.COLUMN_MISMATCH
        assert result.inserts == 3
        apply(target, insert_script)
        assert count_rows(target, "person") == 3

    def test_missing_target_table(self, sqlite_db, reference_db):
        target = sqlite_db("target")
        insert_persons(reference_db, person_rows(4))

        status, result, insert_script, _ = data_diff(reference_db, target, DiffConfig(ignore_missing_target=True))

        assert status == ComparisonStatus.OK
        assert result.inserts == 4
        apply(target, PERSON_DDL, insert_script)
        assert all_rows(target) == all_rows(reference_db)

    def test_xml_output(self, drifted):
        reference, target = drifted

        _, _, insert_xml, update_xml = data_diff(reference, target, DiffConfig(output_format="xml"))

        inserts = ET.fromstring(insert_xml.split("\n", 1)[1])
        assert inserts.tag == "table-data-diff"
        assert inserts.get("name") == "person"
        assert sorted(int(e.find("col[@pk='true']").text) for e in inserts) == sorted(MISSING_IDS)
        updates = ET.fromstring(update_xml.split("\n", 1)[1])
        assert len(updates.findall("update")) == 5
        assert all(len(e.findall("col[@modified='true']")) == 1 for e in updates)


class TestDeleteSynchronization:
    """Test removal of target rows without a reference counterpart"""

    @pytest.fixture
    def extra_rows(self, reference_db, target_db):
        insert_persons(reference_db, person_rows(100))
        insert_persons(target_db, person_rows(153))
        return reference_db, target_db

    def test_script_mode(self, extra_rows):
        reference, target = extra_rows
        deletes = io.StringIO()
        sync = TableDeleteSync(target, reference, DiffConfig(chunk_size=7))
        sync.set_output_writer(deletes)
        sync.prepare("person", "person")

        result = sync.execute()

        assert result.deleted_rows == 53
        assert count_rows(target, "person") == 153
        apply(target, deletes.getvalue())
        assert all_rows(target) == all_rows(reference)

    def test_direct_mode(self, extra_rows):
        reference, target = extra_rows
        sync = TableDeleteSync(target, reference, DiffConfig(delete_batch_size=10))
        sync.prepare("person", "person")

        result = sync.execute()

        assert result.deleted_rows == 53
        assert all_rows(target) == all_rows(reference)


class TestMainScript:
    """Test the multi-table main script"""

    def test_applying_main_script(self, sqlite_db, tmp_path):
        reference = sqlite_db("reference", PERSON_DDL + ADDRESS_DDL)
        target = sqlite_db("target", PERSON_DDL + ADDRESS_DDL)
        insert_persons(reference, person_rows(20))
        insert_persons(target, person_rows(15) + person_rows(3, start=40))
        reference.raw.executemany("INSERT INTO address VALUES (?, ?, ?)",
                                  [(i, i, f"{i} Main St") for i in range(1, 21)])
        reference.raw.commit()
        target.raw.executemany("INSERT INTO address VALUES (?, ?, ?)",
                               [(i, i, f"{i} Old Rd") for i in (1, 2, 41)])
        target.raw.commit()
        output_dir = tmp_path / "diff"

        script = DataDiffScript(reference, target, DiffConfig(), output_dir=output_dir)
        script.add_schema()
        results = script.run()

        assert [r.pair.target.name for r in results] == ["person", "address"]
        lines = []
        for line in (output_dir / "migrate.sql").read_text(encoding="utf-8").splitlines():
            if line.startswith(".read "):
                lines.append((output_dir / line.split(" ", 1)[1]).read_text(encoding="utf-8"))
            else:
                lines.append(line)
        apply(target, "\n".join(lines))

        assert all_rows(target) == all_rows(reference)
        assert all_rows(target, "address") == all_rows(reference, "address")
