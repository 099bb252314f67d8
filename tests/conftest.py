"""
Pytest configuration and fixtures for datadiff tests.
Provides SQLite backed reference/target databases and sample data.
"""

import sqlite3
from pathlib import Path

import pytest

from datadiff.connection import DatabaseType, DbConnection

PERSON_DDL = """
CREATE TABLE person (
    id INTEGER PRIMARY KEY,
    firstname VARCHAR(50) NOT NULL,
    lastname VARCHAR(50) NOT NULL,
    birthday DATE,
    salary INTEGER,
    last_modified TIMESTAMP
);
"""


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: tests running against real SQLite databases")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def person_rows(count: int, start: int = 1) -> list[tuple]:
    """Deterministic person rows with ids start .. start + count - 1."""
    return [
        (
            i,
            f"First{i}",
            f"Last{i}",
            f"19{70 + i % 30}-{1 + i % 12:02d}-{1 + i % 28:02d}",
            1000 + i * 10,
            None,
        )
        for i in range(start, start + count)
    ]


def insert_persons(connection: DbConnection, rows: list[tuple], table: str = "person") -> None:
    connection.raw.executemany(f"INSERT INTO {table} VALUES (?, ?, ?, ?, ?, ?)", rows)
    connection.raw.commit()


def count_rows(connection: DbConnection, table: str) -> int:
    return connection.fetch_value(f"SELECT COUNT(*) FROM {table}")


@pytest.fixture
def sqlite_db(tmp_path: Path):
    """
    Factory opening SQLite databases in the test's temporary directory.

    Usage:
        reference = sqlite_db("reference", PERSON_DDL)
    """
    connections = []

    def _open(name: str, script: str = "") -> DbConnection:
        raw = sqlite3.connect(tmp_path / f"{name}.db")
        if script:
            raw.executescript(script)
            raw.commit()
        connection = DbConnection(raw, DatabaseType.SQLITE, name=name)
        connections.append(connection)
        return connection

    yield _open

    for connection in connections:
        connection.close()


@pytest.fixture
def reference_db(sqlite_db) -> DbConnection:
    """Reference database with an empty person table."""
    return sqlite_db("reference", PERSON_DDL)


@pytest.fixture
def target_db(sqlite_db) -> DbConnection:
    """Target database with an empty person table."""
    return sqlite_db("target", PERSON_DDL)
