"""
Run configuration.

A DiffConfig is built once and handed to every comparison run at
construction time. It is frozen: a run never sees settings change under
it, and runs on different threads can share one instance.

Environment variables read by DiffConfig.from_env():
    DATADIFF_CHUNK_SIZE: Reference rows per target lookup (default: 15)
    DATADIFF_PROGRESS_INTERVAL: Rows between progress reports (default: 10)
    DATADIFF_IGNORE_COLUMNS: Comma separated column names
    DATADIFF_OUTPUT_FORMAT: sql or xml (default: sql)
    DATADIFF_BLOB_MODE: dbms, ansi, base64, file or none (default: dbms)
    DATADIFF_DATE_LITERAL_TYPE: dbms, ansi, jdbc or iso (default: dbms)
    DATADIFF_ENCODING: Output encoding (default: UTF-8)
    DATADIFF_USE_SAVEPOINTS: true/false (default: true)
"""

import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .errors import ConfigurationError
from .storage.names import DEFAULT_NAME_POLICY, NamePolicy, get_name_policy

DEFAULT_CHUNK_SIZE = 15
DEFAULT_PROGRESS_INTERVAL = 10
DEFAULT_DELETE_BATCH_SIZE = 15

_TRUE_VALUES = ("true", "1", "yes")


class OutputFormat(str, Enum):
    """Output dialect of generated migration fragments."""

    SQL = "sql"
    XML = "xml"


class BlobMode(str, Enum):
    """How binary values are written into SQL output."""

    DBMS = "dbms"        # native literal of the target database
    ANSI = "ansi"        # X'0A1B'
    BASE64 = "base64"    # base64 text, decoded by the database where possible
    FILE = "file"        # value written to a file, statement references it
    NONE = "none"        # rendered as NULL


class DateLiteralType(str, Enum):
    """How date/time values are written into SQL output."""

    DBMS = "dbms"        # native cast syntax of the target database
    ANSI = "ansi"        # DATE '2024-01-31'
    JDBC = "jdbc"        # {d '2024-01-31'} ODBC/JDBC escape
    ISO = "iso"          # '2024-01-31'


def _parse_enum(enum_cls, value: Any, setting: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"Invalid {setting}: {value!r}. Must be one of: {allowed}"
        ) from None


def _validate_positive(value: Any, setting: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigurationError(f"Invalid {setting}: {value!r}. Must be an integer.")
    if value < 1:
        raise ConfigurationError(f"Invalid {setting}: {value}. Must be >= 1.")


def _split_names(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(v.strip() for v in value.split(",") if v.strip())


@dataclass(frozen=True)
class DiffConfig:
    """
    Settings for one data comparison run.

    Attributes:
        chunk_size: Reference rows collected before one target lookup
        progress_interval: Rows between two progress reports
        ignore_columns: Columns never compared (audit timestamps and similar)
        alternate_keys: Table name -> columns to use instead of the primary key
        exclude_real_pk: Leave the physical primary key out of INSERTs when an
            alternate key is active
        exclude_ignored_columns: Leave ignored columns out of generated DML
        ignore_missing_target: Treat a missing target table as empty
        target_schema: Schema used for the target table when it does not exist
        output_format: SQL statements or XML elements
        xml_use_cdata: Wrap character values in CDATA sections in XML output
        blob_mode: Binary value rendering in SQL output
        blob_directory: Directory receiving blob files when blob_mode is FILE
        date_literal_type: Date/time rendering in SQL output
        line_ending: Line separator of generated output
        encoding: Encoding declared in headers and used for output files
        use_savepoints: Wrap each target lookup in a savepoint when possible
        delete_batch_size: Statements per commit when deleting directly
        name_policy: Column/table name matching policy
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    ignore_columns: frozenset[str] = frozenset()
    alternate_keys: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    exclude_real_pk: bool = False
    exclude_ignored_columns: bool = False
    ignore_missing_target: bool = False
    target_schema: str | None = None
    output_format: OutputFormat = OutputFormat.SQL
    xml_use_cdata: bool = False
    blob_mode: BlobMode = BlobMode.DBMS
    blob_directory: Path | None = None
    date_literal_type: DateLiteralType = DateLiteralType.DBMS
    line_ending: str = "\n"
    encoding: str = "UTF-8"
    use_savepoints: bool = True
    delete_batch_size: int = DEFAULT_DELETE_BATCH_SIZE
    name_policy: NamePolicy = DEFAULT_NAME_POLICY

    def __post_init__(self):
        _validate_positive(self.chunk_size, "chunk_size")
        _validate_positive(self.progress_interval, "progress_interval")
        _validate_positive(self.delete_batch_size, "delete_batch_size")

        set_ = object.__setattr__
        set_(self, "output_format", _parse_enum(OutputFormat, self.output_format, "output_format"))
        set_(self, "blob_mode", _parse_enum(BlobMode, self.blob_mode, "blob_mode"))
        set_(self, "date_literal_type",
             _parse_enum(DateLiteralType, self.date_literal_type, "date_literal_type"))

        if isinstance(self.ignore_columns, str):
            set_(self, "ignore_columns", frozenset(_split_names(self.ignore_columns)))
        else:
            set_(self, "ignore_columns", frozenset(self.ignore_columns))

        alternate_keys = {}
        for table, columns in dict(self.alternate_keys).items():
            if isinstance(columns, str):
                columns = _split_names(columns)
            columns = tuple(columns)
            if not columns:
                raise ConfigurationError(f"Alternate key for {table!r} has no columns")
            alternate_keys[table] = columns
        set_(self, "alternate_keys", MappingProxyType(alternate_keys))

        if self.line_ending not in ("\n", "\r\n", "\r"):
            raise ConfigurationError(f"Invalid line_ending: {self.line_ending!r}")

        if self.blob_mode is BlobMode.FILE and self.blob_directory is None:
            raise ConfigurationError("blob_directory is required when blob_mode is 'file'")
        if self.blob_directory is not None:
            set_(self, "blob_directory", Path(self.blob_directory))

        if isinstance(self.name_policy, str):
            try:
                set_(self, "name_policy", get_name_policy(self.name_policy))
            except ValueError as e:
                raise ConfigurationError(str(e)) from None

    def __hash__(self):
        return hash((self.chunk_size, self.progress_interval, self.ignore_columns,
                     tuple(sorted(self.alternate_keys.items()))))

    def get_alternate_key(self, table_name: str) -> tuple[str, ...] | None:
        """
        Find the alternate key registered for a table.

        Table names are matched with the configured name policy, both
        qualified (``schema.table``) and bare.

        Args:
            table_name: Qualified or bare table name

        Returns:
            Column names, or None when no alternate key is registered
        """
        policy = self.name_policy
        bare = table_name.rsplit(".", 1)[-1]
        for registered, columns in self.alternate_keys.items():
            if policy.equals(registered, table_name) or policy.equals(registered, bare):
                return columns
        return None

    def is_ignored(self, column: str) -> bool:
        return any(self.name_policy.equals(column, c) for c in self.ignore_columns)

    def with_overrides(self, **changes: Any) -> "DiffConfig":
        """Return a copy with some settings replaced."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    @classmethod
    def from_env(cls, **overrides: Any) -> "DiffConfig":
        """
        Build a configuration from DATADIFF_* environment variables.

        Args:
            **overrides: Settings taking precedence over the environment

        Returns:
            DiffConfig instance

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        settings: dict[str, Any] = {}
        try:
            if os.getenv("DATADIFF_CHUNK_SIZE"):
                settings["chunk_size"] = int(os.environ["DATADIFF_CHUNK_SIZE"])
            if os.getenv("DATADIFF_PROGRESS_INTERVAL"):
                settings["progress_interval"] = int(os.environ["DATADIFF_PROGRESS_INTERVAL"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid integer in environment: {e}") from None

        if os.getenv("DATADIFF_IGNORE_COLUMNS"):
            settings["ignore_columns"] = frozenset(_split_names(os.environ["DATADIFF_IGNORE_COLUMNS"]))
        for variable, setting in (
            ("DATADIFF_OUTPUT_FORMAT", "output_format"),
            ("DATADIFF_BLOB_MODE", "blob_mode"),
            ("DATADIFF_DATE_LITERAL_TYPE", "date_literal_type"),
            ("DATADIFF_ENCODING", "encoding"),
            ("DATADIFF_BLOB_DIRECTORY", "blob_directory"),
        ):
            if os.getenv(variable):
                settings[setting] = os.environ[variable]
        if os.getenv("DATADIFF_USE_SAVEPOINTS"):
            settings["use_savepoints"] = os.environ["DATADIFF_USE_SAVEPOINTS"].lower() in _TRUE_VALUES

        settings.update(overrides)
        return cls(**settings)


@dataclass(frozen=True)
class SchemaDiffConfig:
    """
    Settings for a structural comparison.

    Attributes:
        include_indexes: Compare indexes
        include_foreign_keys: Compare foreign keys
        include_primary_keys: Compare primary keys
        include_constraints: Compare table check constraints
        include_views: Compare views
        include_sequences: Compare sequences
        include_triggers: Compare triggers
        include_grants: Compare table grants
        compare_constraints_by_name: Match constraints and foreign keys by
            name; otherwise by their normalized definition
        compare_jdbc_types: Compare generic SQL type codes instead of the
            DBMS type names (useful across different database products)
        name_policy: Object name matching policy
        encoding: Encoding declared in the XML document
    """

    include_indexes: bool = True
    include_foreign_keys: bool = True
    include_primary_keys: bool = True
    include_constraints: bool = True
    include_views: bool = True
    include_sequences: bool = True
    include_triggers: bool = True
    include_grants: bool = False
    compare_constraints_by_name: bool = False
    compare_jdbc_types: bool = False
    name_policy: NamePolicy = DEFAULT_NAME_POLICY
    encoding: str = "UTF-8"


def parse_alternate_keys(entries: Iterable[str]) -> dict[str, tuple[str, ...]]:
    """
    Parse ``table=col1,col2`` style alternate key definitions.

    Args:
        entries: Definitions as given on the command line

    Returns:
        Mapping of table name to key columns

    Raises:
        ConfigurationError: If an entry is malformed
    """
    keys = {}
    for entry in entries:
        table, sep, columns = entry.partition("=")
        if not sep or not table.strip() or not _split_names(columns):
            raise ConfigurationError(
                f"Invalid alternate key {entry!r}. Expected table=column1,column2"
            )
        keys[table.strip()] = _split_names(columns)
    return keys
