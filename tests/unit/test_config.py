"""
Unit tests for run configuration

Tests verify:
- Defaults and validation
- Enum parsing
- Alternate key lookup
- Environment variable loading
"""

from pathlib import Path

import pytest

from datadiff.config import (
    BlobMode,
    DateLiteralType,
    DiffConfig,
    OutputFormat,
    SchemaDiffConfig,
    parse_alternate_keys,
)
from datadiff.errors import ConfigurationError
from datadiff.storage import CaseSensitiveNames


class TestDiffConfigDefaults:
    """Test default settings"""

    def test_defaults(self):
        config = DiffConfig()
        assert config.chunk_size == 15
        assert config.progress_interval == 10
        assert config.delete_batch_size == 15
        assert config.output_format is OutputFormat.SQL
        assert config.blob_mode is BlobMode.DBMS
        assert config.date_literal_type is DateLiteralType.DBMS
        assert config.line_ending == "\n"
        assert config.use_savepoints

    def test_schema_defaults(self):
        config = SchemaDiffConfig()
        assert config.include_indexes
        assert config.include_views
        assert not config.include_grants
        assert not config.compare_constraints_by_name


class TestDiffConfigValidation:
    """Test invalid settings are rejected"""

    @pytest.mark.parametrize("setting", ["chunk_size", "progress_interval", "delete_batch_size"])
    @pytest.mark.parametrize("value", [0, -5, True, "10"])
    def test_positive_integers(self, setting, value):
        with pytest.raises(ConfigurationError):
            DiffConfig(**{setting: value})

    def test_enum_strings_are_parsed(self):
        config = DiffConfig(output_format="XML", blob_mode="ansi", date_literal_type="jdbc")
        assert config.output_format is OutputFormat.XML
        assert config.blob_mode is BlobMode.ANSI
        assert config.date_literal_type is DateLiteralType.JDBC

    def test_invalid_enum(self):
        with pytest.raises(ConfigurationError, match="Must be one of: sql, xml"):
            DiffConfig(output_format="json")

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            DiffConfig(chunk_size=0)

    def test_ignore_columns_string_is_split(self):
        config = DiffConfig(ignore_columns="last_modified, created_by")
        assert config.ignore_columns == frozenset({"last_modified", "created_by"})

    def test_empty_alternate_key(self):
        with pytest.raises(ConfigurationError, match="has no columns"):
            DiffConfig(alternate_keys={"person": ()})

    def test_invalid_line_ending(self):
        with pytest.raises(ConfigurationError, match="line_ending"):
            DiffConfig(line_ending="\n\n")

    def test_file_blob_mode_requires_directory(self, tmp_path):
        with pytest.raises(ConfigurationError, match="blob_directory"):
            DiffConfig(blob_mode="file")
        config = DiffConfig(blob_mode="file", blob_directory=str(tmp_path))
        assert config.blob_directory == Path(tmp_path)

    def test_name_policy_by_name(self):
        assert DiffConfig(name_policy="sensitive").name_policy == CaseSensitiveNames()
        with pytest.raises(ConfigurationError):
            DiffConfig(name_policy="other")

    def test_config_is_frozen(self):
        config = DiffConfig()
        with pytest.raises(AttributeError):
            config.chunk_size = 50


class TestAlternateKeys:
    """Test alternate key registration and lookup"""

    def test_lookup_bare_and_qualified(self):
        config = DiffConfig(alternate_keys={"Person": "firstname,lastname"})
        assert config.get_alternate_key("person") == ("firstname", "lastname")
        assert config.get_alternate_key("public.PERSON") == ("firstname", "lastname")
        assert config.get_alternate_key("address") is None

    def test_parse_alternate_keys(self):
        keys = parse_alternate_keys(["person=firstname, lastname", "public.address=code"])
        assert keys == {"person": ("firstname", "lastname"), "public.address": ("code",)}

    @pytest.mark.parametrize("entry", ["person", "=a", "person=", "person= , "])
    def test_parse_malformed(self, entry):
        with pytest.raises(ConfigurationError, match="Invalid alternate key"):
            parse_alternate_keys([entry])

    def test_is_ignored_uses_policy(self):
        config = DiffConfig(ignore_columns={"LAST_MODIFIED"})
        assert config.is_ignored("last_modified")
        assert not config.is_ignored("salary")


class TestOverrides:
    """Test copies with replaced settings"""

    def test_with_overrides(self):
        config = DiffConfig().with_overrides(chunk_size=100)
        assert config.chunk_size == 100

    def test_unknown_override(self):
        with pytest.raises(ConfigurationError, match="Unknown settings: chunk"):
            DiffConfig().with_overrides(chunk=100)


class TestFromEnv:
    """Test loading settings from DATADIFF_* variables"""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATADIFF_CHUNK_SIZE", "50")
        monkeypatch.setenv("DATADIFF_IGNORE_COLUMNS", "a,b")
        monkeypatch.setenv("DATADIFF_OUTPUT_FORMAT", "xml")
        monkeypatch.setenv("DATADIFF_USE_SAVEPOINTS", "false")

        config = DiffConfig.from_env()

        assert config.chunk_size == 50
        assert config.ignore_columns == frozenset({"a", "b"})
        assert config.output_format is OutputFormat.XML
        assert not config.use_savepoints

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("DATADIFF_CHUNK_SIZE", "50")
        assert DiffConfig.from_env(chunk_size=7).chunk_size == 7

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("DATADIFF_CHUNK_SIZE", "many")
        with pytest.raises(ConfigurationError, match="Invalid integer"):
            DiffConfig.from_env()

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("DATADIFF_BLOB_MODE", "zip")
        with pytest.raises(ConfigurationError):
            DiffConfig.from_env()
