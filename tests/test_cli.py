"""Tests for the catprobe CLI."""

import logging
import sqlite3

import pytest
from click.testing import CliRunner

from catalog_probe.catalog import Attribute, CatalogObject
from catalog_probe.cli.catprobe import TablePrinter, attributes_table, cli
from catalog_probe.types import DataKind, TypeModifier


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def sqlite_config(tmp_path):
    """Config file pointing at a SQLite file with an AUTOINCREMENT table."""
    db_path = tmp_path / "app.db"
    connection = sqlite3.connect(str(db_path))
    connection.execute("CREATE TABLE events (id INTEGER PRIMARY KEY AUTOINCREMENT, kind TEXT)")
    connection.commit()
    connection.close()

    config_path = tmp_path / "catprobe.yaml"
    config_path.write_text(
        f"""
datasources:
  app:
    type: sqlite
    database: {db_path}
  other:
    type: sqlite
    database: ":memory:"
"""
    )
    return str(config_path)


def test_discover_demo(runner):
    """Without a config the demo database is probed."""
    result = runner.invoke(cli, ["--log-level", "ERROR", "discover"])

    assert result.exit_code == 0, result.output
    assert "Using in-memory SQLite data source with demo tables." in result.output
    assert "Data Source: sqlite_mem" in result.output
    assert "sqlite_master (5 columns)" in result.output
    assert "sqlite_sequence (2 columns)" in result.output
    assert "sqlite_stat1" in result.output
    assert "sqlite_stat2" not in result.output


def test_discover_parallel_with_config(runner, sqlite_config):
    """Parallel discovery of one configured data source."""
    result = runner.invoke(
        cli,
        ["--log-level", "ERROR", "discover", "-c", sqlite_config, "-d", "app", "--parallel", "--workers", "2"],
    )

    assert result.exit_code == 0, result.output
    assert "Data Source: app" in result.output
    assert "Data Source: other" not in result.output
    assert "sqlite_sequence" in result.output
    assert "Using in-memory" not in result.output


def test_discover_unknown_datasource(runner, sqlite_config):
    """Selecting a data source that is not configured is a usage error."""
    result = runner.invoke(cli, ["--log-level", "ERROR", "discover", "-c", sqlite_config, "-d", "nope"])

    assert result.exit_code == 2
    assert "Unknown data source: nope" in result.output


def test_describe_demo_object(runner):
    """Describe prints the attribute table and pseudo columns."""
    result = runner.invoke(cli, ["--log-level", "ERROR", "describe", "SQLITE_MASTER"])

    assert result.exit_code == 0, result.output
    assert "System object: sqlite_mem.sqlite_master" in result.output
    assert "rootpage" in result.output
    assert "5 columns" in result.output
    assert "Pseudo columns: rowid INTEGER" in result.output


def test_describe_missing_object(runner):
    """Describing an absent object fails with a message."""
    result = runner.invoke(cli, ["--log-level", "ERROR", "describe", "sqlite_stat2"])

    assert result.exit_code == 1
    assert "System object 'sqlite_stat2' was not found" in result.output


def test_table_printer():
    """Attributes are rendered as a bordered text table."""
    obj = CatalogObject(
        "stats",
        (
            Attribute("id", 1, "INTEGER", data_kind=DataKind.NUMERIC, type_modifiers=TypeModifier.NOT_NULL),
            Attribute("amount", 2, "DECIMAL", "DECIMAL(10,2)", data_kind=DataKind.NUMERIC, precision=10, scale=2),
        ),
        "main",
    )
    lines = []

    TablePrinter(lines.append).display(attributes_table(obj), "2 columns")

    assert lines[0] == lines[2] == lines[-2]
    assert lines[0].startswith("+")
    assert "| name" in lines[1]
    assert "DECIMAL(10,2)" in lines[4]
    assert "False" in lines[3]
    assert "NULL" in lines[3]
    assert lines[-1] == "2 columns"
