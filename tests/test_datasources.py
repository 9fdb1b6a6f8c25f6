"""Tests for data source connectors."""

from collections import namedtuple
import logging

import psycopg2
import pytest

from catalog_probe.catalog import CandidateRegistry, CatalogContainer
from catalog_probe.config import ConnectionConfiguration, DataSourceConfig
from catalog_probe.datasources import (
    DataSourceCapability,
    DuckDBDataSource,
    PostgreSQLDataSource,
    SQLiteDataSource,
    create_datasource,
)
from catalog_probe.datasources.postgresql import PostgreSQLSession, columns_from_description
from catalog_probe.datasources.sqlite import SQLITE_INTEGER, SQLITE_TEXT, affinity_code
from catalog_probe.errors import FatalConnectionFailure
from catalog_probe.probe import ProbeExecutor
from catalog_probe.types import DataKind, TypeModifier


@pytest.fixture
def sqlite_datasource():
    """Create an in-memory SQLite datasource for testing."""
    ds = SQLiteDataSource("test_sqlite", ConnectionConfiguration(database=":memory:"))
    ds.connect()
    ds.connection.executescript(
        """
        CREATE TABLE test_table (
            id INTEGER PRIMARY KEY,
            name VARCHAR(20) NOT NULL,
            value DECIMAL(10, 2)
        );
        INSERT INTO test_table (name, value) VALUES ('Alice', 100.5), ('Bob', 200.75);
        """
    )

    yield ds

    ds.disconnect()


@pytest.fixture
def duckdb_datasource():
    """Create an in-memory DuckDB datasource for testing."""
    ds = DuckDBDataSource("test_duck", ConnectionConfiguration(database=":memory:"))
    ds.connect()
    ds.connection.execute(
        """
        CREATE TABLE main.test_table (
            id INTEGER PRIMARY KEY,
            name VARCHAR,
            value DECIMAL(10, 2)
        )
        """
    )
    ds.connection.execute("INSERT INTO main.test_table VALUES (1, 'Alice', 100.5)")

    yield ds

    ds.disconnect()


def test_sqlite_connection(sqlite_datasource):
    """Test SQLite connection."""
    assert sqlite_datasource.is_connected()
    assert sqlite_datasource.connection_generation == 1
    assert sqlite_datasource.dialect.name == "sqlite"
    assert sqlite_datasource.supports_capability(DataSourceCapability.SYSTEM_OBJECTS)


def test_sqlite_sessions_share_memory_database(sqlite_datasource):
    """Every session sees the same in-memory database."""
    with sqlite_datasource.open_session("first") as first, sqlite_datasource.open_session("second") as second:
        assert first.connection is not second.connection
        with first.prepare("SELECT count(*) FROM test_table") as statement:
            with statement.execute() as result:
                assert result.rows == [(2,)]


def test_sqlite_user_metadata(sqlite_datasource):
    """Test listing schemas, tables and columns."""
    assert sqlite_datasource.list_schemas() == ["main"]
    assert sqlite_datasource.list_tables("main") == ["test_table"]

    metadata = sqlite_datasource.get_table_metadata("main", "test_table")
    names = [col.name for col in metadata.columns]
    assert names == ["id", "name", "value"]

    id_col, name_col, value_col = metadata.columns
    assert id_col.type_modifiers & TypeModifier.PRIMARY_KEY
    assert name_col.nullable is False
    assert name_col.max_length == 20
    assert name_col.type_code == SQLITE_TEXT
    assert value_col.precision == 10
    assert value_col.scale == 2
    assert value_col.data_kind is DataKind.NUMERIC


def test_sqlite_affinity():
    """Declared types map to SQLite affinities."""
    assert affinity_code("BIGINT") == SQLITE_INTEGER
    assert affinity_code("VARCHAR(10)") == SQLITE_TEXT


def test_sqlite_discovers_system_objects(sqlite_datasource):
    """A fresh database has its schema tables but no sequence or statistics."""
    container = CatalogContainer.discover(sqlite_datasource)

    assert "sqlite_master" in container
    assert "sqlite_temp_master" in container
    assert "sqlite_sequence" not in container
    assert "sqlite_stat1" not in container
    assert "sqlite_stat2" not in container

    master = container.get_child("sqlite_master")
    assert [attr.name for attr in master.get_attributes()] == ["type", "name", "tbl_name", "rootpage", "sql"]
    assert master.get_attribute("rootpage").data_kind is DataKind.NUMERIC


def test_sqlite_sequence_appears_after_autoincrement(sqlite_datasource):
    """sqlite_sequence exists only once an AUTOINCREMENT table does."""
    sqlite_datasource.connection.executescript(
        """
        CREATE TABLE counters (id INTEGER PRIMARY KEY AUTOINCREMENT, label TEXT);
        INSERT INTO counters (label) VALUES ('one');
        ANALYZE;
        """
    )

    container = CatalogContainer.discover(sqlite_datasource)

    assert "sqlite_sequence" in container
    assert "sqlite_stat1" in container
    names = container.names()
    assert names.index("sqlite_master") < names.index("sqlite_sequence") < names.index("sqlite_stat1")


def test_sqlite_connect_failure(tmp_path):
    """An unreachable database file is a fatal connection failure."""
    missing = tmp_path / "no_such_dir" / "db.sqlite"
    ds = SQLiteDataSource("broken", ConnectionConfiguration(database=str(missing)))

    with pytest.raises(FatalConnectionFailure):
        ds.connect()
    assert not ds.is_connected()


def test_duckdb_connection(duckdb_datasource):
    """Test DuckDB connection."""
    assert duckdb_datasource.is_connected()
    assert duckdb_datasource.connection is not None
    assert duckdb_datasource.read_only is False


def test_duckdb_user_metadata(duckdb_datasource):
    """Test listing schemas, tables and columns."""
    assert "main" in duckdb_datasource.list_schemas()
    assert "test_table" in duckdb_datasource.list_tables("main")

    metadata = duckdb_datasource.get_table_metadata("main", "test_table")
    assert metadata.schema_name == "main"
    assert [col.name for col in metadata.columns] == ["id", "name", "value"]

    id_col = metadata.columns[0]
    assert id_col.nullable is False  # PRIMARY KEY is NOT NULL
    value_col = metadata.columns[2]
    assert value_col.precision == 10
    assert value_col.scale == 2


def test_duckdb_discovers_system_objects(duckdb_datasource):
    """DuckDB exposes its own metadata views and the compatibility views."""
    container = CatalogContainer.discover(duckdb_datasource)

    assert "duckdb_tables" in container
    assert "sqlite_master" in container
    assert "information_schema.tables" in container

    duckdb_tables = container.get_child("DUCKDB_TABLES")
    table_name = duckdb_tables.get_attribute("table_name")
    assert table_name is not None
    assert table_name.data_kind is DataKind.STRING


def test_duckdb_probe_reports_decimal_precision(duckdb_datasource):
    """Probe metadata carries the Arrow decimal precision and scale."""
    executor = ProbeExecutor(duckdb_datasource.dialect)

    with duckdb_datasource.open_session("test") as session:
        outcome = executor.probe(session, "main.test_table")

    assert outcome.is_found
    value = outcome.metadata[2]
    assert value.precision == 10
    assert value.scale == 2


def test_duckdb_parallel_discovery(duckdb_datasource):
    """Parallel discovery over cursors finds the same objects in the same order."""
    sequential = CatalogContainer.discover(duckdb_datasource)
    parallel = CatalogContainer.discover_parallel(duckdb_datasource, max_workers=4, probe_timeout=30)

    assert parallel.names() == sequential.names()


def test_duckdb_reconnect_bumps_generation():
    """Every successful connect starts a new connection generation."""
    ds = DuckDBDataSource("test", ConnectionConfiguration(database=":memory:"))

    with ds:
        assert ds.is_connected()
        assert ds.connection_generation == 1

    assert not ds.is_connected()
    ds.connect()
    assert ds.connection_generation == 2
    ds.disconnect()


PgColumn = namedtuple("PgColumn", "name type_code display_size internal_size precision scale null_ok")


def test_postgresql_columns_from_description():
    """Type names come from the pg_type lookup; sizes from the description."""
    description = [
        PgColumn("pid", 23, None, 4, None, None, None),
        PgColumn("amount", 1700, None, -1, 12, 3, None),
        PgColumn("ctid", 27, None, 6, None, None, None),
    ]
    type_names = {23: ("int4", "integer"), 1700: ("numeric", "numeric"), 27: ("tid", "tid")}

    columns = columns_from_description(description, type_names)

    assert [col.name for col in columns] == ["pid", "amount", "ctid"]
    assert [col.ordinal for col in columns] == [1, 2, 3]
    assert columns[0].data_kind is DataKind.NUMERIC
    assert columns[0].full_type_name == "integer"
    assert columns[0].max_length == 4
    assert columns[1].precision == 12
    assert columns[1].scale == 3
    assert columns[1].max_length == 0
    assert columns[2].data_kind is DataKind.ROWID


class UndefinedTable(psycopg2.Error):
    pgcode = "42P01"


class FakePgCursor:
    def __init__(self, error):
        self.error = error
        self.closed = False
        self.description = None

    def execute(self, sql):
        raise self.error

    def close(self):
        self.closed = True


class FakePgConnection:
    def __init__(self, error):
        self.error = error
        self.rollbacks = 0

    def cursor(self):
        return FakePgCursor(self.error)

    def rollback(self):
        self.rollbacks += 1


def test_postgresql_failed_probe_rolls_back():
    """A failed probe rolls back so the session stays usable."""
    ds = PostgreSQLDataSource("pg", ConnectionConfiguration(host="localhost", database="db"))
    connection = FakePgConnection(UndefinedTable("relation does not exist"))
    session = PostgreSQLSession(ds, "test", connection)

    outcome = ProbeExecutor(ds.dialect).probe(session, "pg_stat_statements")

    assert outcome.is_absent
    assert connection.rollbacks == 1
    session.close()
    assert session.closed
    assert connection.rollbacks == 2


class DeadPgConnection:
    closed = 2

    def cursor(self):
        raise psycopg2.InterfaceError("connection already closed")

    def rollback(self):
        raise psycopg2.InterfaceError("connection already closed")


class FakePool:
    def __init__(self, connection):
        self.connection = connection
        self.returned = []

    def getconn(self):
        return self.connection

    def putconn(self, conn, close=False):
        self.returned.append((conn, close))


def test_postgresql_lost_connection_is_fatal(caplog):
    """A dropped pooled connection stops discovery and is discarded, not reused."""
    ds = PostgreSQLDataSource("pg", ConnectionConfiguration(host="localhost", database="db"))
    connection = DeadPgConnection()
    ds._pool = FakePool(connection)
    ds._mark_connected()

    with caplog.at_level(logging.WARNING, logger="catalog_probe"):
        with pytest.raises(FatalConnectionFailure, match="connection lost"):
            CatalogContainer.discover(ds, CandidateRegistry(["a", "b", "c"]))

    assert ds._pool.returned == [(connection, True)]
    assert not [record for record in caplog.records if record.levelno >= logging.ERROR]




def test_postgresql_connect_kwargs():
    """Connection keywords come from the configuration and its properties."""
    config = ConnectionConfiguration(host="db.local", port=6543, database="app", user="u", password="p")
    config.set_property("application_name", "catprobe")
    ds = PostgreSQLDataSource("pg", config)

    kwargs = ds._connect_kwargs()

    assert kwargs["host"] == "db.local"
    assert kwargs["port"] == 6543
    assert kwargs["application_name"] == "catprobe"
    assert ds.dialect.name == "postgresql"


def test_create_datasource_resolves_variables(monkeypatch):
    """The factory substitutes variables on a copy of the configuration."""
    monkeypatch.setenv("CATPROBE_TEST_DB", "warehouse")
    connection = ConnectionConfiguration(host="localhost", database="${CATPROBE_TEST_DB}", url="pg://${host}/x")
    ds_config = DataSourceConfig(name="pg", type="postgresql", connection=connection)

    ds = create_datasource(ds_config)

    assert isinstance(ds, PostgreSQLDataSource)
    assert ds.connection_config.database == "warehouse"
    assert ds.connection_config.url == "pg://localhost/x"
    assert connection.database == "${CATPROBE_TEST_DB}"


def test_create_datasource_unknown_type():
    """Unknown data source types are rejected."""
    with pytest.raises(ValueError):
        create_datasource(DataSourceConfig(name="x", type="oracle"))
