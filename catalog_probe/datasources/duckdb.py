"""DuckDB data source implementation."""

from typing import List, Dict, Any, Optional
import pyarrow as pa
import duckdb
import logging

from ..config.connection import ConnectionConfiguration
from ..errors import FatalConnectionFailure
from ..probe.dialects import DuckDBProbeDialect, ProbeDialect
from ..types import DataKind, TypeModifier, classify_type, split_type_name
from .base import (
    ColumnMetadata,
    DataSource,
    DataSourceCapability,
    ResultSet,
    Session,
    Statement,
    TableMetadata,
)

logger = logging.getLogger(__name__)


def column_from_arrow(name: str, ordinal: int, declared_type: str, arrow_type: Optional[pa.DataType]) -> ColumnMetadata:
    """Combine DuckDB's declared type with the Arrow type of the fetched column."""
    base, first, second = split_type_name(declared_type)
    kind = classify_type(base)
    precision = None
    scale = None
    max_length = 0
    type_code = 0
    if arrow_type is not None:
        type_code = arrow_type.id
        if pa.types.is_decimal(arrow_type):
            precision = arrow_type.precision
            scale = arrow_type.scale
        elif pa.types.is_fixed_size_binary(arrow_type):
            max_length = arrow_type.byte_width
    if precision is None and kind is DataKind.NUMERIC and first is not None:
        precision, scale = first, second
    elif first is not None and kind is DataKind.STRING:
        max_length = first
    return ColumnMetadata(
        name=name,
        ordinal=ordinal,
        type_name=base,
        full_type_name=declared_type,
        type_code=type_code,
        data_kind=kind,
        scale=scale,
        precision=precision,
        max_length=max_length,
    )


class DuckDBResultSet(ResultSet):
    """Result of a DuckDB statement, materialized as an Arrow table."""

    def __init__(self, cursor: duckdb.DuckDBPyConnection, row_cap: Optional[int]):
        self._description = list(cursor.description or ())
        table = cursor.to_arrow_table()
        if row_cap is not None:
            table = table.slice(0, row_cap)
        self.table = table

    def metadata(self) -> List[ColumnMetadata]:
        schema = self.table.schema
        columns = []
        for index, desc in enumerate(self._description):
            arrow_type = schema.field(index).type if index < len(schema) else None
            columns.append(column_from_arrow(desc[0], index + 1, str(desc[1]), arrow_type))
        return columns

    def close(self) -> None:
        self.table = None


class DuckDBStatement(Statement):
    """Statement executed on a session cursor."""

    def __init__(self, cursor: duckdb.DuckDBPyConnection, sql: str, row_cap: Optional[int], relation: Optional[str]):
        super().__init__(sql, row_cap, relation)
        self._cursor = cursor

    def execute(self) -> Optional[DuckDBResultSet]:
        logger.debug(f"Executing on DuckDB: {self.sql[:100]}")
        self._cursor.execute(self.sql)
        if self._cursor.description is None:
            return None
        return DuckDBResultSet(self._cursor, self.row_cap)

    def close(self) -> None:
        pass


class DuckDBSession(Session):
    """Session backed by a DuckDB cursor (its own connection to the same database)."""

    def __init__(self, datasource: "DuckDBDataSource", purpose: str, cursor: duckdb.DuckDBPyConnection):
        super().__init__(datasource, purpose)
        self.cursor = cursor

    def prepare(
        self, sql: str, row_cap: Optional[int] = None, relation: Optional[str] = None
    ) -> DuckDBStatement:
        return DuckDBStatement(self.cursor, sql, row_cap, relation)

    def close(self) -> None:
        if not self.closed:
            self.cursor.close()
        super().close()


class DuckDBDataSource(DataSource):
    """DuckDB data source connector."""

    def __init__(
        self,
        name: str,
        connection_config: ConnectionConfiguration,
        options: Optional[Dict[str, Any]] = None,
    ):
        """Initialize DuckDB data source.

        The database path is taken from ``connection_config.database``
        (``:memory:`` when empty). Options:
            - read_only: Whether to open in read-only mode (default: True for files)
        """
        super().__init__(name, connection_config, options)
        self.db_path = connection_config.database or ":memory:"
        self.read_only = self.options.get("read_only", self.db_path != ":memory:")
        self._dialect = DuckDBProbeDialect()

    @property
    def dialect(self) -> ProbeDialect:
        return self._dialect

    def connect(self) -> None:
        """Establish connection to DuckDB."""
        logger.info(f"Connecting to DuckDB at '{self.db_path}'")
        try:
            self.connection = duckdb.connect(self.db_path, read_only=self.read_only)
        except duckdb.Error as e:
            logger.error(f"Failed to connect to DuckDB {self.name}: {e}")
            raise FatalConnectionFailure(f"DuckDB connection failed: {e}") from e
        self._mark_connected()
        logger.info(f"Successfully connected to DuckDB: {self.name}")

    def disconnect(self) -> None:
        """Close DuckDB connection."""
        if self.connection:
            self.connection.close()
            logger.info(f"Disconnected from DuckDB: {self.name}")
            self.connection = None
            self._connected = False

    def _create_session(self, purpose: str) -> DuckDBSession:
        try:
            cursor = self.connection.cursor()
        except duckdb.Error as e:
            raise FatalConnectionFailure(f"Cannot open DuckDB session for {purpose}: {e}") from e
        return DuckDBSession(self, purpose, cursor)

    def get_capabilities(self) -> List[DataSourceCapability]:
        return [
            DataSourceCapability.USER_SCHEMAS,
            DataSourceCapability.SYSTEM_OBJECTS,
            DataSourceCapability.ROW_IDENTIFIERS,
            DataSourceCapability.PARALLEL_SESSIONS,
        ]

    def list_schemas(self) -> List[str]:
        """List available schemas."""
        result = self.connection.execute(
            """
            SELECT schema_name
            FROM information_schema.schemata
            WHERE catalog_name = current_database()
              AND schema_name NOT IN ('information_schema', 'pg_catalog')
            ORDER BY schema_name
            """
        ).fetchall()
        schemas = []
        for row in result:
            schemas.append(row[0])
        return schemas

    def list_tables(self, schema: str) -> List[str]:
        """List tables in a schema."""
        result = self.connection.execute(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema = ? AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            [schema],
        ).fetchall()
        tables = []
        for row in result:
            tables.append(row[0])
        return tables

    def get_table_metadata(self, schema: str, table: str) -> TableMetadata:
        """Get table metadata."""
        result = self.connection.execute(
            """
            SELECT
                column_name,
                data_type,
                is_nullable,
                numeric_precision,
                numeric_scale,
                character_maximum_length
            FROM information_schema.columns
            WHERE table_catalog = current_database()
              AND table_schema = ? AND table_name = ?
            ORDER BY ordinal_position
            """,
            [schema, table],
        ).fetchall()

        columns = []
        for index, row in enumerate(result):
            base, _, _ = split_type_name(row[1])
            columns.append(
                ColumnMetadata(
                    name=row[0],
                    ordinal=index + 1,
                    type_name=base,
                    full_type_name=row[1],
                    data_kind=classify_type(base),
                    precision=row[3],
                    scale=row[4],
                    max_length=row[5] or 0,
                    type_modifiers=TypeModifier.NONE if row[2] == "YES" else TypeModifier.NOT_NULL,
                )
            )

        return TableMetadata(schema_name=schema, table_name=table, columns=columns)
