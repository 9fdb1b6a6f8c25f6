"""SQLite data source implementation."""

from typing import List, Dict, Any, Optional
import logging
import sqlite3
import uuid

from ..config.connection import ConnectionConfiguration
from ..errors import FatalConnectionFailure
from ..probe.dialects import ProbeDialect, SQLiteProbeDialect
from ..types import DataKind, TypeModifier, classify_type, classify_value, split_type_name
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

# Affinity codes; the first four match SQLite's fundamental datatype codes
SQLITE_INTEGER = 1
SQLITE_FLOAT = 2
SQLITE_TEXT = 3
SQLITE_BLOB = 4
SQLITE_NUMERIC = 5


def affinity_code(declared_type: str) -> int:
    """Type affinity of a declared column type, following SQLite's rules."""
    type_str = declared_type.upper()
    if "INT" in type_str:
        return SQLITE_INTEGER
    if "CHAR" in type_str or "CLOB" in type_str or "TEXT" in type_str:
        return SQLITE_TEXT
    if "BLOB" in type_str or not type_str:
        return SQLITE_BLOB
    if "REAL" in type_str or "FLOA" in type_str or "DOUB" in type_str:
        return SQLITE_FLOAT
    return SQLITE_NUMERIC


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def column_from_declaration(
    name: str,
    ordinal: int,
    declared_type: str,
    not_null: bool = False,
    primary_key: bool = False,
    hidden: bool = False,
) -> ColumnMetadata:
    """Build column metadata from a SQLite column declaration."""
    base, first, second = split_type_name(declared_type)
    kind = classify_type(base)
    modifiers = TypeModifier.NONE
    if not_null:
        modifiers |= TypeModifier.NOT_NULL
    if primary_key:
        modifiers |= TypeModifier.PRIMARY_KEY
    if hidden:
        modifiers |= TypeModifier.HIDDEN

    precision = None
    scale = None
    max_length = 0
    if first is not None:
        if kind is DataKind.NUMERIC:
            precision, scale = first, second
        else:
            max_length = first
    return ColumnMetadata(
        name=name,
        ordinal=ordinal,
        type_name=base.upper(),
        full_type_name=declared_type,
        type_code=affinity_code(declared_type),
        data_kind=kind,
        scale=scale,
        precision=precision,
        max_length=max_length,
        type_modifiers=modifiers,
    )


class SQLiteResultSet(ResultSet):
    """Result of a SQLite statement; holds at most ``row_cap`` fetched rows."""

    def __init__(self, cursor: sqlite3.Cursor, statement: "SQLiteStatement"):
        self._cursor = cursor
        self._statement = statement
        self._description = cursor.description or ()
        if statement.row_cap is None:
            self.rows = cursor.fetchall()
        else:
            self.rows = cursor.fetchmany(statement.row_cap) if statement.row_cap > 0 else []

    def metadata(self) -> List[ColumnMetadata]:
        declared = self._declared_columns()
        first_row = self.rows[0] if self.rows else None

        columns = []
        for index, desc in enumerate(self._description):
            name = desc[0]
            ordinal = index + 1
            info = declared.get(name.lower())
            if info is not None and info[0]:
                declared_type, not_null, primary_key, hidden = info
                columns.append(
                    column_from_declaration(name, ordinal, declared_type, not_null, primary_key, hidden)
                )
                continue
            # No declared type: fall back to the storage class of the fetched value
            value = first_row[index] if first_row is not None else None
            type_name, kind = classify_value(value)
            columns.append(
                ColumnMetadata(
                    name=name,
                    ordinal=ordinal,
                    type_name=type_name,
                    full_type_name=type_name,
                    type_code=affinity_code(type_name),
                    data_kind=kind,
                )
            )
        return columns

    def _declared_columns(self) -> Dict[str, tuple]:
        relation = self._statement.relation
        if not relation:
            return {}
        try:
            rows = self._statement.connection.execute(
                f"PRAGMA table_xinfo({_quote(relation)})"
            ).fetchall()
        except sqlite3.Error as e:
            logger.debug(f"No declared columns for {relation}: {e}")
            return {}
        declared = {}
        for row in rows:
            # cid, name, type, notnull, dflt_value, pk, hidden
            declared[str(row[1]).lower()] = (row[2] or "", bool(row[3]), bool(row[5]), bool(row[6]))
        return declared

    def close(self) -> None:
        self._cursor.close()


class SQLiteStatement(Statement):
    """Statement executed on a session's own connection."""

    def __init__(self, connection: sqlite3.Connection, sql: str, row_cap: Optional[int], relation: Optional[str]):
        super().__init__(sql, row_cap, relation)
        self.connection = connection
        self._cursor: Optional[sqlite3.Cursor] = None

    def execute(self) -> Optional[SQLiteResultSet]:
        logger.debug(f"Executing on SQLite: {self.sql[:100]}")
        self._cursor = self.connection.cursor()
        self._cursor.execute(self.sql)
        if self._cursor.description is None:
            return None
        return SQLiteResultSet(self._cursor, self)

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None


class SQLiteSession(Session):
    """Session backed by a dedicated connection to the same database."""

    def __init__(self, datasource: "SQLiteDataSource", purpose: str, connection: sqlite3.Connection):
        super().__init__(datasource, purpose)
        self.connection = connection

    def prepare(
        self, sql: str, row_cap: Optional[int] = None, relation: Optional[str] = None
    ) -> SQLiteStatement:
        return SQLiteStatement(self.connection, sql, row_cap, relation)

    def close(self) -> None:
        if not self.closed:
            self.connection.close()
        super().close()


class SQLiteDataSource(DataSource):
    """SQLite data source connector."""

    def __init__(
        self,
        name: str,
        connection_config: ConnectionConfiguration,
        options: Optional[Dict[str, Any]] = None,
    ):
        """Initialize SQLite data source.

        The database path is taken from ``connection_config.database``
        (``:memory:`` when empty). Options:
            - timeout: Seconds to wait on a locked database (default: 5.0)
        """
        super().__init__(name, connection_config, options)
        self.db_path = connection_config.database or ":memory:"
        self.timeout = float(self.options.get("timeout", 5.0))
        self._target: Optional[str] = None
        self._dialect = SQLiteProbeDialect()

    @property
    def dialect(self) -> ProbeDialect:
        return self._dialect

    def connect(self) -> None:
        """Open the primary SQLite connection.

        In-memory databases are opened through a shared-cache URI so every
        session connection sees the same database for as long as the primary
        connection stays open.
        """
        if self.db_path == ":memory:":
            self._target = f"file:catprobe-{self.name}-{uuid.uuid4().hex}?mode=memory&cache=shared"
        else:
            self._target = self.db_path
        logger.info(f"Connecting to SQLite at '{self.db_path}'")
        try:
            self.connection = self._open_connection()
        except sqlite3.Error as e:
            logger.error(f"Failed to open SQLite database {self.name}: {e}")
            raise FatalConnectionFailure(f"SQLite connection failed: {e}") from e
        self._mark_connected()
        logger.info(f"Successfully connected to SQLite: {self.name}")

    def _open_connection(self) -> sqlite3.Connection:
        uri = self._target.startswith("file:")
        return sqlite3.connect(self._target, uri=uri, timeout=self.timeout, check_same_thread=False)

    def disconnect(self) -> None:
        """Close the primary SQLite connection."""
        if self.connection:
            self.connection.close()
            logger.info(f"Disconnected from SQLite: {self.name}")
            self.connection = None
            self._connected = False

    def _create_session(self, purpose: str) -> SQLiteSession:
        try:
            connection = self._open_connection()
        except sqlite3.Error as e:
            raise FatalConnectionFailure(f"Cannot open SQLite session for {purpose}: {e}") from e
        return SQLiteSession(self, purpose, connection)

    def get_capabilities(self) -> List[DataSourceCapability]:
        return [
            DataSourceCapability.USER_SCHEMAS,
            DataSourceCapability.SYSTEM_OBJECTS,
            DataSourceCapability.ROW_IDENTIFIERS,
            DataSourceCapability.PARALLEL_SESSIONS,
        ]

    def list_schemas(self) -> List[str]:
        """List attached databases."""
        rows = self.connection.execute("PRAGMA database_list").fetchall()
        schemas = []
        for row in rows:
            if row[1] != "temp":
                schemas.append(row[1])
        return schemas

    def list_tables(self, schema: str) -> List[str]:
        """List user tables in an attached database."""
        rows = self.connection.execute(
            f"""
            SELECT name
            FROM {_quote(schema)}.sqlite_master
            WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
            ORDER BY name
            """
        ).fetchall()
        tables = []
        for row in rows:
            tables.append(row[0])
        return tables

    def get_table_metadata(self, schema: str, table: str) -> TableMetadata:
        """Get table metadata from ``PRAGMA table_xinfo``."""
        rows = self.connection.execute(
            f"PRAGMA {_quote(schema)}.table_xinfo({_quote(table)})"
        ).fetchall()

        columns = []
        for index, row in enumerate(rows):
            columns.append(
                column_from_declaration(
                    name=row[1],
                    ordinal=index + 1,
                    declared_type=row[2] or "",
                    not_null=bool(row[3]),
                    primary_key=bool(row[5]),
                    hidden=bool(row[6]),
                )
            )

        return TableMetadata(schema_name=schema, table_name=table, columns=columns)
