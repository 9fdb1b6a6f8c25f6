"""PostgreSQL data source implementation."""

from typing import List, Dict, Any, Optional, Sequence, Tuple
import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor
import logging

from ..config.connection import ConnectionConfiguration
from ..errors import FatalConnectionFailure
from ..probe.dialects import PostgreSQLProbeDialect, ProbeDialect
from ..types import TypeModifier, classify_type, split_type_name
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

_TYPE_QUERY = """
    SELECT oid, typname, format_type(oid, NULL) AS full_name
    FROM pg_catalog.pg_type
    WHERE oid = ANY(%s)
"""


def columns_from_description(
    description: Sequence[Any], type_names: Dict[int, Tuple[str, str]]
) -> List[ColumnMetadata]:
    """Build column metadata from a psycopg2 cursor description.

    Args:
        description: ``cursor.description`` entries
        type_names: OID -> (type name, formatted type name)

    Returns:
        Column metadata in result order
    """
    columns = []
    for index, desc in enumerate(description):
        type_code = desc.type_code
        type_name, full_type_name = type_names.get(type_code, ("", ""))
        internal_size = desc.internal_size
        columns.append(
            ColumnMetadata(
                name=desc.name,
                ordinal=index + 1,
                type_name=type_name,
                full_type_name=full_type_name or type_name,
                type_code=type_code,
                data_kind=classify_type(type_name),
                scale=desc.scale,
                precision=desc.precision,
                max_length=internal_size if internal_size and internal_size > 0 else 0,
                type_modifiers=TypeModifier.NOT_NULL if desc.null_ok is False else TypeModifier.NONE,
            )
        )
    return columns


def connection_lost(connection, error: BaseException) -> bool:
    """Return True if the error came from a connection that is no longer usable."""
    if isinstance(error, psycopg2.InterfaceError):
        return True
    return isinstance(error, psycopg2.OperationalError) and bool(getattr(connection, "closed", 0))


class PostgreSQLResultSet(ResultSet):
    """Result of a PostgreSQL statement."""

    def __init__(self, cursor, connection, row_cap: Optional[int]):
        self._cursor = cursor
        self._connection = connection
        self._description = cursor.description
        if row_cap is None:
            self.rows = cursor.fetchall()
        else:
            self.rows = cursor.fetchmany(row_cap) if row_cap > 0 else []

    def metadata(self) -> List[ColumnMetadata]:
        oids = sorted({desc.type_code for desc in self._description})
        type_names: Dict[int, Tuple[str, str]] = {}
        if oids:
            with self._connection.cursor() as cursor:
                cursor.execute(_TYPE_QUERY, (oids,))
                for oid, typname, full_name in cursor.fetchall():
                    type_names[oid] = (typname, full_name)
        return columns_from_description(self._description, type_names)

    def close(self) -> None:
        self._cursor.close()


class PostgreSQLStatement(Statement):
    """Statement executed on the session's pooled connection."""

    def __init__(self, connection, sql: str, row_cap: Optional[int], relation: Optional[str]):
        super().__init__(sql, row_cap, relation)
        self._connection = connection
        self._cursor = None

    def execute(self) -> Optional[PostgreSQLResultSet]:
        logger.debug(f"Executing on PostgreSQL: {self.sql[:100]}")
        try:
            self._cursor = self._connection.cursor()
            self._cursor.execute(self.sql)
        except psycopg2.Error as e:
            if connection_lost(self._connection, e):
                raise FatalConnectionFailure(f"PostgreSQL connection lost: {e}") from e
            # A failed statement aborts the transaction; later probes need a clean one
            try:
                self._connection.rollback()
            except psycopg2.Error as rollback_error:
                raise FatalConnectionFailure(
                    f"PostgreSQL rollback failed: {rollback_error}"
                ) from rollback_error
            raise
        if self._cursor.description is None:
            return None
        return PostgreSQLResultSet(self._cursor, self._connection, self.row_cap)

    def close(self) -> None:
        if self._cursor is not None and not self._cursor.closed:
            self._cursor.close()
        self._cursor = None


class PostgreSQLSession(Session):
    """Session holding one connection borrowed from the pool."""

    def __init__(self, datasource: "PostgreSQLDataSource", purpose: str, connection):
        super().__init__(datasource, purpose)
        self.connection = connection

    def prepare(
        self, sql: str, row_cap: Optional[int] = None, relation: Optional[str] = None
    ) -> PostgreSQLStatement:
        return PostgreSQLStatement(self.connection, sql, row_cap, relation)

    def close(self) -> None:
        if not self.closed:
            broken = False
            try:
                self.connection.rollback()
            except psycopg2.Error as e:
                logger.warning(f"Discarding PostgreSQL connection of {self.datasource.name}: {e}")
                broken = True
            self.datasource._return_connection(self.connection, close=broken)
        super().close()


class PostgreSQLDataSource(DataSource):
    """PostgreSQL data source connector with connection pooling."""

    def __init__(
        self,
        name: str,
        connection_config: ConnectionConfiguration,
        options: Optional[Dict[str, Any]] = None,
    ):
        """Initialize PostgreSQL data source.

        Endpoint and credentials come from the connection configuration;
        its driver properties are passed to psycopg2 as extra keywords.
        Options:
            - schemas: List of schemas to include (optional)
            - min_connections: Minimum connections in pool (default: 1)
            - max_connections: Maximum connections in pool (default: 5)
        """
        super().__init__(name, connection_config, options)
        self.schemas = list(self.options.get("schemas", ["public"]))
        self._pool = None
        self._min_connections = int(self.options.get("min_connections", 1))
        self._max_connections = int(self.options.get("max_connections", 5))
        self._dialect = PostgreSQLProbeDialect()

    @property
    def dialect(self) -> ProbeDialect:
        return self._dialect

    def _connect_kwargs(self) -> Dict[str, Any]:
        config = self.connection_config
        if config.url:
            kwargs: Dict[str, Any] = {"dsn": config.url}
        else:
            kwargs = {
                "host": config.host or "localhost",
                "port": int(config.port or 5432),
                "database": config.database,
                "user": config.user,
                "password": config.password,
            }
        kwargs.update(config.properties)
        return kwargs

    def connect(self) -> None:
        """Establish connection pool to PostgreSQL."""
        config = self.connection_config
        try:
            logger.info(f"Connecting to PostgreSQL database '{config.database}' at {config.host}")
            self._pool = pool.ThreadedConnectionPool(
                self._min_connections,
                self._max_connections,
                **self._connect_kwargs(),
            )
            # Get a test connection to verify it works
            conn = self._pool.getconn()
            self._pool.putconn(conn)
            self.connection = conn
            self._mark_connected()
            logger.info(f"Successfully connected to PostgreSQL: {self.name}")
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL {self.name}: {e}")
            raise FatalConnectionFailure(f"PostgreSQL connection failed: {e}") from e

    def disconnect(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()
            logger.info(f"Disconnected from PostgreSQL: {self.name}")
            self._pool = None
            self.connection = None
            self._connected = False

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self._pool:
            raise FatalConnectionFailure(f"Not connected to {self.name}")
        try:
            return self._pool.getconn()
        except (psycopg2.Error, pool.PoolError) as e:
            raise FatalConnectionFailure(f"Cannot borrow PostgreSQL connection: {e}") from e

    def _return_connection(self, conn, close: bool = False):
        """Return a connection to the pool, closing it if it is broken."""
        if self._pool:
            self._pool.putconn(conn, close=close)

    def _create_session(self, purpose: str) -> PostgreSQLSession:
        return PostgreSQLSession(self, purpose, self._get_connection())

    def get_capabilities(self) -> List[DataSourceCapability]:
        return [
            DataSourceCapability.USER_SCHEMAS,
            DataSourceCapability.SYSTEM_OBJECTS,
            DataSourceCapability.ROW_IDENTIFIERS,
            DataSourceCapability.PARALLEL_SESSIONS,
        ]

    def list_schemas(self) -> List[str]:
        """List configured schemas."""
        return self.schemas

    def list_tables(self, schema: str) -> List[str]:
        """List tables in a schema."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = %s AND table_type = 'BASE TABLE'
                    ORDER BY table_name
                    """,
                    (schema,),
                )
                rows = cursor.fetchall()
                tables = []
                for row in rows:
                    tables.append(row[0])
                return tables
        except psycopg2.Error as e:
            logger.error(f"Error listing tables in schema {schema}: {e}")
            raise
        finally:
            conn.rollback()
            self._return_connection(conn)

    def get_table_metadata(self, schema: str, table: str) -> TableMetadata:
        """Get table metadata from information_schema."""
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(
                    """
                    SELECT
                        column_name,
                        data_type,
                        udt_name,
                        is_nullable,
                        numeric_precision,
                        numeric_scale,
                        character_maximum_length
                    FROM information_schema.columns
                    WHERE table_schema = %s AND table_name = %s
                    ORDER BY ordinal_position
                    """,
                    (schema, table),
                )

                columns = []
                for index, row in enumerate(cursor.fetchall()):
                    base, _, _ = split_type_name(row["data_type"])
                    columns.append(
                        ColumnMetadata(
                            name=row["column_name"],
                            ordinal=index + 1,
                            type_name=row["udt_name"],
                            full_type_name=row["data_type"],
                            data_kind=classify_type(row["udt_name"] or base),
                            precision=row["numeric_precision"],
                            scale=row["numeric_scale"],
                            max_length=row["character_maximum_length"] or 0,
                            type_modifiers=(
                                TypeModifier.NONE if row["is_nullable"] == "YES" else TypeModifier.NOT_NULL
                            ),
                        )
                    )

                return TableMetadata(
                    schema_name=schema, table_name=table, columns=columns
                )
        except psycopg2.Error as e:
            logger.error(f"Error getting metadata for {schema}.{table}: {e}")
            raise
        finally:
            conn.rollback()
            self._return_connection(conn)
