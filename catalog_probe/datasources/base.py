"""Base data source interface and session contracts."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, TYPE_CHECKING
from enum import Enum
import threading

from ..config.connection import ConnectionConfiguration
from ..types import DataKind, TypeModifier

if TYPE_CHECKING:
    from ..probe.dialects import ProbeDialect


class DataSourceCapability(Enum):
    """Capabilities that a data source may support."""

    USER_SCHEMAS = "user_schemas"
    SYSTEM_OBJECTS = "system_objects"
    ROW_IDENTIFIERS = "row_identifiers"
    PARALLEL_SESSIONS = "parallel_sessions"


@dataclass
class ColumnMetadata:
    """Metadata about a result or table column."""

    name: str
    ordinal: int
    type_name: str = ""
    full_type_name: str = ""
    type_code: int = 0
    data_kind: DataKind = DataKind.UNKNOWN
    scale: Optional[int] = None
    precision: Optional[int] = None
    max_length: int = 0
    type_modifiers: TypeModifier = TypeModifier.NONE

    @property
    def nullable(self) -> bool:
        return not self.type_modifiers & TypeModifier.NOT_NULL


@dataclass
class TableMetadata:
    """Metadata about a user table."""

    schema_name: str
    table_name: str
    columns: List[ColumnMetadata] = field(default_factory=list)


class ResultSet(ABC):
    """Open result of an executed statement."""

    @abstractmethod
    def metadata(self) -> List[ColumnMetadata]:
        """Return column metadata in result order."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class Statement(ABC):
    """Prepared statement bound to a session."""

    def __init__(self, sql: str, row_cap: Optional[int] = None, relation: Optional[str] = None):
        """Initialize statement.

        Args:
            sql: SQL text
            row_cap: Maximum number of rows to fetch (None for no cap)
            relation: Relation the statement reads from, when known
        """
        self.sql = sql
        self.row_cap = row_cap
        self.relation = relation

    @abstractmethod
    def execute(self) -> Optional[ResultSet]:
        """Execute the statement.

        Returns:
            Result set, or None when the statement produced no result
        """
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.sql!r})"


class Session(ABC):
    """Execution context opened against a data source for one purpose."""

    def __init__(self, datasource: "DataSource", purpose: str):
        self.datasource = datasource
        self.purpose = purpose
        self.closed = False

    @abstractmethod
    def prepare(
        self, sql: str, row_cap: Optional[int] = None, relation: Optional[str] = None
    ) -> Statement:
        """Prepare a statement.

        Args:
            sql: SQL text
            row_cap: Row cap hint; probes only need metadata
            relation: Relation the statement reads from, when known

        Returns:
            Prepared statement
        """
        pass

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.datasource.name}, purpose={self.purpose!r})"


class DataSource(ABC):
    """Abstract base class for data sources."""

    def __init__(
        self,
        name: str,
        connection_config: ConnectionConfiguration,
        options: Optional[Dict[str, Any]] = None,
    ):
        """Initialize data source.

        Args:
            name: Unique name for this data source
            connection_config: Resolved connection configuration
            options: Engine-specific options
        """
        self.name = name
        self.connection_config = connection_config
        self.options = dict(options or {})
        self.connection = None
        self._connected = False
        self._generation = 0
        self._generation_lock = threading.Lock()

    @property
    @abstractmethod
    def dialect(self) -> "ProbeDialect":
        """Probe strategy for this engine."""
        pass

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data source.

        Raises:
            FatalConnectionFailure: If the engine is unreachable
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the data source."""
        pass

    @abstractmethod
    def get_capabilities(self) -> List[DataSourceCapability]:
        """Return list of capabilities supported by this data source."""
        pass

    @abstractmethod
    def list_schemas(self) -> List[str]:
        """List all available schemas."""
        pass

    @abstractmethod
    def list_tables(self, schema: str) -> List[str]:
        """List all user tables in a schema.

        Args:
            schema: Schema name

        Returns:
            List of table names
        """
        pass

    @abstractmethod
    def get_table_metadata(self, schema: str, table: str) -> TableMetadata:
        """Get metadata for a user table.

        Args:
            schema: Schema name
            table: Table name

        Returns:
            Table metadata including columns and types
        """
        pass

    @abstractmethod
    def _create_session(self, purpose: str) -> Session:
        """Open a new engine session; called with the data source connected."""
        pass

    def open_session(self, purpose: str) -> Session:
        """Open a session for the given purpose.

        Args:
            purpose: Human-readable reason, used in logs

        Returns:
            Session to be used as a context manager

        Raises:
            FatalConnectionFailure: If the engine is unreachable
        """
        self.ensure_connected()
        return self._create_session(purpose)

    def supports_capability(self, capability: DataSourceCapability) -> bool:
        """Check if data source supports a capability.

        Args:
            capability: Capability to check

        Returns:
            True if supported, False otherwise
        """
        return capability in self.get_capabilities()

    def is_connected(self) -> bool:
        """Check if data source is connected.

        Returns:
            True if connected, False otherwise
        """
        return self._connected

    @property
    def connection_generation(self) -> int:
        """Number of successful connects; changes whenever the connection is reopened."""
        return self._generation

    def _mark_connected(self) -> None:
        with self._generation_lock:
            self._connected = True
            self._generation += 1

    def ensure_connected(self) -> None:
        """Ensure data source is connected.

        Raises:
            FatalConnectionFailure: If connection cannot be established
        """
        if not self.is_connected():
            self.connect()

    def __enter__(self):
        """Context manager entry."""
        self.ensure_connected()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
        self._connected = False
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
