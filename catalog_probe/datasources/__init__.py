"""Data source connectors."""

from .base import (
    ColumnMetadata,
    DataSource,
    DataSourceCapability,
    ResultSet,
    Session,
    Statement,
    TableMetadata,
)
from .sqlite import SQLiteDataSource
from .duckdb import DuckDBDataSource
from .postgresql import PostgreSQLDataSource
from .factory import create_datasource

__all__ = [
    "ColumnMetadata",
    "DataSource",
    "DataSourceCapability",
    "DuckDBDataSource",
    "PostgreSQLDataSource",
    "ResultSet",
    "SQLiteDataSource",
    "Session",
    "Statement",
    "TableMetadata",
    "create_datasource",
]
