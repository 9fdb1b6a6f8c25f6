"""Build data sources from configuration."""

from typing import Optional
import logging
import os

from ..config.config import DataSourceConfig
from ..config.variables import ConnectionVariableResolver, VariableResolver
from .base import DataSource
from .duckdb import DuckDBDataSource
from .postgresql import PostgreSQLDataSource
from .sqlite import SQLiteDataSource

logger = logging.getLogger(__name__)

_DATASOURCE_TYPES = {
    "sqlite": SQLiteDataSource,
    "duckdb": DuckDBDataSource,
    "postgresql": PostgreSQLDataSource,
}


def create_datasource(
    ds_config: DataSourceConfig, resolver: Optional[VariableResolver] = None
) -> DataSource:
    """Create an engine data source from its configuration.

    The connection configuration is cloned before variable substitution, so
    the loaded configuration keeps its ``${...}`` tokens.

    Args:
        ds_config: Data source configuration
        resolver: Variable resolver; defaults to the connection's own fields
            with environment variables as fallback

    Returns:
        Unconnected data source

    Raises:
        ValueError: If the data source type is unknown
    """
    datasource_cls = _DATASOURCE_TYPES.get(ds_config.type)
    if datasource_cls is None:
        raise ValueError(f"Unsupported data source type: {ds_config.type}")

    connection = ds_config.connection.clone()
    if resolver is None:
        resolver = ConnectionVariableResolver(ds_config.connection, extra=dict(os.environ))
    connection.resolve_dynamic_variables(resolver)
    logger.debug(f"Creating {ds_config.type} data source {ds_config.name}: {connection}")
    return datasource_cls(ds_config.name, connection, ds_config.options)
