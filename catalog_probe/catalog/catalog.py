"""Catalog for managing user and system metadata across all data sources."""

from typing import Dict, Optional, List, Tuple, Union
import logging
import threading

from ..config.config import ProbeConfig
from ..datasources.base import DataSource, DataSourceCapability
from ..monitor import ProgressMonitor
from .mapper import AttributeMapper
from .pseudo import (
    NoPseudoAttributes,
    PseudoAttributeProvider,
    PseudoAttributeResolver,
    RowIdPseudoAttributeProvider,
)
from .schema import Schema, Table
from .system import CatalogContainer, CatalogObject

logger = logging.getLogger(__name__)

SYSTEM_SCHEMA = "system"


class Catalog:
    """Central catalog managing metadata from all data sources."""

    def __init__(self, probe_config: Optional[ProbeConfig] = None):
        """Initialize catalog.

        Args:
            probe_config: How system objects are discovered (sequential by default)
        """
        self.probe_config = probe_config or ProbeConfig()
        self.datasources: Dict[str, DataSource] = {}
        self.schemas: Dict[Tuple[str, str], Schema] = {}  # (datasource, schema_name) -> Schema
        # datasource -> (connection generation, container)
        self._system_catalogs: Dict[str, Tuple[int, CatalogContainer]] = {}
        self._system_lock = threading.Lock()
        self._metadata_loaded = False

    def register_datasource(self, datasource: DataSource) -> None:
        """Register a data source with the catalog.

        Args:
            datasource: Data source to register
        """
        self.datasources[datasource.name] = datasource
        self._system_catalogs.pop(datasource.name, None)

    def load_metadata(self, include_system: bool = True) -> None:
        """Load metadata from all registered data sources.

        This discovers all user schemas, tables, and columns from each data
        source, then its system objects.

        Args:
            include_system: Also discover system objects
        """
        for ds_name, datasource in self.datasources.items():
            datasource.ensure_connected()
            resolver = PseudoAttributeResolver(self._pseudo_provider(datasource))

            if datasource.supports_capability(DataSourceCapability.USER_SCHEMAS):
                for schema_name in datasource.list_schemas():
                    schema = Schema(name=schema_name, datasource=ds_name)

                    for table_name in datasource.list_tables(schema_name):
                        metadata = datasource.get_table_metadata(schema_name, table_name)
                        attributes = AttributeMapper.map(metadata.columns)
                        schema.add_table(Table(name=table_name, attributes=attributes, resolver=resolver))

                    self.schemas[(ds_name, schema_name)] = schema

            if include_system and datasource.supports_capability(DataSourceCapability.SYSTEM_OBJECTS):
                self.get_system_catalog(ds_name)

        self._metadata_loaded = True

    def get_datasource(self, name: str) -> Optional[DataSource]:
        """Get data source by name.

        Args:
            name: Data source name

        Returns:
            Data source if found, None otherwise
        """
        return self.datasources.get(name)

    def get_schema(self, datasource: str, schema_name: str) -> Optional[Schema]:
        """Get schema by data source and name.

        Args:
            datasource: Data source name
            schema_name: Schema name

        Returns:
            Schema if found, None otherwise
        """
        return self.schemas.get((datasource, schema_name))

    def get_table(
        self, datasource: str, schema_name: str, table_name: str
    ) -> Optional[Table]:
        """Get table by fully qualified name.

        Args:
            datasource: Data source name
            schema_name: Schema name
            table_name: Table name

        Returns:
            Table if found, None otherwise
        """
        schema = self.get_schema(datasource, schema_name)
        if schema:
            return schema.get_table(table_name)
        return None

    def get_system_catalog(
        self, datasource_name: str, monitor: Optional[ProgressMonitor] = None
    ) -> CatalogContainer:
        """Get the system objects of a data source, discovering them once per connection.

        The container is reused until the data source reconnects; objects
        that appear later in the same connection are not picked up.

        Args:
            datasource_name: Data source name
            monitor: Optional progress monitor

        Returns:
            Discovered system objects

        Raises:
            KeyError: If the data source is not registered
            FatalConnectionFailure: If the data source is unreachable
            DiscoveryCancelledError: If the monitor was cancelled
        """
        datasource = self.datasources.get(datasource_name)
        if datasource is None:
            raise KeyError(f"Unknown data source: {datasource_name}")

        with self._system_lock:
            datasource.ensure_connected()
            generation = datasource.connection_generation
            cached = self._system_catalogs.get(datasource_name)
            if cached is not None and cached[0] == generation:
                return cached[1]

            container = self._discover(datasource, monitor)
            self._system_catalogs[datasource_name] = (generation, container)
            return container

    def _discover(self, datasource: DataSource, monitor: Optional[ProgressMonitor]) -> CatalogContainer:
        provider = self._pseudo_provider(datasource)
        config = self.probe_config
        if config.parallel and datasource.supports_capability(DataSourceCapability.PARALLEL_SESSIONS):
            logger.debug(f"Discovering system objects of {datasource.name} with {config.max_workers} workers")
            return CatalogContainer.discover_parallel(
                datasource,
                max_workers=config.max_workers,
                probe_timeout=config.probe_timeout_s,
                monitor=monitor,
                pseudo_provider=provider,
            )
        return CatalogContainer.discover(datasource, monitor=monitor, pseudo_provider=provider)

    def _pseudo_provider(self, datasource: DataSource) -> PseudoAttributeProvider:
        if datasource.supports_capability(DataSourceCapability.ROW_IDENTIFIERS):
            return RowIdPseudoAttributeProvider(datasource)
        return NoPseudoAttributes()

    def resolve_table(
        self, table_ref: str
    ) -> Optional[Tuple[str, str, str, Union[Table, CatalogObject]]]:
        """Resolve a table reference to its components.

        Supports formats:
        - datasource.schema.table
        - schema.table (searches all data sources)
        - table (searches all schemas)

        When no user table matches, the reference is looked up among system
        objects, as ``datasource.object`` or ``object``; those results carry
        ``"system"`` as their schema.

        Args:
            table_ref: Table reference string

        Returns:
            Tuple of (datasource, schema, table_name, entity) if found, None otherwise
        """
        parts = table_ref.split(".")

        if len(parts) == 3:
            # Fully qualified: datasource.schema.table
            ds, schema_name, table_name = parts
            table = self.get_table(ds, schema_name, table_name)
            if table:
                return (ds, schema_name, table_name, table)

        elif len(parts) == 2:
            # schema.table - search all data sources
            schema_name, table_name = parts
            for (ds, sch_name), schema in self.schemas.items():
                if sch_name.lower() == schema_name.lower():
                    table = schema.get_table(table_name)
                    if table:
                        return (ds, sch_name, table_name, table)

        elif len(parts) == 1:
            # Just table name - search all schemas
            table_name = parts[0]
            for (ds, sch_name), schema in self.schemas.items():
                table = schema.get_table(table_name)
                if table:
                    return (ds, sch_name, table_name, table)

        return self._resolve_system_object(parts)

    def _resolve_system_object(
        self, parts: List[str]
    ) -> Optional[Tuple[str, str, str, CatalogObject]]:
        if len(parts) > 1 and parts[0] in self.datasources:
            lookups = [(parts[0], ".".join(parts[1:]))]
        else:
            lookups = [(ds, ".".join(parts)) for ds in self.datasources]

        for ds, name in lookups:
            if not self.datasources[ds].supports_capability(DataSourceCapability.SYSTEM_OBJECTS):
                continue
            obj = self.get_system_catalog(ds).get_child(name)
            if obj is not None:
                return (ds, SYSTEM_SCHEMA, obj.get_name(), obj)
        return None

    def __repr__(self) -> str:
        return (
            f"Catalog(datasources={len(self.datasources)}, schemas={len(self.schemas)}, "
            f"system_catalogs={len(self._system_catalogs)})"
        )
