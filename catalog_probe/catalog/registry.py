"""Fixed, ordered candidate lists of engine system objects."""

from typing import Dict, Iterable, Iterator, List, Tuple

SQLITE_CANDIDATES = (
    "sqlite_master",
    "sqlite_schema",
    "sqlite_temp_master",
    "sqlite_temp_schema",
    "dbstat",
    "sqlite_sequence",
    "sqlite_stat1",
    "sqlite_stat2",
    "sqlite_stat3",
    "sqlite_stat4",
)

DUCKDB_CANDIDATES = (
    "duckdb_databases",
    "duckdb_schemas",
    "duckdb_tables",
    "duckdb_views",
    "duckdb_columns",
    "duckdb_constraints",
    "duckdb_indexes",
    "duckdb_types",
    "sqlite_master",
    "sqlite_schema",
    "sqlite_temp_master",
    "sqlite_temp_schema",
    "information_schema.schemata",
    "information_schema.tables",
    "information_schema.columns",
    "pg_catalog.pg_class",
    "pg_catalog.pg_namespace",
    "pg_catalog.pg_type",
)

POSTGRESQL_CANDIDATES = (
    "pg_stat_activity",
    "pg_stat_database",
    "pg_stat_all_tables",
    "pg_stat_user_tables",
    "pg_stat_user_indexes",
    "pg_statio_user_tables",
    "pg_stat_bgwriter",
    "pg_stat_replication",
    "pg_stat_ssl",
    "pg_stat_progress_vacuum",
    "pg_locks",
    "pg_settings",
    # Present only when the extensions are installed
    "pg_stat_statements",
    "pg_buffercache",
)

_BUILTIN: Dict[str, Tuple[str, ...]] = {
    "sqlite": SQLITE_CANDIDATES,
    "duckdb": DUCKDB_CANDIDATES,
    "postgresql": POSTGRESQL_CANDIDATES,
}


class CandidateRegistry:
    """Ordered list of system object names worth probing for one engine.

    The order is the probe order and therefore the order in which discovered
    objects are reported.
    """

    def __init__(self, names: Iterable[str]):
        """Initialize registry.

        Args:
            names: Candidate names in probe order

        Raises:
            ValueError: On an empty or duplicate (case-insensitive) name
        """
        ordered: List[str] = []
        seen = set()
        for name in names:
            if not name or not name.strip():
                raise ValueError("Candidate names must be non-empty")
            key = name.lower()
            if key in seen:
                raise ValueError(f"Duplicate candidate name: {name}")
            seen.add(key)
            ordered.append(name)
        self._names = tuple(ordered)
        self._keys = frozenset(seen)

    @classmethod
    def for_dialect(cls, dialect: str) -> "CandidateRegistry":
        """Built-in registry for an engine.

        Raises:
            ValueError: If the dialect has no built-in registry
        """
        names = _BUILTIN.get(dialect.lower())
        if names is None:
            raise ValueError(f"No candidate registry for dialect: {dialect}")
        return cls(names)

    @staticmethod
    def dialects() -> List[str]:
        return list(_BUILTIN)

    def ordered(self) -> Tuple[str, ...]:
        return self._names

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._keys

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __repr__(self) -> str:
        return f"CandidateRegistry({len(self._names)} candidates)"
