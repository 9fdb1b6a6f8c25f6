"""System object probing."""

from .dialects import (
    DuckDBProbeDialect,
    PostgreSQLProbeDialect,
    ProbeDialect,
    SQLiteProbeDialect,
    get_dialect,
)
from .executor import ProbeExecutor, ProbeOutcome, ProbeStatus

__all__ = [
    "DuckDBProbeDialect",
    "PostgreSQLProbeDialect",
    "ProbeDialect",
    "ProbeExecutor",
    "ProbeOutcome",
    "ProbeStatus",
    "SQLiteProbeDialect",
    "get_dialect",
]
