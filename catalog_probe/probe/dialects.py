"""Per-engine probe strategies."""

from abc import ABC, abstractmethod
from typing import Tuple
import sqlite3

import duckdb
from sqlglot import exp


class ProbeDialect(ABC):
    """Engine strategy: probe SQL, absence classification, pseudo columns."""

    name: str = ""
    sqlglot_dialect: str = ""
    pseudo_columns: Tuple[Tuple[str, str], ...] = ()  # (column, type name)

    def probe_query(self, relation: str) -> str:
        """Build the minimal query that exposes a relation's columns.

        Args:
            relation: Relation name, optionally schema-qualified

        Returns:
            SQL selecting every column with a one-row limit
        """
        query = exp.select("*").from_(self._table(relation)).limit(1)
        return query.sql(dialect=self.sqlglot_dialect)

    def pseudo_column_query(self, relation: str, column: str) -> str:
        """Build a zero-row query that succeeds only if the pseudo column exists."""
        query = exp.select(exp.column(column)).from_(self._table(relation)).limit(0)
        return query.sql(dialect=self.sqlglot_dialect)

    @abstractmethod
    def is_object_absent(self, error: BaseException) -> bool:
        """Return True if the error means the relation does not exist."""
        pass

    def is_column_absent(self, error: BaseException) -> bool:
        """Return True if the error means a selected column does not exist."""
        return False

    def _table(self, relation: str) -> exp.Table:
        return exp.to_table(relation, dialect=self.sqlglot_dialect)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class SQLiteProbeDialect(ProbeDialect):
    """SQLite: missing tables and unavailable virtual table modules."""

    name = "sqlite"
    sqlglot_dialect = "sqlite"
    pseudo_columns = (("rowid", "INTEGER"),)

    _ABSENCE_MARKERS = ("no such table", "no such module")

    def is_object_absent(self, error: BaseException) -> bool:
        if not isinstance(error, sqlite3.OperationalError):
            return False
        message = str(error).lower()
        for marker in self._ABSENCE_MARKERS:
            if marker in message:
                return True
        return False

    def is_column_absent(self, error: BaseException) -> bool:
        return isinstance(error, sqlite3.OperationalError) and "no such column" in str(error).lower()


class DuckDBProbeDialect(ProbeDialect):
    """DuckDB reports unknown relations as catalog errors."""

    name = "duckdb"
    sqlglot_dialect = "duckdb"
    pseudo_columns = (("rowid", "BIGINT"),)

    def is_object_absent(self, error: BaseException) -> bool:
        return isinstance(error, duckdb.CatalogException)

    def is_column_absent(self, error: BaseException) -> bool:
        return isinstance(error, duckdb.BinderException)


class PostgreSQLProbeDialect(ProbeDialect):
    """PostgreSQL signals missing relations with SQLSTATE 42P01."""

    name = "postgresql"
    sqlglot_dialect = "postgres"
    pseudo_columns = (("ctid", "tid"),)

    UNDEFINED_TABLE = "42P01"
    UNDEFINED_COLUMN = "42703"

    def is_object_absent(self, error: BaseException) -> bool:
        return getattr(error, "pgcode", None) == self.UNDEFINED_TABLE

    def is_column_absent(self, error: BaseException) -> bool:
        return getattr(error, "pgcode", None) == self.UNDEFINED_COLUMN


_DIALECTS = {
    SQLiteProbeDialect.name: SQLiteProbeDialect,
    DuckDBProbeDialect.name: DuckDBProbeDialect,
    PostgreSQLProbeDialect.name: PostgreSQLProbeDialect,
}


def get_dialect(name: str) -> ProbeDialect:
    """Return the probe strategy registered under a dialect name.

    Raises:
        ValueError: If the dialect is unknown
    """
    dialect_cls = _DIALECTS.get(name.lower())
    if dialect_cls is None:
        raise ValueError(f"Unsupported dialect: {name}")
    return dialect_cls()
