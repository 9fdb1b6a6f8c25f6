"""Shared fixtures: an in-process fake engine for failure injection."""

import threading
from typing import Dict, List, Optional

import pytest

from catalog_probe.config import ConnectionConfiguration
from catalog_probe.datasources.base import (
    ColumnMetadata,
    DataSource,
    DataSourceCapability,
    ResultSet,
    Session,
    Statement,
    TableMetadata,
)
from catalog_probe.errors import FatalConnectionFailure
from catalog_probe.probe.dialects import ProbeDialect
from catalog_probe.types import DataKind


class MissingRelationError(Exception):
    """Fake engine error for a relation that does not exist."""


class FakeDialect(ProbeDialect):
    name = "fake"
    sqlglot_dialect = "sqlite"
    pseudo_columns = (("rowid", "INTEGER"),)

    def is_object_absent(self, error: BaseException) -> bool:
        return isinstance(error, MissingRelationError)


def columns(*names: str) -> List[ColumnMetadata]:
    """Text columns with the given names, in order."""
    return [
        ColumnMetadata(name=name, ordinal=index + 1, type_name="TEXT", full_type_name="TEXT", data_kind=DataKind.STRING)
        for index, name in enumerate(names)
    ]


class FakeResultSet(ResultSet):
    def __init__(self, metadata: List[ColumnMetadata]):
        self._metadata = metadata
        self.closed = False

    def metadata(self) -> List[ColumnMetadata]:
        return list(self._metadata)

    def close(self) -> None:
        self.closed = True


class FakeStatement(Statement):
    def __init__(self, session: "FakeSession", sql: str, row_cap, relation):
        super().__init__(sql, row_cap, relation)
        self.session = session
        self.closed = False

    def execute(self) -> Optional[FakeResultSet]:
        source = self.session.datasource
        source.executed.append(self.sql)
        behavior = source.behaviors.get(self.relation, MissingRelationError(f"no such table: {self.relation}"))
        if callable(behavior) and not isinstance(behavior, type):
            behavior = behavior()
        if isinstance(behavior, BaseException):
            raise behavior
        if behavior is None:
            return None
        result = FakeResultSet(behavior)
        source.result_sets.append(result)
        return result

    def close(self) -> None:
        self.closed = True


class FakeSession(Session):
    def prepare(self, sql: str, row_cap=None, relation=None) -> FakeStatement:
        statement = FakeStatement(self, sql, row_cap, relation)
        self.datasource.statements.append(statement)
        return statement


class FakeDataSource(DataSource):
    """Data source whose probe results are scripted per relation name.

    A behavior is a column list (found), None (no result), an exception
    instance (raised), or a zero-argument callable returning one of those.
    Unknown relations raise ``MissingRelationError``.
    """

    def __init__(self, name: str = "fake", behaviors: Optional[Dict[str, object]] = None):
        super().__init__(name, ConnectionConfiguration())
        self.behaviors = dict(behaviors or {})
        self.fail_sessions = False
        self.sessions: List[FakeSession] = []
        self.statements: List[FakeStatement] = []
        self.result_sets: List[FakeResultSet] = []
        self.executed: List[str] = []
        self._lock = threading.Lock()
        self._dialect = FakeDialect()

    @property
    def dialect(self) -> ProbeDialect:
        return self._dialect

    def connect(self) -> None:
        self._mark_connected()

    def disconnect(self) -> None:
        self._connected = False

    def get_capabilities(self) -> List[DataSourceCapability]:
        return [DataSourceCapability.SYSTEM_OBJECTS, DataSourceCapability.PARALLEL_SESSIONS]

    def list_schemas(self) -> List[str]:
        return []

    def list_tables(self, schema: str) -> List[str]:
        return []

    def get_table_metadata(self, schema: str, table: str) -> TableMetadata:
        return TableMetadata(schema, table)

    def _create_session(self, purpose: str) -> FakeSession:
        if self.fail_sessions:
            raise FatalConnectionFailure("engine unreachable")
        session = FakeSession(self, purpose)
        with self._lock:
            self.sessions.append(session)
        return session


@pytest.fixture
def fake_datasource():
    """Fake data source with nothing present."""
    return FakeDataSource()
