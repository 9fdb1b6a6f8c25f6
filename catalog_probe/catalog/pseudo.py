"""Engine-intrinsic pseudo attributes (row identifiers) and their cache."""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, Tuple, TYPE_CHECKING
import logging
import threading

from ..errors import FatalConnectionFailure
from ..types import classify_type
from .model import PseudoAttribute

if TYPE_CHECKING:
    from ..datasources.base import DataSource
    from ..probe.dialects import ProbeDialect
    from .model import SchemaEntity

logger = logging.getLogger(__name__)


class PseudoAttributeProvider(ABC):
    """Engine capability that knows which pseudo columns a relation exposes."""

    @abstractmethod
    def resolve_pseudo_attributes(self, entity: "SchemaEntity") -> Sequence[PseudoAttribute]:
        """Compute the pseudo attributes of an entity (possibly none)."""
        pass


class NoPseudoAttributes(PseudoAttributeProvider):
    """Provider for engines without pseudo columns."""

    def resolve_pseudo_attributes(self, entity: "SchemaEntity") -> Sequence[PseudoAttribute]:
        return ()


class RowIdPseudoAttributeProvider(PseudoAttributeProvider):
    """Detects row identifier columns by selecting them with a zero-row limit.

    Each pseudo column the dialect declares (``rowid`` for SQLite and DuckDB,
    ``ctid`` for PostgreSQL) is kept only if the query succeeds, so views and
    ``WITHOUT ROWID`` tables report none.
    """

    def __init__(self, datasource: "DataSource", dialect: Optional["ProbeDialect"] = None):
        self.datasource = datasource
        self.dialect = dialect or datasource.dialect

    def resolve_pseudo_attributes(self, entity: "SchemaEntity") -> Sequence[PseudoAttribute]:
        relation = entity.relation_name()
        found = []
        with self.datasource.open_session(f"Pseudo attributes of {relation}") as session:
            for column, type_name in self.dialect.pseudo_columns:
                if self._has_column(session, relation, column):
                    found.append(
                        PseudoAttribute(
                            name=column,
                            type_name=type_name,
                            data_kind=classify_type(type_name),
                            description="Row identifier",
                        )
                    )
        return tuple(found)

    def _has_column(self, session, relation: str, column: str) -> bool:
        sql = self.dialect.pseudo_column_query(relation, column)
        try:
            with session.prepare(sql, row_cap=0, relation=relation) as statement:
                result = statement.execute()
                if result is not None:
                    result.close()
        except FatalConnectionFailure:
            raise
        except Exception as e:
            if self.dialect.is_column_absent(e) or self.dialect.is_object_absent(e):
                logger.debug(f"{relation} has no {column} pseudo column: {e}")
            else:
                logger.warning(f"Could not check {column} pseudo column of {relation}: {e}")
            return False
        return True


class PseudoAttributeCache:
    """One-way Uncomputed -> Computed cell, computed at most once."""

    def __init__(self):
        self._lock = threading.Lock()
        self._computed = False
        self._value: Tuple[PseudoAttribute, ...] = ()

    @property
    def is_computed(self) -> bool:
        return self._computed

    def get_or_compute(
        self, compute: Callable[[], Sequence[PseudoAttribute]]
    ) -> Tuple[PseudoAttribute, ...]:
        """Return the cached value, computing it on first call.

        If ``compute`` raises, the cache stays uncomputed and the error
        propagates; a later call tries again.
        """
        if self._computed:
            return self._value
        with self._lock:
            if not self._computed:
                self._value = tuple(compute())
                self._computed = True
        return self._value


class PseudoAttributeResolver:
    """Delegates pseudo attribute computation to the engine provider."""

    def __init__(self, provider: Optional[PseudoAttributeProvider] = None):
        self.provider = provider or NoPseudoAttributes()

    def resolve(self, entity: "SchemaEntity") -> Tuple[PseudoAttribute, ...]:
        attributes = tuple(self.provider.resolve_pseudo_attributes(entity))
        logger.debug(f"Resolved {len(attributes)} pseudo attributes for {entity.get_name()}")
        return attributes
