"""Existence probe for a single candidate system object."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import logging

from ..datasources.base import ColumnMetadata, Session
from ..errors import FatalConnectionFailure
from .dialects import ProbeDialect

logger = logging.getLogger(__name__)

PROBE_ROW_CAP = 1


class ProbeStatus(Enum):
    """Classification of a probe result."""

    FOUND = "found"
    ABSENT = "absent"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of probing one candidate."""

    candidate: str
    status: ProbeStatus
    metadata: Tuple[ColumnMetadata, ...] = ()
    error: Optional[BaseException] = None

    @classmethod
    def found(cls, candidate: str, metadata) -> "ProbeOutcome":
        return cls(candidate, ProbeStatus.FOUND, tuple(metadata))

    @classmethod
    def absent(cls, candidate: str) -> "ProbeOutcome":
        return cls(candidate, ProbeStatus.ABSENT)

    @classmethod
    def unexpected(cls, candidate: str, error: BaseException) -> "ProbeOutcome":
        return cls(candidate, ProbeStatus.UNEXPECTED, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is ProbeStatus.FOUND

    @property
    def is_absent(self) -> bool:
        return self.status is ProbeStatus.ABSENT

    @property
    def is_unexpected(self) -> bool:
        return self.status is ProbeStatus.UNEXPECTED


class ProbeExecutor:
    """Issues one minimal query per candidate and classifies the outcome."""

    def __init__(self, dialect: ProbeDialect):
        self.dialect = dialect

    def probe(self, session: Session, name: str) -> ProbeOutcome:
        """Probe a candidate relation for existence and column metadata.

        Args:
            session: Open session to probe through
            name: Candidate relation name

        Returns:
            FOUND with metadata, ABSENT, or UNEXPECTED with the error

        Raises:
            FatalConnectionFailure: If the session itself is unusable
        """
        sql = self.dialect.probe_query(name)
        try:
            with session.prepare(sql, row_cap=PROBE_ROW_CAP, relation=name) as statement:
                result = statement.execute()
                if result is None:
                    return ProbeOutcome.absent(name)
                with result:
                    metadata = result.metadata()
        except FatalConnectionFailure:
            raise
        except Exception as e:
            if self.dialect.is_object_absent(e):
                # The object may still appear later, depending on what the user creates
                logger.debug(f"System object {name} is not present: {e}")
                return ProbeOutcome.absent(name)
            return ProbeOutcome.unexpected(name, e)
        return ProbeOutcome.found(name, metadata)
