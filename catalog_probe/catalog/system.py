"""System catalog: live discovery of engine system objects."""

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
import logging
import time

from ..datasources.base import DataSource
from ..errors import DiscoveryCancelledError, ObjectAbsentError, UnexpectedProbeFailure
from ..monitor import ProgressMonitor
from ..probe.executor import ProbeExecutor, ProbeOutcome
from ..utils.logging import get_contextual_logger
from .mapper import AttributeMapper
from .model import Attribute, ChildType, EntityContainer, PseudoAttribute, SchemaEntity
from .pseudo import PseudoAttributeCache, PseudoAttributeProvider, PseudoAttributeResolver
from .registry import CandidateRegistry

logger = logging.getLogger(__name__)

DISCOVERY_PURPOSE = "System objects discovery"


class CatalogObject(SchemaEntity):
    """Discovered system object.

    Name and attributes are fixed at construction. The object refers to its
    container by name only; the container owns the object.
    """

    def __init__(
        self,
        name: str,
        attributes: Sequence[Attribute],
        container_name: str,
        resolver: Optional[PseudoAttributeResolver] = None,
    ):
        self._name = name
        self._attributes = tuple(attributes)
        self.container_name = container_name
        self._resolver = resolver or PseudoAttributeResolver()
        self._pseudo_cache = PseudoAttributeCache()

    def get_name(self) -> str:
        return self._name

    @property
    def name(self) -> str:
        return self._name

    def get_attributes(self) -> Tuple[Attribute, ...]:
        return self._attributes

    def get_all_pseudo_attributes(self) -> Tuple[PseudoAttribute, ...]:
        computed = self._pseudo_cache.get_or_compute(lambda: self._resolver.resolve(self))
        return self.get_pseudo_attributes() + computed

    @property
    def pseudo_attributes_resolved(self) -> bool:
        return self._pseudo_cache.is_computed

    def fully_qualified_name(self) -> str:
        return f"{self.container_name}.{self._name}"

    def __repr__(self) -> str:
        return f"CatalogObject({self._name}, cols={len(self._attributes)})"


class CatalogContainer(EntityContainer):
    """Immutable set of system objects discovered on one connection."""

    def __init__(self, name: str, objects: Sequence[CatalogObject] = ()):
        self._name = name
        self._objects = tuple(objects)
        self._index: Dict[str, CatalogObject] = {}
        for obj in self._objects:
            self._index[obj.get_name().lower()] = obj

    @classmethod
    def discover(
        cls,
        datasource: DataSource,
        registry: Optional[CandidateRegistry] = None,
        monitor: Optional[ProgressMonitor] = None,
        pseudo_provider: Optional[PseudoAttributeProvider] = None,
    ) -> "CatalogContainer":
        """Probe every candidate in order through one session.

        Args:
            datasource: Data source to probe
            registry: Candidates; defaults to the data source dialect's registry
            monitor: Optional progress monitor, checked before each probe
            pseudo_provider: Engine pseudo attribute capability

        Returns:
            Container holding the candidates that exist

        Raises:
            FatalConnectionFailure: If the session cannot be opened
            DiscoveryCancelledError: If the monitor was cancelled
        """
        registry = registry or CandidateRegistry.for_dialect(datasource.dialect.name)
        executor = ProbeExecutor(datasource.dialect)
        candidates = registry.ordered()
        if monitor is not None:
            monitor.begin_task(f"Discover system objects of {datasource.name}", len(candidates))

        outcomes: List[ProbeOutcome] = []
        with datasource.open_session(DISCOVERY_PURPOSE) as session:
            for name in candidates:
                _check_cancelled(monitor, datasource)
                if monitor is not None:
                    monitor.sub_task(name)
                outcomes.append(executor.probe(session, name))
                if monitor is not None:
                    monitor.worked()

        if monitor is not None:
            monitor.done()
        return cls._from_outcomes(datasource.name, outcomes, PseudoAttributeResolver(pseudo_provider))

    @classmethod
    def discover_parallel(
        cls,
        datasource: DataSource,
        registry: Optional[CandidateRegistry] = None,
        max_workers: int = 4,
        probe_timeout: float = 5.0,
        monitor: Optional[ProgressMonitor] = None,
        pseudo_provider: Optional[PseudoAttributeProvider] = None,
    ) -> "CatalogContainer":
        """Probe candidates concurrently, one session per probe.

        Results are placed by candidate index, so the container order is the
        same as for sequential discovery. A probe still running
        ``probe_timeout`` seconds after it started is reported absent;
        candidates queued behind it move to a fresh pool and keep running.

        Raises:
            FatalConnectionFailure: If a session cannot be opened
            DiscoveryCancelledError: If the monitor was cancelled
        """
        registry = registry or CandidateRegistry.for_dialect(datasource.dialect.name)
        executor = ProbeExecutor(datasource.dialect)
        candidates = registry.ordered()
        if monitor is not None:
            monitor.begin_task(f"Discover system objects of {datasource.name}", len(candidates))
        _check_cancelled(monitor, datasource)
        # Connect once up front so workers don't race to connect
        datasource.ensure_connected()

        started: Dict[int, float] = {}

        def probe_one(index: int) -> ProbeOutcome:
            name = candidates[index]
            _check_cancelled(monitor, datasource)
            started[index] = time.monotonic()
            if monitor is not None:
                monitor.sub_task(name)
            with datasource.open_session(f"{DISCOVERY_PURPOSE}: {name}") as session:
                outcome = executor.probe(session, name)
            if monitor is not None:
                monitor.worked()
            return outcome

        def new_pool() -> ThreadPoolExecutor:
            return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="catprobe")

        outcomes: List[Optional[ProbeOutcome]] = [None] * len(candidates)
        pools = [new_pool()]
        try:
            pending: Dict[Future, int] = {}
            for index in range(len(candidates)):
                pending[pools[-1].submit(probe_one, index)] = index

            while pending:
                running = [started[i] for i in pending.values() if i in started]
                if running:
                    wait_for = max(0.0, min(running) + probe_timeout - time.monotonic())
                else:
                    wait_for = probe_timeout
                done, _ = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
                for future in done:
                    outcomes[pending.pop(future)] = future.result()

                now = time.monotonic()
                expired = [
                    future for future, i in pending.items()
                    if i in started and now - started[i] >= probe_timeout and not future.done()
                ]
                if not expired:
                    continue
                for future in expired:
                    index = pending.pop(future)
                    name = candidates[index]
                    logger.warning(
                        f"Probe of {name} on {datasource.name} did not finish within "
                        f"{probe_timeout}s; treating it as absent"
                    )
                    outcomes[index] = ProbeOutcome.absent(name)

                # Expired probes still hold their workers; queued candidates get new ones
                queued = [future for future in pending if future.cancel()]
                if queued:
                    pools[-1].shutdown(wait=False)
                    pools.append(new_pool())
                    for future in queued:
                        index = pending.pop(future)
                        pending[pools[-1].submit(probe_one, index)] = index
        finally:
            for pool in pools:
                pool.shutdown(wait=False, cancel_futures=True)

        _check_cancelled(monitor, datasource)
        if monitor is not None:
            monitor.done()
        return cls._from_outcomes(datasource.name, outcomes, PseudoAttributeResolver(pseudo_provider))

    @classmethod
    def _from_outcomes(
        cls,
        name: str,
        outcomes: Sequence[ProbeOutcome],
        resolver: PseudoAttributeResolver,
    ) -> "CatalogContainer":
        objects = []
        for outcome in outcomes:
            if outcome.is_found:
                attributes = AttributeMapper.map(outcome.metadata)
                objects.append(CatalogObject(outcome.candidate, attributes, name, resolver))
            elif outcome.is_unexpected:
                failure = UnexpectedProbeFailure(outcome.candidate, outcome.error)
                log = get_contextual_logger(__name__, {"datasource": name, "candidate": outcome.candidate})
                log.error(str(failure), exc_info=outcome.error)
        logger.info(f"Discovered {len(objects)} of {len(outcomes)} system objects in {name}")
        return cls(name, objects)

    def get_name(self) -> str:
        return self._name

    def get_children(self) -> Tuple[CatalogObject, ...]:
        return self._objects

    def get_child(self, name: str) -> Optional[CatalogObject]:
        return self._index.get(name.lower())

    def require_child(self, name: str) -> CatalogObject:
        """Get a child that must exist.

        Raises:
            ObjectAbsentError: If no such object was discovered
        """
        obj = self.get_child(name)
        if obj is None:
            raise ObjectAbsentError(name)
        return obj

    def get_primary_child_type(self) -> ChildType:
        return ChildType.SYSTEM_TABLE

    def names(self) -> List[str]:
        return [obj.get_name() for obj in self._objects]

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[CatalogObject]:
        return iter(self._objects)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index

    def __repr__(self) -> str:
        return f"CatalogContainer({self._name}, objects={len(self._objects)})"


def _check_cancelled(monitor: Optional[ProgressMonitor], datasource: DataSource) -> None:
    if monitor is not None and monitor.is_cancelled:
        raise DiscoveryCancelledError(f"System object discovery on {datasource.name} was cancelled")
