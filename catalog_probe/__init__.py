"""Live discovery of database system catalog objects."""

from .catalog import (
    Attribute,
    CandidateRegistry,
    Catalog,
    CatalogContainer,
    CatalogObject,
)
from .config import ConnectionConfiguration
from .errors import (
    CatalogProbeError,
    DiscoveryCancelledError,
    FatalConnectionFailure,
    ObjectAbsentError,
    UnexpectedProbeFailure,
)
from .monitor import ProgressMonitor

__version__ = "0.1.0"

__all__ = [
    "Attribute",
    "CandidateRegistry",
    "Catalog",
    "CatalogContainer",
    "CatalogObject",
    "CatalogProbeError",
    "ConnectionConfiguration",
    "DiscoveryCancelledError",
    "FatalConnectionFailure",
    "ObjectAbsentError",
    "ProgressMonitor",
    "UnexpectedProbeFailure",
]
