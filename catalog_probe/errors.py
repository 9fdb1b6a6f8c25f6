"""Error taxonomy for system catalog discovery."""

from typing import Optional


class CatalogProbeError(Exception):
    """Base class for catalog discovery errors."""


class ObjectAbsentError(CatalogProbeError):
    """A candidate object does not exist in the current session."""

    def __init__(self, name: str):
        super().__init__(f"System object '{name}' does not exist")
        self.name = name


class UnexpectedProbeFailure(CatalogProbeError):
    """Probing a candidate failed for a reason other than its absence."""

    def __init__(self, candidate: str, cause: Optional[BaseException] = None):
        message = f"Error reflecting system object {candidate}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.candidate = candidate
        self.cause = cause


class FatalConnectionFailure(ConnectionError, CatalogProbeError):
    """The session itself could not be opened; discovery cannot proceed."""


class DiscoveryCancelledError(CatalogProbeError):
    """Discovery was cancelled through its progress monitor."""
