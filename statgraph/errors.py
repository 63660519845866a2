"""
Exception hierarchy for the query service.

Stage handlers reduce every exception to a single error message on the
pipeline state; only the worker loop and the delivery layer see these
types directly.
"""


class StatGraphError(Exception):
    """Base class for all service errors."""


class StageError(StatGraphError):
    """A pipeline stage could not reach a decision."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(message)


class ExternalServiceError(StatGraphError):
    """A collaborator (LLM oracle, graph store) failed or answered invalidly."""


class OracleError(ExternalServiceError):
    """Base class for LLM oracle failures."""


class OracleUnavailableError(OracleError):
    """The oracle could not be reached or did not answer in time."""


class OracleResponseError(OracleError):
    """The oracle answered with invalid JSON or a structure that fails the schema."""

    def __init__(self, message: str, raw_response: str | None = None):
        self.raw_response = raw_response
        super().__init__(message)


class GraphSourceError(ExternalServiceError):
    """The graph store is unreachable, timed out, or lacks the requested node."""


class DashboardError(StatGraphError):
    """The dashboard could not be assembled from the selected views."""


class RegionNotFoundError(StatGraphError):
    """A region name could not be resolved to a region code."""

    def __init__(self, region_name: str):
        self.region_name = region_name
        super().__init__(
            f"Unknown region: '{region_name}'. Region not found in reference, update regions.json"
        )


class DeliveryError(StatGraphError):
    """A callback or notification could not be delivered."""

    def __init__(self, url: str, attempts: int, last_error: str):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Delivery to {url} failed after {attempts} attempt(s): {last_error}")
