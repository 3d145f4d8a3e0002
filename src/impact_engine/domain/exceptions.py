"""Custom exceptions for the impact engine.

"Not found" is deliberately absent: an identifier that resolves to nothing
yields an empty result, since "no impact" is a valid answer.
"""


class ImpactEngineError(Exception):
    """Base exception for all impact engine errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidParameterError(ImpactEngineError):
    """Raised when a query parameter is rejected before any query is issued."""

    pass


class BackendUnavailableError(ImpactEngineError):
    """Raised when the graph data source cannot be reached or a query fails.

    Never retried. The original exception is chained as ``__cause__``.
    """

    pass


class ConfigurationError(ImpactEngineError):
    """Raised when there's a configuration problem."""

    pass


class SnapshotError(ImpactEngineError):
    """Raised when a graph snapshot file cannot be read or parsed."""

    pass
