"""
Exception hierarchy for planboard.

Services and storage backends raise these; nothing in the package catches
them to hide a failure. Callers report the error and reload state.
"""


class PlanboardError(Exception):
    """Base exception for planboard errors."""
    pass


class ValidationError(PlanboardError):
    """Raised when a required text field is empty or input is malformed."""
    pass


class NotFoundError(PlanboardError):
    """Raised when an operation targets a missing id or container."""
    pass


class StorageError(PlanboardError):
    """Raised when the underlying storage fails (disk, network, serialization)."""
    pass
