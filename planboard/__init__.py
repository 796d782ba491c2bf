"""planboard - kanban-style content planning board with order-preserving reordering."""

__version__ = "0.1.0"

from planboard.context import AppContext
from planboard.errors import NotFoundError, PlanboardError, StorageError, ValidationError

__all__ = [
    "AppContext",
    "NotFoundError",
    "PlanboardError",
    "StorageError",
    "ValidationError",
    "__version__",
]
