"""
Persistence contract shared by every storage backend.

A backend exposes one Collection per entity type. Collections are plain
get/add/update/delete stores: they never cascade and never renumber
siblings. Missing ids are reported through return values (None / False);
underlying failures surface as StorageError.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar, get_origin
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from planboard.errors import StorageError, ValidationError
from planboard.logging_config import get_logger
from planboard.models import ContentPlanner, Project, Stage, Task, TaskBoard, Template

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class Collection(Generic[T]):
    """
    A store for one entity type.

    Subclasses implement get/add/update/delete. Filtering and merging rules
    live here so every backend applies them identically.
    """

    def __init__(self, name: str, model: Type[T]) -> None:
        """
        Args:
            name: Collection name used in log and error messages
            model: Pydantic model stored by this collection
        """
        self.name = name
        self.model = model

    async def get(self, **filters: Any) -> List[T]:
        """
        Return every entity whose fields equal the given filters.

        Args:
            **filters: Exact-match field predicates; none returns everything

        Returns:
            Matching entities in storage order
        """
        raise NotImplementedError

    async def add(self, entity: T) -> T:
        """
        Store a new entity.

        Raises:
            StorageError: If the id is already taken or the write fails
        """
        raise NotImplementedError

    async def update(self, entity_id: UUID, **fields: Any) -> Optional[T]:
        """
        Merge fields into a stored entity.

        Returns:
            The updated entity, or None if no entity has that id
        """
        raise NotImplementedError

    async def delete(self, entity_id: UUID) -> bool:
        """
        Remove an entity.

        Returns:
            True if an entity was found and removed
        """
        raise NotImplementedError

    async def get_one(self, **filters: Any) -> Optional[T]:
        """Return the first entity matching the filters, or None."""
        matches = await self.get(**filters)
        return matches[0] if matches else None

    async def get_by_id(self, entity_id: UUID) -> Optional[T]:
        """Return the entity with the given id, or None."""
        return await self.get_one(id=entity_id)

    # ==============================================================================
    # SHARED HELPERS
    # ==============================================================================

    def _check_fields(self, fields: Dict[str, Any], purpose: str) -> None:
        unknown = set(fields) - set(self.model.model_fields)
        if unknown:
            raise ValueError(
                f"Unknown {self.name} field(s) for {purpose}: {', '.join(sorted(unknown))}"
            )

    def _check_filters(self, filters: Dict[str, Any]) -> None:
        """
        Validate filter keys.

        Embedded list fields (layers, columns, tags, stages) cannot be
        filtered on by any backend.

        Raises:
            ValueError: If a key is unknown or names an embedded list field
        """
        self._check_fields(filters, "filter")
        embedded = [
            key for key in filters
            if get_origin(self.model.model_fields[key].annotation) is list
        ]
        if embedded:
            raise ValueError(
                f"Cannot filter {self.name} on embedded field(s): {', '.join(sorted(embedded))}"
            )

    def _matches(self, entity: T, filters: Dict[str, Any]) -> bool:
        return all(getattr(entity, key) == value for key, value in filters.items())

    def _merge(self, entity: T, fields: Dict[str, Any]) -> T:
        """
        Return a validated copy of ``entity`` with ``fields`` applied.

        Raises:
            ValueError: If a field is unknown or the id would change
            ValidationError: If the merged entity is invalid
        """
        self._check_fields(fields, "update")
        if "id" in fields and fields["id"] != entity.id:
            raise ValueError(f"Cannot change the id of a {self.name} entity")

        try:
            return self.model.model_validate({**entity.model_dump(), **fields})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {self.name} update: {e}") from e

    @contextmanager
    def _storage_errors(
        self,
        operation: str,
        errors: Tuple[Type[BaseException], ...]
    ) -> Iterator[None]:
        """Re-raise backend failures of the given types as StorageError."""
        try:
            yield
        except StorageError:
            raise
        except errors as e:
            logger.error(f"Storage failure during {self.name}.{operation}: {e}", exc_info=True)
            raise StorageError(f"Failed to {operation} {self.name}: {e}") from e


class PlannerStore:
    """
    A storage backend: one collection per entity type.

    Use as an async context manager, or call initialize() and close().
    """

    backend_name = "base"

    planners: Collection[ContentPlanner]
    stages: Collection[Stage]
    projects: Collection[Project]
    task_boards: Collection[TaskBoard]
    tasks: Collection[Task]
    templates: Collection[Template]

    async def initialize(self) -> None:
        """Open connections and create storage structures."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections."""
        raise NotImplementedError

    async def __aenter__(self) -> "PlannerStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
