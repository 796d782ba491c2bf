"""
Document store backend.

Stores each collection in its own table, with embedded sub-documents held in
JSON columns. Works against any SQLAlchemy async URL; pointing it at a
database server makes it the shared, remote backend.

Every collection call runs in its own session and commits before returning,
so a batch of calls is a sequence of independent writes.
"""

from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError

from planboard.database import (
    ContentPlannerORM,
    DatabaseManager,
    DocumentBase,
    ProjectORM,
    StageORM,
    TaskBoardORM,
    TaskORM,
    TemplateORM,
)
from planboard.errors import StorageError
from planboard.logging_config import get_logger
from planboard.models import ContentPlanner, Project, Stage, Task, TaskBoard, Template
from planboard.storage.base import Collection, PlannerStore, T

logger = get_logger(__name__)

_SQL_ERRORS = (SQLAlchemyError, PydanticValidationError)


class SqlCollection(Collection[T]):
    """A collection mapped onto one ORM table."""

    def __init__(
        self,
        db: DatabaseManager,
        name: str,
        model: Type[T],
        orm_class: Type[DocumentBase],
    ) -> None:
        super().__init__(name, model)
        self.db = db
        self.orm_class = orm_class
        self._columns = [attr.key for attr in inspect(orm_class).column_attrs]
        self._json_fields = set(getattr(orm_class, "_json_fields", ()))

    # ==============================================================================
    # CONVERSION HELPERS
    # ==============================================================================

    def _orm_to_pydantic(self, row: DocumentBase) -> T:
        return self.model.model_validate({key: getattr(row, key) for key in self._columns})

    def _row_values(self, entity: T) -> Dict[str, Any]:
        """Column values for an entity; embedded documents are JSON-dumped."""
        python_values = entity.model_dump()
        json_values = entity.model_dump(mode="json") if self._json_fields else {}
        return {
            key: json_values[key] if key in self._json_fields else python_values[key]
            for key in self._columns
        }

    # ==============================================================================
    # COLLECTION OPERATIONS
    # ==============================================================================

    async def get(self, **filters: Any) -> List[T]:
        self._check_filters(filters)

        query = select(self.orm_class)
        for key, value in filters.items():
            query = query.where(getattr(self.orm_class, key) == value)

        with self._storage_errors("read", _SQL_ERRORS):
            async with self.db.get_session() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
                return [self._orm_to_pydantic(row) for row in rows]

    async def add(self, entity: T) -> T:
        with self._storage_errors("add", _SQL_ERRORS):
            async with self.db.get_session() as session:
                session.add(self.orm_class(**self._row_values(entity)))
                await session.flush()

        logger.debug(f"Added {self.name}: id={entity.id}")
        return entity

    async def update(self, entity_id: UUID, **fields: Any) -> Optional[T]:
        with self._storage_errors("update", _SQL_ERRORS):
            async with self.db.get_session() as session:
                row = await session.get(self.orm_class, entity_id)
                if row is None:
                    return None

                updated = self._merge(self._orm_to_pydantic(row), fields)
                for key, value in self._row_values(updated).items():
                    setattr(row, key, value)
                await session.flush()

        logger.debug(f"Updated {self.name}: id={entity_id}, fields={sorted(fields)}")
        return updated

    async def delete(self, entity_id: UUID) -> bool:
        with self._storage_errors("delete", _SQL_ERRORS):
            async with self.db.get_session() as session:
                row = await session.get(self.orm_class, entity_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.flush()

        logger.debug(f"Deleted {self.name}: id={entity_id}")
        return True


class DocumentStore(PlannerStore):
    """Table-per-collection backend over SQLAlchemy."""

    backend_name = "document"

    def __init__(self, database_url: str) -> None:
        """
        Args:
            database_url: SQLAlchemy async database URL
        """
        self.db = DatabaseManager(database_url, metadata=DocumentBase.metadata)
        self.planners = SqlCollection(self.db, "content_planner", ContentPlanner, ContentPlannerORM)
        self.stages = SqlCollection(self.db, "stage", Stage, StageORM)
        self.projects = SqlCollection(self.db, "project", Project, ProjectORM)
        self.task_boards = SqlCollection(self.db, "task_board", TaskBoard, TaskBoardORM)
        self.tasks = SqlCollection(self.db, "task", Task, TaskORM)
        self.templates = SqlCollection(self.db, "template", Template, TemplateORM)

    async def initialize(self) -> None:
        try:
            await self.db.initialize()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to open document store: {e}") from e

    async def close(self) -> None:
        await self.db.close()
