"""
Local persisted-storage backend.

Keeps five independent top-level keys, each holding one opaque JSON blob:

- ``contentPlanner``: planner identity plus its embedded ``stages`` array
- ``projects``, ``taskBoards``, ``tasks``, ``templates``: entity arrays

There is no schema versioning. A missing key reads as an empty collection.
Every write rewrites the whole blob for its key inside a single session.
"""

import json
from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.database import DatabaseManager, LocalBase, LocalStorageORM
from planboard.errors import StorageError
from planboard.logging_config import get_logger
from planboard.models import ContentPlanner, Project, Stage, Task, TaskBoard, Template
from planboard.storage.base import Collection, PlannerStore, T

logger = get_logger(__name__)

CONTENT_PLANNER_KEY = "contentPlanner"
PROJECTS_KEY = "projects"
TASK_BOARDS_KEY = "taskBoards"
TASKS_KEY = "tasks"
TEMPLATES_KEY = "templates"

_LOCAL_ERRORS = (SQLAlchemyError, PydanticValidationError, json.JSONDecodeError)


class BlobStorage:
    """Key/value access to the local_storage table."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def read(self, session: AsyncSession, key: str) -> Optional[Any]:
        """Return the decoded blob for ``key``, or None if it was never written."""
        row = await session.get(LocalStorageORM, key)
        if row is None:
            return None
        return json.loads(row.value)

    async def write(self, session: AsyncSession, key: str, value: Any) -> None:
        """Replace the blob stored under ``key``."""
        encoded = json.dumps(value)
        row = await session.get(LocalStorageORM, key)
        if row is None:
            session.add(LocalStorageORM(key=key, value=encoded))
        else:
            row.value = encoded
        await session.flush()

    async def keys(self) -> List[str]:
        """Keys that currently hold a blob."""
        async with self.db.get_session() as session:
            result = await session.execute(select(LocalStorageORM.key).order_by(LocalStorageORM.key))
            return list(result.scalars().all())


class BlobCollection(Collection[T]):
    """A collection stored as a JSON array under one key."""

    def __init__(self, storage: BlobStorage, key: str, name: str, model: Type[T]) -> None:
        super().__init__(name, model)
        self.storage = storage
        self.key = key

    async def _load(self, session: AsyncSession) -> List[T]:
        blob = await self.storage.read(session, self.key)
        return [self.model.model_validate(item) for item in blob or []]

    async def _save(self, session: AsyncSession, items: List[T]) -> None:
        await self.storage.write(
            session, self.key, [item.model_dump(mode="json") for item in items]
        )

    async def get(self, **filters: Any) -> List[T]:
        self._check_filters(filters)
        with self._storage_errors("read", _LOCAL_ERRORS):
            async with self.storage.db.get_session() as session:
                items = await self._load(session)
        return [item for item in items if self._matches(item, filters)]

    async def add(self, entity: T) -> T:
        with self._storage_errors("add", _LOCAL_ERRORS):
            async with self.storage.db.get_session() as session:
                items = await self._load(session)
                if any(item.id == entity.id for item in items):
                    raise StorageError(f"Duplicate {self.name} id: {entity.id}")
                items.append(entity)
                await self._save(session, items)

        logger.debug(f"Added {self.name}: id={entity.id}")
        return entity

    async def update(self, entity_id: UUID, **fields: Any) -> Optional[T]:
        with self._storage_errors("update", _LOCAL_ERRORS):
            async with self.storage.db.get_session() as session:
                items = await self._load(session)
                for index, item in enumerate(items):
                    if item.id == entity_id:
                        break
                else:
                    return None

                updated = self._merge(items[index], fields)
                items[index] = updated
                await self._save(session, items)

        logger.debug(f"Updated {self.name}: id={entity_id}, fields={sorted(fields)}")
        return updated

    async def delete(self, entity_id: UUID) -> bool:
        with self._storage_errors("delete", _LOCAL_ERRORS):
            async with self.storage.db.get_session() as session:
                items = await self._load(session)
                remaining = [item for item in items if item.id != entity_id]
                if len(remaining) == len(items):
                    return False
                await self._save(session, remaining)

        logger.debug(f"Deleted {self.name}: id={entity_id}")
        return True


class StageBlobCollection(BlobCollection[Stage]):
    """Stages live in the ``stages`` array of the content planner blob."""

    async def _load(self, session: AsyncSession) -> List[Stage]:
        blob = await self.storage.read(session, self.key) or {}
        return [Stage.model_validate(item) for item in blob.get("stages", [])]

    async def _save(self, session: AsyncSession, items: List[Stage]) -> None:
        blob = await self.storage.read(session, self.key) or {}
        blob["stages"] = [item.model_dump(mode="json") for item in items]
        await self.storage.write(session, self.key, blob)


class PlannerBlobCollection(BlobCollection[ContentPlanner]):
    """
    The planner identity stored at the top level of the planner blob.

    The blob holds one planner at most; adding a second raises StorageError.
    """

    _IDENTITY_FIELDS = ("id", "created_at")

    async def _load(self, session: AsyncSession) -> List[ContentPlanner]:
        blob = await self.storage.read(session, self.key) or {}
        if "id" not in blob:
            return []
        return [ContentPlanner.model_validate(
            {field: blob[field] for field in self._IDENTITY_FIELDS if field in blob}
        )]

    async def _save(self, session: AsyncSession, items: List[ContentPlanner]) -> None:
        if len(items) > 1:
            raise StorageError("Local storage holds a single content planner")

        blob: Dict[str, Any] = await self.storage.read(session, self.key) or {}
        for field in self._IDENTITY_FIELDS:
            blob.pop(field, None)
        if items:
            identity = items[0].model_dump(mode="json", include=set(self._IDENTITY_FIELDS))
            blob.update(identity)
        blob.setdefault("stages", [])
        await self.storage.write(session, self.key, blob)


class LocalStore(PlannerStore):
    """Key/blob backend mirroring browser-style local storage."""

    backend_name = "local"

    def __init__(self, database_url: str) -> None:
        """
        Args:
            database_url: SQLAlchemy async URL of the local database file
        """
        self.db = DatabaseManager(database_url, metadata=LocalBase.metadata)
        self.storage = BlobStorage(self.db)
        self.planners = PlannerBlobCollection(
            self.storage, CONTENT_PLANNER_KEY, "content_planner", ContentPlanner
        )
        self.stages = StageBlobCollection(self.storage, CONTENT_PLANNER_KEY, "stage", Stage)
        self.projects = BlobCollection(self.storage, PROJECTS_KEY, "project", Project)
        self.task_boards = BlobCollection(self.storage, TASK_BOARDS_KEY, "task_board", TaskBoard)
        self.tasks = BlobCollection(self.storage, TASKS_KEY, "task", Task)
        self.templates = BlobCollection(self.storage, TEMPLATES_KEY, "template", Template)

    async def initialize(self) -> None:
        try:
            await self.db.initialize()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to open local store: {e}") from e

    async def close(self) -> None:
        await self.db.close()
