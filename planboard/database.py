"""
Database layer for planboard.

Provides SQLAlchemy ORM models for both storage backends, and async
engine/session management shared by them.

The document backend keeps one table per collection with embedded
sub-documents (layers, columns, tags) in JSON columns. The local backend
keeps a single key/value table holding one JSON blob per collection.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, Integer, MetaData, String, Text, Uuid
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from planboard.logging_config import get_logger

logger = get_logger(__name__)


class DocumentBase(DeclarativeBase):
    """Base class for document backend tables."""
    pass


class LocalBase(DeclarativeBase):
    """Base class for the local key/value backend table."""
    pass


# ==============================================================================
# DOCUMENT BACKEND TABLES
# ==============================================================================

class ContentPlannerORM(DocumentBase):
    """Singleton planner record. Stages live in their own table."""
    __tablename__ = "content_planners"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<ContentPlannerORM(id={self.id})>"


class StageORM(DocumentBase):
    """
    SQLAlchemy ORM model for stages.

    Layers are embedded as a JSON array, mirroring how a stage owns their
    lifecycle.
    """
    __tablename__ = "stages"

    _json_fields = ("layers",)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    layers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<StageORM(id={self.id}, name={self.name}, order={self.order})>"


class ProjectORM(DocumentBase):
    """SQLAlchemy ORM model for project cards."""
    __tablename__ = "projects"

    _json_fields = ("tags",)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Container key
    stage_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    layer_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<ProjectORM(id={self.id}, name={self.name}, order={self.order})>"


class TaskBoardORM(DocumentBase):
    """SQLAlchemy ORM model for task boards. Columns are embedded as JSON."""
    __tablename__ = "task_boards"

    _json_fields = ("columns",)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    project_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, unique=True, index=True)
    columns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<TaskBoardORM(id={self.id}, project_id={self.project_id})>"


class TaskORM(DocumentBase):
    """SQLAlchemy ORM model for checklist tasks."""
    __tablename__ = "tasks"

    _json_fields = ()

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    column_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<TaskORM(id={self.id}, column_id={self.column_id}, order={self.order})>"


class TemplateORM(DocumentBase):
    """SQLAlchemy ORM model for project templates."""
    __tablename__ = "templates"

    _json_fields = ("tags",)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<TemplateORM(id={self.id}, name={self.name})>"


# ==============================================================================
# LOCAL BACKEND TABLE
# ==============================================================================

class LocalStorageORM(LocalBase):
    """One opaque JSON blob per collection key."""
    __tablename__ = "local_storage"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<LocalStorageORM(key={self.key})>"


class DatabaseManager:
    """
    Manages database connections and session lifecycle.

    Handles async engine creation, session management, and table creation
    for the metadata of whichever backend owns this manager.
    """

    def __init__(self, database_url: str, metadata: MetaData = DocumentBase.metadata):
        """
        Initialize database manager with connection URL.

        Args:
            database_url: SQLAlchemy async database URL
            metadata: Table metadata to create on initialize
        """
        self.database_url = database_url
        self.metadata = metadata
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """
        Initialize the database engine and create tables.

        Creates the async engine, session maker, and all tables defined
        in the metadata.
        """
        try:
            logger.info(f"Initializing database: {self.database_url}")
            _ensure_sqlite_directory(self.database_url)

            self.engine = create_async_engine(
                self.database_url,
                echo=False,  # Set to True for SQL query logging
            )

            self.session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(self.metadata.create_all)

            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    async def close(self) -> None:
        """
        Close the database engine and cleanup resources.
        """
        if self.engine:
            logger.info("Closing database connection")
            try:
                await self.engine.dispose()
                self.engine = None
                self.session_maker = None
                logger.info("Database connection closed successfully")
            except Exception as e:
                logger.error(f"Error closing database connection: {e}", exc_info=True)
                raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session with automatic transaction management.

        Yields:
            AsyncSession for database operations

        Example:
            async with db_manager.get_session() as session:
                result = await session.execute(select(ProjectORM))
                projects = result.scalars().all()
        """
        if not self.session_maker:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                logger.error(f"Database session error, rolling back: {e}", exc_info=True)
                await session.rollback()
                raise


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    if not url.database or url.database == ":memory:":
        return
    Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
