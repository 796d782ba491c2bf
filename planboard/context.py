"""
Application context for planboard.

The context is the explicit root object of a running board: it owns the
storage backend and the services built on it. Interface layers construct one
context and pass it around instead of reaching for module-level globals.
"""

from typing import Optional

from planboard.config import Config
from planboard.logging_config import get_logger
from planboard.models import ContentPlanner
from planboard.services import PlannerService, ProjectService, ReorderService, TaskBoardService
from planboard.storage import PlannerStore, create_store

logger = get_logger(__name__)


class AppContext:
    """
    Wires a storage backend to the planboard services.

    Example:
        async with await AppContext.create() as ctx:
            planner = await ctx.ensure_initialized()
            stage = planner.stages[0]
            await ctx.projects.create_project(stage.id, stage.layers[0].id, "Teaser")
    """

    def __init__(self, store: PlannerStore, config: Optional[Config] = None) -> None:
        """
        Build services on an initialized store.

        Args:
            store: Initialized PlannerStore
            config: Configuration for planner defaults
        """
        self.config = config or Config()
        self.store = store
        self.projects = ProjectService(store)
        self.planner = PlannerService(store, project_service=self.projects, config=self.config)
        self.task_boards = TaskBoardService(store)
        self.reorder = ReorderService(store)

    @classmethod
    async def create(
        cls,
        config: Optional[Config] = None,
        store: Optional[PlannerStore] = None,
    ) -> "AppContext":
        """
        Create and initialize the configured store, then the context.

        Args:
            config: Configuration; defaults to Config()
            store: Uninitialized store to use instead of the configured one

        Returns:
            Ready-to-use AppContext. The planner itself is not created until
            ensure_initialized() is called.
        """
        config = config or Config()
        store = store or create_store(config)
        await store.initialize()
        logger.info(f"Application context ready: backend={store.backend_name}")
        return cls(store, config)

    async def ensure_initialized(self) -> ContentPlanner:
        """Create the planner and default stage if needed; safe to call repeatedly."""
        return await self.planner.ensure_initialized()

    async def close(self) -> None:
        """Release the storage backend."""
        await self.store.close()
        logger.info("Application context closed")

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
