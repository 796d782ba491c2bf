"""
Task board service for planboard.

Implements the per-project checklist: lazy task board creation, column CRUD
(columns are embedded in the board) and task CRUD with completion toggling.
"""

from typing import List, Optional
from uuid import UUID

from planboard.errors import NotFoundError
from planboard.logging_config import get_logger
from planboard.models import Task, TaskBoard, TaskColumn
from planboard.services.ordering import sort_by_order
from planboard.services.validation import require_text
from planboard.storage.base import PlannerStore

logger = get_logger(__name__)


class TaskBoardService:
    """
    Service layer for task boards, their columns and tasks.

    A project gets its board when its first column is created. Deleting a
    column removes its tasks; surviving columns and tasks keep their order
    values.
    """

    def __init__(self, store: PlannerStore) -> None:
        """
        Initialize task board service with a storage backend.

        Args:
            store: Initialized PlannerStore
        """
        self.store = store

    # ==============================================================================
    # LOOKUP HELPERS
    # ==============================================================================

    async def _get_board_or_raise(self, project_id: UUID) -> TaskBoard:
        board = await self.store.task_boards.get_one(project_id=project_id)
        if board is None:
            raise NotFoundError(f"Task board for project {project_id} not found")
        return board

    @staticmethod
    def _get_column_or_raise(board: TaskBoard, column_id: UUID) -> TaskColumn:
        column = board.find_column(column_id)
        if column is None:
            raise NotFoundError(f"Column with id {column_id} not found on board {board.id}")
        return column

    async def _get_task_or_raise(self, task_id: UUID) -> Task:
        task = await self.store.tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError(f"Task with id {task_id} not found")
        return task

    async def _save_columns(self, board: TaskBoard, columns: List[TaskColumn]) -> TaskBoard:
        updated = await self.store.task_boards.update(board.id, columns=columns)
        if updated is None:
            raise NotFoundError(f"Task board with id {board.id} not found")
        return updated

    # ==============================================================================
    # READ OPERATIONS
    # ==============================================================================

    async def get_task_board(self, project_id: UUID) -> Optional[TaskBoard]:
        """
        Get a project's task board with columns in display order.

        Never creates a board.

        Returns:
            TaskBoard or None if the project has none yet
        """
        board = await self.store.task_boards.get_one(project_id=project_id)
        if board is None:
            return None
        return board.model_copy(update={"columns": board.sorted_columns()})

    async def get_tasks(self, column_id: UUID) -> List[Task]:
        """Tasks of one column sorted by order."""
        return sort_by_order(await self.store.tasks.get(column_id=column_id))

    async def get_board_tasks(self, project_id: UUID) -> List[Task]:
        """Every task on a project's board, column by column."""
        board = await self.get_task_board(project_id)
        if board is None:
            return []

        tasks: List[Task] = []
        for column in board.columns:
            tasks.extend(await self.get_tasks(column.id))
        return tasks

    async def get_task(self, task_id: UUID) -> Optional[Task]:
        """Get a task by its ID, or None."""
        return await self.store.tasks.get_by_id(task_id)

    # ==============================================================================
    # COLUMN OPERATIONS
    # ==============================================================================

    async def create_column(self, project_id: UUID, name: str) -> TaskColumn:
        """
        Append a column to a project's task board, creating the board if needed.

        Args:
            project_id: Owning project
            name: Column name (required)

        Returns:
            Created TaskColumn

        Raises:
            ValidationError: If name is empty
            NotFoundError: If project does not exist
        """
        require_text(name, "Column name")

        try:
            if await self.store.projects.get_by_id(project_id) is None:
                raise NotFoundError(f"Project with id {project_id} not found")

            board = await self.store.task_boards.get_one(project_id=project_id)
            if board is None:
                board = TaskBoard(project_id=project_id)
                await self.store.task_boards.add(board)
                logger.info(f"Created task board: id={board.id}, project_id={project_id}")

            column = TaskColumn(name=name, order=len(board.columns))
            await self._save_columns(board, [*board.columns, column])

            logger.info(f"Created column: id={column.id}, board_id={board.id}, name='{name}', order={column.order}")
            return column
        except NotFoundError as e:
            logger.error(f"Failed to create column - not found: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create column for project {project_id}: {e}", exc_info=True)
            raise

    async def update_column(self, project_id: UUID, column_id: UUID, name: str) -> TaskColumn:
        """
        Rename a column.

        Raises:
            ValidationError: If name is empty
            NotFoundError: If the board or column does not exist
        """
        require_text(name, "Column name")

        board = await self._get_board_or_raise(project_id)
        renamed = self._get_column_or_raise(board, column_id).model_copy(update={"name": name})
        await self._save_columns(
            board, [renamed if column.id == column_id else column for column in board.columns]
        )

        logger.info(f"Updated column: id={column_id}, name='{name}'")
        return renamed

    async def delete_column(self, project_id: UUID, column_id: UUID) -> None:
        """
        Delete a column and all of its tasks.

        Raises:
            NotFoundError: If the board or column does not exist
        """
        try:
            board = await self._get_board_or_raise(project_id)
            self._get_column_or_raise(board, column_id)

            tasks = await self.store.tasks.get(column_id=column_id)
            for task in tasks:
                await self.store.tasks.delete(task.id)

            await self._save_columns(board, [c for c in board.columns if c.id != column_id])

            logger.info(f"Deleted column: id={column_id}, board_id={board.id}, tasks={len(tasks)}")
        except NotFoundError as e:
            logger.error(f"Failed to delete column - not found: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to delete column {column_id}: {e}", exc_info=True)
            raise

    # ==============================================================================
    # TASK OPERATIONS
    # ==============================================================================

    async def create_task(
        self,
        project_id: UUID,
        column_id: UUID,
        text: str,
        completed: bool = False,
    ) -> Task:
        """
        Append a task to a column.

        Args:
            project_id: Project owning the board
            column_id: Column to append to
            text: Task text (required)
            completed: Initial completion state

        Returns:
            Created Task

        Raises:
            ValidationError: If text is empty
            NotFoundError: If the board or column does not exist
        """
        require_text(text, "Task text")

        board = await self._get_board_or_raise(project_id)
        self._get_column_or_raise(board, column_id)

        siblings = await self.store.tasks.get(column_id=column_id)
        task = Task(text=text, column_id=column_id, order=len(siblings), completed=completed)
        await self.store.tasks.add(task)

        logger.info(f"Created task: id={task.id}, column_id={column_id}, order={task.order}")
        return task

    async def update_task(
        self,
        task_id: UUID,
        text: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Task:
        """
        Update a task's text and/or completion state.

        Raises:
            ValueError: If no fields are provided for update
            ValidationError: If text is provided but empty
            NotFoundError: If task does not exist
        """
        if text is None and completed is None:
            raise ValueError("At least one of text or completed must be provided")
        if text is not None:
            require_text(text, "Task text")

        changes = {k: v for k, v in [("text", text), ("completed", completed)] if v is not None}
        task = await self.store.tasks.update(task_id, **changes)
        if task is None:
            logger.error(f"Failed to update task - not found: {task_id}")
            raise NotFoundError(f"Task with id {task_id} not found")

        logger.info(f"Updated task: id={task_id}, fields={sorted(changes)}")
        return task

    async def toggle_task(self, task_id: UUID) -> Task:
        """
        Flip the completion state of a task.

        Raises:
            NotFoundError: If task does not exist
        """
        task = await self._get_task_or_raise(task_id)
        toggled = await self.update_task(task_id, completed=not task.completed)
        logger.info(f"Task completion toggled: task_id={task_id}, completed={toggled.completed}")
        return toggled

    async def delete_task(self, task_id: UUID) -> None:
        """
        Delete a task. Sibling tasks are not renumbered.

        Raises:
            NotFoundError: If task does not exist
        """
        if not await self.store.tasks.delete(task_id):
            logger.error(f"Failed to delete task - not found: {task_id}")
            raise NotFoundError(f"Task with id {task_id} not found")
        logger.info(f"Deleted task: id={task_id}")
