"""
Reorder service for planboard.

Applies completed drag gestures to stored state. Sibling lists are read from
the store, rearranged by the pure engine in ``ordering``, and written back
one entity per update call.

Batches are not transactional: if a write fails, the writes before it stay
applied and the error propagates. Callers reload full state after any
failure.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from planboard.errors import NotFoundError, PlanboardError
from planboard.logging_config import get_logger
from planboard.models import DragMove, Project, ProjectContainer, Stage, Task, TaskBoard
from planboard.services.ordering import (
    changed_orders,
    reorder_across_containers,
    reorder_within_container,
    sort_by_order,
)
from planboard.storage.base import Collection, PlannerStore

logger = get_logger(__name__)


class ReorderService:
    """
    Persisting reorder engine for every ordered collection.

    Stages and projects and tasks are stored one entity per record, so each
    renumbered sibling costs one update call. Layers and columns are
    embedded in their parent, so their reordering is a single parent update.
    """

    def __init__(self, store: PlannerStore) -> None:
        """
        Initialize reorder service with a storage backend.

        Args:
            store: Initialized PlannerStore
        """
        self.store = store

    # ==============================================================================
    # PERSISTENCE HELPERS
    # ==============================================================================

    async def _persist_orders(
        self,
        collection: Collection,
        items: Sequence[Any],
        moved_id: Optional[UUID] = None,
        moved_fields: Optional[Dict[str, Any]] = None,
    ) -> List[Any]:
        """
        Write the order of every entity in ``items``, one update per entity.

        The moved entity additionally gets ``moved_fields`` written.

        Returns:
            The stored entities in list order

        Raises:
            NotFoundError: If an entity disappeared from the store
        """
        persisted = []
        for item in items:
            fields: Dict[str, Any] = {"order": item.order}
            if moved_fields and item.id == moved_id:
                fields.update(moved_fields)

            updated = await collection.update(item.id, **fields)
            if updated is None:
                raise NotFoundError(f"{collection.name} with id {item.id} not found while reordering")
            persisted.append(updated)
        return persisted

    @staticmethod
    def _check_moved(items: Sequence[Any], index: int, moved_id: UUID) -> None:
        """
        Verify the entity at ``index`` is the one being dragged.

        Raises:
            NotFoundError: If the caller's view of the list is stale
        """
        if not 0 <= index < len(items) or items[index].id != moved_id:
            raise NotFoundError(
                f"Entity {moved_id} is not at index {index} of its container; reload state"
            )

    # ==============================================================================
    # STAGES AND LAYERS
    # ==============================================================================

    async def move_stage(self, source_index: int, dest_index: int) -> List[Stage]:
        """
        Move a stage to a new position on the board.

        Every stage's order is written with its own update call. Moving a
        stage onto its own index writes nothing.

        Args:
            source_index: Current index of the stage
            dest_index: Target index

        Returns:
            Stages in their new order

        Raises:
            ValueError: If an index is out of range
            NotFoundError: If a stage vanished during the batch
            StorageError: If a write fails
        """
        stages = sort_by_order(await self.store.stages.get())
        reordered = reorder_within_container(stages, source_index, dest_index)
        if source_index == dest_index:
            return reordered

        try:
            persisted = await self._persist_orders(self.store.stages, reordered)
        except PlanboardError as e:
            logger.error(f"Stage reorder failed mid-batch, state must be reloaded: {e}", exc_info=True)
            raise

        logger.info(
            f"Moved stage from {source_index} to {dest_index}: "
            f"{len(changed_orders(stages, reordered))} order values changed"
        )
        return persisted

    async def move_layer(self, stage_id: UUID, source_index: int, dest_index: int) -> Stage:
        """
        Move a layer within its stage.

        Args:
            stage_id: Stage owning the layers
            source_index: Current index of the layer
            dest_index: Target index

        Returns:
            The stage with its layers in the new order

        Raises:
            ValueError: If an index is out of range
            NotFoundError: If the stage does not exist
        """
        stage = await self.store.stages.get_by_id(stage_id)
        if stage is None:
            raise NotFoundError(f"Stage with id {stage_id} not found")

        reordered = reorder_within_container(stage.sorted_layers(), source_index, dest_index)
        if source_index == dest_index:
            return stage.model_copy(update={"layers": reordered})

        updated = await self.store.stages.update(stage_id, layers=reordered)
        if updated is None:
            raise NotFoundError(f"Stage with id {stage_id} not found")

        logger.info(f"Moved layer in stage {stage_id} from {source_index} to {dest_index}")
        return updated.model_copy(update={"layers": updated.sorted_layers()})

    # ==============================================================================
    # PROJECTS
    # ==============================================================================

    async def _verify_project_container(self, key: ProjectContainer) -> None:
        stage = await self.store.stages.get_by_id(key.stage_id)
        if stage is None:
            raise NotFoundError(f"Stage with id {key.stage_id} not found")
        if stage.find_layer(key.layer_id) is None:
            raise NotFoundError(f"Layer with id {key.layer_id} not found in stage {key.stage_id}")

    async def move_project(self, move: DragMove) -> List[Project]:
        """
        Move a project within its layer or into another layer or stage.

        Args:
            move: Drag payload with ProjectContainer source/destination keys

        Returns:
            Projects of the destination container in their new order

        Raises:
            ValueError: If the containers are not project containers or an
                index is out of range
            NotFoundError: If a container is missing or the view is stale
            StorageError: If a write fails
        """
        source_key, dest_key = move.source_container, move.dest_container
        if not isinstance(source_key, ProjectContainer) or not isinstance(dest_key, ProjectContainer):
            raise ValueError("Project moves need ProjectContainer source and destination keys")

        logger.debug(
            f"Moving project {move.moved_id}: {source_key.as_fields()}[{move.source_index}] -> "
            f"{dest_key.as_fields()}[{move.dest_index}]"
        )

        await self._verify_project_container(source_key)
        if not move.is_same_container:
            await self._verify_project_container(dest_key)

        source = sort_by_order(await self.store.projects.get(**source_key.as_fields()))
        self._check_moved(source, move.source_index, move.moved_id)

        try:
            if move.is_same_container:
                reordered = reorder_within_container(source, move.source_index, move.dest_index)
                if move.source_index == move.dest_index:
                    return reordered
                result = await self._persist_orders(self.store.projects, reordered)
            else:
                dest = sort_by_order(await self.store.projects.get(**dest_key.as_fields()))
                moved = reorder_across_containers(
                    source, dest, move.source_index, move.dest_index, dest_key.as_fields()
                )
                await self._persist_orders(self.store.projects, moved.source)
                result = await self._persist_orders(
                    self.store.projects,
                    moved.dest,
                    moved_id=move.moved_id,
                    moved_fields={**dest_key.as_fields(), "updated_at": datetime.utcnow()},
                )
        except PlanboardError as e:
            logger.error(f"Project move failed mid-batch, state must be reloaded: {e}", exc_info=True)
            raise

        logger.info(
            f"Moved project {move.moved_id} to stage={dest_key.stage_id}, "
            f"layer={dest_key.layer_id}, index={move.dest_index}"
        )
        return result

    # ==============================================================================
    # TASK COLUMNS AND TASKS
    # ==============================================================================

    async def _get_board_or_raise(self, project_id: UUID) -> TaskBoard:
        board = await self.store.task_boards.get_one(project_id=project_id)
        if board is None:
            raise NotFoundError(f"Task board for project {project_id} not found")
        return board

    async def move_column(self, project_id: UUID, source_index: int, dest_index: int) -> TaskBoard:
        """
        Move a column on a project's task board.

        Returns:
            The board with its columns in the new order

        Raises:
            ValueError: If an index is out of range
            NotFoundError: If the project has no task board
        """
        board = await self._get_board_or_raise(project_id)

        reordered = reorder_within_container(board.sorted_columns(), source_index, dest_index)
        if source_index == dest_index:
            return board.model_copy(update={"columns": reordered})

        updated = await self.store.task_boards.update(board.id, columns=reordered)
        if updated is None:
            raise NotFoundError(f"Task board with id {board.id} not found")

        logger.info(f"Moved column on board {board.id} from {source_index} to {dest_index}")
        return updated.model_copy(update={"columns": updated.sorted_columns()})

    async def move_task(self, project_id: UUID, move: DragMove) -> List[Task]:
        """
        Move a task within its column or into another column of the same board.

        Args:
            project_id: Project owning the board
            move: Drag payload with column ids as source/destination keys

        Returns:
            Tasks of the destination column in their new order

        Raises:
            ValueError: If the containers are not column ids or an index is
                out of range
            NotFoundError: If the board or a column is missing, or the view
                is stale
            StorageError: If a write fails
        """
        source_column, dest_column = move.source_container, move.dest_container
        if not isinstance(source_column, UUID) or not isinstance(dest_column, UUID):
            raise ValueError("Task moves need column ids as source and destination keys")

        logger.debug(
            f"Moving task {move.moved_id}: column {source_column}[{move.source_index}] -> "
            f"column {dest_column}[{move.dest_index}]"
        )

        board = await self._get_board_or_raise(project_id)
        for column_id in (source_column, dest_column):
            if board.find_column(column_id) is None:
                raise NotFoundError(f"Column with id {column_id} not found on board {board.id}")

        source = sort_by_order(await self.store.tasks.get(column_id=source_column))
        self._check_moved(source, move.source_index, move.moved_id)

        try:
            if move.is_same_container:
                reordered = reorder_within_container(source, move.source_index, move.dest_index)
                if move.source_index == move.dest_index:
                    return reordered
                result = await self._persist_orders(self.store.tasks, reordered)
            else:
                dest = sort_by_order(await self.store.tasks.get(column_id=dest_column))
                moved = reorder_across_containers(
                    source, dest, move.source_index, move.dest_index, {"column_id": dest_column}
                )
                await self._persist_orders(self.store.tasks, moved.source)
                result = await self._persist_orders(
                    self.store.tasks,
                    moved.dest,
                    moved_id=move.moved_id,
                    moved_fields={"column_id": dest_column},
                )
        except PlanboardError as e:
            logger.error(f"Task move failed mid-batch, state must be reloaded: {e}", exc_info=True)
            raise

        logger.info(f"Moved task {move.moved_id} to column {dest_column}, index={move.dest_index}")
        return result
