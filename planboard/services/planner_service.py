"""
Planner service for planboard.

Owns the content planner root, its stages and their embedded layers:
explicit initialization with the default stage, stage and layer CRUD, and
cascade deletion of the projects inside a removed stage or layer.
"""

from typing import List, Optional
from uuid import UUID

from planboard.config import Config
from planboard.errors import NotFoundError
from planboard.logging_config import get_logger
from planboard.models import ContentPlanner, Layer, Stage
from planboard.services.ordering import sort_by_order
from planboard.services.project_service import ProjectService
from planboard.services.validation import require_text, require_texts
from planboard.storage.base import PlannerStore

logger = get_logger(__name__)


class PlannerService:
    """
    Service layer for the content planner tree.

    Handles first-run initialization of the planner, stage and layer
    management, and read access to the assembled board.
    """

    def __init__(
        self,
        store: PlannerStore,
        project_service: Optional[ProjectService] = None,
        config: Optional[Config] = None,
    ) -> None:
        """
        Initialize the planner service.

        Args:
            store: Initialized PlannerStore
            project_service: Service used for project cascades
            config: Configuration providing stage and layer defaults
        """
        self.store = store
        self.project_service = project_service or ProjectService(store)
        self.planner_config = (config or Config()).get_planner_config()

    # ==============================================================================
    # INITIALIZATION
    # ==============================================================================

    async def ensure_initialized(self) -> ContentPlanner:
        """
        Create the planner and its default stage on first use.

        Idempotent: once the planner record exists, nothing is written. The
        planner record is written last, so an interrupted first run is
        completed by the next call.

        Returns:
            The assembled ContentPlanner
        """
        planner = await self.store.planners.get_one()
        if planner is None:
            logger.info("No content planner found, creating default planner")

            if not await self.store.stages.get():
                await self._add_stage(
                    self.planner_config['default_stage'],
                    self.planner_config['default_layers'],
                    order=0,
                )

            planner = ContentPlanner()
            await self.store.planners.add(planner)
            logger.info(f"Created content planner: id={planner.id}")

        return await self.get_content_planner()

    # ==============================================================================
    # READ OPERATIONS
    # ==============================================================================

    async def get_content_planner(self) -> ContentPlanner:
        """
        Get the planner with its stages and layers in display order.

        Raises:
            NotFoundError: If ensure_initialized() was never called
        """
        planner = await self.store.planners.get_one()
        if planner is None:
            raise NotFoundError("Content planner not initialized")

        stages = await self.get_stages()
        return planner.model_copy(update={"stages": stages})

    async def get_stages(self) -> List[Stage]:
        """All stages sorted by order, each with its layers sorted."""
        stages = sort_by_order(await self.store.stages.get())
        return [stage.model_copy(update={"layers": stage.sorted_layers()}) for stage in stages]

    async def get_stage(self, stage_id: UUID) -> Optional[Stage]:
        """
        Get a stage by its ID.

        Returns:
            Stage with sorted layers, or None if not found
        """
        stage = await self.store.stages.get_by_id(stage_id)
        if stage is None:
            return None
        return stage.model_copy(update={"layers": stage.sorted_layers()})

    async def _get_stage_or_raise(self, stage_id: UUID) -> Stage:
        stage = await self.store.stages.get_by_id(stage_id)
        if stage is None:
            raise NotFoundError(f"Stage with id {stage_id} not found")
        return stage

    @staticmethod
    def _get_layer_or_raise(stage: Stage, layer_id: UUID) -> Layer:
        layer = stage.find_layer(layer_id)
        if layer is None:
            raise NotFoundError(f"Layer with id {layer_id} not found in stage {stage.id}")
        return layer

    # ==============================================================================
    # STAGE OPERATIONS
    # ==============================================================================

    async def _add_stage(self, name: str, layer_names: List[str], order: int) -> Stage:
        stage = Stage(
            name=name,
            order=order,
            layers=[Layer(name=layer_name, order=index) for index, layer_name in enumerate(layer_names)],
        )
        await self.store.stages.add(stage)
        return stage

    async def create_stage(
        self,
        name: Optional[str] = None,
        layer_names: Optional[List[str]] = None,
    ) -> Stage:
        """
        Append a stage to the board.

        Args:
            name: Stage name; defaults to the configured new stage name
            layer_names: Layer names; defaults to the configured default layers

        Returns:
            Created Stage

        Raises:
            ValidationError: If the stage name or a layer name is empty
        """
        if name is None:
            name = self.planner_config['new_stage_name']
        require_text(name, "Stage name")

        if layer_names is None:
            layer_names = self.planner_config['default_layers']
        layer_names = require_texts(layer_names, "Layer name")

        try:
            order = len(await self.store.stages.get())
            stage = await self._add_stage(name, layer_names, order)
            logger.info(f"Created stage: id={stage.id}, name='{name}', order={order}, layers={len(layer_names)}")
            return stage
        except Exception as e:
            logger.error(f"Failed to create stage '{name}': {e}", exc_info=True)
            raise

    async def update_stage(self, stage_id: UUID, name: str) -> Stage:
        """
        Rename a stage.

        Raises:
            ValidationError: If name is empty
            NotFoundError: If stage does not exist
        """
        require_text(name, "Stage name")

        stage = await self.store.stages.update(stage_id, name=name)
        if stage is None:
            logger.error(f"Failed to update stage - not found: {stage_id}")
            raise NotFoundError(f"Stage with id {stage_id} not found")

        logger.info(f"Updated stage: id={stage_id}, name='{name}'")
        return stage

    async def delete_stage(self, stage_id: UUID) -> None:
        """
        Delete a stage, its layers and every project inside it.

        Remaining stages keep their order values.

        Args:
            stage_id: UUID of the stage to delete

        Raises:
            NotFoundError: If stage does not exist
        """
        try:
            logger.debug(f"Deleting stage {stage_id} and its projects")
            stage = await self._get_stage_or_raise(stage_id)

            projects = await self.store.projects.get(stage_id=stage_id)
            for project in projects:
                await self.project_service.delete_project(project.id)

            await self.store.stages.delete(stage_id)

            logger.info(f"Deleted stage: id={stage_id}, name='{stage.name}', projects={len(projects)}")
        except NotFoundError as e:
            logger.error(f"Failed to delete stage - not found: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to delete stage {stage_id}: {e}", exc_info=True)
            raise

    # ==============================================================================
    # LAYER OPERATIONS
    # ==============================================================================

    async def create_layer(self, stage_id: UUID, name: str) -> Layer:
        """
        Append a layer to a stage.

        Raises:
            ValidationError: If name is empty
            NotFoundError: If stage does not exist
        """
        require_text(name, "Layer name")

        stage = await self._get_stage_or_raise(stage_id)
        layer = Layer(name=name, order=len(stage.layers))

        if await self.store.stages.update(stage_id, layers=[*stage.layers, layer]) is None:
            raise NotFoundError(f"Stage with id {stage_id} not found")

        logger.info(f"Created layer: id={layer.id}, stage_id={stage_id}, name='{name}', order={layer.order}")
        return layer

    async def update_layer(self, stage_id: UUID, layer_id: UUID, name: str) -> Layer:
        """
        Rename a layer.

        Raises:
            ValidationError: If name is empty
            NotFoundError: If the stage or layer does not exist
        """
        require_text(name, "Layer name")

        stage = await self._get_stage_or_raise(stage_id)
        renamed = self._get_layer_or_raise(stage, layer_id).model_copy(update={"name": name})
        layers = [renamed if layer.id == layer_id else layer for layer in stage.layers]

        if await self.store.stages.update(stage_id, layers=layers) is None:
            raise NotFoundError(f"Stage with id {stage_id} not found")

        logger.info(f"Updated layer: id={layer_id}, stage_id={stage_id}, name='{name}'")
        return renamed

    async def delete_layer(self, stage_id: UUID, layer_id: UUID) -> None:
        """
        Delete a layer and every project inside it.

        Projects in sibling layers are untouched, and remaining layers keep
        their order values.

        Raises:
            NotFoundError: If the stage or layer does not exist
        """
        try:
            logger.debug(f"Deleting layer {layer_id} from stage {stage_id}")
            stage = await self._get_stage_or_raise(stage_id)
            self._get_layer_or_raise(stage, layer_id)

            projects = await self.store.projects.get(stage_id=stage_id, layer_id=layer_id)
            for project in projects:
                await self.project_service.delete_project(project.id)

            layers = [layer for layer in stage.layers if layer.id != layer_id]
            if await self.store.stages.update(stage_id, layers=layers) is None:
                raise NotFoundError(f"Stage with id {stage_id} not found")

            logger.info(f"Deleted layer: id={layer_id}, stage_id={stage_id}, projects={len(projects)}")
        except NotFoundError as e:
            logger.error(f"Failed to delete layer - not found: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to delete layer {layer_id}: {e}", exc_info=True)
            raise
