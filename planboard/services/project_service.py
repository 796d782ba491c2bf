"""
Project service for planboard.

Implements project card CRUD against the configured store, cascade deletion
of a project's task board and tasks, and saving projects as templates.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from planboard.errors import NotFoundError
from planboard.logging_config import get_logger
from planboard.models import Project, Stage, Template
from planboard.services.ordering import sort_by_order
from planboard.services.validation import require_text
from planboard.storage.base import PlannerStore

logger = get_logger(__name__)


class ProjectService:
    """
    Service layer for project cards.

    New projects are appended to their (stage, layer) container. Deleting a
    project removes its task board and every task on it; surviving siblings
    keep their order values.
    """

    def __init__(self, store: PlannerStore) -> None:
        """
        Initialize project service with a storage backend.

        Args:
            store: Initialized PlannerStore
        """
        self.store = store

    # ==============================================================================
    # VALIDATION HELPERS
    # ==============================================================================

    async def _verify_container(self, stage_id: UUID, layer_id: UUID) -> Stage:
        """
        Verify that a layer exists inside a stage.

        Raises:
            NotFoundError: If the stage or the layer does not exist
        """
        stage = await self.store.stages.get_by_id(stage_id)
        if stage is None:
            raise NotFoundError(f"Stage with id {stage_id} not found")
        if stage.find_layer(layer_id) is None:
            raise NotFoundError(f"Layer with id {layer_id} not found in stage {stage_id}")
        return stage

    async def _get_project_or_raise(self, project_id: UUID) -> Project:
        project = await self.store.projects.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project with id {project_id} not found")
        return project

    # ==============================================================================
    # CREATE OPERATIONS
    # ==============================================================================

    async def create_project(
        self,
        stage_id: UUID,
        layer_id: UUID,
        name: str,
        description: str = "",
        tags: Optional[List[str]] = None,
        due_date: Optional[datetime] = None,
    ) -> Project:
        """
        Create a project at the end of a layer.

        Args:
            stage_id: Stage containing the layer
            layer_id: Layer to append the project to
            name: Project name (required)
            description: Optional description
            tags: Optional tags
            due_date: Optional due date

        Returns:
            Created Project instance

        Raises:
            ValidationError: If name is empty
            NotFoundError: If the stage or layer does not exist
        """
        require_text(name, "Project name")

        try:
            logger.debug(f"Creating project: name='{name}', stage_id={stage_id}, layer_id={layer_id}")

            await self._verify_container(stage_id, layer_id)
            siblings = await self.store.projects.get(stage_id=stage_id, layer_id=layer_id)

            now = datetime.utcnow()
            project = Project(
                name=name,
                description=description or "",
                stage_id=stage_id,
                layer_id=layer_id,
                order=len(siblings),
                tags=list(tags or []),
                due_date=due_date,
                created_at=now,
                updated_at=now,
            )
            await self.store.projects.add(project)

            logger.info(f"Created project: id={project.id}, name='{name}', order={project.order}")
            return project
        except NotFoundError as e:
            logger.error(f"Failed to create project - container not found: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create project '{name}': {e}", exc_info=True)
            raise

    # ==============================================================================
    # READ OPERATIONS
    # ==============================================================================

    async def get_project(self, project_id: UUID) -> Optional[Project]:
        """
        Get a project by its ID.

        Returns:
            Project instance or None if not found
        """
        return await self.store.projects.get_by_id(project_id)

    async def get_projects_by_layer(self, stage_id: UUID, layer_id: UUID) -> List[Project]:
        """
        Get the projects of one layer in display order.

        Args:
            stage_id: Stage containing the layer
            layer_id: Layer to read

        Returns:
            Projects sorted by order
        """
        projects = await self.store.projects.get(stage_id=stage_id, layer_id=layer_id)
        return sort_by_order(projects)

    async def get_all_projects(self) -> List[Project]:
        """
        Get every project for the table view.

        Sorted by stage order, then layer order, then project order. Projects
        whose stage or layer no longer exists sort last.
        """
        stages = sort_by_order(await self.store.stages.get())
        rank: Dict[Tuple[UUID, UUID], Tuple[int, int]] = {}
        for stage_rank, stage in enumerate(stages):
            for layer_rank, layer in enumerate(stage.sorted_layers()):
                rank[(stage.id, layer.id)] = (stage_rank, layer_rank)

        orphan_rank = (len(stages), 0)
        projects = await self.store.projects.get()
        return sorted(
            projects,
            key=lambda p: (*rank.get((p.stage_id, p.layer_id), orphan_rank), p.order),
        )

    # ==============================================================================
    # UPDATE OPERATIONS
    # ==============================================================================

    async def update_project(
        self,
        project_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        due_date: Optional[datetime] = None,
        clear_due_date: bool = False,
    ) -> Project:
        """
        Update a project's editable fields and refresh ``updated_at``.

        Args:
            project_id: UUID of the project to update
            name: New name (if provided)
            description: New description (if provided)
            tags: New tags (if provided)
            due_date: New due date (if provided)
            clear_due_date: Remove the due date

        Returns:
            Updated Project instance

        Raises:
            ValueError: If no fields are provided for update
            ValidationError: If name is provided but empty
            NotFoundError: If project does not exist
        """
        if name is None and description is None and tags is None and due_date is None \
                and not clear_due_date:
            raise ValueError("At least one of name, description, tags or due_date must be provided")

        if name is not None:
            require_text(name, "Project name")

        changes = {
            key: value for key, value in [
                ("name", name),
                ("description", description),
                ("tags", list(tags) if tags is not None else None),
                ("due_date", due_date),
            ] if value is not None
        }
        if clear_due_date:
            changes["due_date"] = None
        changes["updated_at"] = datetime.utcnow()

        project = await self.store.projects.update(project_id, **changes)
        if project is None:
            logger.error(f"Failed to update project - not found: {project_id}")
            raise NotFoundError(f"Project with id {project_id} not found")

        logger.info(f"Updated project: id={project_id}, fields={sorted(changes)}")
        return project

    # ==============================================================================
    # DELETE OPERATIONS
    # ==============================================================================

    async def delete_project(self, project_id: UUID) -> None:
        """
        Delete a project together with its task board and tasks.

        Sibling projects are not renumbered.

        Args:
            project_id: UUID of the project to delete

        Raises:
            NotFoundError: If project does not exist
        """
        try:
            logger.debug(f"Deleting project {project_id} and its task board")
            project = await self._get_project_or_raise(project_id)

            task_count = 0
            board = await self.store.task_boards.get_one(project_id=project_id)
            if board is not None:
                for column in board.columns:
                    for task in await self.store.tasks.get(column_id=column.id):
                        await self.store.tasks.delete(task.id)
                        task_count += 1
                await self.store.task_boards.delete(board.id)

            await self.store.projects.delete(project_id)

            logger.info(
                f"Deleted project: id={project_id}, name='{project.name}', "
                f"task_board={board is not None}, tasks={task_count}"
            )
        except NotFoundError as e:
            logger.error(f"Failed to delete project - not found: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to delete project {project_id}: {e}", exc_info=True)
            raise

    # ==============================================================================
    # TEMPLATES
    # ==============================================================================

    async def save_as_template(self, project_id: UUID) -> Template:
        """
        Save a snapshot of a project's name, description and tags.

        The template keeps no reference to the project. Task boards are not
        copied.

        Args:
            project_id: UUID of the source project

        Returns:
            Created Template

        Raises:
            NotFoundError: If project does not exist
        """
        project = await self._get_project_or_raise(project_id)

        template = Template(
            name=f"{project.name} Template",
            description=project.description,
            tags=list(project.tags),
        )
        await self.store.templates.add(template)

        logger.info(f"Saved project {project_id} as template {template.id}")
        return template

    async def get_templates(self) -> List[Template]:
        """All templates, oldest first."""
        templates = await self.store.templates.get()
        return sorted(templates, key=lambda template: template.created_at)
