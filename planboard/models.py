"""
Pydantic models for planboard.

Defines the content planner tree (stages and their layers), project cards,
per-project task boards with their columns and tasks, and templates. Also
defines the container keys and the drag payload consumed by the reorder
engine.
"""

from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Layer(BaseModel):
    """A sub-lane inside a stage (e.g. To Do / In Progress / Done)."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the layer")
    name: str = Field(..., min_length=1, description="Layer name")
    order: int = Field(default=0, ge=0, description="Order within the stage")


class Stage(BaseModel):
    """
    A top-level kanban column, such as a production phase.

    A stage exclusively owns its layers; they are stored embedded in the
    stage and deleted with it.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the stage")
    name: str = Field(..., min_length=1, description="Stage name")
    order: int = Field(default=0, ge=0, description="Order among sibling stages")
    layers: List[Layer] = Field(default_factory=list, description="Embedded layers")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Production",
                "order": 0,
                "layers": [
                    {"id": "123e4567-e89b-12d3-a456-426614174001", "name": "To Do", "order": 0},
                ],
            }
        }
    )

    def find_layer(self, layer_id: UUID) -> Optional[Layer]:
        """Return the embedded layer with the given id, if any."""
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def sorted_layers(self) -> List[Layer]:
        """Layers in display order."""
        return sorted(self.layers, key=lambda layer: layer.order)


class ContentPlanner(BaseModel):
    """
    Singleton root of the board.

    Only the identity is persisted. ``stages`` is filled in when the planner
    is assembled for reading.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the planner")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    stages: List[Stage] = Field(default_factory=list, description="Stages in display order")

    @field_validator("created_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)


class Project(BaseModel):
    """
    A card on the board, the unit of planning content.

    A project lives in exactly one (stage_id, layer_id) container at a time.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the project")
    name: str = Field(..., min_length=1, description="Project name")
    description: str = Field(default="", description="Free-form description")
    stage_id: UUID = Field(..., description="Stage containing the project")
    layer_id: UUID = Field(..., description="Layer containing the project")
    order: int = Field(default=0, ge=0, description="Order within the container")
    tags: List[str] = Field(default_factory=list, description="Tags")
    due_date: Optional[datetime] = Field(default=None, description="Optional due date")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Timestamps are held as naive UTC."""
        return _to_naive_utc(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174010",
                "name": "Launch video",
                "description": "Two minute product teaser",
                "stage_id": "123e4567-e89b-12d3-a456-426614174000",
                "layer_id": "123e4567-e89b-12d3-a456-426614174001",
                "order": 0,
                "tags": ["video"],
                "created_at": "2025-01-14T10:00:00",
                "updated_at": "2025-01-14T10:00:00",
            }
        }
    )

    @property
    def container(self) -> "ProjectContainer":
        """The (stage_id, layer_id) key this project is grouped under."""
        return ProjectContainer(stage_id=self.stage_id, layer_id=self.layer_id)


class TaskColumn(BaseModel):
    """A column of checklist tasks on a project's task board."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the column")
    name: str = Field(..., min_length=1, description="Column name")
    order: int = Field(default=0, ge=0, description="Order within the board")


class TaskBoard(BaseModel):
    """Per-project checklist board. Owns its columns, which are embedded."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the board")
    project_id: UUID = Field(..., description="Owning project")
    columns: List[TaskColumn] = Field(default_factory=list, description="Embedded columns")

    def find_column(self, column_id: UUID) -> Optional[TaskColumn]:
        """Return the embedded column with the given id, if any."""
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def sorted_columns(self) -> List[TaskColumn]:
        """Columns in display order."""
        return sorted(self.columns, key=lambda column: column.order)


class Task(BaseModel):
    """A checklist item. Its container key is ``column_id``."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the task")
    text: str = Field(..., min_length=1, description="Task text")
    column_id: UUID = Field(..., description="Column containing the task")
    order: int = Field(default=0, ge=0, description="Order within the column")
    completed: bool = Field(default=False, description="Whether the task is checked off")


class Template(BaseModel):
    """Snapshot of a project's name, description and tags."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the template")
    name: str = Field(..., min_length=1, description="Template name")
    description: str = Field(default="", description="Copied description")
    tags: List[str] = Field(default_factory=list, description="Copied tags")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")

    @field_validator("created_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)


# ==============================================================================
# CONTAINER KEYS AND DRAG PAYLOAD
# ==============================================================================

class ProjectContainer(BaseModel):
    """Container key for projects: the (stage, layer) pair."""

    model_config = ConfigDict(frozen=True)

    stage_id: UUID
    layer_id: UUID

    def as_fields(self) -> dict:
        """Field update that moves a project into this container."""
        return {"stage_id": self.stage_id, "layer_id": self.layer_id}


ContainerKey = Union[ProjectContainer, UUID]


class DragMove(BaseModel):
    """
    A completed drag gesture, independent of any UI toolkit.

    ``source_container`` and ``dest_container`` are ProjectContainer keys for
    project moves and column ids for task moves. The rendering layer
    translates its own drag events into this shape.
    """

    model_config = ConfigDict(frozen=True)

    moved_id: UUID
    source_container: ContainerKey
    dest_container: ContainerKey
    source_index: int = Field(..., ge=0)
    dest_index: int = Field(..., ge=0)

    @property
    def is_same_container(self) -> bool:
        return self.source_container == self.dest_container


class CrossMoveResult(NamedTuple):
    """Both sibling lists after a cross-container move, each normalized."""

    source: list
    dest: list

