"""Service layer for planboard."""

from planboard.services.planner_service import PlannerService
from planboard.services.project_service import ProjectService
from planboard.services.reorder_service import ReorderService
from planboard.services.task_board_service import TaskBoardService

__all__ = ["PlannerService", "ProjectService", "ReorderService", "TaskBoardService"]
