"""
Tests for TaskBoardService - lazy boards, columns and tasks.

Every test runs against both storage backends.
"""

from uuid import uuid4

import pytest
import pytest_asyncio

from planboard.errors import NotFoundError, ValidationError


@pytest_asyncio.fixture
async def project(ctx, default_stage, layers_by_name):
    """A project in the default stage's To Do layer."""
    return await ctx.projects.create_project(default_stage.id, layers_by_name["To Do"].id, "Teaser")


@pytest_asyncio.fixture
async def column(ctx, project):
    """A first column on the project's board."""
    return await ctx.task_boards.create_column(project.id, "Checklist")


class TestColumns:
    """Tests for column CRUD and lazy board creation."""

    @pytest.mark.asyncio
    async def test_no_board_until_first_column(self, ctx, project):
        assert await ctx.task_boards.get_task_board(project.id) is None
        assert await ctx.task_boards.get_board_tasks(project.id) == []
        assert await ctx.store.task_boards.get() == []

    @pytest.mark.asyncio
    async def test_create_column_creates_board(self, ctx, project):
        column = await ctx.task_boards.create_column(project.id, "Checklist")

        board = await ctx.task_boards.get_task_board(project.id)
        assert board is not None
        assert board.project_id == project.id
        assert board.columns == [column]
        assert column.order == 0

    @pytest.mark.asyncio
    async def test_columns_append(self, ctx, project, column):
        second = await ctx.task_boards.create_column(project.id, "Review")

        board = await ctx.task_boards.get_task_board(project.id)
        assert [c.name for c in board.columns] == ["Checklist", "Review"]
        assert second.order == 1
        assert len(await ctx.store.task_boards.get()) == 1

    @pytest.mark.asyncio
    async def test_create_column_missing_project(self, ctx, planner):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.create_column(uuid4(), "Checklist")

        assert await ctx.store.task_boards.get() == []

    @pytest.mark.asyncio
    async def test_create_column_empty_name(self, ctx, project):
        with pytest.raises(ValidationError):
            await ctx.task_boards.create_column(project.id, "")

    @pytest.mark.asyncio
    async def test_update_column(self, ctx, project, column):
        renamed = await ctx.task_boards.update_column(project.id, column.id, "Todo")

        board = await ctx.task_boards.get_task_board(project.id)
        assert renamed.name == "Todo"
        assert board.columns[0].name == "Todo"

    @pytest.mark.asyncio
    async def test_update_column_not_found(self, ctx, project, column):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.update_column(project.id, uuid4(), "Todo")

    @pytest.mark.asyncio
    async def test_delete_column_cascades_tasks(self, ctx, project, column):
        other = await ctx.task_boards.create_column(project.id, "Review")
        await ctx.task_boards.create_task(project.id, column.id, "Draft")
        kept = await ctx.task_boards.create_task(project.id, other.id, "Proofread")

        await ctx.task_boards.delete_column(project.id, column.id)

        board = await ctx.task_boards.get_task_board(project.id)
        assert [c.id for c in board.columns] == [other.id]
        assert board.columns[0].order == 1
        assert [t.id for t in await ctx.store.tasks.get()] == [kept.id]

    @pytest.mark.asyncio
    async def test_delete_column_no_board(self, ctx, project):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.delete_column(project.id, uuid4())


class TestTasks:
    """Tests for task CRUD."""

    @pytest.mark.asyncio
    async def test_create_task(self, ctx, project, column):
        task = await ctx.task_boards.create_task(project.id, column.id, "Draft")

        assert task.text == "Draft"
        assert task.column_id == column.id
        assert task.order == 0
        assert task.completed is False
        assert await ctx.task_boards.get_task(task.id) == task

    @pytest.mark.asyncio
    async def test_create_task_order_increments(self, ctx, project, column):
        tasks = [
            await ctx.task_boards.create_task(project.id, column.id, text)
            for text in ("T1", "T2", "T3")
        ]

        assert [t.order for t in tasks] == [0, 1, 2]
        assert [t.text for t in await ctx.task_boards.get_tasks(column.id)] == ["T1", "T2", "T3"]

    @pytest.mark.asyncio
    async def test_create_task_without_board(self, ctx, project):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.create_task(project.id, uuid4(), "Draft")

    @pytest.mark.asyncio
    async def test_create_task_unknown_column(self, ctx, project, column):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.create_task(project.id, uuid4(), "Draft")

    @pytest.mark.asyncio
    async def test_create_task_empty_text(self, ctx, project, column):
        with pytest.raises(ValidationError):
            await ctx.task_boards.create_task(project.id, column.id, "\t")

    @pytest.mark.asyncio
    async def test_get_board_tasks_column_by_column(self, ctx, project, column):
        review = await ctx.task_boards.create_column(project.id, "Review")
        await ctx.task_boards.create_task(project.id, review.id, "R1")
        await ctx.task_boards.create_task(project.id, column.id, "C1")
        await ctx.task_boards.create_task(project.id, column.id, "C2")

        tasks = await ctx.task_boards.get_board_tasks(project.id)

        assert [t.text for t in tasks] == ["C1", "C2", "R1"]

    @pytest.mark.asyncio
    async def test_update_task(self, ctx, project, column):
        task = await ctx.task_boards.create_task(project.id, column.id, "Draft")

        updated = await ctx.task_boards.update_task(task.id, text="Final draft")

        assert updated.text == "Final draft"
        assert updated.completed is False
        assert updated.order == task.order

    @pytest.mark.asyncio
    async def test_update_task_requires_a_field(self, ctx, project, column):
        task = await ctx.task_boards.create_task(project.id, column.id, "Draft")

        with pytest.raises(ValueError):
            await ctx.task_boards.update_task(task.id)

    @pytest.mark.asyncio
    async def test_update_task_not_found(self, ctx, planner):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.update_task(uuid4(), completed=True)

    @pytest.mark.asyncio
    async def test_toggle_task(self, ctx, project, column):
        task = await ctx.task_boards.create_task(project.id, column.id, "Draft")

        toggled = await ctx.task_boards.toggle_task(task.id)
        assert toggled.completed is True

        toggled_back = await ctx.task_boards.toggle_task(task.id)
        assert toggled_back.completed is False

    @pytest.mark.asyncio
    async def test_toggle_task_not_found(self, ctx, planner):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.toggle_task(uuid4())

    @pytest.mark.asyncio
    async def test_delete_task_keeps_sibling_orders(self, ctx, project, column):
        t1 = await ctx.task_boards.create_task(project.id, column.id, "T1")
        t2 = await ctx.task_boards.create_task(project.id, column.id, "T2")
        t3 = await ctx.task_boards.create_task(project.id, column.id, "T3")

        await ctx.task_boards.delete_task(t2.id)

        remaining = await ctx.task_boards.get_tasks(column.id)
        assert [(t.id, t.order) for t in remaining] == [(t1.id, 0), (t3.id, 2)]

    @pytest.mark.asyncio
    async def test_delete_task_not_found(self, ctx, planner):
        with pytest.raises(NotFoundError):
            await ctx.task_boards.delete_task(uuid4())
