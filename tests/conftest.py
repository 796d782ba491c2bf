"""
Pytest configuration and fixtures for planboard tests.

Provides store fixtures for both backends, an application context with a
default planner, and factories for building ordered entities.
"""

from pathlib import Path
from typing import List
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from planboard.config import Config
from planboard.context import AppContext
from planboard.models import Project, Task
from planboard.storage.document_store import DocumentStore
from planboard.storage.local_store import LocalStore


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture(autouse=True)
def clean_planboard_env(monkeypatch):
    """Keep PLANBOARD_* variables from the host environment out of tests."""
    for name in (
        "PLANBOARD_STORAGE_BACKEND",
        "PLANBOARD_DATABASE_URL",
        "PLANBOARD_LOCAL_STORE_PATH",
        "PLANBOARD_DEFAULT_STAGE",
        "PLANBOARD_NEW_STAGE_NAME",
        "PLANBOARD_DEFAULT_LAYERS",
        "PLANBOARD_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config(tmp_path):
    """Config backed by a config file that does not exist, so defaults apply."""
    return Config(tmp_path / "config.ini")


@pytest_asyncio.fixture
async def document_store(tmp_path):
    """
    Document store on a temporary SQLite file.

    Yields:
        Initialized DocumentStore
    """
    store = DocumentStore(_sqlite_url(tmp_path / "document.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def local_store(tmp_path):
    """
    Local key/blob store on a temporary SQLite file.

    Yields:
        Initialized LocalStore
    """
    store = LocalStore(_sqlite_url(tmp_path / "local.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["document", "local"])
async def store(request, tmp_path):
    """
    Each test using this fixture runs once per backend.

    Yields:
        Initialized PlannerStore
    """
    if request.param == "document":
        backend = DocumentStore(_sqlite_url(tmp_path / "document.db"))
    else:
        backend = LocalStore(_sqlite_url(tmp_path / "local.db"))
    await backend.initialize()
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def ctx(store, test_config):
    """Application context over the parametrized store."""
    return AppContext(store, test_config)


@pytest_asyncio.fixture
async def planner(ctx):
    """
    Initialized planner with the default stage.

    Returns:
        ContentPlanner with one stage "Production" and layers
        To Do / In Progress / Done
    """
    return await ctx.ensure_initialized()


@pytest.fixture
def default_stage(planner):
    """The default "Production" stage."""
    return planner.stages[0]


@pytest.fixture
def layers_by_name(default_stage):
    """Layers of the default stage keyed by name."""
    return {layer.name: layer for layer in default_stage.layers}


@pytest.fixture
def make_tasks():
    """
    Factory fixture for building sibling Task models.

    Example:
        def test_something(make_tasks):
            tasks = make_tasks(["T1", "T2", "T3"])
    """
    def _make_tasks(texts: List[str], column_id: UUID = None) -> List[Task]:
        column_id = column_id or uuid4()
        return [
            Task(text=text, column_id=column_id, order=index)
            for index, text in enumerate(texts)
        ]
    return _make_tasks


@pytest.fixture
def make_projects():
    """Factory fixture for building sibling Project models in one container."""
    def _make_projects(names: List[str], stage_id: UUID = None, layer_id: UUID = None) -> List[Project]:
        stage_id = stage_id or uuid4()
        layer_id = layer_id or uuid4()
        return [
            Project(name=name, stage_id=stage_id, layer_id=layer_id, order=index)
            for index, name in enumerate(names)
        ]
    return _make_projects
