"""
Tests for configuration management.

Tests the Config class and configuration loading from files and environment variables.
"""

from pathlib import Path

import pytest

from planboard.config import Config


@pytest.fixture
def write_config(tmp_path):
    """Factory writing an INI file and returning a Config for it."""
    def _write(text: str) -> Config:
        path = tmp_path / "config.ini"
        path.write_text(text)
        return Config(path)
    return _write


class TestConfig:
    """Tests for Config class."""

    def test_default_config_path(self):
        config = Config()
        assert config.config_path == Path.home() / ".planboard" / "config.ini"

    def test_missing_file_uses_storage_defaults(self, test_config):
        storage = test_config.get_storage_config()

        assert storage['backend'] == 'local'
        assert storage['database_url'].startswith("sqlite+aiosqlite:///")
        assert storage['database_url'].endswith("planboard.db")
        assert storage['local_path'].endswith("local_storage.db")

    def test_missing_file_uses_planner_defaults(self, test_config):
        planner = test_config.get_planner_config()

        assert planner['default_stage'] == 'Production'
        assert planner['new_stage_name'] == 'New Stage'
        assert planner['default_layers'] == ['To Do', 'In Progress', 'Done']

    def test_config_file_parsing(self, write_config):
        config = write_config("""
[storage]
backend = document
database_url = sqlite+aiosqlite:////tmp/board.db

[planner]
default_stage = Editorial
default_layers = Ideas,  Drafts , ,Published
""")

        storage = config.get_storage_config()
        planner = config.get_planner_config()

        assert storage['backend'] == 'document'
        assert storage['database_url'] == 'sqlite+aiosqlite:////tmp/board.db'
        assert planner['default_stage'] == 'Editorial'
        assert planner['default_layers'] == ['Ideas', 'Drafts', 'Published']

    def test_environment_variable_override(self, write_config, monkeypatch):
        config = write_config("""
[storage]
backend = local
local_path = /tmp/from_file.db

[planner]
new_stage_name = Phase
""")
        monkeypatch.setenv('PLANBOARD_STORAGE_BACKEND', ' DOCUMENT ')
        monkeypatch.setenv('PLANBOARD_LOCAL_STORE_PATH', '/tmp/from_env.db')
        monkeypatch.setenv('PLANBOARD_NEW_STAGE_NAME', 'Sprint')

        assert config.get_storage_config()['backend'] == 'document'
        assert config.get_storage_config()['local_path'] == '/tmp/from_env.db'
        assert config.get_planner_config()['new_stage_name'] == 'Sprint'

    def test_malformed_file_uses_defaults(self, write_config):
        config = write_config("this is not an ini file\n")

        assert config.get_storage_config()['backend'] == 'local'
        assert config.get_planner_config()['default_stage'] == 'Production'

