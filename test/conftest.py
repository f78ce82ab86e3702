"""Shared pytest fixtures for all tests."""

import pytest

from notionboard import config
from notionboard.tasks import Task


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    """Isolate all tests from the real config directory and environment.

    This fixture runs automatically for every test, ensuring that:
    - Config and logs are never written to the real ~/.local/share/notionboard/
    - Backups and failure records land in a per-test working directory
    - Credentials and editor settings from the developer's shell don't leak in
    """
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    monkeypatch.setattr(config, "CONFIG_FILE", tmp_path / "config.json")
    monkeypatch.setattr(config, "LOG_FILE", tmp_path / "notionboard.log")

    for name in (config.TOKEN_ENV, config.DATABASE_ENV, *config.EDITOR_ENVS):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def temp_config(isolate_config):
    """Alias for isolate_config for tests that need the path."""
    return isolate_config


@pytest.fixture
def make_task():
    """Factory for tasks with sensible defaults."""

    def factory(task_id: str = "task-1", title: str = "A task", **kwargs) -> Task:
        return Task(id=task_id, title=title, **kwargs)

    return factory
