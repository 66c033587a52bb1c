import pytest
from loguru import logger


@pytest.fixture
def cli_env(tmp_path_factory, monkeypatch):
    """Point the CLI at an empty home directory so no user config is read."""
    home = tmp_path_factory.mktemp("taskmark-home")
    monkeypatch.setenv("TASKMARK_HOME", str(home))
    monkeypatch.delenv("TASKMARK_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TASKMARK_LOG_FILE", raising=False)
    yield home
    # The CLI binds a stderr sink to the runner's stream
    logger.remove()
