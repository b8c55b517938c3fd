"""
Integration test fixtures for the checklist.

Provides fixtures specific to integration testing:
- A configuration file on disk for the CLI
- Reopening the application on the same database, as after a restart
"""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import yaml

from checklist.app import ChecklistApp, build_app


@pytest.fixture
def config_file(tmp_path: Path, app_config: dict) -> Path:
    """Write the sample configuration to a YAML file."""
    path = tmp_path / "checklist.yaml"
    path.write_text(yaml.safe_dump(app_config, sort_keys=False))
    return path


@pytest.fixture
def reopen(temp_db, clock, app_config, presenter) -> Generator[Callable[..., ChecklistApp], None, None]:
    """Build another application on the fixture database.

    Every app built here is closed when the test finishes.
    """
    opened: list[ChecklistApp] = []

    def _reopen(config: dict | None = None) -> ChecklistApp:
        checklist_app = build_app(
            config=config or app_config,
            db_path=temp_db,
            clock=clock,
            presenter=presenter,
        )
        opened.append(checklist_app)
        return checklist_app

    yield _reopen

    for checklist_app in opened:
        checklist_app.close()
