from pathlib import Path

import pytest

from core.config import Settings
from fakes import FakeStaffbaseClient

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def settings():
    return Settings(
        base_url="https://staffbase.test/api",
        token="Basic secret",
        space_id="space1",
        hidden_attribute_key="storeId",
        tasks_installation_id="tasks-default",
        departments_file=str(REPO_ROOT / "data" / "departments.yaml"),
    )


@pytest.fixture
def fake_client():
    return FakeStaffbaseClient()
