import pytest

from core import config
from core.config import load_departments, load_settings
from core.errors import ConfigError

ENV = {
    "STAFFBASE_BASE_URL": "https://staffbase.test/api/",
    "STAFFBASE_TOKEN": "Basic secret",
    "STAFFBASE_SPACE_ID": "space1",
    "HIDDEN_ATTRIBUTE_KEY": "storeId",
}


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    for key in list(ENV) + ["STAFFBASE_TASKS_INSTALLATION_ID", "PAGE_SIZE", "STAFFBASE_TIMEOUT", "PORT"]:
        monkeypatch.delenv(key, raising=False)
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


def test_load_settings_from_environment(env):
    env.setenv("PAGE_SIZE", "50")

    settings = load_settings()

    assert settings.base_url == "https://staffbase.test/api"
    assert settings.space_id == "space1"
    assert settings.page_size == 50
    assert settings.tasks_installation_id is None
    assert settings.timeout == 60.0


def test_missing_required_variable(env):
    env.delenv("STAFFBASE_TOKEN")

    with pytest.raises(ConfigError, match="STAFFBASE_TOKEN"):
        load_settings()


def test_invalid_integer(env):
    env.setenv("PAGE_SIZE", "lots")

    with pytest.raises(ConfigError, match="PAGE_SIZE"):
        load_settings()


def test_load_departments(settings, tmp_path):
    assert "Operations" in load_departments(settings.departments_file)

    plain_list = tmp_path / "departments.yaml"
    plain_list.write_text("- Sales\n- ' Support '\n")
    assert load_departments(str(plain_list)) == ["Sales", "Support"]

    assert load_departments(str(tmp_path / "missing.yaml")) == []
