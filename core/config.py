import os
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from core.errors import ConfigError
from core.logging_config import logger

REQUIRED_ENV_VARS = (
    "STAFFBASE_BASE_URL",
    "STAFFBASE_TOKEN",
    "STAFFBASE_SPACE_ID",
    "HIDDEN_ATTRIBUTE_KEY",
)


class Settings(BaseModel):
    base_url: str
    token: str
    space_id: str
    hidden_attribute_key: str
    tasks_installation_id: Optional[str] = None
    timeout: float = 60.0
    page_size: int = 100
    request_log_size: int = 50
    departments_file: str = "data/departments.yaml"
    port: int = 3000


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Environment variable {name} must be an integer, got {raw!r}")


def load_settings() -> Settings:
    """
    Build Settings from the environment (and a .env file if present).
    Raises ConfigError naming the first missing required variable.
    """
    load_dotenv()

    for env_var in REQUIRED_ENV_VARS:
        if not os.getenv(env_var):
            raise ConfigError(f"Missing required environment variable: {env_var}")

    timeout_raw = os.getenv("STAFFBASE_TIMEOUT", "60")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ConfigError(f"Environment variable STAFFBASE_TIMEOUT must be a number, got {timeout_raw!r}")

    return Settings(
        base_url=os.getenv("STAFFBASE_BASE_URL").rstrip("/"),
        token=os.getenv("STAFFBASE_TOKEN"),
        space_id=os.getenv("STAFFBASE_SPACE_ID"),
        hidden_attribute_key=os.getenv("HIDDEN_ATTRIBUTE_KEY"),
        tasks_installation_id=os.getenv("STAFFBASE_TASKS_INSTALLATION_ID") or None,
        timeout=timeout,
        page_size=_int_env("PAGE_SIZE", 100),
        request_log_size=_int_env("REQUEST_LOG_SIZE", 50),
        departments_file=os.getenv("DEPARTMENTS_FILE", "data/departments.yaml"),
        port=_int_env("PORT", 3000),
    )


def load_departments(file_path: str) -> List[str]:
    """Department names from the YAML file; empty list if it cannot be read."""
    try:
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)
    except Exception as e:
        logger.warning(f"Could not load {file_path}: {e}")
        return []

    if isinstance(data, dict):
        data = data.get("departments", [])
    if not isinstance(data, list):
        logger.warning(f"Unexpected departments format in {file_path}: {type(data).__name__}")
        return []
    return [str(d).strip() for d in data if str(d).strip()]
