"""Shared configuration for notionboard."""

import json
import os
import shlex
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_data_dir

DATA_DIR = Path(user_data_dir("notionboard"))
CONFIG_FILE = DATA_DIR / "config.json"
LOG_FILE = DATA_DIR / "notionboard.log"

TOKEN_ENV = "NOTION_TOKEN"
DATABASE_ENV = "NOTION_DATABASE_ID"
EDITOR_ENVS = ("EDITOR", "VISUAL")
DEFAULT_EDITOR = "nano"


class ConfigError(Exception):
    """Raised when required settings are missing."""

    pass


@dataclass
class Settings:
    """Resolved settings needed to talk to Notion."""

    token: str
    database_id: str


def load_config() -> dict[str, str]:
    """Load user config from config.json.

    Returns:
        Config dict, empty if file doesn't exist.
    """
    if not CONFIG_FILE.exists():
        return {}
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (json.JSONDecodeError, OSError):
        return {}


def save_config(config: dict[str, str]) -> None:
    """Save user config to config.json.

    Args:
        config: Config dict to save.
    """
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    tmp = CONFIG_FILE.with_suffix(".tmp")
    tmp.write_text(json.dumps(config, indent=2) + "\n")
    tmp.replace(CONFIG_FILE)


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Resolve the Notion token and database ID.

    Environment variables win over config.json values.

    Raises:
        ConfigError: If either value is missing, naming every missing one.
    """
    env = os.environ if environ is None else environ
    config = load_config()
    token = env.get(TOKEN_ENV) or config.get("token", "")
    database_id = env.get(DATABASE_ENV) or config.get("database_id", "")

    missing = []
    if not token:
        missing.append(TOKEN_ENV)
    if not database_id:
        missing.append(DATABASE_ENV)
    if missing:
        raise ConfigError(f"{' and '.join(missing)} not set")
    return Settings(token=token, database_id=database_id)


def resolve_editor(environ: dict[str, str] | None = None) -> list[str]:
    """Return the editor command as an argv list.

    Checks $EDITOR, then $VISUAL, then the "editor" config value, then nano.
    """
    env = os.environ if environ is None else environ
    for name in EDITOR_ENVS:
        if env.get(name, "").strip():
            return shlex.split(env[name])
    configured = load_config().get("editor", "")
    if configured.strip():
        return shlex.split(configured)
    return [DEFAULT_EDITOR]
