"""Process configuration for CongressIQ.

Two layers:
    - ``Settings``: endpoints and credentials read once from the environment
      at process start. Missing required values raise ``ConfigurationError``
      and the process does not start.
    - ``load_config()``: tunables (retry, ingestion, search, translation) from
      ``config/congressiq_config.json``. Every key is optional; consumers fall
      back to their module-level defaults.

Settings are built once at wiring time and passed to the components that
need them; nothing here holds a client or connection.
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from congressiq.paths import APP_CONFIG_PATH

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = (
    "CONGRESS_API_BASE_URL",
    "CONGRESS_API_KEY",
    "ELASTICSEARCH_URL",
    "ELASTICSEARCH_API_KEY",
)

DEFAULT_TRANSLATION_API_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_TRANSLATION_MODEL = "deepseek/deepseek-chat-v3-0324:free"


class ConfigurationError(Exception):
    """Raised when required startup configuration is missing or invalid.

    Attributes:
        missing: Names of the environment variables that were not set.
    """

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        self.missing = missing
        super().__init__(message)


@dataclass(frozen=True)
class Settings:
    """Immutable endpoint and credential configuration."""

    congress_api_base_url: str
    congress_api_key: str
    elasticsearch_url: str
    elasticsearch_api_key: str
    elasticsearch_verify_certs: bool = True
    translation_api_url: str = DEFAULT_TRANSLATION_API_URL
    translation_api_key: str = ""
    translation_model: str = DEFAULT_TRANSLATION_MODEL


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Raises:
        ConfigurationError: If any of REQUIRED_ENV_VARS is unset or blank.
    """
    env = os.environ if environ is None else environ
    missing = tuple(name for name in REQUIRED_ENV_VARS if not env.get(name, "").strip())
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )

    return Settings(
        congress_api_base_url=env["CONGRESS_API_BASE_URL"].strip().rstrip("/"),
        congress_api_key=env["CONGRESS_API_KEY"].strip(),
        elasticsearch_url=env["ELASTICSEARCH_URL"].strip(),
        elasticsearch_api_key=env["ELASTICSEARCH_API_KEY"].strip(),
        elasticsearch_verify_certs=_parse_bool(env.get("ELASTICSEARCH_VERIFY_CERTS", "true")),
        translation_api_url=env.get("TRANSLATION_API_URL", "").strip() or DEFAULT_TRANSLATION_API_URL,
        translation_api_key=env.get("TRANSLATION_API_KEY", "").strip(),
        translation_model=env.get("TRANSLATION_MODEL", "").strip() or DEFAULT_TRANSLATION_MODEL,
    )


def load_config(path: Path | None = None) -> dict:
    """Load tunables from the JSON config file.

    A missing file yields an empty dict so every component runs on its
    defaults. A malformed file is a startup error.
    """
    config_path = path or APP_CONFIG_PATH
    if not config_path.exists():
        logger.warning("Config file %s not found, using defaults", config_path)
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a JSON object")
    return data
