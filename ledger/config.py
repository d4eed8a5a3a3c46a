"""Runtime settings: an optional YAML file with DRIVELEDGER_* environment overrides."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "DRIVELEDGER_"
DEFAULT_CONFIG_FILE = "driveledger.yaml"


@dataclass
class Settings:
    store_path: str = "ledger.yaml"
    attachments_dir: str = "."
    cooldown_path: Optional[str] = "cooldowns.yaml"
    log_level: str = "INFO"
    secret_key: str = "dev-secret-key-change-in-prod"


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Build settings from defaults, then ``path`` (or ./driveledger.yaml if it
    exists), then environment variables such as DRIVELEDGER_STORE_PATH.

    Unknown keys in the file are ignored with a warning.
    """
    values = {}

    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    if config_path.exists():
        with open(config_path, "r") as fp:
            data = yaml.safe_load(fp) or {}
        known = {f.name for f in fields(Settings)}
        for key, value in data.items():
            if key in known:
                values[key] = value
            else:
                logger.warning("Ignoring unknown setting %r in %s", key, config_path)
    elif path:
        logger.warning("Config file %s not found, using defaults", config_path)

    for f in fields(Settings):
        env_value = os.environ.get(ENV_PREFIX + f.name.upper())
        if env_value is not None:
            values[f.name] = env_value

    return Settings(**values)
