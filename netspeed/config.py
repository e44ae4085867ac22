import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml
from dacite import Config, DaciteError, from_dict

from netspeed.util import system
from netspeed.util.errors import ConfigError
from netspeed.util.network import DEFAULT_IGNORED_PREFIXES, PROC_NET_DEV

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3


@dataclass
class Configuration:
    debug: bool = False
    icon: bool = False
    ignored_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORED_PREFIXES)
    )
    interval: int = DEFAULT_INTERVAL
    path: str = PROC_NET_DEV


def default_config_file() -> Path:
    return system.get_config_directory() / "config.yaml"


def validate(configuration: Configuration) -> Configuration:
    if configuration.interval < 1:
        raise ConfigError(
            f"interval must be a positive number of seconds, got {configuration.interval}"
        )

    if not configuration.path:
        raise ConfigError("path must not be empty")

    return configuration


def load_yaml(input: Path | None = None) -> Configuration:
    """
    Load the configuration from a YAML file. When no file is given the
    default location is used, and a missing default file means defaults.
    """
    explicit = input is not None
    if input is None:
        input = default_config_file()

    if not input.exists():
        if explicit:
            raise ConfigError(f'yaml file "{input}" doesn\'t exist')
        logger.debug(f'no config file at "{input}", using defaults')
        return Configuration()

    try:
        with open(input, "r") as f:
            yaml_data = cast(dict[str, object] | None, yaml.safe_load(f))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f'Failed to parse the YAML file "{input}": {e}') from e

    if yaml_data is None:
        return Configuration()

    if not isinstance(yaml_data, dict):
        raise ConfigError(f'"{input}" must contain a mapping')

    try:
        configuration = from_dict(
            data_class=Configuration,
            data=yaml_data,
            config=Config(cast=[str, int], strict=True),
        )
    except (DaciteError, TypeError, ValueError) as e:
        raise ConfigError(f'Invalid configuration in "{input}": {e}') from e

    return validate(configuration)
