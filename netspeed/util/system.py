import os
from pathlib import Path

from netspeed.util.errors import ConfigError


def get_cache_directory() -> Path:
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        cache_dir = Path(xdg_cache) / "netspeed"
    else:
        cache_dir = Path.home() / ".cache/netspeed"

    if not os.path.exists(cache_dir):
        try:
            os.makedirs(cache_dir, mode=0o700)
        except OSError as e:
            raise ConfigError(f'Couldn\'t create "{cache_dir}": {e}') from e

    return cache_dir


def get_config_directory() -> Path:
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "netspeed"

    return Path.home() / ".config/netspeed"
