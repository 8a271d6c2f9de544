"""
Configuration file loading for ralphloop.

Loads .ralphloop.yaml from the project root or home directory.
Values there provide loop defaults; anything set on a LoopConfig wins.

Example file:

    project:
      name: my-service
    loop:
      completion_promise: RALPH_DONE
      max_iterations: 15
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger("ralphloop.core.config")

CONFIG_FILE_NAME = ".ralphloop.yaml"

DEFAULT_COMPLETION_PROMISE = "TASK COMPLETE"
DEFAULT_MAX_ITERATIONS = 10


@dataclass(frozen=True)
class LoopDefaults:
    """Loop defaults applied to unset LoopConfig fields."""
    completion_promise: str = DEFAULT_COMPLETION_PROMISE
    max_iterations: int = DEFAULT_MAX_ITERATIONS


@dataclass
class Config:
    """Loaded configuration."""
    project_name: str = ""
    loop: LoopDefaults = field(default_factory=LoopDefaults)
    source_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: dict, source_path: Optional[Path] = None) -> "Config":
        """Create Config from parsed YAML dict.

        Invalid loop values are ignored with a warning.
        """
        config = cls(source_path=source_path)

        if "project" in data and isinstance(data["project"], dict):
            config.project_name = data["project"].get("name", "") or ""

        if "loop" in data and isinstance(data["loop"], dict):
            loop = data["loop"]
            promise = loop.get("completion_promise", config.loop.completion_promise)
            if not isinstance(promise, str) or not promise:
                logger.warning(f"Ignoring invalid completion_promise in {source_path}: {promise!r}")
                promise = config.loop.completion_promise

            max_iterations = loop.get("max_iterations", config.loop.max_iterations)
            if (
                isinstance(max_iterations, bool)
                or not isinstance(max_iterations, int)
                or max_iterations < 1
            ):
                logger.warning(
                    f"Ignoring invalid max_iterations in {source_path}: {max_iterations!r}"
                )
                max_iterations = config.loop.max_iterations

            config.loop = LoopDefaults(
                completion_promise=promise,
                max_iterations=max_iterations,
            )

        return config


# Global cached config
_cached_config: Optional[Config] = None


def load_config(path: Optional[Path] = None, use_cache: bool = True) -> Config:
    """Load .ralphloop.yaml from project root or home.

    Search order:
    1. Explicit path if provided
    2. .ralphloop.yaml in current directory
    3. .ralphloop.yaml in parent directories (up to git root or /)
    4. ~/.ralphloop.yaml in home directory

    Returns:
        Loaded Config, or default Config if no file found
    """
    global _cached_config

    if use_cache and _cached_config is not None:
        return _cached_config

    config_path = None

    if path and path.exists():
        config_path = path
    else:
        search_dir = Path.cwd()
        while search_dir != search_dir.parent:
            candidate = search_dir / CONFIG_FILE_NAME
            if candidate.exists():
                config_path = candidate
                break
            if (search_dir / ".git").exists():
                break
            search_dir = search_dir.parent

        if config_path is None:
            home_config = Path.home() / CONFIG_FILE_NAME
            if home_config.exists():
                config_path = home_config

    if config_path is None:
        config = Config()
    else:
        try:
            data = yaml.safe_load(config_path.read_text())
            if not isinstance(data, dict):
                data = {}
            config = Config.from_dict(data, source_path=config_path)
        except (yaml.YAMLError, OSError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            config = Config()

    if use_cache:
        _cached_config = config

    return config


def clear_config_cache() -> None:
    """Clear the cached config (useful for testing)."""
    global _cached_config
    _cached_config = None
