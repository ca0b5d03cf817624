"""Configuration loader for hatch assembly."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from common.config import ConfigSingleton, find_config_path, load_yaml

CONFIG_DIR = Path(__file__).parent / "configs"


@dataclass
class StorageConfig:
    backend: str = "local"  # "local" or "s3"
    local_path: str = "."
    bucket: Optional[str] = None
    prefix: str = "hatches"


@dataclass
class HatchConfig:
    name: str = "libingester"
    language: str = "en"
    path: Optional[str] = None
    archive: bool = True
    failure_threshold: float = 0.9
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_config(config_name: str | None = None) -> HatchConfig:
    """Load configuration from a YAML file in the package configs directory.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses CONFIG_ENV env var or "default".

    Returns:
        Loaded HatchConfig object
    """
    config_path = find_config_path(config_name, CONFIG_DIR, default_name="default", env_var="CONFIG_ENV")
    return load_config_file(config_path)


def load_config_file(path: str | Path) -> HatchConfig:
    """Load configuration from an explicit YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return parse_config(load_yaml(path))


def parse_config(data: dict) -> HatchConfig:
    """Parse config dictionary into HatchConfig object."""
    storage_data = data.get("storage", {}) or {}
    storage = StorageConfig(
        backend=storage_data.get("backend", "local"),
        local_path=storage_data.get("local_path", "."),
        bucket=storage_data.get("bucket"),
        prefix=storage_data.get("prefix", "hatches"),
    )

    failure_threshold = float(data.get("failure_threshold", 0.9))
    if not 0.0 <= failure_threshold <= 1.0:
        raise ValueError(f"failure_threshold must be between 0 and 1, got {failure_threshold}")

    return HatchConfig(
        name=data.get("name", "libingester"),
        language=data.get("language", "en"),
        path=data.get("path"),
        archive=data.get("archive", True),
        failure_threshold=failure_threshold,
        storage=storage,
    )


_manager = ConfigSingleton(load_config)
get_config = _manager.get
set_config = _manager.set
reset_config = _manager.reset
