"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class StorageConfig:
    # Base directory holding cached clones of external repositories
    base: Path | None = field(default_factory=lambda: Path.home() / ".gitsocial" / "storage")


@dataclass
class ThreadConfig:
    sort: str = "top"
    max_parents: int = 5
    max_children: int = 50
    max_depth: int = 8


@dataclass
class TypesenseConfig:
    host: str = "localhost"
    port: int = 8108
    protocol: str = "http"
    api_key: str = "dev-api-key"


@dataclass
class Config:
    log_dir: Path = field(default_factory=lambda: Path.home() / ".gitsocial" / "logs")
    default_scope: str = "repository:my"
    storage: StorageConfig = field(default_factory=StorageConfig)
    thread: ThreadConfig = field(default_factory=ThreadConfig)
    typesense: TypesenseConfig = field(default_factory=TypesenseConfig)


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, value)
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "gitsocial" / "config.yaml",
            Path("/etc/gitsocial/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    storage_data = data.get("storage", {})
    storage_base = storage_data.get("base", "~/.gitsocial/storage")
    storage = StorageConfig(base=expand_path(storage_base) if storage_base else None)

    thread_data = data.get("thread", {})
    thread = ThreadConfig(
        sort=thread_data.get("sort", "top"),
        max_parents=thread_data.get("max_parents", 5),
        max_children=thread_data.get("max_children", 50),
        max_depth=thread_data.get("max_depth", 8),
    )

    ts_data = data.get("typesense", {})
    typesense = TypesenseConfig(
        host=ts_data.get("host", "localhost"),
        port=ts_data.get("port", 8108),
        protocol=ts_data.get("protocol", "http"),
        api_key=expand_env_var(ts_data.get("api_key", "dev-api-key")),
    )

    return Config(
        log_dir=expand_path(data.get("log_dir", "~/.gitsocial/logs")),
        default_scope=data.get("default_scope", "repository:my"),
        storage=storage,
        thread=thread,
        typesense=typesense,
    )
