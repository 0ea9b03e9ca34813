"""Runtime settings, read from an optional YAML file and the command line."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from benchwatch.errors import ConfigurationError
from benchwatch.models.scm import RepositoryRef
from benchwatch.pipeline.sandbox import DEFAULT_SHM_SIZE_GB

DEFAULT_BASE_IMAGE = "ocaml/opam2"

_PATH_KEYS = {"output_file", "slack_path", "workspace", "tmp_dir"}
_INT_KEYS = {"docker_cpu", "docker_numa_node", "docker_shm_size", "port"}


@dataclass(frozen=True)
class Settings:
    repo: RepositoryRef
    output_file: Optional[Path] = None
    slack_path: Optional[Path] = None
    docker_cpu: Optional[int] = None
    docker_numa_node: Optional[int] = None
    docker_shm_size: int = DEFAULT_SHM_SIZE_GB
    base_image: str = DEFAULT_BASE_IMAGE
    workspace: Path = Path("var")
    tmp_dir: Optional[Path] = None
    github_token: Optional[str] = None
    webhook_secret: Optional[str] = None
    poll_interval_s: float = 300.0
    host: str = "127.0.0.1"
    port: int = 8080

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every override that is not ``None`` applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot load config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key in _PATH_KEYS:
        return Path(str(value)).expanduser()
    if key in _INT_KEYS:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Config key {key!r} must be an integer") from exc
    if key == "poll_interval_s":
        return float(value)
    return value


def load_settings(repo: str | RepositoryRef, config_path: Path | None = None, **overrides: Any) -> Settings:
    """Build settings from ``config_path`` (if any) then ``overrides``.

    Unknown keys in the file are rejected. Paths are not checked here; a bad
    path fails when the pipeline first uses it.
    """
    repo_ref = repo if isinstance(repo, RepositoryRef) else RepositoryRef.parse(repo)
    settings = Settings(repo=repo_ref)
    if config_path is not None:
        known = {field.name for field in fields(Settings)} - {"repo"}
        data = _load_yaml(config_path)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")
        settings = settings.with_overrides(**{key: _coerce(key, value) for key, value in data.items()})
    return settings.with_overrides(**overrides)
