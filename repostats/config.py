"""Settings from an optional YAML file, the environment and the command line."""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_REPOS_PATH = "~/.perceval/repositories"
DEFAULT_CACHE_PATH = "~/.perceval/cache"

# Environment variables; any non-empty value switches a flag on
ENV_REPOS_PATH = "DA_GIT_REPOS_PATH"
ENV_CACHE_PATH = "DA_GIT_CACHE_PATH"
ENV_SKIP_CLEANUP = "SKIP_CLEANUP"
ENV_VERBOSE = "GITOPS_VERBOSE"
ENV_FOLLOW_HIERARCHY = "GITOPS_FOLLOW_HIERARCHY"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be used."""


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration."""

    repos_path: Path
    cache_path: Path
    cache_file_name: str = "stats.json"
    follow_hierarchy: bool = False
    verbose: bool = False
    skip_cleanup: bool = False
    force_cleanup: bool = False
    cleanup_threshold_mb: float = 200.0

    def organization_cache_dir(self, organization: str) -> Path:
        return self.cache_path / organization


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the root")
    return data


def _from_file(data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    paths = data.get("paths") or {}
    cleanup = data.get("cleanup") or {}
    if not isinstance(paths, dict) or not isinstance(cleanup, dict):
        raise ConfigError("'paths' and 'cleanup' must be mappings")
    if paths.get("repos"):
        values["repos_path"] = paths["repos"]
    if paths.get("cache"):
        values["cache_path"] = paths["cache"]

    for key in ("follow_hierarchy", "verbose"):
        if key in data:
            values[key] = bool(data[key])
    if data.get("cache_file_name"):
        values["cache_file_name"] = str(data["cache_file_name"])

    if "skip" in cleanup:
        values["skip_cleanup"] = bool(cleanup["skip"])
    if "force" in cleanup:
        values["force_cleanup"] = bool(cleanup["force"])
    if "threshold_mb" in cleanup:
        try:
            values["cleanup_threshold_mb"] = float(cleanup["threshold_mb"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"cleanup.threshold_mb must be a number: {e}") from e
    return values


def _from_env(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if env.get(ENV_REPOS_PATH):
        values["repos_path"] = env[ENV_REPOS_PATH]
    if env.get(ENV_CACHE_PATH):
        values["cache_path"] = env[ENV_CACHE_PATH]
    if env.get(ENV_SKIP_CLEANUP):
        values["skip_cleanup"] = True
    if env.get(ENV_VERBOSE):
        values["verbose"] = True
    if env.get(ENV_FOLLOW_HIERARCHY):
        values["follow_hierarchy"] = True
    return values


def load_settings(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> Settings:
    """Build Settings from defaults, then the file, then env, then overrides.

    Overrides set to None are ignored so unset CLI flags fall through.
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {
        "repos_path": DEFAULT_REPOS_PATH,
        "cache_path": DEFAULT_CACHE_PATH,
    }
    if config_path is not None:
        values.update(_from_file(load_config(Path(config_path))))
    values.update(_from_env(env))

    known = {f.name for f in fields(Settings)}
    for key, value in overrides.items():
        if key not in known:
            raise TypeError(f"unknown setting: {key}")
        if value is not None:
            values[key] = value

    settings = Settings(
        repos_path=_expand(values.pop("repos_path"), env),
        cache_path=_expand(values.pop("cache_path"), env),
    )
    return replace(settings, **values)


def _expand(value: str | Path, env: Mapping[str, str]) -> Path:
    path = str(value)
    if (path == "~" or path.startswith("~/")) and env.get("HOME"):
        path = env["HOME"] + path[1:]
    return Path(path).expanduser()
