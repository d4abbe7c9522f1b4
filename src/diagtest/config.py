"""Configuration management for diagtest."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from diagtest.models import HarnessConfig

CONFIG_FILE = "diagtest.yaml"

# Relative to the working directory, nearest last.
SEARCH_PATH = ("../../../test", "../../test", "../test", "test", ".")


class ConfigurationError(Exception):
    """Raised for unusable configuration: bad options, missing fixture root."""


def _config_path(project_root: Path) -> Path:
    return project_root / CONFIG_FILE


def save_config(config: HarnessConfig, project_root: Path) -> Path:
    """Save config to diagtest.yaml. Returns the config path."""
    path = _config_path(project_root)
    data: dict[str, Any] = {
        "suite": config.suite,
        "header": config.header,
        "editor": config.editor,
        "formatted": config.formatted,
        "analyzer": config.analyzer,
        "analyzer_command": config.analyzer_command,
    }
    if config.test_path is not None:
        data["test_path"] = str(config.test_path)
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


def load_config(project_root: Path) -> HarnessConfig:
    """Load diagtest.yaml if present; defaults otherwise."""
    path = _config_path(project_root)
    config = HarnessConfig()
    if not path.exists():
        return config

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return config
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config format in {path}: expected mapping")

    unknown = set(data) - {
        "test_path", "suite", "header", "editor", "formatted", "analyzer", "analyzer_command",
    }
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")

    for key in ("test_path", "editor", "analyzer", "analyzer_command"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ConfigurationError(f"{path}: '{key}' must be a string")
    for key in ("suite", "header"):
        if key in data and not isinstance(data[key], str):
            raise ConfigurationError(f"{path}: '{key}' must be a string")
    if "formatted" in data and not isinstance(data["formatted"], bool):
        raise ConfigurationError(f"{path}: 'formatted' must be true or false")

    test_path = data.get("test_path")
    return HarnessConfig(
        test_path=Path(test_path) if test_path else None,
        suite=data.get("suite", config.suite),
        header=data.get("header", config.header),
        editor=data.get("editor") or config.editor,
        formatted=data.get("formatted", config.formatted),
        analyzer=data.get("analyzer"),
        analyzer_command=data.get("analyzer_command"),
    )


def apply_overrides(config: HarnessConfig, **overrides: Any) -> HarnessConfig:
    """Return a copy of config with every non-None override applied."""
    values = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **values)


def find_test_path(cwd: Path, suite: str) -> Path | None:
    """Search the usual locations around cwd for a directory containing the suite."""
    for candidate in SEARCH_PATH:
        base = cwd / candidate
        if (base / suite).is_dir():
            return base
    return None


def resolve_suite(config: HarnessConfig, cwd: Path) -> tuple[Path, Path]:
    """Return (base path, relative suite path) for the fixture tree.

    Raises ConfigurationError if the suite directory does not exist.
    """
    test_path = config.test_path or find_test_path(cwd, config.suite)
    if test_path is None or not (test_path / config.suite).is_dir():
        raise ConfigurationError("Test path not found. Use the --testpath argument.")
    suite = Path(config.suite)
    return test_path / suite.parent, Path(suite.name)
