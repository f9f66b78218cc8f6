"""
codepath.config - Configuration loading and defaults

Configuration lives in ``.codepath.toml`` at the workspace root. An
optional ``.codepath.local.toml`` beside it is deep-merged on top, and
``CODEPATH_<SECTION>_<KEY>`` environment variables override both.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

CONFIG_FILE_NAME = ".codepath.toml"
LOCAL_CONFIG_FILE_NAME = ".codepath.local.toml"
ENV_PREFIX = "CODEPATH_"

DEFAULT_CONFIG: dict[str, Any] = {
    "storage": {
        "directory": ".codepath",
    },
    "tracking": {
        "search_radius": 20,
        "fuzzy_threshold": 0.8,
        "multiline_span": 8,
        "hash_length": 16,
        "validate_on_load": True,
    },
    "editor": {
        "command": "",
        "directory_command": "",
    },
}


def parse_toml_document(text: str) -> tomlkit.TOMLDocument:
    """Parse TOML text, keeping formatting for round-trip writes.

    Raises:
        ValueError: If the text is not valid TOML.
    """
    try:
        return tomlkit.parse(text)
    except TOMLKitError as e:
        raise ValueError(f"Invalid TOML: {e}") from e


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge override into a copy of base.

    Nested tables merge key by key; any other value in override replaces
    the base value.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _try_parse_env_value(value: str) -> Any:
    """Interpret an environment value.

    ``true``/``false`` become booleans, JSON arrays and objects are
    parsed, numbers become int/float, and anything else (including
    malformed JSON) is returned unchanged.
    """
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    stripped = value.strip()
    if stripped.startswith(("[", "{")):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            return value
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return value


def _apply_env_overrides(data: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    """Apply CODEPATH_<SECTION>_<KEY> overrides for known sections."""
    result = copy.deepcopy(data)
    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        rest = name[len(ENV_PREFIX) :].lower()
        section, _, key = rest.partition("_")
        if not key:
            continue
        if not isinstance(result.get(section), dict):
            continue
        result[section][key] = _try_parse_env_value(raw)
    return result


class ConfigLoader:
    """Read-only view over merged configuration data with dotted-key access."""

    def __init__(
        self, data: dict[str, Any], path: Path | None = None, root: Path | None = None
    ) -> None:
        self._data = data
        self.path = path
        self._root = root

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigLoader:
        return cls(copy.deepcopy(data))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key (e.g. ``"tracking.search_radius"``)."""
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    @property
    def workspace_root(self) -> Path:
        """Directory holding the config file (the search start or cwd when none was found)."""
        if self._root is not None:
            return self._root
        return self.path.parent if self.path is not None else Path.cwd()


def find_git_root(start: Path) -> Path | None:
    """Return the nearest ancestor (or start) containing a ``.git`` entry."""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def find_config_file(start: Path | None = None) -> Path | None:
    """Find ``.codepath.toml`` by walking up from start.

    The search stops at the git root when inside a repository.
    """
    current = (start or Path.cwd()).resolve()
    git_root = find_git_root(current)
    for candidate in (current, *current.parents):
        config_path = candidate / CONFIG_FILE_NAME
        if config_path.is_file():
            return config_path
        if git_root is not None and candidate == git_root:
            break
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    return parse_toml_document(path.read_text(encoding="utf-8")).unwrap()


def load_config(
    config_path: Path | None = None,
    start: Path | None = None,
    environ: dict[str, str] | None = None,
) -> ConfigLoader:
    """Load configuration with defaults, local overrides and env overrides.

    Args:
        config_path: Explicit config file; discovered from start when None.
        start: Directory to start discovery from (default: cwd).
        environ: Environment mapping (default: os.environ).

    Returns:
        ConfigLoader over the merged configuration.

    Raises:
        ValueError: If a config file is not valid TOML.
    """
    path = config_path if config_path is not None else find_config_file(start)
    data = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None and path.is_file():
        data = merge_configs(data, _read_toml(path))
        local_path = path.parent / LOCAL_CONFIG_FILE_NAME
        if local_path.is_file():
            data = merge_configs(data, _read_toml(local_path))

    data = _apply_env_overrides(data, dict(os.environ if environ is None else environ))
    root = path.parent if path is not None else (start or Path.cwd())
    return ConfigLoader(data, path, root=root)


def write_default_config(directory: Path, force: bool = False) -> Path:
    """Write a commented default ``.codepath.toml`` into directory.

    Raises:
        FileExistsError: If the file already exists and force is False.
    """
    path = directory / CONFIG_FILE_NAME
    if path.exists() and not force:
        raise FileExistsError(f"{path} already exists")

    doc = tomlkit.document()
    doc.add(tomlkit.comment("codepath configuration"))
    for section, values in DEFAULT_CONFIG.items():
        table = tomlkit.table()
        for key, value in values.items():
            table.add(key, value)
        doc.add(section, table)
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")
    return path


__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CONFIG",
    "ConfigLoader",
    "find_config_file",
    "find_git_root",
    "load_config",
    "merge_configs",
    "parse_toml_document",
    "write_default_config",
]
