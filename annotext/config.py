"""Runtime settings loaded from YAML and the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from attrs import define, field, fields

from annotext.logging_utils import DEFAULT_CAPACITY

CONFIG_FILE_NAME = "annotext.yaml"
DEFAULT_ANNOTATIONS_DIR = ".annotext/annotations"

# Environment variables and the setting each one overrides.
ENV_VARS = {
    "ANNOTEXT_VAULT": "vault_root",
    "ANNOTEXT_ANNOTATIONS_DIR": "annotations_dir",
    "ANNOTEXT_LOG_CAPACITY": "log_capacity",
}


@define(slots=True)
class Settings:
    """Settings shared by the service and the command line.

    Attributes:
        vault_root: Directory holding the annotated documents. Document
            paths are resolved relative to it.
        annotations_dir: Folder, relative to ``vault_root``, where the
            ``.annotations`` files are stored.
        log_capacity: Number of log records kept in memory.
    """

    vault_root: Path = field(factory=Path.cwd, converter=Path)
    annotations_dir: str = DEFAULT_ANNOTATIONS_DIR
    log_capacity: int = field(default=DEFAULT_CAPACITY, converter=int)


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read settings from a YAML file.

    Args:
        path: Location of the YAML file.

    Returns:
        Mapping of setting names to values. Missing files yield an empty
        mapping.
    """

    if not path.is_file():
        return {}

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of settings")

    # Ignore keys that are not settings.
    known = {a.name for a in fields(Settings)}
    return {k: v for k, v in data.items() if k in known}


def load_settings(
    config_path: Path | None = None, vault_root: Path | None = None
) -> Settings:
    """Build settings from a YAML file and environment variables.

    Environment variables take precedence over the file; an explicit
    ``vault_root`` takes precedence over both.

    Args:
        config_path: YAML file to read. Defaults to ``annotext.yaml``
            inside the vault root.
        vault_root: Vault directory chosen by the caller.

    Returns:
        The resolved settings.
    """

    values: dict[str, Any] = {}

    # The vault location decides where the default config file lives.
    root = vault_root or os.environ.get("ANNOTEXT_VAULT") or Path.cwd()
    config_path = config_path or Path(root) / CONFIG_FILE_NAME
    values.update(_read_config_file(config_path))

    for env_name, setting in ENV_VARS.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[setting] = env_value

    if vault_root is not None:
        values["vault_root"] = vault_root

    return Settings(**values)
