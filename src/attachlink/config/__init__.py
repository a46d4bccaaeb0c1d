"""Settings file handling for attachlink."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, NamedTuple

import yaml

from .exceptions import ConfigError
from .layers import (
    ENV_PREFIX,
    Layer,
    build_config,
    cli_layer,
    env_layer,
    file_layer,
    lookup,
    setting_keys,
    split_key,
)
from .models import AttachlinkConfig

DEFAULT_CONFIG_PATH = Path("~/.attachlink/config.yaml")
_HEADER = (
    "# attachlink settings\n"
    "# Change values with `attachlink config set SECTION.FIELD VALUE`\n"
    "# or `attachlink config edit`.\n"
)
_DIRECTORY_KEYS = {("attachments", "base_attachment_path")}


class SettingRow(NamedTuple):
    """Effective value of one setting and the layer it came from."""

    key: str
    value: Any
    source: str


class ConfigManager:
    """Read and update the attachlink settings file.

    Effective settings are the defaults overridden by the file, then by
    ``ATTACHLINK__SECTION__FIELD`` environment variables, then by command-line
    overrides.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
    ) -> AttachlinkConfig:
        """Return the effective settings.

        Args:
            cli_overrides: ``{"section.field": value}`` overrides with the highest precedence.
            include_env: Whether environment variables participate.

        Returns:
            AttachlinkConfig: Validated settings.

        Raises:
            ConfigError: If any layer holds an unknown key or an invalid value.
        """
        return build_config(
            self.read_file_layer(),
            env_layer(self._env) if include_env else None,
            cli_layer(cli_overrides) if cli_overrides else None,
        )

    def describe(self, *, include_env: bool = True) -> list[SettingRow]:
        """List every setting with its effective value and the layer that set it."""
        stored = self.read_file_layer()
        environment: Layer = env_layer(self._env) if include_env else {}
        config = build_config(stored, environment)
        from_file = build_config(stored)
        defaults = AttachlinkConfig()

        rows = []
        for section, field in setting_keys():
            source = "default"
            # A freshly written file repeats every default; only differences count.
            if lookup(from_file, section, field) != lookup(defaults, section, field):
                source = "file"
            if field in environment.get(section, {}):
                source = "env"
            rows.append(SettingRow(f"{section}.{field}", lookup(config, section, field), source))
        return rows

    def set_value(self, key: str, raw_value: str) -> tuple[Any, Any]:
        """Store ``raw_value`` (parsed as YAML) for ``key`` in the settings file.

        Directory settings must name an existing directory and are stored as
        absolute paths.

        Returns:
            tuple[Any, Any]: The value from defaults and file before and after the update.
        """
        section, field = split_key(key)
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Unable to parse value for {key}: {exc}", key=key) from exc
        if (section, field) in _DIRECTORY_KEYS and value is not None:
            value = _existing_directory(key, value)

        stored = self.read_file_layer()
        previous = lookup(build_config(stored), section, field)
        stored.setdefault(section, {})[field] = value
        current = lookup(build_config(stored), section, field)
        if current != previous or not self._config_path.exists():
            self._write(stored)
        return previous, current

    def replace_text(self, text: str) -> AttachlinkConfig:
        """Validate an edited settings document and store it."""
        layer = file_layer(_parse_yaml(text))
        config = build_config(layer)
        self._write(layer)
        return config

    def ensure_exists(self) -> Path:
        """Write the default settings when no settings file exists yet."""
        if not self._config_path.exists():
            self._write(AttachlinkConfig().model_dump(mode="json"))
        return self._config_path

    def read_text(self) -> str:
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def read_file_layer(self) -> Layer:
        """Return the overrides stored in the settings file (empty when absent)."""
        if not self._config_path.exists():
            return {}
        return file_layer(_parse_yaml(self.read_text()))

    def _write(self, layer: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(dict(layer), sort_keys=False)
        self._config_path.write_text(
            f"{_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"The config file is not valid YAML: {exc}") from exc


def _existing_directory(key: str, value: Any) -> str:
    directory = Path(str(value)).expanduser()
    if not directory.is_dir():
        raise ConfigError(f"{key} must name an existing directory: {directory}", key=key)
    return str(directory.resolve())


__all__ = [
    "AttachlinkConfig",
    "ConfigError",
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "SettingRow",
    "build_config",
]
