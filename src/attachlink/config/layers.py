"""Settings layers keyed by ``section.field``: config file, environment and command line.

Every layer maps a section of :class:`AttachlinkConfig` (``attachments``,
``rename_memory``, ``logging``, ``cli``) to the fields it overrides. Layers are
applied over the defaults in increasing precedence by :func:`build_config`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator, Optional

import yaml
from pydantic import BaseModel, ValidationError

from .exceptions import ConfigError
from .models import AttachlinkConfig

ENV_PREFIX = "ATTACHLINK__"

Layer = dict[str, dict[str, Any]]

_SECTIONS: dict[str, type[BaseModel]] = {
    name: type(value) for name, value in AttachlinkConfig()
}


def setting_keys() -> Iterator[tuple[str, str]]:
    """Yield every ``(section, field)`` pair in declaration order."""
    for section, model in _SECTIONS.items():
        for field in model.model_fields:
            yield section, field


def split_key(key: str) -> tuple[str, str]:
    """Split a dotted key such as ``attachments.base_attachment_path``.

    Raises:
        ConfigError: If the section or field does not exist.
    """
    section, _, field = key.strip().partition(".")
    model = _SECTIONS.get(section)
    if model is None or field not in model.model_fields:
        known = ", ".join(f"{name}.{attr}" for name, attr in setting_keys())
        raise ConfigError(f"Unknown setting '{key}'. Known settings: {known}", key=key)
    return section, field


def file_layer(data: Any) -> Layer:
    """Validate the parsed YAML document of a config file into a layer."""
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError("The config file must map section names to their settings.")

    layer: Layer = {}
    for section, values in data.items():
        if values is None:
            continue
        if not isinstance(values, Mapping):
            raise ConfigError(f"Section '{section}' must be a mapping.", key=str(section))
        for field, value in values.items():
            name, attr = split_key(f"{section}.{field}")
            layer.setdefault(name, {})[attr] = value
    return layer


def env_layer(env: Mapping[str, str]) -> Layer:
    """Collect ``ATTACHLINK__SECTION__FIELD`` variables; values are parsed as YAML scalars."""
    layer: Layer = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        section, _, field = name[len(ENV_PREFIX) :].lower().partition("__")
        section, field = split_key(f"{section}.{field}")
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        layer.setdefault(section, {})[field] = value
    return layer


def cli_layer(overrides: Mapping[str, Any]) -> Layer:
    """Build a layer from ``{"section.field": value}`` command-line overrides."""
    layer: Layer = {}
    for key, value in overrides.items():
        section, field = split_key(key)
        layer.setdefault(section, {})[field] = value
    return layer


def build_config(*layers: Optional[Layer]) -> AttachlinkConfig:
    """Apply ``layers`` over the defaults, later layers winning.

    Raises:
        ConfigError: If a merged value fails validation.
    """
    merged = AttachlinkConfig().model_dump()
    for layer in layers:
        for section, values in (layer or {}).items():
            merged[section].update(values)

    try:
        return AttachlinkConfig.model_validate(merged)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigError(f"Invalid configuration values: {problems}") from exc


def lookup(config: AttachlinkConfig, section: str, field: str) -> Any:
    return getattr(getattr(config, section), field)


__all__ = [
    "ENV_PREFIX",
    "Layer",
    "build_config",
    "cli_layer",
    "env_layer",
    "file_layer",
    "lookup",
    "setting_keys",
    "split_key",
]
