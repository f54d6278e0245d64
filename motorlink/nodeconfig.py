"""Node settings read from a YAML file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml


class ConfigError(Exception):
    """The configuration file cannot be read or holds an unusable value."""


@dataclass
class SerialConfig:
    baud: int = 0
    port: str = ""


@dataclass
class DiffDriveConfig:
    wheel_radius: float = 0.0
    wheel_base: float = 0.0


def _section_value(root: Mapping[str, Any], section: str, key: str) -> Any:
    block = root[section]
    if not isinstance(block, Mapping) or key not in block:
        raise ConfigError(f"missing '{section}.{key}'")
    return block[key]


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' is not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigError(f"'{name}' is not an integer: {value!r}")


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' is not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ConfigError(f"'{name}' is not a number: {value!r}")


def _as_str(value: Any, name: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"'{name}' is not a scalar: {value!r}")


@dataclass
class NodeConfig:
    """Parsed contents of the node configuration file."""

    root: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, file_path: Union[str, Path]) -> NodeConfig:
        """Read and parse ``file_path``; raise ConfigError if that fails."""
        try:
            with open(file_path, encoding="utf-8") as handle:
                document = yaml.safe_load(handle)
        except OSError as exc:
            raise ConfigError(f"cannot read {file_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parsing error in {file_path}: {exc}") from exc
        return cls(dict(document) if isinstance(document, Mapping) else {})

    def serial_config(self) -> SerialConfig:
        """The ``serial_config`` section, or defaults when it is absent."""
        config = SerialConfig()
        if "serial_config" in self.root:
            config.baud = _as_int(
                _section_value(self.root, "serial_config", "baud"), "serial_config.baud"
            )
            config.port = _as_str(
                _section_value(self.root, "serial_config", "port"), "serial_config.port"
            )
        return config

    def diff_drive_config(self) -> DiffDriveConfig:
        """The ``diff_drive_config`` section, or defaults when it is absent."""
        config = DiffDriveConfig()
        if "diff_drive_config" in self.root:
            config.wheel_radius = _as_float(
                _section_value(self.root, "diff_drive_config", "wheel_radius"),
                "diff_drive_config.wheel_radius",
            )
            config.wheel_base = _as_float(
                _section_value(self.root, "diff_drive_config", "wheel_base"),
                "diff_drive_config.wheel_base",
            )
        return config