"""
appconfig.py - The tool's own JSON configuration (written by `init`).

{
  "DevicesFilePath": "C:\\Games\\IL-2\\data\\input\\devices.txt",
  "BindingsFilePath": "C:\\Games\\IL-2\\data\\input\\current.map",
  "DeviceMappings": [
    {"UniqueIdentifier": "VIDPID:231D:0200:VKBsim Gladiator EVO R",
     "Name": "VKBsim Gladiator EVO R", "ExpectedIndex": 0, "Guid": "..."}
  ]
}
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


class ConfigError(Exception):
    pass


@dataclass
class DeviceMapping:
    unique_identifier: str
    name: str
    expected_index: int
    guid: str = ""

    def to_json(self) -> dict:
        return {
            "UniqueIdentifier": self.unique_identifier,
            "Name": self.name,
            "ExpectedIndex": self.expected_index,
            "Guid": self.guid,
        }

    @classmethod
    def from_json(cls, data: dict):
        if not isinstance(data, dict):
            raise ConfigError(f"Device mapping must be a JSON object, got {data!r}")
        d = _lower_keys(data)
        try:
            mapping = cls(
                unique_identifier=str(d["uniqueidentifier"]),
                name=str(d["name"]),
                expected_index=d["expectedindex"],
                guid=str(d.get("guid") or ""),
            )
        except KeyError as e:
            raise ConfigError(f"Invalid device mapping {data!r}: missing {e.args[0]!r}") from e
        # joy<N> indices are plain non-negative integers
        idx = mapping.expected_index
        if isinstance(idx, bool) or not isinstance(idx, int) or idx < 0:
            raise ConfigError(f"Invalid device mapping {data!r}: ExpectedIndex must be "
                              f"a non-negative integer, got {idx!r}")
        return mapping


@dataclass
class AppConfig:
    devices_file_path: str
    bindings_file_path: str
    device_mappings: list[DeviceMapping] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "DevicesFilePath": self.devices_file_path,
            "BindingsFilePath": self.bindings_file_path,
            "DeviceMappings": [m.to_json() for m in self.device_mappings],
        }

    @classmethod
    def from_json(cls, data: dict):
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a JSON object")
        d = _lower_keys(data)
        try:
            devices = str(d["devicesfilepath"])
            bindings = str(d["bindingsfilepath"])
        except KeyError as e:
            raise ConfigError(f"Configuration is missing {e.args[0]!r}") from e
        raw = d.get("devicemappings") or []
        if not isinstance(raw, list):
            raise ConfigError("DeviceMappings must be a JSON array")
        mappings = [DeviceMapping.from_json(m) for m in raw]
        return cls(devices, bindings, mappings)


def _lower_keys(data: dict) -> dict:
    return {str(k).lower(): v for k, v in data.items()}


class AppConfigStore:
    def __init__(self, path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[AppConfig]:
        """None if there is no configuration yet; ConfigError if it is unreadable."""
        if not self.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Error loading config {self.path}: {e}") from e
        return AppConfig.from_json(data)

    def save(self, config: AppConfig):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(config.to_json(), f, indent=2)
            f.write("\n")
