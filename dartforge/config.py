"""
config.py — Generator settings and project metadata.
Both are immutable once built and are passed explicitly to the parser,
the generator and the import formatter.
"""

import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

SETTINGS_FILE = "dartforge.json"
SETTINGS_PREFIX = "dart-data-class-generator."

DEFAULT_SETTINGS = {
    "constructor.enabled": True,
    "constructor.default_values": False,
    "init.enabled": True,
    "copyWith.enabled": True,
    "copyWith.usesValueGetter": False,
    "toMap.enabled": True,
    "fromMap.enabled": True,
    "fromMap.parsing_utils_import": "",
    "toJson.enabled": True,
    "fromJson.enabled": True,
    "toString.enabled": True,
    "equality.enabled": True,
    "hashCode.enabled": True,
    "hashCode.use_jenkins": False,
    "useEquatable": False,
    "override.manual": False,
    "quick_fixes": True,
    "json.key_format": "default",
    "json.separate": "ask",
    "watch.regenerate": False,
}

_CHOICES = {
    "json.key_format": ("default", "snake_case", "camelCase"),
    "json.separate": ("ask", "separate", "single"),
}


def _normalize(values: Optional[Mapping]) -> dict:
    out = {}
    for key, value in (values or {}).items():
        if key.startswith(SETTINGS_PREFIX):
            key = key[len(SETTINGS_PREFIX):]
        choices = _CHOICES.get(key)
        if choices and value not in choices:
            raise ValueError(
                f"Invalid value {value!r} for setting '{key}' (expected one of {', '.join(choices)})"
            )
        out[key] = value
    return out


@dataclass(frozen=True)
class Settings:
    values: Mapping = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_dict(cls, values: Optional[Mapping] = None) -> "Settings":
        return cls(MappingProxyType(_normalize(values)))

    def get(self, key: str):
        if key in self.values:
            return self.values[key]
        return DEFAULT_SETTINGS.get(key)

    def any_enabled(self, keys) -> bool:
        return any(self.get(k) for k in keys)

    def with_overrides(self, overrides: Optional[Mapping]) -> "Settings":
        if not overrides:
            return self
        merged = dict(self.values)
        merged.update(_normalize(overrides))
        return Settings(MappingProxyType(merged))

    def to_dict(self):
        return {key: self.get(key) for key in DEFAULT_SETTINGS}


def load_settings(directory: Optional[str]) -> Settings:
    """Read ``dartforge.json`` from a project directory; defaults when absent."""
    if not directory:
        return Settings.from_dict()
    path = os.path.join(directory, SETTINGS_FILE)
    if not os.path.isfile(path):
        return Settings.from_dict()
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{SETTINGS_FILE} must contain a JSON object")
    return Settings.from_dict(data)


@dataclass(frozen=True)
class ProjectInfo:
    name: str = ""
    is_flutter: bool = False

    def to_dict(self):
        return {"name": self.name, "is_flutter": self.is_flutter}


def probe_project(directory: Optional[str]) -> ProjectInfo:
    """Recover the package name and flutter usage from ``pubspec.yaml``."""
    if not directory:
        return ProjectInfo()

    fallback = os.path.basename(os.path.normpath(directory)).replace("-", "_")
    pubspec = os.path.join(directory, "pubspec.yaml")
    if not os.path.isfile(pubspec):
        return ProjectInfo(name=fallback)

    with open(pubspec, "r", encoding="utf-8") as f:
        content = f.read()

    if "name: " not in content:
        return ProjectInfo(name=fallback)

    is_flutter = "flutter:" in content and "sdk: flutter" in content
    name = fallback
    for line in content.split("\n"):
        if line.startswith("name: "):
            name = line.replace("name:", "", 1).strip()
            break

    return ProjectInfo(name=name, is_flutter=is_flutter)
