"""
Device manifest catalogue.

Each supported device kind is described by a :class:`DeviceManifest`: its
display metadata, how the host configures it (``config_module``), the Python
class implementing it and the query/action/monitor functions it exposes.
Manifests are maintained in YAML (``resources/devices/catalog.yaml``) and
loaded into a :class:`DeviceRegistry`.
"""

from __future__ import annotations

import importlib
import json
from dataclasses import dataclass, field
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, MutableMapping, Optional, Sequence

import yaml

if TYPE_CHECKING:  # pragma: no cover
    from ..devices.base import BaseDevice

_CATALOG_PACKAGE = "thingpedia_devices.resources.devices"
_CATALOG_FILE = "catalog.yaml"


class RegistryLoadError(RuntimeError):
    """Raised when the catalogue cannot be parsed or a device class cannot be loaded."""


class ConfigModule(str, Enum):
    """How the host obtains a device's initial state."""

    NONE = "none"
    OAUTH2 = "oauth2"
    BASIC_AUTH = "basic_auth"
    FORM = "form"


class DeviceStatus(str, Enum):
    """Lifecycle state of a catalogue entry."""

    ACTIVE = "active"
    DEPRECATED = "deprecated"


@dataclass(slots=True)
class DeviceManifest:
    """
    Metadata and capabilities of one device kind.

    Parameters
    ----------
    kind:
        Thingpedia kind, e.g. ``us.sportradar``.
    name:
        Human-friendly display name.
    description:
        One-line summary.
    module:
        Import path of the implementing class in ``package.module:Class`` form.
    config_module:
        Configuration mechanism used by the host to create instances.
    queries, actions, monitors:
        Function names exposed to the host (``get_<name>``, ``do_<name>``
        and ``subscribe_<name>`` respectively).
    """

    kind: str
    name: str
    description: str
    module: str
    config_module: ConfigModule = ConfigModule.NONE
    queries: Sequence[str] = field(default_factory=tuple)
    actions: Sequence[str] = field(default_factory=tuple)
    monitors: Sequence[str] = field(default_factory=tuple)
    status: DeviceStatus = DeviceStatus.ACTIVE
    tags: Sequence[str] = field(default_factory=tuple)
    references: Sequence[str] = field(default_factory=tuple)

    def validate(self) -> None:
        if not self.kind or any(char.isspace() for char in self.kind):
            raise RegistryLoadError(f"Device kind '{self.kind}' must be a non-empty string without whitespace.")
        if ":" not in self.module:
            raise RegistryLoadError(f"Device '{self.kind}' module must use 'package.module:Class' form, got '{self.module}'.")
        undeclared = set(self.monitors) - set(self.queries)
        if undeclared:
            raise RegistryLoadError(f"Device '{self.kind}' monitors {sorted(undeclared)} have no matching query.")

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "name": self.name,
            "description": self.description,
            "module": self.module,
            "config_module": self.config_module.value,
            "queries": list(self.queries),
            "actions": list(self.actions),
            "monitors": list(self.monitors),
            "status": self.status.value,
            "tags": list(self.tags),
            "references": list(self.references),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


class DeviceRegistry:
    """In-memory catalogue of :class:`DeviceManifest` entries keyed by kind."""

    def __init__(self) -> None:
        self._entries: MutableMapping[str, DeviceManifest] = {}

    def register(self, manifest: DeviceManifest) -> None:
        """Register or overwrite a manifest."""

        manifest.validate()
        self._entries[manifest.kind] = manifest

    def unregister(self, kind: str) -> None:
        self._entries.pop(kind, None)

    def get(self, kind: str) -> Optional[DeviceManifest]:
        return self._entries.get(kind)

    def require(self, kind: str) -> DeviceManifest:
        """Retrieve a manifest or raise ``KeyError``."""

        manifest = self.get(kind)
        if manifest is None:
            raise KeyError(f"Device '{kind}' is not registered.")
        return manifest

    def list(self, *, status: Optional[DeviceStatus] = None) -> List[DeviceManifest]:
        items = self._entries.values()
        if status:
            return [item for item in items if item.status == status]
        return list(items)

    def load_device_class(self, kind: str) -> type["BaseDevice"]:
        """
        Import the class implementing ``kind`` and check it against its manifest.

        Every query, action and monitor named in the manifest must be present
        in the class's function table.
        """

        manifest = self.require(kind)
        module_name, _, attribute = manifest.module.partition(":")
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise RegistryLoadError(f"Failed to import '{module_name}' for device '{kind}': {exc}") from exc

        device_cls = getattr(module, attribute, None)
        if device_cls is None:
            raise RegistryLoadError(f"Module '{module_name}' does not define '{attribute}'.")

        from ..devices.base import FunctionKind

        table = device_cls.functions()
        declared = [(FunctionKind.QUERY, name) for name in manifest.queries]
        declared += [(FunctionKind.ACTION, name) for name in manifest.actions]
        declared += [(FunctionKind.MONITOR, name) for name in manifest.monitors]
        missing = [f"{function_kind.value}:{name}" for function_kind, name in declared if (function_kind, name) not in table]
        if missing:
            raise RegistryLoadError(f"Device '{kind}' class {attribute} does not implement {', '.join(missing)}.")
        return device_cls

    @classmethod
    def load_default(cls) -> "DeviceRegistry":
        """Load the catalogue shipped with the package."""

        with resources.as_file(resources.files(_CATALOG_PACKAGE) / _CATALOG_FILE) as resolved:
            return cls.from_yaml(resolved)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "DeviceRegistry":
        """Load manifests from a YAML document containing a list of devices."""

        location = Path(path)
        if not location.exists():
            raise RegistryLoadError(f"Catalogue file '{location}' does not exist.")

        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise RegistryLoadError(f"Failed to parse '{location}': {exc}") from exc

        if not isinstance(payload, list):
            raise RegistryLoadError(f"Catalogue file '{location}' must contain a list of devices.")

        registry = cls()
        for entry in payload:
            registry.register(cls._manifest_from_payload(entry, origin=location))
        return registry

    @staticmethod
    def _manifest_from_payload(entry: object, *, origin: Path) -> DeviceManifest:
        if not isinstance(entry, dict):
            raise RegistryLoadError(f"Invalid entry in '{origin}': expected mapping, got {type(entry)!r}")

        try:
            return DeviceManifest(
                kind=str(entry["kind"]),
                name=str(entry.get("name", entry["kind"])),
                description=str(entry.get("description", "")),
                module=str(entry["module"]),
                config_module=ConfigModule(str(entry.get("config", ConfigModule.NONE.value))),
                queries=tuple(_ensure_list(entry.get("queries"))),
                actions=tuple(_ensure_list(entry.get("actions"))),
                monitors=tuple(_ensure_list(entry.get("monitors"))),
                status=DeviceStatus(str(entry.get("status", DeviceStatus.ACTIVE.value))),
                tags=tuple(_ensure_list(entry.get("tags"))),
                references=tuple(_ensure_list(entry.get("references"))),
            )
        except KeyError as exc:
            raise RegistryLoadError(f"Missing required key {exc!s} in '{origin}'.") from exc
        except ValueError as exc:
            raise RegistryLoadError(f"Invalid field in '{origin}': {exc}") from exc


def _ensure_list(value: object | None) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    return [str(value)]
