"""
Helpers for instantiating devices and loading test suites in CLI contexts.
"""

from __future__ import annotations

import importlib
import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from ..core import ConfigModule, DeviceRegistry, ExecutionContext
from ..devices.base import BaseDevice, DeviceError, Entity
from ..devices.sportradar import NBASportradarDevice
from ..services.harness import MockEngine, create_device_instance


def build_device(
    kind: str,
    registry: DeviceRegistry,
    context: ExecutionContext,
    state: Optional[Mapping[str, Any]] = None,
) -> BaseDevice:
    """
    Instantiate ``kind`` from an explicit state, or the way the harness would
    (empty state or ``<credentials_dir>/<kind>.cred.json``).
    """

    manifest = registry.require(kind)
    device_cls = registry.load_device_class(kind)
    engine = MockEngine(registry=registry, platform=context.platform)

    if issubclass(device_cls, NBASportradarDevice):
        return device_cls(engine, dict(state or {"kind": kind}), secrets=context.secrets)
    if state is not None:
        return device_cls(engine, {**state, "kind": kind})

    device = create_device_instance(kind, manifest, device_cls, engine, context.credentials_dir)
    if device is None:
        if manifest.config_module == ConfigModule.OAUTH2:
            raise DeviceError(f"{kind} is configured through OAuth2; pass its stored state with --state-file.")
        raise DeviceError(f"No credentials for {kind}: expected {context.credentials_dir / f'{kind}.cred.json'}.")
    return device


def read_state_file(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise DeviceError(f"State file '{path}' must contain a JSON object.")
    return payload


def load_suite(reference: str) -> Any:
    """Import a test suite given as ``package.module:ATTRIBUTE``."""

    module_name, _, attribute = reference.partition(":")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute or "TESTS")
    except AttributeError as exc:
        raise DeviceError(f"Module '{module_name}' has no test suite '{attribute or 'TESTS'}'.") from exc


def _json_default(value: Any) -> Any:
    if isinstance(value, Entity):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return str(value)


def render_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default)
