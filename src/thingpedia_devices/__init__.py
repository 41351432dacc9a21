"""
Thingpedia device adapters.

Each device translates the host's device interface (OAuth2 callbacks,
``get_<name>`` queries, ``do_<name>`` actions and polled ``subscribe_<name>``
monitors) into calls against one third-party REST API. The
:mod:`thingpedia_devices.devices` package holds the adapters,
:mod:`thingpedia_devices.core` the catalogue and logging, and
:mod:`thingpedia_devices.services` the declarative test harness.
"""

from .core import DeviceManifest, DeviceRegistry, ExecutionContext, Platform
from .devices import BaseDevice, DeviceError, Entity, NotFoundError, UpstreamError

__all__ = [
    "BaseDevice",
    "DeviceError",
    "DeviceManifest",
    "DeviceRegistry",
    "Entity",
    "ExecutionContext",
    "NotFoundError",
    "Platform",
    "UpstreamError",
]
