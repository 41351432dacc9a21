"""
Device adapters.

Each submodule implements one Thingpedia device kind on top of the shared
pieces in :mod:`.base` (errors, dispatch), :mod:`.http` (HTTPX client),
:mod:`.lookup` (record matching and status tables) and :mod:`.polling`.
"""

from .base import (
    Availability,
    BaseDevice,
    DeviceError,
    DeviceState,
    Entity,
    FunctionKind,
    NotFoundError,
    UnsupportedFunctionError,
    UpstreamError,
    action,
    monitor,
    query,
)
from .google import GoogleAccountDevice
from .home_assistant import HomeAssistantClient, HomeAssistantDevice, HomeAssistantVacuum
from .http import BaseAPIClient
from .onedrive import OneDriveDevice
from .polling import PollingSubscription
from .sportradar import NBASportradarDevice

__all__ = [
    "Availability",
    "BaseAPIClient",
    "BaseDevice",
    "DeviceError",
    "DeviceState",
    "Entity",
    "FunctionKind",
    "GoogleAccountDevice",
    "HomeAssistantClient",
    "HomeAssistantDevice",
    "HomeAssistantVacuum",
    "NBASportradarDevice",
    "NotFoundError",
    "OneDriveDevice",
    "PollingSubscription",
    "UnsupportedFunctionError",
    "UpstreamError",
    "action",
    "monitor",
    "query",
]
