"""
Service-layer helpers built on the registry and device adapters.
"""

from .harness import (
    CaseOutcome,
    DeviceTestHarness,
    DeviceTestSuite,
    HarnessError,
    InMemoryDeviceDatabase,
    MockEngine,
    SuiteReport,
    create_device_instance,
)

__all__ = [
    "CaseOutcome",
    "DeviceTestHarness",
    "DeviceTestSuite",
    "HarnessError",
    "InMemoryDeviceDatabase",
    "MockEngine",
    "SuiteReport",
    "create_device_instance",
]
