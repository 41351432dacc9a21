"""
Declarative device test harness.

A suite is a list of ``(test_type, function, input, expected)`` cases, where
``test_type`` is ``query``, ``action`` or ``monitor``. The harness looks up
the device manifest in the registry, instantiates the device (from the suite's
``set_up`` hook, from an empty state for credential-free devices, or from
``<credentials_dir>/<kind>.cred.json``) and replays every case, recording
failures without stopping the suite.
"""

from __future__ import annotations

import json
import traceback
from dataclasses import dataclass, field
from logging import LoggerAdapter
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..core import ConfigModule, DeviceManifest, DeviceRegistry, Platform, bind_tags, get_logger, log_progress, log_separator
from ..devices.base import BaseDevice

DeviceTestCase = Tuple[str, str, Any, Any]
TestStep = Union[DeviceTestCase, Callable[[BaseDevice], Any]]


class HarnessError(AssertionError):
    """Raised when a device instance violates the host contract."""


@dataclass(slots=True)
class DeviceTestSuite:
    """Test cases for one device kind plus an optional instance factory."""

    tests: Sequence[TestStep] = field(default_factory=list)
    set_up: Optional[Callable[[type], Optional[BaseDevice]]] = None

    @classmethod
    def coerce(cls, raw: Any) -> "DeviceTestSuite":
        if isinstance(raw, DeviceTestSuite):
            return raw
        if isinstance(raw, (list, tuple)):
            return cls(tests=list(raw))
        if isinstance(raw, Mapping):
            return cls(tests=list(raw.get("tests", [])), set_up=raw.get("set_up"))
        raise TypeError(f"Unsupported test suite definition: {type(raw)!r}")


@dataclass(slots=True)
class CaseOutcome:
    index: int
    description: str
    success: bool
    message: str = ""


@dataclass(slots=True)
class SuiteReport:
    kind: str
    outcomes: List[CaseOutcome] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.skipped_reason is not None or any(not outcome.success for outcome in self.outcomes)

    @property
    def failures(self) -> List[CaseOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]


class InMemoryDeviceDatabase:
    """Device database keeping instantiated devices in a dict keyed by unique id."""

    def __init__(self, factory: Callable[[Mapping[str, Any]], BaseDevice]) -> None:
        self._factory = factory
        self.devices: Dict[str, BaseDevice] = {}

    def load_one_device(self, state: Mapping[str, Any], save: bool = False) -> BaseDevice:
        device = self._factory(state)
        if save:
            self.devices[device.unique_id] = device
        return device


@dataclass(slots=True)
class MockEngine:
    """Minimal engine: a platform plus an in-memory device database."""

    registry: DeviceRegistry
    platform: Platform = field(default_factory=Platform)
    devices: InMemoryDeviceDatabase = field(init=False)

    def __post_init__(self) -> None:
        self.devices = InMemoryDeviceDatabase(self._instantiate)

    def _instantiate(self, state: Mapping[str, Any]) -> BaseDevice:
        kind = str(state.get("kind", ""))
        device_cls = self.registry.load_device_class(kind)
        return device_cls(self, state)


def create_device_instance(
    kind: str,
    manifest: DeviceManifest,
    device_cls: type,
    engine: MockEngine,
    credentials_dir: Path,
) -> Optional[BaseDevice]:
    """
    Instantiate a device the way the host would for its config module.

    Returns ``None`` when the device needs credentials that are not on disk
    (OAuth devices always need a ``set_up`` hook).
    """

    if manifest.config_module == ConfigModule.NONE:
        return device_cls(engine, {"kind": kind})
    if manifest.config_module in (ConfigModule.BASIC_AUTH, ConfigModule.FORM):
        credentials_path = credentials_dir / f"{kind}.cred.json"
        if not credentials_path.is_file():
            return None
        with credentials_path.open("r", encoding="utf-8") as handle:
            state = json.load(handle)
        state["kind"] = kind
        return device_cls(engine, state)
    return None


def _assert_non_empty_string(label: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise HarnessError(f"Expected a non-empty string for {label}, got {value!r}")


def _normalise_expected(expected: Any) -> List[Any]:
    if isinstance(expected, list):
        return expected
    if isinstance(expected, tuple):
        return list(expected)
    return [expected]


@dataclass(slots=True)
class DeviceTestHarness:
    """Runs declarative suites against devices from a :class:`DeviceRegistry`."""

    registry: DeviceRegistry
    credentials_dir: Path
    platform: Platform = field(default_factory=Platform)
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(self.__class__.__name__)

    def run(self, kind: str, suite: Any) -> SuiteReport:
        """Run ``suite`` against ``kind`` and return the per-case outcomes."""

        manifest = self.registry.require(kind)
        device_cls = self.registry.load_device_class(kind)
        engine = MockEngine(registry=self.registry, platform=self.platform)
        report = SuiteReport(kind=kind)
        logger = bind_tags(self.logger, [kind])

        if callable(suite) and not isinstance(suite, (list, tuple, Mapping, DeviceTestSuite)):
            self._record(logger, report, 1, getattr(suite, "__name__", "callable"), lambda: suite(device_cls))
            return report

        resolved = DeviceTestSuite.coerce(suite)
        instance = resolved.set_up(device_cls) if resolved.set_up else None
        if instance is None:
            instance = create_device_instance(kind, manifest, device_cls, engine, self.credentials_dir)
        if instance is None:
            report.skipped_reason = "missing credentials"
            logger.error("Skipped tests: missing credentials", extra={"kind": kind})
            return report

        _assert_non_empty_string("name", instance.name)
        _assert_non_empty_string("description", instance.description)
        _assert_non_empty_string("unique_id", instance.unique_id)

        log_separator(logger, title=f"Starting tests for {kind}")
        total = len(resolved.tests)
        for index, step in enumerate(resolved.tests, start=1):
            description = step[1] if isinstance(step, (list, tuple)) and len(step) > 1 else getattr(step, "__name__", "callable")
            log_progress(logger, f"Test {index}/{total}", phase=kind, step=str(description))
            self._record(logger, report, index, str(description), lambda step=step: self._run_step(instance, step))
        log_progress(logger, f"Completed tests for {kind}", phase=kind, status="failed" if report.failed else "passed")
        return report

    @staticmethod
    def _record(logger: LoggerAdapter, report: SuiteReport, index: int, description: str, case: Callable[[], Any]) -> None:
        try:
            case()
        except Exception as exc:  # the suite continues after a failing case
            logger.error(
                "Test case failed",
                extra={"kind": report.kind, "function": description, "error": str(exc), "trace": traceback.format_exc(limit=3)},
            )
            report.outcomes.append(CaseOutcome(index=index, description=description, success=False, message=str(exc) or repr(exc)))
        else:
            report.outcomes.append(CaseOutcome(index=index, description=description, success=True))

    def _run_step(self, instance: BaseDevice, step: TestStep) -> None:
        if callable(step):
            step(instance)
            return

        test_type, function_name, raw_input, expected = step
        params = raw_input(instance) if callable(raw_input) else raw_input

        if test_type == "query":
            result = instance.invoke_query(function_name, params)
        elif test_type == "monitor":
            subscription = instance.subscribe(function_name, params)
            try:
                result = subscription.poll()
            finally:
                subscription.stop()
        elif test_type == "action":
            result = instance.invoke_action(function_name, params)
            if not callable(expected):
                return
        else:
            raise HarnessError(f"Unknown test type '{test_type}'")

        if callable(expected):
            expected(result, params, instance)
            return
        wanted = _normalise_expected(expected)
        if result != wanted:
            raise AssertionError(f"{test_type} {function_name}: expected {wanted!r}, got {result!r}")
