"""
Base types shared by every device adapter.

A device is a thin object built from ``(engine, state)``: the engine supplies
the caller :class:`~thingpedia_devices.core.context.Platform` and the device
database, the state is the serialisable configuration persisted by the host.
Host-visible functions are declared with the :func:`query`, :func:`action`
and :func:`monitor` decorators and dispatched by name through
:meth:`BaseDevice.invoke_query` and friends.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from logging import LoggerAdapter
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Protocol, Tuple, TypeVar

from ..core.context import Platform
from ..core.logging import get_logger
from .polling import PollingSubscription

OutputRecord = Dict[str, Any]
F = TypeVar("F", bound=Callable[..., Any])

_FUNCTION_MARKER = "__device_function__"


class DeviceError(RuntimeError):
    """Raised when a device cannot complete a host request."""


class UpstreamError(DeviceError):
    """Raised when fetching or decoding a third-party payload fails."""


class NotFoundError(DeviceError):
    """Raised when an identifier matches no record in the fetched collection."""


class UnsupportedFunctionError(DeviceError):
    """Raised when the host dispatches a function the device does not declare."""


class FunctionKind(str, Enum):
    QUERY = "query"
    ACTION = "action"
    MONITOR = "monitor"

    @property
    def host_prefix(self) -> str:
        return {"query": "get_", "action": "do_", "monitor": "subscribe_"}[self.value]


class Availability(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Entity:
    """An entity value: a machine identifier plus its display string."""

    value: str
    display: Optional[str] = None

    @classmethod
    def coerce(cls, raw: "Entity | Mapping[str, Any] | str") -> "Entity":
        """Accept an :class:`Entity`, a ``{"value", "display"}`` mapping or a bare string."""

        if isinstance(raw, Entity):
            return raw
        if isinstance(raw, Mapping):
            value = raw.get("value")
            if not isinstance(value, str) or not value:
                raise DeviceError("Entity input requires a non-empty 'value'.")
            display = raw.get("display")
            return cls(value=value, display=display if isinstance(display, str) else None)
        if isinstance(raw, str) and raw:
            return cls(value=raw)
        raise DeviceError(f"Cannot interpret {raw!r} as an entity.")

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"value": self.value, "display": self.display}


class DeviceState(dict):
    """Serialisable device configuration persisted by the host (always carries ``kind``)."""

    @property
    def kind(self) -> str:
        return str(self.get("kind", ""))

    def require(self, key: str) -> Any:
        value = self.get(key)
        if value is None or value == "":
            raise DeviceError(f"Device state for '{self.kind}' is missing '{key}'.")
        return value


class DeviceDatabase(Protocol):
    """Subset of the host's device database used by OAuth callbacks."""

    def load_one_device(self, state: Mapping[str, Any], save: bool = ...) -> Any:
        """Instantiate (and optionally persist) a device from ``state``."""


class DeviceEngine(Protocol):
    """The host engine as seen by a device."""

    platform: Platform
    devices: DeviceDatabase


def _mark(kind: FunctionKind, name: str) -> Callable[[F], F]:
    def decorator(func: F) -> F:
        markers: List[Tuple[FunctionKind, str]] = list(getattr(func, _FUNCTION_MARKER, ()))
        markers.append((kind, name))
        setattr(func, _FUNCTION_MARKER, tuple(markers))
        return func

    return decorator


def query(name: str) -> Callable[[F], F]:
    """Declare a method as the host query ``get_<name>``."""

    return _mark(FunctionKind.QUERY, name)


def action(name: str) -> Callable[[F], F]:
    """Declare a method as the host action ``do_<name>``."""

    return _mark(FunctionKind.ACTION, name)


def monitor(name: str) -> Callable[[F], F]:
    """Declare a method as the host subscription ``subscribe_<name>``."""

    return _mark(FunctionKind.MONITOR, name)


class BaseDevice:
    """
    Common behaviour for device adapters.

    Subclasses set :attr:`kind` and implement :attr:`unique_id`,
    :attr:`name` and :attr:`description`.
    """

    kind: ClassVar[str] = ""

    def __init__(self, engine: DeviceEngine, state: Mapping[str, Any]) -> None:
        self.engine = engine
        self.state = DeviceState(state)
        self.state.setdefault("kind", self.kind)
        self.logger: LoggerAdapter = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"kind": self.kind},
        )

    @property
    def platform(self) -> Platform:
        return getattr(self.engine, "platform", None) or Platform()

    @property
    def unique_id(self) -> str:
        raise NotImplementedError

    @property
    def name(self) -> str:
        raise NotImplementedError

    @property
    def description(self) -> str:
        raise NotImplementedError

    def check_available(self) -> Availability:
        return Availability.UNKNOWN

    @classmethod
    def functions(cls) -> Dict[Tuple[FunctionKind, str], str]:
        """Map ``(FunctionKind, name)`` to the implementing method name."""

        table: Dict[Tuple[FunctionKind, str], str] = {}
        for klass in reversed(cls.__mro__):
            for attribute, member in vars(klass).items():
                for marker in getattr(member, _FUNCTION_MARKER, ()):
                    table[marker] = attribute
        return table

    def _resolve(self, kind: FunctionKind, name: str) -> Callable[..., Any]:
        attribute = self.functions().get((kind, name))
        if attribute is None:
            raise UnsupportedFunctionError(f"{self.kind} does not implement {kind.host_prefix}{name}.")
        return getattr(self, attribute)

    def invoke_query(self, name: str, params: Optional[Mapping[str, Any]] = None) -> List[OutputRecord]:
        """Run the query ``get_<name>`` and return its output records."""

        self.logger.debug("Dispatching query", extra={"function": name})
        return list(self._resolve(FunctionKind.QUERY, name)(**dict(params or {})))

    def invoke_action(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run the action ``do_<name>``."""

        self.logger.debug("Dispatching action", extra={"function": name})
        return self._resolve(FunctionKind.ACTION, name)(**dict(params or {}))

    def subscribe(self, name: str, params: Optional[Mapping[str, Any]] = None) -> PollingSubscription:
        """Open the subscription ``subscribe_<name>``."""

        self.logger.debug("Opening subscription", extra={"function": name})
        return self._resolve(FunctionKind.MONITOR, name)(**dict(params or {}))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind!r})"
