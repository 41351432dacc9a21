"""
Core infrastructure shared by devices, the harness and the CLI.

The package depends only on the standard library, PyYAML and the project
settings helpers: it provides the device catalogue, the caller context and
logging utilities.
"""

from .context import ExecutionContext, Platform
from .logging import bind_tags, configure_logging, get_logger, log_progress, log_separator
from .registry import ConfigModule, DeviceManifest, DeviceRegistry, DeviceStatus, RegistryLoadError

__all__ = [
    "ConfigModule",
    "DeviceManifest",
    "DeviceRegistry",
    "DeviceStatus",
    "ExecutionContext",
    "Platform",
    "RegistryLoadError",
    "bind_tags",
    "configure_logging",
    "get_logger",
    "log_progress",
    "log_separator",
]
