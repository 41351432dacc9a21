"""
Settings and secret loading for the device adapters.

Settings are read from ``.secrets/secret.toml`` by default. The lookup order is:

1. Explicit ``THINGPEDIA_SECRETS_PATH`` environment variable.
2. ``.secrets/secret.toml`` (from the CWD, then the project root).
3. ``.secrets/secrets.toml``.
4. ``.secrets/secrets.example.toml`` for scaffolding values.

Example::

    [platform]
    locale = "en-US"
    timezone = "America/Los_Angeles"

    [http]
    timeout = 15
    max_attempts = 1

    [sportradar]
    api_key = "..."
    access_level = "trial"
    secondary_fetch_delay = 0
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

DEFAULT_LOCALE = "en-US"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_HTTP_TIMEOUT = 15.0


@dataclass(slots=True)
class HTTPSettings:
    """Transport settings shared by every upstream client."""

    timeout: float = DEFAULT_HTTP_TIMEOUT
    max_attempts: int = 1


@dataclass(slots=True)
class PlatformSettings:
    """Default caller context used when the host does not provide one."""

    locale: str = DEFAULT_LOCALE
    timezone: str = DEFAULT_TIMEZONE


@dataclass(slots=True)
class SportradarSettings:
    """Credential and endpoint information for the Sportradar NBA API."""

    api_key: Optional[str] = None
    access_level: str = "trial"
    language: str = "en"
    secondary_fetch_delay: float = 0.0
    teams_path: Optional[Path] = None


@dataclass(slots=True)
class SecretsBundle:
    """Parsed settings plus the raw TOML document."""

    source_path: Optional[Path]
    data: Dict[str, Dict[str, object]]
    http: HTTPSettings = field(default_factory=HTTPSettings)
    platform: PlatformSettings = field(default_factory=PlatformSettings)
    sportradar: SportradarSettings = field(default_factory=SportradarSettings)


def _discover_project_root() -> Optional[Path]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv("THINGPEDIA_SECRETS_PATH")
    if env_override:
        yield Path(env_override).expanduser()

    search_roots = [Path.cwd()]
    package_root = _discover_project_root()
    if package_root and package_root not in search_roots:
        search_roots.append(package_root)

    for base in search_roots:
        secrets_dir = base / ".secrets"
        for filename in ("secret.toml", "secrets.toml", "secrets.example.toml"):
            yield secrets_dir / filename


def _load_toml(path: Path) -> Dict[str, Dict[str, object]]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object]:
    section = raw.get(name, {})
    return section if isinstance(section, dict) else {}


def _extract_str(section: Mapping[str, object], key: str) -> Optional[str]:
    value = section.get(key)
    return value if isinstance(value, str) and value else None


def _extract_float(section: Mapping[str, object], key: str, default: float) -> float:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def _extract_http_settings(raw: Mapping[str, object]) -> HTTPSettings:
    section = _section(raw, "http")
    attempts = section.get("max_attempts")
    return HTTPSettings(
        timeout=_extract_float(section, "timeout", DEFAULT_HTTP_TIMEOUT),
        max_attempts=attempts if isinstance(attempts, int) and attempts > 0 else 1,
    )


def _extract_platform_settings(raw: Mapping[str, object]) -> PlatformSettings:
    section = _section(raw, "platform")
    return PlatformSettings(
        locale=_extract_str(section, "locale") or DEFAULT_LOCALE,
        timezone=_extract_str(section, "timezone") or DEFAULT_TIMEZONE,
    )


def _extract_sportradar_settings(raw: Mapping[str, object]) -> SportradarSettings:
    section = _section(raw, "sportradar")
    teams_path = _extract_str(section, "teams_path")
    return SportradarSettings(
        api_key=_extract_str(section, "api_key") or os.getenv("SPORTRADAR_API_KEY"),
        access_level=_extract_str(section, "access_level") or "trial",
        language=_extract_str(section, "language") or "en",
        secondary_fetch_delay=max(0.0, _extract_float(section, "secondary_fetch_delay", 0.0)),
        teams_path=Path(teams_path).expanduser() if teams_path else None,
    )


def parse_secrets(data: Dict[str, Dict[str, object]], *, source_path: Optional[Path] = None) -> SecretsBundle:
    """Build a :class:`SecretsBundle` from an already parsed TOML document."""

    return SecretsBundle(
        source_path=source_path,
        data=data,
        http=_extract_http_settings(data),
        platform=_extract_platform_settings(data),
        sportradar=_extract_sportradar_settings(data),
    )


def load_secrets(strict: bool = False) -> SecretsBundle:
    """
    Load settings from the first secrets file found.

    Parameters
    ----------
    strict:
        When ``True`` raise ``FileNotFoundError`` if no secrets file exists.
        Defaults to ``False`` so that credential-free devices keep working.
    """

    for path in _candidate_paths():
        if path.is_file():
            return parse_secrets(_load_toml(path), source_path=path)

    if strict:
        raise FileNotFoundError("No secrets file found. Configure THINGPEDIA_SECRETS_PATH or .secrets/secret.toml.")

    return parse_secrets({})
