"""
Caller context handed to devices and CLI commands.

:class:`Platform` is what the host engine exposes to a device (locale and
timezone). :class:`ExecutionContext` bundles it with loaded settings and the
directory holding ``<kind>.cred.json`` credential files.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import DEFAULT_LOCALE, DEFAULT_TIMEZONE, SecretsBundle, load_secrets


@dataclass(frozen=True, slots=True)
class Platform:
    """
    Locale and timezone of the user a device is acting for.

    Attributes
    ----------
    locale:
        BCP 47 language tag, e.g. ``en-US``.
    timezone:
        IANA timezone name, e.g. ``America/New_York``.
    """

    locale: str = DEFAULT_LOCALE
    timezone: str = DEFAULT_TIMEZONE

    @property
    def tzinfo(self) -> tzinfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return ZoneInfo(DEFAULT_TIMEZONE)

    def now(self) -> datetime:
        """Current time in the platform timezone."""

        return datetime.now(self.tzinfo)


@dataclass(slots=True)
class ExecutionContext:
    """Platform, settings and credential location shared by CLI commands."""

    platform: Platform
    secrets: SecretsBundle
    credentials_dir: Path

    @classmethod
    def build_default(
        cls,
        *,
        locale: Optional[str] = None,
        timezone: Optional[str] = None,
        credentials_dir: Optional[Path] = None,
        secrets: Optional[SecretsBundle] = None,
    ) -> "ExecutionContext":
        """
        Construct a context, filling gaps from the ``[platform]`` settings.

        ``credentials_dir`` defaults to ``tests/credentials`` under the CWD,
        which is where the harness expects ``<kind>.cred.json`` files.
        """

        resolved_secrets = secrets or load_secrets(strict=False)
        platform = Platform(
            locale=locale or resolved_secrets.platform.locale,
            timezone=timezone or resolved_secrets.platform.timezone,
        )
        return cls(
            platform=platform,
            secrets=resolved_secrets,
            credentials_dir=credentials_dir or Path.cwd() / "tests" / "credentials",
        )
