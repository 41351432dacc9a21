from __future__ import annotations

from importlib import resources
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from thingpedia_devices.cli.main import app
from thingpedia_devices.core import DeviceRegistry, Platform, configure_logging


@pytest.fixture(scope="session", autouse=True)
def structured_logging():
    configure_logging(force=True)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    secrets_file = tmp_path / "secret.toml"
    secrets_file.write_text('[platform]\nlocale = "en-US"\ntimezone = "UTC"\n', encoding="utf-8")
    monkeypatch.setenv("THINGPEDIA_SECRETS_PATH", str(secrets_file))
    monkeypatch.delenv("SPORTRADAR_API_KEY", raising=False)


@pytest.fixture(scope="session")
def catalog_file() -> Path:
    with resources.as_file(resources.files("thingpedia_devices.resources.devices") / "catalog.yaml") as ref:
        return Path(ref)


@pytest.fixture()
def registry(catalog_file) -> DeviceRegistry:
    return DeviceRegistry.from_yaml(catalog_file)


@pytest.fixture()
def engine():
    return SimpleNamespace(platform=Platform(locale="en-US", timezone="UTC"), devices=MagicMock())


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_app():
    return app
