"""
OneDrive account device (``com.live.onedrive``).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .base import Availability, BaseDevice, DeviceEngine, UpstreamError
from .http import BaseAPIClient, bearer_headers
from .lookup import dig
from .oauth import OAuth2Config

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


class OneDriveClient(BaseAPIClient):
    """Client for the Microsoft Graph drive endpoints."""

    def __init__(self, access_token: str, *, base_url: str = GRAPH_BASE_URL, timeout: float = 15.0, **kwargs: Any) -> None:
        super().__init__(base_url=base_url, timeout=timeout, default_headers=bearer_headers(access_token), **kwargs)

    def fetch_drive(self) -> Mapping[str, Any]:
        """Return the signed-in user's default drive."""

        payload = self._get_json("/drive")
        if not isinstance(payload, Mapping) or not payload.get("id"):
            raise UpstreamError("OneDrive drive response did not include a drive id.")
        return payload


def _link_account(engine: DeviceEngine, access_token: str, refresh_token: Optional[str]) -> Any:
    drive = OneDriveClient(access_token).fetch_drive()
    return engine.devices.load_one_device(
        {
            "kind": OneDriveDevice.kind,
            "access_token": access_token,
            "refresh_token": refresh_token,
            "drive_id": str(drive["id"]),
            "user_id": dig(drive, "owner.user.id"),
            "user_name": dig(drive, "owner.user.displayName"),
        },
        True,
    )


class OneDriveDevice(BaseDevice):
    """A linked OneDrive account."""

    kind = "com.live.onedrive"
    oauth2 = OAuth2Config(
        kind="com.live.onedrive",
        authorize_url="https://login.microsoftonline.com/common/oauth2/v2.0/authorize",
        token_url="https://login.microsoftonline.com/common/oauth2/v2.0/token",
        scopes=("offline_access", "files.readwrite.all", "files.read.all"),
        redirect_uri="https://thingengine.stanford.edu/devices/oauth2/callback/com.live.onedrive",
        callback=_link_account,
    )

    @property
    def drive_id(self) -> str:
        return str(self.state.require("drive_id"))

    @property
    def user_id(self) -> Optional[str]:
        return self.state.get("user_id")

    @property
    def user_name(self) -> Optional[str]:
        return self.state.get("user_name")

    @property
    def unique_id(self) -> str:
        return f"com.live.onedrive-{self.drive_id}"

    @property
    def name(self) -> str:
        return f"OneDrive Account {self.user_name or self.drive_id}"

    @property
    def description(self) -> str:
        return "This is your OneDrive Account."

    def check_available(self) -> Availability:
        # cloud backed
        return Availability.AVAILABLE
