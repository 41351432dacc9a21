"""
Google account device (``com.google``).

The device carries no queries of its own: it holds the OAuth2 tokens other
Google-backed devices reuse. Linking an account looks up the Google profile id
through the userinfo endpoint and persists it alongside the tokens.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .base import BaseDevice, DeviceEngine, UpstreamError
from .http import BaseAPIClient, bearer_headers
from .oauth import OAuth2Config

USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class GoogleAccountClient(BaseAPIClient):
    """Client for the Google OAuth2 userinfo endpoint."""

    def __init__(self, access_token: str, *, timeout: float = 15.0, **kwargs: Any) -> None:
        super().__init__(timeout=timeout, default_headers=bearer_headers(access_token), **kwargs)

    def fetch_userinfo(self) -> Mapping[str, Any]:
        payload = self._get_json(USERINFO_URL)
        if not isinstance(payload, Mapping) or not payload.get("id"):
            raise UpstreamError("Google userinfo response did not include a profile id.")
        return payload


def _link_account(engine: DeviceEngine, access_token: str, refresh_token: Optional[str]) -> Any:
    profile = GoogleAccountClient(access_token).fetch_userinfo()
    return engine.devices.load_one_device(
        {
            "kind": GoogleAccountDevice.kind,
            "access_token": access_token,
            "refresh_token": refresh_token,
            "profile_id": str(profile["id"]),
        },
        True,
    )


class GoogleAccountDevice(BaseDevice):
    """A linked Google account."""

    kind = "com.google"
    oauth2 = OAuth2Config(
        kind="com.google",
        authorize_url="https://accounts.google.com/o/oauth2/auth",
        token_url="https://www.googleapis.com/oauth2/v3/token",
        scopes=("openid", "profile", "email"),
        set_access_type=True,
        callback=_link_account,
    )

    @property
    def profile_id(self) -> str:
        return str(self.state.require("profile_id"))

    @property
    def access_token(self) -> Optional[str]:
        return self.state.get("access_token")

    @property
    def unique_id(self) -> str:
        # legacy prefix: records were created as google-account-* rather than com.google-*
        return f"google-account-{self.profile_id}"

    @property
    def name(self) -> str:
        return f"Google Account {self.profile_id}"

    @property
    def description(self) -> str:
        return "This is your Google Account. You can use it to access emails, files, calendars and more."
