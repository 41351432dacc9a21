"""
OAuth2 descriptors for account-linked devices.

The host runs the authorization-code flow using the endpoints and scopes
declared here, then hands the resulting tokens to the device's callback,
which looks up the provider-side identity and asks the engine to create the
device record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from .base import DeviceEngine

OAuth2Callback = Callable[[DeviceEngine, str, Optional[str]], Any]


@dataclass(frozen=True, slots=True)
class OAuth2Config:
    """
    Endpoints and scopes of one OAuth2 provider.

    Attributes
    ----------
    kind:
        Device kind the resulting record belongs to.
    authorize_url, token_url:
        Provider endpoints used by the host.
    scopes:
        Requested scopes.
    redirect_uri:
        Fixed redirect URI when the provider requires one.
    set_access_type:
        Request offline access (``access_type=offline``), as Google expects.
    callback:
        Called with ``(engine, access_token, refresh_token)`` once tokens exist.
    """

    kind: str
    authorize_url: str
    token_url: str
    callback: OAuth2Callback = field(repr=False)
    scopes: Sequence[str] = field(default_factory=tuple)
    redirect_uri: Optional[str] = None
    set_access_type: bool = False

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)

    def complete(self, engine: DeviceEngine, access_token: str, refresh_token: Optional[str] = None) -> Any:
        """Finish linking an account once the host holds the tokens."""

        return self.callback(engine, access_token, refresh_token)
