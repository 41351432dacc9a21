"""
Home Assistant devices (``io.home-assistant``).

A Home Assistant device mirrors one entity of a Home Assistant instance. State
is read from the REST API (``/api/states/<entity_id>``) and commands are
service calls (``/api/services/<domain>/<service>``). Subscriptions poll the
entity state.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from .base import BaseDevice, DeviceEngine, UpstreamError, action, monitor, query
from .http import BaseAPIClient, bearer_headers
from .polling import DEFAULT_POLL_INTERVAL, PollingSubscription


class HomeAssistantClient(BaseAPIClient):
    """Long-lived-token client for the Home Assistant REST API."""

    def __init__(self, url: str, access_token: str, *, timeout: float = 15.0, **kwargs: Any) -> None:
        headers = bearer_headers(access_token)
        headers["Content-Type"] = "application/json"
        super().__init__(base_url=url.rstrip("/"), timeout=timeout, default_headers=headers, **kwargs)

    def get_entity_state(self, entity_id: str) -> Mapping[str, Any]:
        payload = self._get_json(f"/api/states/{entity_id}")
        if not isinstance(payload, Mapping) or "state" not in payload:
            raise UpstreamError(f"Unexpected state payload for {entity_id}.")
        return payload

    def call_service(self, domain: str, service: str, entity_id: str, data: Optional[Mapping[str, Any]] = None) -> Any:
        body: Dict[str, Any] = {"entity_id": entity_id}
        if data:
            body.update(data)
        return self._post_json(f"/api/services/{domain}/{service}", json_body=body)


class HomeAssistantDevice(BaseDevice):
    """
    Base class for devices backed by a single Home Assistant entity.

    Device state keys: ``url`` (instance base URL), ``access_token`` (long-lived
    access token) and ``entity_id``.
    """

    kind = "io.home-assistant"

    def __init__(
        self,
        engine: DeviceEngine,
        state: Mapping[str, Any],
        *,
        client: Optional[HomeAssistantClient] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        super().__init__(engine, state)
        self.client = client or HomeAssistantClient(self.state.require("url"), self.state.require("access_token"))
        self.poll_interval = poll_interval
        self.entity: Mapping[str, Any] = {"state": None, "attributes": {}}

    @property
    def entity_id(self) -> str:
        return str(self.state.require("entity_id"))

    @property
    def attributes(self) -> Mapping[str, Any]:
        attributes = self.entity.get("attributes")
        return attributes if isinstance(attributes, Mapping) else {}

    @property
    def unique_id(self) -> str:
        return f"{self.kind}-{self.entity_id}"

    @property
    def name(self) -> str:
        return str(self.attributes.get("friendly_name") or self.entity_id)

    @property
    def description(self) -> str:
        return f"This is {self.entity_id} in your Home Assistant instance."

    def refresh_state(self) -> Mapping[str, Any]:
        """Fetch the current entity state and cache it on the device."""

        self.entity = self.client.get_entity_state(self.entity_id)
        return self.entity

    def _call_service(self, domain: str, service: str, data: Optional[Mapping[str, Any]] = None) -> None:
        self.logger.info("Calling Home Assistant service", extra={"function": f"{domain}.{service}", "entity_id": self.entity_id})
        self.client.call_service(domain, service, self.entity_id, data)

    def _subscribe_state(self, projection: Callable[[], Dict[str, Any]]) -> PollingSubscription:
        def fetch() -> List[Dict[str, Any]]:
            self.refresh_state()
            return [projection()]

        return PollingSubscription(fetch=fetch, interval=self.poll_interval)


class HomeAssistantVacuum(HomeAssistantDevice):
    """A robot vacuum exposed through the Home Assistant ``vacuum`` domain."""

    def _project_state(self) -> Dict[str, Any]:
        status = self.attributes.get("status")
        return {
            "state": self.entity.get("state"),
            "status": status.lower() if isinstance(status, str) and status else None,
        }

    @query("state")
    def get_state(self) -> List[Dict[str, Any]]:
        self.refresh_state()
        return [self._project_state()]

    @monitor("state")
    def subscribe_state(self) -> PollingSubscription:
        return self._subscribe_state(self._project_state)

    @action("set_power")
    def do_set_power(self, power: str) -> None:
        self._call_service("vacuum", "turn_on" if power == "on" else "turn_off")

    @action("return_to_base")
    def do_return_to_base(self) -> None:
        self._call_service("vacuum", "return_to_base")

    @action("stop")
    def do_stop(self) -> None:
        self._call_service("vacuum", "stop")

    @action("start")
    def do_start(self) -> None:
        self._call_service("vacuum", "start")

    @action("pause")
    def do_pause(self) -> None:
        self._call_service("vacuum", "pause")
