"""
Control Client
==============

Typed async wrapper around the daemon's REST control API.

All requests go through one httpx.AsyncClient whose base URL and
bearer header come from the resolved Endpoint. get_control_client()
builds that client once per process.

Example:
    from clash_console.client import get_control_client

    client = await get_control_client()
    config = await client.get_config()
    print(config.mode, config.log_level)

    await client.change_proxy_selected("Proxy", "Tokyo-01")
"""

import logging
from typing import Any, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from clash_console.config import settings
from clash_console.endpoint import Endpoint, resolve_endpoint
from clash_console.models import (
    ConnectionsSnapshot,
    DaemonConfig,
    Group,
    Proxies,
    Proxy,
    ProxyDelay,
    ProxyProviders,
    RuleProviders,
    Rules,
    Version,
    parse_proxy,
)
from clash_console.singleton import AsyncSingleton


logger = logging.getLogger(__name__)


DEFAULT_DELAY_TIMEOUT_MS = 5000
DEFAULT_DELAY_URL = "http://www.gstatic.com/generate_204"


class ControlAPIError(Exception):
    """
    Raised when a control API call fails.

    Attributes:
        status_code: HTTP status, or None if no response was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _segment(name: str) -> str:
    return quote(name, safe="")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


class ControlClient:
    """
    REST client for the daemon's control plane.

    Attributes:
        endpoint: Endpoint the client talks to
    """

    def __init__(
        self,
        endpoint: Endpoint,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize control client.

        Args:
            endpoint: Resolved control-plane endpoint
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.endpoint = endpoint
        headers = {"Authorization": f"Bearer {endpoint.secret}"} if endpoint.secret else {}
        self._client = httpx.AsyncClient(
            base_url=endpoint.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ControlClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        allow_status: tuple = (),
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise ControlAPIError(f"{method} /{path} failed: {e}") from e

        if response.status_code in allow_status:
            return response
        if response.is_error:
            raise ControlAPIError(
                f"{method} /{path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _parse(model: type, response: httpx.Response) -> Any:
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            raise ControlAPIError(
                f"Unexpected response from {response.request.url}: {e}",
                status_code=response.status_code,
            ) from e

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    async def get_config(self) -> DaemonConfig:
        return self._parse(DaemonConfig, await self._request("GET", "configs"))

    async def update_config(self, patch: Union[dict, BaseModel]) -> None:
        """
        Patch the daemon configuration.

        Args:
            patch: Daemon keys to change, e.g. {"mode": "global"}, or a
                DaemonConfig whose explicitly set fields are sent.
        """
        if isinstance(patch, BaseModel):
            patch = patch.model_dump(by_alias=True, exclude_unset=True)
        await self._request("PATCH", "configs", json=patch)

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def get_rules(self) -> Rules:
        return self._parse(Rules, await self._request("GET", "rules"))

    async def update_rules(self) -> None:
        await self._request("PUT", "rules")

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    async def get_proxy_providers(self) -> ProxyProviders:
        """Proxy providers; daemons without provider support answer 404."""
        response = await self._request("GET", "providers/proxies", allow_status=(404,))
        if response.status_code == 404:
            return ProxyProviders(providers={})
        return self._parse(ProxyProviders, response)

    async def get_rule_providers(self) -> RuleProviders:
        return self._parse(RuleProviders, await self._request("GET", "providers/rules"))

    async def update_provider(self, name: str) -> None:
        await self._request("PUT", f"providers/proxies/{_segment(name)}")

    async def update_rule_provider(self, name: str) -> None:
        await self._request("PUT", f"providers/rules/{_segment(name)}")

    async def health_check_provider(self, name: str) -> None:
        await self._request("GET", f"providers/proxies/{_segment(name)}/healthcheck")

    # -------------------------------------------------------------------------
    # Proxies
    # -------------------------------------------------------------------------

    async def get_proxies(self) -> Proxies:
        return self._parse(Proxies, await self._request("GET", "proxies"))

    async def get_proxy(self, name: str) -> Union[Proxy, Group]:
        response = await self._request("GET", f"proxies/{_segment(name)}")
        try:
            return parse_proxy(response.json())
        except ValueError as e:
            raise ControlAPIError(
                f"Unexpected response for proxy {name!r}: {e}",
                status_code=response.status_code,
            ) from e

    async def get_proxy_delay(
        self,
        name: str,
        timeout: int = DEFAULT_DELAY_TIMEOUT_MS,
        url: str = DEFAULT_DELAY_URL,
    ) -> ProxyDelay:
        response = await self._request(
            "GET",
            f"proxies/{_segment(name)}/delay",
            params={"timeout": timeout, "url": url},
        )
        return self._parse(ProxyDelay, response)

    async def change_proxy_selected(self, name: str, select: str) -> None:
        await self._request("PUT", f"proxies/{_segment(name)}", json={"name": select})

    async def get_version(self) -> Version:
        return self._parse(Version, await self._request("GET", "version"))

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    async def get_connections(self) -> ConnectionsSnapshot:
        return self._parse(ConnectionsSnapshot, await self._request("GET", "connections"))

    async def close_all_connections(self) -> None:
        await self._request("DELETE", "connections")

    async def close_connection(self, connection_id: str) -> None:
        await self._request("DELETE", f"connections/{_segment(connection_id)}")


# =============================================================================
# Process-wide instance
# =============================================================================

async def _create_control_client() -> ControlClient:
    endpoint = resolve_endpoint()
    logger.info(f"Using controller at {endpoint.base_url}")
    return ControlClient(endpoint, timeout=settings.http.timeout_seconds)


control_client: AsyncSingleton[ControlClient] = AsyncSingleton(
    _create_control_client,
    name="control-client",
)


async def get_control_client() -> ControlClient:
    """Return the process-wide ControlClient, creating it on first use."""
    return await control_client.get()


async def dispose_control_client() -> None:
    """Close the cached client (if any) and forget it."""
    client = control_client.resolved()
    control_client.reset()
    if client is not None:
        await client.aclose()
