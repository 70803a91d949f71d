"""
Endpoint Resolver
=================

Determines where the daemon's control plane lives and how to authenticate.

Sources (per field, highest priority first):
    1. Explicit arguments (e.g. CLI flags)
    2. settings.controller fields (YAML file + environment overrides)
    3. settings.controller.external_controller URL
       ([protocol]://[secret]@[hostname]:[port])
    4. Defaults: 127.0.0.1, 9090, no secret

Protocols are kept in "scheme:" form ("http:", "https:") so that feed URLs
are built as f"{protocol}//{hostname}:{port}".
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

from clash_console.config import Settings


logger = logging.getLogger(__name__)


DEFAULT_HOSTNAME = "127.0.0.1"
DEFAULT_PORT = 9090


class EndpointResolutionError(ValueError):
    """Raised when no usable hostname/port can be determined."""
    pass


@dataclass(frozen=True, slots=True)
class Endpoint:
    """
    Resolved control-plane location.

    Attributes:
        hostname: Controller host
        port: Controller TCP port
        secret: Bearer secret ("" when authentication is disabled)
        protocol: "http:" or "https:"
    """

    hostname: str
    port: int
    secret: str
    protocol: str

    @property
    def base_url(self) -> str:
        return f"{self.protocol}//{self.hostname}:{self.port}"

    def __repr__(self) -> str:
        """Repr that does not leak the secret."""
        return (
            f"Endpoint(base_url={self.base_url!r}, "
            f"secret={'set' if self.secret else 'none'})"
        )


def normalize_protocol(protocol: str) -> str:
    """Return protocol in "scheme:" form, e.g. "https" -> "https:"."""
    protocol = protocol.strip().lower()
    if protocol.endswith("://"):
        protocol = protocol[:-2]
    if not protocol.endswith(":"):
        protocol += ":"
    if protocol not in ("http:", "https:"):
        raise EndpointResolutionError(f"Unsupported controller protocol: {protocol!r}")
    return protocol


def _parse_external_controller(url: Optional[str]):
    if not url:
        return None
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        logger.warning(f"Ignoring external controller URL without http(s) scheme: {url!r}")
        return None
    return parts


def resolve_endpoint(
    settings: Optional[Settings] = None,
    *,
    hostname: Optional[str] = None,
    port: Optional[int] = None,
    secret: Optional[str] = None,
    protocol: Optional[str] = None,
) -> Endpoint:
    """
    Resolve the control-plane endpoint.

    Args:
        settings: Settings to read from. Defaults to the global settings.
        hostname: Explicit hostname override
        port: Explicit port override
        secret: Explicit secret override
        protocol: Explicit protocol override

    Returns:
        Resolved Endpoint

    Raises:
        EndpointResolutionError: If hostname or port end up empty or invalid
    """
    if settings is None:
        from clash_console.config import settings as global_settings
        settings = global_settings

    controller = settings.controller
    url = _parse_external_controller(controller.external_controller)

    if hostname is None:
        hostname = controller.hostname
    if hostname is None:
        hostname = url.hostname if url and url.hostname else DEFAULT_HOSTNAME

    if port is None:
        port = controller.port
    if port is None:
        try:
            url_port = url.port if url else None
        except ValueError as e:
            raise EndpointResolutionError(f"Invalid external controller port: {e}") from e
        port = url_port if url_port is not None else DEFAULT_PORT

    if secret is None:
        secret = controller.secret
    if secret is None:
        secret = unquote(url.username) if url and url.username else ""

    if protocol is None:
        protocol = controller.protocol
    if protocol is None:
        if hostname == DEFAULT_HOSTNAME:
            protocol = "http:"
        elif url is not None:
            protocol = f"{url.scheme}:"
        else:
            protocol = "http:"

    if not hostname or not port:
        raise EndpointResolutionError("can't get hostname or port")
    try:
        port = int(port)
    except (TypeError, ValueError) as e:
        raise EndpointResolutionError(f"Invalid controller port: {port!r}") from e
    if not 0 < port < 65536:
        raise EndpointResolutionError(f"Controller port out of range: {port}")

    endpoint = Endpoint(
        hostname=hostname,
        port=port,
        secret=secret,
        protocol=normalize_protocol(protocol),
    )
    logger.debug(f"Resolved controller endpoint: {endpoint!r}")
    return endpoint
