"""
Control API Schemas
===================

Pydantic models for the daemon's REST responses: configuration, rules,
proxies, providers and version.

Proxies and groups share one endpoint. An entry carrying "all" is a
group (Selector, URLTest, Fallback, ...); everything else is a plain
proxy. parse_proxy() makes that decision for mixed payloads.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Configuration
# =============================================================================

class DaemonConfig(BaseModel):
    """
    Daemon runtime configuration from GET /configs.

    Field names use the daemon's hyphenated keys as aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    port: int = 0
    socks_port: int = Field(default=0, alias="socks-port")
    redir_port: int = Field(default=0, alias="redir-port")
    mixed_port: int = Field(default=0, alias="mixed-port")
    allow_lan: bool = Field(default=False, alias="allow-lan")
    mode: str = "rule"
    log_level: str = Field(default="info", alias="log-level")


class Version(BaseModel):
    """Daemon version from GET /version."""

    version: str
    premium: Optional[bool] = None


# =============================================================================
# Rules
# =============================================================================

class Rule(BaseModel):
    type: str
    payload: str
    proxy: str


class Rules(BaseModel):
    rules: List[Rule] = Field(default_factory=list)


# =============================================================================
# Proxies
# =============================================================================

class ProxyHistory(BaseModel):
    """One latency measurement."""

    time: str
    delay: int


class Proxy(BaseModel):
    """Outbound proxy (Direct, Reject, Shadowsocks, Vmess, ...)."""

    name: str
    type: str
    history: List[ProxyHistory] = Field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return False


class Group(Proxy):
    """Proxy group (Selector, URLTest, Fallback, ...)."""

    now: str = ""
    all: List[str] = Field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return True


def parse_proxy(data: Any) -> Union[Proxy, Group]:
    """Validate a proxy payload as Group when it lists members, else Proxy."""
    if isinstance(data, Proxy):
        return data
    if isinstance(data, dict) and "all" in data:
        return Group.model_validate(data)
    return Proxy.model_validate(data)


def _parse_proxy_list(value):
    if value is None:
        return []
    return [parse_proxy(item) for item in value]


class Proxies(BaseModel):
    """All proxies and groups keyed by name, from GET /proxies."""

    proxies: Dict[str, Proxy] = Field(default_factory=dict)

    @field_validator("proxies", mode="before")
    @classmethod
    def _split_groups(cls, value):
        if value is None:
            return {}
        return {name: parse_proxy(item) for name, item in value.items()}

    def groups(self) -> Dict[str, Group]:
        return {name: p for name, p in self.proxies.items() if isinstance(p, Group)}


# =============================================================================
# Providers
# =============================================================================

class ProxyProvider(BaseModel):
    """Proxy provider from GET /providers/proxies."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str = "Proxy"
    vehicle_type: str = Field(default="", alias="vehicleType")
    proxies: List[Proxy] = Field(default_factory=list)
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @field_validator("proxies", mode="before")
    @classmethod
    def _split_groups(cls, value):
        return _parse_proxy_list(value)


class ProxyProviders(BaseModel):
    providers: Dict[str, ProxyProvider] = Field(default_factory=dict)


class RuleProvider(BaseModel):
    """Rule provider from GET /providers/rules."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str = "Rule"
    vehicle_type: str = Field(default="", alias="vehicleType")
    behavior: str = ""
    rule_count: int = Field(default=0, alias="ruleCount")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class RuleProviders(BaseModel):
    providers: Dict[str, RuleProvider] = Field(default_factory=dict)


class ProxyDelay(BaseModel):
    """Latency test result from GET /proxies/<name>/delay."""

    delay: int
