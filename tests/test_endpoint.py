"""
Endpoint Resolution Tests
=========================
"""

import pytest

from clash_console.config import ControllerConfig, Settings, load_config
from clash_console.endpoint import (
    Endpoint,
    EndpointResolutionError,
    normalize_protocol,
    resolve_endpoint,
)


def settings_with(**controller) -> Settings:
    return Settings(controller=ControllerConfig(**controller))


class TestResolveEndpoint:
    """Source precedence and validation."""

    def test_defaults(self):
        endpoint = resolve_endpoint(Settings())

        assert endpoint == Endpoint(hostname="127.0.0.1", port=9090, secret="", protocol="http:")
        assert endpoint.base_url == "http://127.0.0.1:9090"

    def test_external_controller_url(self):
        endpoint = resolve_endpoint(
            settings_with(external_controller="https://s3cret@clash.lan:9443")
        )

        assert endpoint.hostname == "clash.lan"
        assert endpoint.port == 9443
        assert endpoint.secret == "s3cret"
        assert endpoint.protocol == "https:"

    def test_configured_fields_beat_external_controller(self):
        endpoint = resolve_endpoint(
            settings_with(
                hostname="10.0.0.2",
                secret="override",
                external_controller="https://s3cret@clash.lan:9443",
            )
        )

        assert endpoint.hostname == "10.0.0.2"
        assert endpoint.port == 9443
        assert endpoint.secret == "override"
        assert endpoint.protocol == "https:"

    def test_explicit_arguments_win(self):
        endpoint = resolve_endpoint(
            settings_with(hostname="10.0.0.2", port=9091, secret="a"),
            hostname="192.168.1.1",
            port=7890,
            secret="b",
            protocol="https",
        )

        assert endpoint.base_url == "https://192.168.1.1:7890"
        assert endpoint.secret == "b"

    def test_loopback_defaults_to_http(self):
        endpoint = resolve_endpoint(
            settings_with(hostname="127.0.0.1", external_controller="https://clash.lan:9443")
        )

        assert endpoint.protocol == "http:"

    def test_empty_secret_is_kept(self):
        endpoint = resolve_endpoint(
            settings_with(secret="", external_controller="http://s3cret@127.0.0.1:9090")
        )

        assert endpoint.secret == ""

    def test_non_http_external_controller_is_ignored(self):
        endpoint = resolve_endpoint(settings_with(external_controller="127.0.0.1:9999"))

        assert endpoint.port == 9090

    def test_empty_hostname_fails(self):
        with pytest.raises(EndpointResolutionError):
            resolve_endpoint(Settings(), hostname="")

    def test_port_out_of_range_fails(self):
        with pytest.raises(EndpointResolutionError):
            resolve_endpoint(Settings(), port=70000)

    def test_bad_protocol_fails(self):
        with pytest.raises(EndpointResolutionError):
            resolve_endpoint(Settings(), protocol="ftp:")

    def test_repr_hides_secret(self):
        endpoint = Endpoint(hostname="h", port=1, secret="topsecret", protocol="http:")

        assert "topsecret" not in repr(endpoint)

    def test_uses_environment_through_settings(self, monkeypatch):
        monkeypatch.setenv("CLASH_CONTROLLER_HOST", "10.1.1.1")
        monkeypatch.setenv("CLASH_CONTROLLER_PORT", "9097")
        monkeypatch.setenv("CLASH_SECRET", "env-secret")

        endpoint = resolve_endpoint(load_config("/nonexistent.yaml"))

        assert endpoint.base_url == "http://10.1.1.1:9097"
        assert endpoint.secret == "env-secret"


class TestNormalizeProtocol:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("http", "http:"),
            ("https:", "https:"),
            ("HTTPS://", "https:"),
        ],
    )
    def test_forms(self, raw, expected):
        assert normalize_protocol(raw) == expected
