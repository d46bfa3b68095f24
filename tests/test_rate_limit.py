"""Tests for rate limit client-IP resolution."""

from unittest.mock import MagicMock

import pytest

from web3hire.rate_limit import (
    get_client_ip,
    is_trusted_proxy,
    load_trusted_networks,
    reset_trusted_networks,
)


def make_request(peer: str, forwarded_for: str | None = None):
    request = MagicMock()
    request.client.host = peer
    request.headers = {"x-forwarded-for": forwarded_for} if forwarded_for else {}
    return request


@pytest.fixture(autouse=True)
def default_networks(monkeypatch):
    monkeypatch.delenv("TRUSTED_PROXY_CIDRS", raising=False)
    reset_trusted_networks()
    yield
    reset_trusted_networks()


class TestTrustedProxy:
    """Test trusted proxy detection."""

    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.0.1.5", "172.17.0.1", "192.168.1.100", "::1"])
    def test_private_ranges_trusted(self, ip):
        assert is_trusted_proxy(ip) is True

    @pytest.mark.parametrize("ip", ["8.8.8.8", "2001:db8::1", "not-an-ip", ""])
    def test_public_or_invalid_not_trusted(self, ip):
        assert is_trusted_proxy(ip) is False


class TestLoadNetworks:
    """Test CIDR loading."""

    def test_env_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("TRUSTED_PROXY_CIDRS", "203.0.113.0/24")
        reset_trusted_networks()

        assert is_trusted_proxy("203.0.113.7") is True
        assert is_trusted_proxy("127.0.0.1") is False

    def test_invalid_entries_skipped(self):
        networks = load_trusted_networks("10.0.0.0/8, garbage ,192.168.0.0/16")
        assert [str(n) for n in networks] == ["10.0.0.0/8", "192.168.0.0/16"]

    def test_blank_value_uses_defaults(self):
        assert len(load_trusted_networks("  ")) == 5


class TestClientIp:
    """Test client IP resolution."""

    def test_forwarded_for_honored_from_trusted_proxy(self):
        request = make_request("10.0.0.2", "198.51.100.9, 10.0.0.2")
        assert get_client_ip(request) == "198.51.100.9"

    def test_forwarded_for_ignored_from_untrusted_peer(self):
        request = make_request("8.8.8.8", "1.2.3.4")
        assert get_client_ip(request) == "8.8.8.8"

    def test_no_header_uses_peer(self):
        assert get_client_ip(make_request("10.0.0.2")) == "10.0.0.2"
