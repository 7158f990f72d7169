"""
Unit tests for invoice link resolution.
"""

import pytest

from src.billnotify.utils.links import (
    DEFAULT_FALLBACK_HOST,
    origin_from_headers,
    resolve_invoice_link,
    whatsapp_chat_link,
)


class TestResolveInvoiceLink:
    """Test suite for resolve_invoice_link."""

    def test_origin_and_token(self):
        """Test the link is origin + /public/invoice/ + token."""
        assert (
            resolve_invoice_link("https://shop.example", "abc123")
            == "https://shop.example/public/invoice/abc123"
        )

    def test_trailing_slash_stripped(self):
        """Test a trailing slash on the origin is removed."""
        assert (
            resolve_invoice_link("https://shop.example/", "abc123")
            == "https://shop.example/public/invoice/abc123"
        )

    @pytest.mark.parametrize("token", [None, "", "none"])
    def test_missing_token_yields_bare_origin(self, token):
        """Test that an absent or 'none' token links to the origin."""
        assert resolve_invoice_link("https://shop.example/", token) == "https://shop.example"

    def test_forwarded_headers_used_without_origin(self):
        """Test origin derivation from X-Forwarded-Proto and X-Forwarded-Host."""
        headers = {"x-forwarded-proto": "http", "x-forwarded-host": "staging.shop.example"}
        assert (
            resolve_invoice_link(None, "t1", headers=headers)
            == "http://staging.shop.example/public/invoice/t1"
        )

    def test_fallback_host_when_nothing_known(self):
        """Test the fixed fallback host with the https default."""
        assert (
            resolve_invoice_link(None, "t1")
            == f"https://{DEFAULT_FALLBACK_HOST}/public/invoice/t1"
        )

    def test_disallowed_origin_replaced(self):
        """Test that an origin outside the allowlist is replaced by the fallback host."""
        link = resolve_invoice_link(
            "https://evil.example",
            "t1",
            fallback_host="invoice.shop.example",
            allowed_hosts=["shop.example"],
        )
        assert link == "https://invoice.shop.example/public/invoice/t1"

    @pytest.mark.parametrize(
        "origin",
        ["https://shop.example", "https://billing.shop.example", "http://localhost:3000"],
    )
    def test_allowed_origins_kept(self, origin):
        """Test that listed hosts, their subdomains and localhost pass the allowlist."""
        link = resolve_invoice_link(origin, "t1", allowed_hosts=["shop.example"])
        assert link == f"{origin}/public/invoice/t1"

    def test_empty_allowlist_accepts_any_origin(self):
        """Test that no allowlist means no host restriction."""
        assert resolve_invoice_link("https://any.example", None) == "https://any.example"


class TestOriginFromHeaders:
    """Test suite for origin_from_headers."""

    def test_first_forwarded_value_used(self):
        """Test that comma-separated proxy chains use the first value."""
        headers = {"x-forwarded-proto": "https, http", "x-forwarded-host": "a.example, b.example"}
        assert origin_from_headers(headers) == "https://a.example"

    def test_host_header_used_when_no_forwarded_host(self):
        """Test the Host header is used after X-Forwarded-Host."""
        assert origin_from_headers({"Host": "shop.example"}) == "https://shop.example"

    def test_no_headers(self):
        """Test the fallback host with no headers at all."""
        assert origin_from_headers(None, "fallback.example") == "https://fallback.example"


class TestWhatsappChatLink:
    """Test suite for whatsapp_chat_link."""

    def test_text_is_uri_component_encoded(self):
        """Test that spaces, newlines, emoji and URL characters are percent-encoded."""
        link = whatsapp_chat_link("919876543210", "🏺 Hi Asha!\nhttps://shop.example/public/invoice/a?b=1&c")

        assert link == (
            "https://wa.me/919876543210?text="
            "%F0%9F%8F%BA%20Hi%20Asha!%0Ahttps%3A%2F%2Fshop.example%2Fpublic%2Finvoice%2Fa%3Fb%3D1%26c"
        )
