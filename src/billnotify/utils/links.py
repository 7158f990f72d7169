"""
Invoice link resolution.

Builds the public invoice URL sent to customers from the request context and
the bill token handed over by the order system. Resolution never fails: a
missing token degrades to a link to the site's home page.
"""

from typing import Iterable, Mapping, Optional
from urllib.parse import quote, urlsplit

DEFAULT_FALLBACK_HOST = "invoice.mittiarts.com"

INVOICE_PATH = "/public/invoice/"

WHATSAPP_CLICK_TO_CHAT = "https://wa.me/"

# Characters left unescaped in a URI component
URI_COMPONENT_SAFE = "!~*'()"

# Literal the front end sends when an order has no bill yet
NO_TOKEN = "none"


def _header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(name) or headers.get(name.title())
    if value:
        # Proxies may append values: "https, http"
        return value.split(",")[0].strip() or None
    return None


def origin_from_headers(
    headers: Optional[Mapping[str, str]],
    fallback_host: str = DEFAULT_FALLBACK_HOST,
) -> str:
    """
    Build a scheme+host origin from forwarded request headers.

    Uses X-Forwarded-Proto (default ``https``) and X-Forwarded-Host, then
    Host, then the fixed fallback host.

    Args:
        headers: Request headers (case-insensitive mapping or plain dict)
        fallback_host: Host used when no header names one

    Returns:
        Origin string such as ``https://shop.example``
    """
    protocol = _header(headers, "x-forwarded-proto") or "https"
    host = (
        _header(headers, "x-forwarded-host")
        or _header(headers, "host")
        or fallback_host
    )
    return f"{protocol}://{host}"


def _host_allowed(origin: str, allowed_hosts: Iterable[str]) -> bool:
    host = (urlsplit(origin).hostname or "").lower()
    if host == "localhost":
        return True
    for allowed in allowed_hosts:
        allowed = allowed.lower()
        if host == allowed or host.endswith(f".{allowed}"):
            return True
    return False


def resolve_invoice_link(
    origin: Optional[str],
    bill_token: Optional[str],
    headers: Optional[Mapping[str, str]] = None,
    fallback_host: str = DEFAULT_FALLBACK_HOST,
    allowed_hosts: Iterable[str] = (),
) -> str:
    """
    Derive the public invoice URL for a bill token.

    Args:
        origin: Explicit scheme+host, or None to derive it from headers
        bill_token: Opaque bill token; None, empty or "none" means no invoice
        headers: Request headers consulted when origin is absent
        fallback_host: Host used when neither origin nor headers name one
        allowed_hosts: When non-empty, origins outside these hosts are
                       replaced by https://<fallback_host>

    Returns:
        ``<origin>/public/invoice/<token>``, or the bare origin without a token

    Examples:
        >>> resolve_invoice_link("https://shop.example/", "abc123")
        'https://shop.example/public/invoice/abc123'

        >>> resolve_invoice_link("https://shop.example", "none")
        'https://shop.example'
    """
    resolved = origin or origin_from_headers(headers, fallback_host)
    resolved = resolved.rstrip("/")

    allowed_hosts = list(allowed_hosts)
    if allowed_hosts and not _host_allowed(resolved, allowed_hosts):
        resolved = f"https://{fallback_host}"

    if bill_token and bill_token != NO_TOKEN:
        return f"{resolved}{INVOICE_PATH}{bill_token}"
    return resolved


def whatsapp_chat_link(recipient: str, text: str) -> str:
    """
    Build a wa.me click-to-chat link with a prefilled message.

    Staff open it to send the message by hand when every provider failed.

    Examples:
        >>> whatsapp_chat_link("919876543210", "Hi Asha, bill: https://x.in/a?b=1")
        'https://wa.me/919876543210?text=Hi%20Asha%2C%20bill%3A%20https%3A%2F%2Fx.in%2Fa%3Fb%3D1'
    """
    return f"{WHATSAPP_CLICK_TO_CHAT}{recipient}?text={quote(text, safe=URI_COMPONENT_SAFE)}"
