"""
URL validation and sanitizing utilities.
"""
import ipaddress
import re
import socket
from typing import Optional
from urllib.parse import urlparse, urlencode, parse_qsl, urlunparse


# Host names that resolve to the local machine
BLOCKED_HOST_NAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}
BLOCKED_HOST_SUFFIXES = (".localhost", ".local", ".internal")
NUMERIC_HOST = re.compile(r"^(0x[0-9a-f]+|[0-9]+)(\.(0x[0-9a-f]+|[0-9]+)){0,3}$")

TRACKING_PARAMS = {
    "fbclid", "gclid", "_ga", "_gl", "mc_eid", "mc_cid",
}
TRACKING_PREFIXES = ("utm_",)


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def is_blocked_ip(host: str) -> bool:
    """
    Check whether a host is an IP literal outside the public internet.

    IPv4 addresses embedded in IPv6 (``::ffff:127.0.0.1``) are judged by
    the address they map to.

    Examples:
        >>> is_blocked_ip("169.254.169.254")
        True
        >>> is_blocked_ip("fd00::1")
        True
        >>> is_blocked_ip("93.184.216.34")
        False
    """
    host = host.strip("[]")
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        # Shorthand IPv4 forms such as 127.1 or 0x7f.1
        if not NUMERIC_HOST.match(host):
            return False
        try:
            address = ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return False

    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
        or address.is_multicast
    )


def is_valid_url(url: str) -> bool:
    """
    Check if a string is a usable HTTP/HTTPS product URL.

    The host must look like a real domain (contain a dot) or be an IP
    literal, which rejects inputs such as ``https://not-a-url``.

    Args:
        url: URL string to validate

    Returns:
        True if URL is valid, False otherwise
    """
    if not url or not isinstance(url, str) or any(c.isspace() for c in url.strip()):
        return False

    try:
        result = urlparse(url.strip())
        host = result.hostname or ""
    except ValueError:
        return False

    if result.scheme not in ("http", "https") or not host:
        return False

    return "." in host.strip(".") or _is_ip_literal(host)


def is_blocked_host(url: str) -> bool:
    """
    Check whether a URL points at a loopback or private network host.

    Examples:
        >>> is_blocked_host("http://localhost:8080/x")
        True
        >>> is_blocked_host("https://www.zara.com/es/")
        False
    """
    try:
        host = (urlparse(url).hostname or "").lower().rstrip(".")
    except ValueError:
        return True
    if host in BLOCKED_HOST_NAMES or host.endswith(BLOCKED_HOST_SUFFIXES):
        return True
    return is_blocked_ip(host)


def strip_tracking_params(url: str) -> str:
    """
    Remove analytics parameters (utm_*, fbclid, gclid...) from a URL.

    Examples:
        >>> strip_tracking_params("https://shop.es/p/1?utm_source=x&color=red")
        'https://shop.es/p/1?color=red'
    """
    parsed = urlparse(url)
    if not parsed.query:
        return url

    kept = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key.lower() not in TRACKING_PARAMS
        and not key.lower().startswith(TRACKING_PREFIXES)
    ]
    return urlunparse(parsed._replace(query=urlencode(kept, doseq=True)))


def validate_url(url: str) -> Optional[str]:
    """
    Validate and normalize a URL.

    A missing scheme is added once (``https://``). Tracking parameters are
    dropped and private hosts are refused.

    Args:
        url: URL string to validate

    Returns:
        Normalized URL if valid, None otherwise

    Examples:
        >>> validate_url("www.decathlon.es/es/p/mochila/_/R-p-1")
        'https://www.decathlon.es/es/p/mochila/_/R-p-1'
        >>> validate_url("not-a-url") is None
        True
    """
    if not url or not isinstance(url, str):
        return None

    url = url.strip()
    if not is_valid_url(url):
        if url.lower().startswith(("http://", "https://")):
            return None
        url = "https://" + url
        if not is_valid_url(url):
            return None

    if is_blocked_host(url):
        return None

    return strip_tracking_params(url)
