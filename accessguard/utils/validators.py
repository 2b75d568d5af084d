"""URL validation and anti-SSRF checks for scan targets."""
import asyncio
import ipaddress
import re
import socket
from urllib.parse import urlparse

from accessguard.config import get_settings

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

# Cloud metadata endpoints and well-known internal names
BLOCKED_HOSTNAMES = frozenset({
    "localhost",
    "metadata",
    "metadata.google.internal",
    "metadata.goog",
    "metadata.azure.com",
    "instance-data",
    "instance-data.ec2.internal",
    "kubernetes.default",
    "kubernetes.default.svc",
})

BLOCKED_SUFFIXES = (
    ".localhost",
    ".local",
    ".localdomain",
    ".internal",
    ".home.arpa",
)

# Legacy numeric IPv4 spellings browsers still accept: 2130706433, 0x7f.1, 127.1
_NUMERIC_HOST = re.compile(r"^(0x[0-9a-f]+|\d+)(\.(0x[0-9a-f]+|\d+)){0,3}$", re.IGNORECASE)


class InvalidURLError(ValueError):
    """URL is malformed or uses an unsupported scheme."""


class UnsafeURLError(InvalidURLError):
    """URL targets a private, reserved or metadata address."""


def normalize_url(url: str) -> str:
    """Strip whitespace and default to https when no scheme is given."""
    url = url.strip()
    if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
        url = "https://" + url
    return url


def validate_url_syntax(url: str) -> str:
    """Check scheme and host; return the normalized URL."""
    if not url or not isinstance(url, str) or not url.strip():
        raise InvalidURLError("URL is required")

    url = normalize_url(url)

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        # Accessing .port validates it
        parsed.port
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL: {e}") from e

    if parsed.scheme.lower() not in ("http", "https"):
        raise InvalidURLError("Only HTTP and HTTPS URLs are supported")
    if not hostname:
        raise InvalidURLError("Invalid URL: missing hostname")
    if parsed.username or parsed.password:
        raise InvalidURLError("URLs with embedded credentials are not supported")

    return url


def parse_ip_literal(host: str) -> IPAddress | None:
    """Interpret a hostname as an IP address, including legacy IPv4 forms."""
    host = host.strip("[]")
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass

    if _NUMERIC_HOST.match(host):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None
    return None


def is_blocked_address(address: IPAddress) -> bool:
    """True for any address a scan must never reach."""
    if isinstance(address, ipaddress.IPv6Address):
        if address.ipv4_mapped is not None:
            return is_blocked_address(address.ipv4_mapped)
        if address.sixtofour is not None:
            return is_blocked_address(address.sixtofour)

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
        or not address.is_global
    )


def is_blocked_hostname(hostname: str) -> bool:
    """True for loopback names, metadata hosts, internal suffixes and blocked IP literals."""
    host = hostname.lower().rstrip(".")
    if not host:
        return True

    if host in BLOCKED_HOSTNAMES or host.endswith(BLOCKED_SUFFIXES):
        return True

    address = parse_ip_literal(host)
    if address is not None:
        return is_blocked_address(address)

    return False


async def resolve_host(hostname: str, port: int | None = None) -> list[str]:
    """Resolve a hostname to every address it maps to."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, port, type=socket.SOCK_STREAM)
    return sorted({info[4][0] for info in infos})


async def validate_public_url(url: str) -> str:
    """Full scan-target check: syntax, hostname, then every resolved address.

    Returns the normalized URL. Raises InvalidURLError / UnsafeURLError.
    """
    url = validate_url_syntax(url)

    if get_settings().ALLOW_PRIVATE_URLS:
        return url

    parsed = urlparse(url)
    hostname = parsed.hostname or ""

    if is_blocked_hostname(hostname):
        raise UnsafeURLError(f"Scanning internal or reserved hosts is not allowed: {hostname}")

    if parse_ip_literal(hostname) is not None:
        return url

    # Re-check what the name actually resolves to (DNS rebinding)
    try:
        addresses = await resolve_host(hostname, parsed.port)
    except (socket.gaierror, UnicodeError) as e:
        raise InvalidURLError(f"Could not resolve host: {hostname}") from e

    if not addresses:
        raise InvalidURLError(f"Could not resolve host: {hostname}")

    for addr in addresses:
        address = parse_ip_literal(addr.split("%", 1)[0])
        if address is None or is_blocked_address(address):
            raise UnsafeURLError(
                f"Host {hostname} resolves to a private or reserved address",
            )

    return url


def is_request_allowed(url: str) -> bool:
    """Cheap synchronous check for in-browser requests (no DNS)."""
    if get_settings().ALLOW_PRIVATE_URLS:
        return True

    parsed = urlparse(url)
    if parsed.scheme in ("data", "blob", "about"):
        return True
    if parsed.scheme not in ("http", "https", "ws", "wss"):
        return False
    return not is_blocked_hostname(parsed.hostname or "")


def display_name(url: str) -> str:
    """Hostname used as a label when a site has no name."""
    parsed = urlparse(normalize_url(url))
    return parsed.hostname or url
