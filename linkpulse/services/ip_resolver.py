"""Client IP resolution from proxy headers and the connection address."""

import ipaddress
from collections.abc import Mapping

UNKNOWN_IP = "0.0.0.0"

# Checked in order; the first public address wins
PROXY_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")

PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)
PRIVATE_HOSTS = (
    ipaddress.ip_address("127.0.0.1"),
    ipaddress.ip_address("::1"),
)

IPV4_MAPPED_PREFIX = "::ffff:"


def _strip_mapped_prefix(ip: str) -> str:
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        return ip[len(IPV4_MAPPED_PREFIX):]
    return ip


def _parse(ip: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(_strip_mapped_prefix(ip.strip()))
    except ValueError:
        return None


def is_private_address(ip: str) -> bool:
    """Check whether ``ip`` is in one of the private ranges filtered from proxy headers.

    Matches 10.0.0.0/8, 172.16.0.0/12, 192.168.0.0/16, 127.0.0.1, ::1 and the
    literal ``localhost``, after stripping an ``::ffff:`` IPv4-mapped prefix.
    """
    candidate = _strip_mapped_prefix(ip.strip())
    if candidate.lower() == "localhost":
        return True

    address = _parse(candidate)
    if address is None:
        return False
    if address in PRIVATE_HOSTS:
        return True
    return address.version == 4 and any(address in network for network in PRIVATE_NETWORKS)


def is_local_address(ip: str | None) -> bool:
    """Check whether geolocating ``ip`` is pointless.

    True for empty values, the unknown sentinel, private ranges and any
    loopback, link-local or unspecified address.
    """
    if not ip or not ip.strip():
        return True
    if is_private_address(ip):
        return True

    address = _parse(ip)
    if address is None:
        return False
    return address.is_loopback or address.is_link_local or address.is_unspecified


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup; ``name`` must be lowercase."""
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; Starlette headers are not
        for key, candidate in headers.items():
            if key.lower() == name:
                return candidate
    return value


def resolve_client_ip(headers: Mapping[str, str], remote_addr: str | None) -> str:
    """Best-guess public client IP for a request.

    Precedence: first public ``X-Forwarded-For`` entry, then ``X-Real-IP``,
    then ``CF-Connecting-IP``, then the connection address (even if private),
    then ``0.0.0.0``. Header entries that are not IP addresses are skipped.
    Never raises.
    """
    for name in PROXY_HEADERS:
        value = get_header(headers, name)
        if not value:
            continue

        for entry in value.split(","):
            entry = entry.strip()
            if entry and _parse(entry) is not None and not is_private_address(entry):
                return entry

    if remote_addr and remote_addr.strip():
        return remote_addr.strip()

    return UNKNOWN_IP
