from __future__ import annotations
from typing import Iterable, List
from ipaddress import IPv4Address, IPv4Network, ip_network


# Non-routable blocks that never belong in the published list
RESERVED_NETWORKS: List[IPv4Network] = [
    ip_network("0.0.0.0/8"),
    ip_network("10.0.0.0/8"),
    ip_network("127.0.0.0/8"),
    ip_network("169.254.0.0/16"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
]  # type: ignore


def is_routable(ip: str) -> bool:
    """Tell whether a dotted-quad IPv4 string is outside the reserved blocks.

    Anything that does not parse as an IPv4 address (octet above 255, leading
    zeros, wrong group count) is treated as not routable.
    """
    try:
        addr = IPv4Address(ip)
    except ValueError:
        return False
    return not any(addr in net for net in RESERVED_NETWORKS)


def filter_routable(candidates: Iterable[str]) -> List[str]:
    return [ip for ip in candidates if is_routable(ip)]
