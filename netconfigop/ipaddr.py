"""IP address and CIDR helpers used for network validation."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

_PREFIX_RE = re.compile(r"\d{1,3}")


def parse_ip(text: str) -> IPAddress | None:
    """Parse an IPv4 or IPv6 address, returning None if it is not one."""
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def parse_cidr(text: str) -> IPNetwork:
    """Parse CIDR notation into the network it denotes; host bits are masked off."""
    address, sep, prefix = text.partition("/")
    if not sep or not _PREFIX_RE.fullmatch(prefix) or parse_ip(address) is None:
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        return ipaddress.ip_network(f"{address}/{int(prefix)}", strict=False)
    except ValueError:
        raise ValueError(f"invalid CIDR address: {text}") from None


def last_ip(network: IPNetwork) -> IPAddress:
    """Return the last address of a subnet."""
    return network.broadcast_address


def _with_last_byte(address: IPAddress, delta: int) -> IPAddress:
    packed = bytearray(address.packed)
    packed[-1] = (packed[-1] + delta) % 256
    return ipaddress.ip_address(bytes(packed))


def last_usable_ip(network: IPNetwork) -> IPAddress:
    """Return the second to last address of a subnet."""
    return _with_last_byte(last_ip(network), -1)


def first_usable_ip(network: IPNetwork) -> IPAddress:
    """Return the second address of a subnet."""
    return _with_last_byte(network.network_address, 1)


def nets_overlap(a: IPNetwork, b: IPNetwork) -> bool:
    """Report whether two networks of the same family overlap."""
    if a.version != b.version:
        return False
    return (
        b.network_address in a
        or last_ip(b) in a
        or a.network_address in b
        or last_ip(a) in b
    )


@dataclass
class IPPool:
    """A set of networks that must not overlap each other."""

    networks: list[IPNetwork] = field(default_factory=list)

    def add(self, network: IPNetwork) -> None:
        """Add a network, raising ValueError if it overlaps one already held."""
        for existing in self.networks:
            if nets_overlap(existing, network):
                raise ValueError(f"CIDRs {existing} and {network} overlap")
        self.networks.append(network)