"""Detection of the MTU of the host's default route."""

from __future__ import annotations

import sys
from pathlib import Path

_ROUTE_TABLE = Path("/proc/net/route")
_NET_CLASS = Path("/sys/class/net")
_MAX_MTU = 65536
_FALLBACK_MTU = 1500
_DEFAULT_DESTINATION = "00000000"


def get_default_mtu() -> int:
    """Return the smallest MTU among the links carrying an IPv4 default route.

    On platforms other than Linux this is 1500. Raises OSError when the routes
    or links cannot be read, or no MTU can be determined.
    """
    if not sys.platform.startswith("linux"):
        return _FALLBACK_MTU

    try:
        lines = _ROUTE_TABLE.read_text().splitlines()[1:]
    except OSError as exc:
        raise OSError(f"could not list routes: {exc}") from exc
    routes = [line.split() for line in lines if line.strip()]
    if not routes:
        raise OSError("got no routes")

    mtu = _MAX_MTU + 1
    for fields in routes:
        if len(fields) < 8:
            continue
        iface, destination, mask = fields[0], fields[1], fields[7]
        if destination != _DEFAULT_DESTINATION or mask != _DEFAULT_DESTINATION:
            continue
        try:
            link_mtu = int((_NET_CLASS / iface / "mtu").read_text().strip())
        except (OSError, ValueError) as exc:
            raise OSError(f"could not retrieve link {iface}: {exc}") from exc
        if 0 < link_mtu < mtu:
            mtu = link_mtu

    if mtu > _MAX_MTU:
        raise OSError("unable to determine MTU")
    return mtu