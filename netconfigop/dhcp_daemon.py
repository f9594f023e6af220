"""Decides whether the DHCP CNI daemon must be deployed."""

from __future__ import annotations

import json
import logging

from .types import (
    AdditionalNetworkDefinition,
    IPAMType,
    NetworkSpec,
    NetworkType,
    SimpleMacvlanConfig,
)

log = logging.getLogger(__name__)


def use_dhcp_raw(addnet: AdditionalNetworkDefinition) -> bool:
    """Report whether a raw CNI config uses DHCP for IP address management."""
    try:
        raw_config = json.loads(addnet.raw_cni_config)
    except ValueError:
        log.warning("Not rendering DHCP daemonset, failed to unmarshal RawCNIConfig: %r", addnet.raw_cni_config)
        return False
    if raw_config is None:
        return False
    if not isinstance(raw_config, dict):
        log.warning("Not rendering DHCP daemonset, RawCNIConfig is not an object: %r", addnet.raw_cni_config)
        return False

    ipam = raw_config.get("ipam")
    if ipam is None:
        return False
    if not isinstance(ipam, dict):
        log.warning("IPAM element has data of type %s but wanted an object", type(ipam).__name__)
        return False

    if "type" in ipam:
        ipam_type = ipam["type"]
        if not isinstance(ipam_type, str):
            log.warning("IPAM type element has data of type %s but wanted string", type(ipam_type).__name__)
            return False
        return ipam_type == "dhcp"
    return False


def use_dhcp_simple_macvlan(conf: SimpleMacvlanConfig | None) -> bool:
    """Report whether a macvlan network uses DHCP; it is the default IPAM."""
    if conf is None or conf.ipam_config is None:
        return True
    return conf.ipam_config.type == IPAMType.DHCP


def use_dhcp(conf: NetworkSpec) -> bool:
    """Report whether any additional network needs the DHCP daemon."""
    # Additional networks are not usable without multi-network support.
    if conf.disable_multi_network:
        return False

    for addnet in conf.additional_networks:
        if addnet.type == NetworkType.RAW and use_dhcp_raw(addnet):
            return True
        if addnet.type == NetworkType.SIMPLE_MACVLAN and use_dhcp_simple_macvlan(addnet.simple_macvlan_config):
            return True
    return False