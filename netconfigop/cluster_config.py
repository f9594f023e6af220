"""Validation and merging of the cluster-wide network configuration."""

from __future__ import annotations

from .ipaddr import IPPool, parse_cidr
from .types import (
    ClusterConfigSpec,
    ClusterNetworkEntry,
    ConfigError,
    NetworkSpec,
    NetworkStatus,
    NetworkType,
)

_STATUS_TYPES = {
    NetworkType.OPENSHIFT_SDN.value,
    NetworkType.OVN_KUBERNETES.value,
    NetworkType.KURYR.value,
}


def validate_cluster_config(cluster_config: ClusterConfigSpec) -> None:
    """Raise ConfigError unless the cluster config is valid and its networks do not overlap."""
    pool = IPPool()

    if not cluster_config.service_network:
        raise ConfigError("spec.serviceNetwork must have at least 1 entry")
    for snet in cluster_config.service_network:
        try:
            cidr = parse_cidr(snet)
        except ValueError as exc:
            raise ConfigError(f"could not parse spec.serviceNetwork {snet}: {exc}") from exc
        _add(pool, cidr)

    for cnet in cluster_config.cluster_network:
        try:
            cidr = parse_cidr(cnet.cidr)
        except ValueError as exc:
            raise ConfigError(f"could not parse spec.clusterNetwork {cnet.cidr}") from exc
        # A smaller prefix length is a larger block.
        if cnet.host_prefix < cidr.prefixlen:
            raise ConfigError(f"hostPrefix {cnet.host_prefix} is larger than its cidr {cnet.cidr}")
        if cnet.host_prefix > 30:
            raise ConfigError(f"hostPrefix {cnet.host_prefix} is too small, must be a /30 or larger")
        _add(pool, cidr)

    if not cluster_config.cluster_network:
        raise ConfigError("spec.clusterNetwork must have at least 1 entry")

    if not cluster_config.network_type:
        raise ConfigError("spec.networkType is required")


def _add(pool: IPPool, cidr) -> None:
    try:
        pool.add(cidr)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def merge_cluster_config(oper_conf: NetworkSpec, cluster_conf: ClusterConfigSpec) -> None:
    """Copy the cluster configuration into the operator configuration."""
    oper_conf.service_network = list(cluster_conf.service_network)
    oper_conf.cluster_network = [
        ClusterNetworkEntry(cidr=c.cidr, host_prefix=c.host_prefix) for c in cluster_conf.cluster_network
    ]
    oper_conf.default_network.type = cluster_conf.network_type


def status_from_operator_config(oper_conf: NetworkSpec) -> NetworkStatus | None:
    """Build the reported network status, or None for an unrecognised network type."""
    network_type = oper_conf.default_network.type
    if network_type not in _STATUS_TYPES:
        return None

    status = NetworkStatus(
        service_network=list(oper_conf.service_network),
        network_type=network_type,
        cluster_network=[
            ClusterNetworkEntry(cidr=c.cidr, host_prefix=c.host_prefix) for c in oper_conf.cluster_network
        ],
    )

    if network_type == NetworkType.OPENSHIFT_SDN:
        status.cluster_network_mtu = int(oper_conf.default_network.openshift_sdn_config.mtu)
    elif network_type == NetworkType.OVN_KUBERNETES:
        status.cluster_network_mtu = int(oper_conf.default_network.ovn_kubernetes_config.mtu)

    return status