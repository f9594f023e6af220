"""Configuration objects describing the cluster network."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping


class ConfigError(ValueError):
    """Raised when a network configuration is invalid or may not be applied."""

    def __init__(self, message: str, errors: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


class _StrEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class NetworkType(_StrEnum):
    """Known network provider types."""

    OPENSHIFT_SDN = "OpenShiftSDN"
    OVN_KUBERNETES = "OVNKubernetes"
    KURYR = "Kuryr"
    RAW = "Raw"
    SIMPLE_MACVLAN = "SimpleMacvlan"


class IPAMType(_StrEnum):
    """IP address management types for additional networks."""

    DHCP = "DHCP"
    STATIC = "Static"


class MacvlanMode(_StrEnum):
    """Modes supported by the macvlan plugin."""

    BRIDGE = "Bridge"
    PRIVATE = "Private"
    VEPA = "VEPA"
    PASSTHRU = "Passthru"


class SDNMode(_StrEnum):
    """Isolation modes of openshift-sdn."""

    SUBNET = "Subnet"
    MULTITENANT = "Multitenant"
    NETWORK_POLICY = "NetworkPolicy"


@dataclass
class ClusterNetworkEntry:
    """A pod network block and the prefix handed to each host."""

    cidr: str = ""
    host_prefix: int = 0


@dataclass
class ProxyConfig:
    """Settings for kube-proxy."""

    iptables_sync_period: str = ""
    bind_address: str = ""
    proxy_arguments: dict[str, list[str]] | None = None


@dataclass
class OpenShiftSDNConfig:
    """Settings specific to openshift-sdn."""

    mode: str = ""
    vxlan_port: int | None = None
    mtu: int | None = None
    use_external_openvswitch: bool | None = None
    enable_unidling: bool | None = None


@dataclass
class OVNKubernetesConfig:
    """Settings specific to ovn-kubernetes."""

    mtu: int | None = None


@dataclass
class KuryrConfig:
    """Settings specific to Kuryr."""

    daemon_probes_port: int | None = None
    controller_probes_port: int | None = None


@dataclass
class StaticIPAMAddress:
    """A static address with an optional gateway."""

    address: str = ""
    gateway: str = ""


@dataclass
class StaticIPAMRoute:
    """A static route."""

    destination: str = ""
    gateway: str = ""


@dataclass
class StaticIPAMDNS:
    """Static DNS settings."""

    nameservers: list[str] = field(default_factory=list)
    domain: str = ""
    search: list[str] = field(default_factory=list)


@dataclass
class StaticIPAMConfig:
    """Static IP address management settings."""

    addresses: list[StaticIPAMAddress] = field(default_factory=list)
    routes: list[StaticIPAMRoute] = field(default_factory=list)
    dns: StaticIPAMDNS | None = None


@dataclass
class IPAMConfig:
    """IP address management for an additional network."""

    type: str = ""
    static_ipam_config: StaticIPAMConfig | None = None


@dataclass
class SimpleMacvlanConfig:
    """Settings of a macvlan additional network."""

    master: str = ""
    ipam_config: IPAMConfig | None = None
    mode: str = ""
    mtu: int = 0


@dataclass
class AdditionalNetworkDefinition:
    """A secondary network attached to pods."""

    type: str = ""
    name: str = ""
    namespace: str = ""
    raw_cni_config: str = ""
    simple_macvlan_config: SimpleMacvlanConfig | None = None


@dataclass
class DefaultNetworkDefinition:
    """The default pod network and its provider settings."""

    type: str = ""
    openshift_sdn_config: OpenShiftSDNConfig | None = None
    ovn_kubernetes_config: OVNKubernetesConfig | None = None
    kuryr_config: KuryrConfig | None = None


@dataclass
class NetworkSpec:
    """The operator's desired network configuration."""

    cluster_network: list[ClusterNetworkEntry] = field(default_factory=list)
    service_network: list[str] = field(default_factory=list)
    default_network: DefaultNetworkDefinition = field(default_factory=DefaultNetworkDefinition)
    additional_networks: list[AdditionalNetworkDefinition] = field(default_factory=list)
    disable_multi_network: bool | None = None
    deploy_kube_proxy: bool | None = None
    kube_proxy_config: ProxyConfig | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NetworkSpec:
        """Build a spec from its camel-cased dictionary form; unknown keys are ignored."""
        return cls(
            cluster_network=[_cluster_entry(e) for e in data.get("clusterNetwork") or []],
            service_network=[str(s) for s in data.get("serviceNetwork") or []],
            default_network=_default_network(data.get("defaultNetwork") or {}),
            additional_networks=[_additional(a) for a in data.get("additionalNetworks") or []],
            disable_multi_network=_opt_bool(data.get("disableMultiNetwork")),
            deploy_kube_proxy=_opt_bool(data.get("deployKubeProxy")),
            kube_proxy_config=_proxy(data.get("kubeProxyConfig")),
        )

    def copy(self) -> NetworkSpec:
        """Return an independent deep copy."""
        return _copy.deepcopy(self)


@dataclass
class ClusterConfigSpec:
    """The cluster-wide network configuration supplied by the installer."""

    cluster_network: list[ClusterNetworkEntry] = field(default_factory=list)
    service_network: list[str] = field(default_factory=list)
    network_type: str = ""


@dataclass
class NetworkStatus:
    """The network status reported back to the cluster."""

    cluster_network: list[ClusterNetworkEntry] = field(default_factory=list)
    service_network: list[str] = field(default_factory=list)
    cluster_network_mtu: int = 0
    network_type: str = ""


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _opt_bool(value: Any) -> bool | None:
    return None if value is None else bool(value)


def _cluster_entry(data: Mapping[str, Any]) -> ClusterNetworkEntry:
    return ClusterNetworkEntry(cidr=data.get("cidr", ""), host_prefix=int(data.get("hostPrefix", 0)))


def _proxy(data: Mapping[str, Any] | None) -> ProxyConfig | None:
    if data is None:
        return None
    arguments = data.get("proxyArguments")
    return ProxyConfig(
        iptables_sync_period=data.get("iptablesSyncPeriod", ""),
        bind_address=data.get("bindAddress", ""),
        proxy_arguments=None if arguments is None else {k: list(v) for k, v in arguments.items()},
    )


def _default_network(data: Mapping[str, Any]) -> DefaultNetworkDefinition:
    sdn = data.get("openshiftSDNConfig")
    ovn = data.get("ovnKubernetesConfig")
    kuryr = data.get("kuryrConfig")
    return DefaultNetworkDefinition(
        type=data.get("type", ""),
        openshift_sdn_config=None
        if sdn is None
        else OpenShiftSDNConfig(
            mode=sdn.get("mode", ""),
            vxlan_port=_opt_int(sdn.get("vxlanPort")),
            mtu=_opt_int(sdn.get("mtu")),
            use_external_openvswitch=_opt_bool(sdn.get("useExternalOpenvswitch")),
            enable_unidling=_opt_bool(sdn.get("enableUnidling")),
        ),
        ovn_kubernetes_config=None if ovn is None else OVNKubernetesConfig(mtu=_opt_int(ovn.get("mtu"))),
        kuryr_config=None
        if kuryr is None
        else KuryrConfig(
            daemon_probes_port=_opt_int(kuryr.get("daemonProbesPort")),
            controller_probes_port=_opt_int(kuryr.get("controllerProbesPort")),
        ),
    )


def _static_ipam(data: Mapping[str, Any]) -> StaticIPAMConfig:
    dns = data.get("dns")
    return StaticIPAMConfig(
        addresses=[
            StaticIPAMAddress(address=a.get("address", ""), gateway=a.get("gateway", ""))
            for a in data.get("addresses") or []
        ],
        routes=[
            StaticIPAMRoute(destination=r.get("destination", ""), gateway=r.get("gateway", ""))
            for r in data.get("routes") or []
        ],
        dns=None
        if dns is None
        else StaticIPAMDNS(
            nameservers=list(dns.get("nameservers") or []),
            domain=dns.get("domain", ""),
            search=list(dns.get("search") or []),
        ),
    )


def _ipam(data: Mapping[str, Any] | None) -> IPAMConfig | None:
    if data is None:
        return None
    static = data.get("staticIPAMConfig")
    return IPAMConfig(
        type=data.get("type", ""),
        static_ipam_config=None if static is None else _static_ipam(static),
    )


def _additional(data: Mapping[str, Any]) -> AdditionalNetworkDefinition:
    macvlan = data.get("simpleMacvlanConfig")
    return AdditionalNetworkDefinition(
        type=data.get("type", ""),
        name=data.get("name", ""),
        namespace=data.get("namespace", ""),
        raw_cni_config=data.get("rawCNIConfig", ""),
        simple_macvlan_config=None
        if macvlan is None
        else SimpleMacvlanConfig(
            master=macvlan.get("master", ""),
            ipam_config=_ipam(macvlan.get("ipamConfig")),
            mode=macvlan.get("mode", ""),
            mtu=int(macvlan.get("mtu", 0)),
        ),
    )