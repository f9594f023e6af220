"""The operator's configuration pipeline: canonicalize, validate, default, check and render."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Iterable

from .additional_networks import (
    render_additional_networks_crd,
    render_raw_cni_config,
    render_simple_macvlan_config,
    validate_raw,
    validate_simple_macvlan_config,
)
from .dhcp_daemon import use_dhcp
from .ipaddr import parse_cidr
from .kuryr import (
    KuryrBootstrapResult,
    fill_kuryr_defaults,
    is_kuryr_change_safe,
    render_kuryr,
    validate_kuryr,
)
from .mtu import get_default_mtu
from .multus import render_multus_admission_controller_config, render_multus_config
from .openshift_sdn import (
    fill_openshift_sdn_defaults,
    is_openshift_sdn_change_safe,
    render_openshift_sdn,
    validate_openshift_sdn,
)
from .ovn_kubernetes import (
    fill_ovn_kubernetes_defaults,
    is_ovn_kubernetes_change_safe,
    render_ovn_kubernetes,
    validate_ovn_kubernetes,
)
from .proxy import (
    fill_kube_proxy_defaults,
    is_kube_proxy_change_safe,
    render_standalone_kube_proxy,
    validate_standalone_kube_proxy,
)
from .types import (
    ConfigError,
    IPAMConfig,
    IPAMType,
    MacvlanMode,
    NetworkSpec,
    NetworkType,
    SDNMode,
    SimpleMacvlanConfig,
)

log = logging.getLogger(__name__)

_FALLBACK_MTU = 1500

Manifest = dict[str, Any]


def _format_errors(errors: Iterable[str]) -> str:
    return "[" + " ".join(errors) + "]"


def _canonical(value: str, choices: Iterable[str]) -> str:
    """Return the choice matching value case-insensitively, or value unchanged."""
    lowered = str(value).lower()
    for choice in choices:
        if choice.lower() == lowered:
            return choice
    return value


def render(
    conf: NetworkSpec,
    bootstrap_result: KuryrBootstrapResult | None,
    manifest_dir: str | os.PathLike,
    webhook_name: str,
    service_ca_configmap: str,
) -> list[Manifest]:
    """Render every manifest the configuration calls for."""
    log.info("Starting render phase")
    objs: list[Manifest] = []
    objs.extend(render_multus(conf, manifest_dir))
    objs.extend(render_multus_admission_controller(conf, manifest_dir, webhook_name, service_ca_configmap))
    objs.extend(render_default_network(conf, bootstrap_result, manifest_dir))
    objs.extend(render_standalone_kube_proxy(conf, manifest_dir))
    objs.extend(render_additional_networks(conf, manifest_dir))
    log.info("Render phase done, rendered %d objects", len(objs))
    return objs


def canonicalize_ipam_config(conf: IPAMConfig) -> None:
    """Bring the IPAM type to its canonical case."""
    conf.type = _canonical(conf.type, (t.value for t in IPAMType))


def canonicalize_simple_macvlan_config(conf: SimpleMacvlanConfig) -> None:
    """Bring the macvlan mode and IPAM type to their canonical case."""
    conf.mode = _canonical(conf.mode, (m.value for m in MacvlanMode))
    if conf.ipam_config is not None:
        canonicalize_ipam_config(conf.ipam_config)


def canonicalize(conf: NetworkSpec) -> None:
    """Bring network types and modes to their canonical case."""
    dn = conf.default_network
    dn.type = _canonical(dn.type, (NetworkType.OPENSHIFT_SDN.value, NetworkType.OVN_KUBERNETES.value))

    if dn.type == NetworkType.OPENSHIFT_SDN and dn.openshift_sdn_config is not None:
        sdnc = dn.openshift_sdn_config
        sdnc.mode = _canonical(sdnc.mode, (m.value for m in SDNMode))

    for an in conf.additional_networks:
        original_type = an.type
        an.type = _canonical(an.type, (NetworkType.RAW.value, NetworkType.SIMPLE_MACVLAN.value))
        # Only configs that already named the type exactly get their settings canonicalized.
        if original_type == NetworkType.SIMPLE_MACVLAN and an.simple_macvlan_config is not None:
            canonicalize_simple_macvlan_config(an.simple_macvlan_config)


def validate(conf: NetworkSpec) -> None:
    """Raise ConfigError unless the configuration is reasonable; call after canonicalize."""
    errors: list[str] = []
    errors.extend(validate_ip_pools(conf))
    errors.extend(validate_default_network(conf))
    errors.extend(validate_multus(conf))
    errors.extend(validate_standalone_kube_proxy(conf))
    if errors:
        raise ConfigError(f"invalid configuration: {_format_errors(errors)}", errors)


def fill_defaults(conf: NetworkSpec, previous: NetworkSpec | None) -> None:
    """Apply default values, carrying them over from previous where it is given."""
    try:
        host_mtu = get_default_mtu()
        failure: OSError | None = None
    except OSError as exc:
        host_mtu = 0
        failure = exc
    if host_mtu == 0:
        host_mtu = _FALLBACK_MTU
    if previous is None:
        if failure is not None:
            log.info("Failed MTU probe, falling back to %d: %s", _FALLBACK_MTU, failure)
        else:
            log.info("Detected uplink MTU %d", host_mtu)

    if conf.disable_multi_network is None:
        conf.disable_multi_network = False
    fill_default_network_defaults(conf, previous, host_mtu)
    fill_kube_proxy_defaults(conf, previous)


def is_change_safe(prev: NetworkSpec | None, next: NetworkSpec) -> None:
    """Raise ConfigError if moving from prev to next is not allowed."""
    if prev is None or prev == next:
        return

    errors: list[str] = []
    if prev.cluster_network != next.cluster_network:
        errors.append("cannot change ClusterNetworks")
    if prev.service_network != next.service_network:
        errors.append("cannot change ServiceNetwork")
    errors.extend(is_default_network_change_safe(prev, next))
    if prev.disable_multi_network != next.disable_multi_network:
        errors.append("cannot change DisableMultiNetwork")
    errors.extend(is_kube_proxy_change_safe(prev, next))

    if errors:
        raise ConfigError(f"invalid configuration: {_format_errors(errors)}", errors)


def validate_ip_pools(conf: NetworkSpec) -> list[str]:
    """Check that every cluster and service network is a valid CIDR."""
    errors: list[str] = []
    for idx, pool in enumerate(conf.cluster_network):
        try:
            parse_cidr(pool.cidr)
        except ValueError as exc:
            errors.append(f"could not parse ClusterNetwork {idx} CIDR {json.dumps(pool.cidr)}: {exc}")
    for idx, pool in enumerate(conf.service_network):
        try:
            parse_cidr(pool)
        except ValueError as exc:
            errors.append(f"could not parse ServiceNetwork {idx} CIDR {json.dumps(pool)}: {exc}")
    return errors


def validate_multus(conf: NetworkSpec) -> list[str]:
    """Check that additional networks are only given while Multus is deployed."""
    deploy_multus = not conf.disable_multi_network
    if not deploy_multus and conf.additional_networks:
        return ["additional networks cannot be specified without deploying Multus"]
    return []


def validate_default_network(conf: NetworkSpec) -> list[str]:
    """Validate the settings of whichever default network is chosen."""
    network_type = conf.default_network.type
    if network_type == NetworkType.OPENSHIFT_SDN:
        return validate_openshift_sdn(conf)
    if network_type == NetworkType.OVN_KUBERNETES:
        return validate_ovn_kubernetes(conf)
    if network_type == NetworkType.KURYR:
        return validate_kuryr(conf)
    return []


def render_default_network(
    conf: NetworkSpec, bootstrap_result: KuryrBootstrapResult | None, manifest_dir: str | os.PathLike
) -> list[Manifest]:
    """Render the manifests of the chosen default network; unknown types render nothing."""
    errors = validate_default_network(conf)
    if errors:
        raise ConfigError(f"invalid Default Network configuration: {_format_errors(errors)}", errors)

    network_type = conf.default_network.type
    if network_type == NetworkType.OPENSHIFT_SDN:
        return render_openshift_sdn(conf, manifest_dir)
    if network_type == NetworkType.OVN_KUBERNETES:
        return render_ovn_kubernetes(conf, manifest_dir)
    if network_type == NetworkType.KURYR:
        return render_kuryr(conf, bootstrap_result, manifest_dir)
    log.info("NOTICE: Unknown network type %s, ignoring", network_type)
    return []


def fill_default_network_defaults(conf: NetworkSpec, previous: NetworkSpec | None, host_mtu: int) -> None:
    """Apply the defaults of whichever default network is chosen."""
    network_type = conf.default_network.type
    if network_type == NetworkType.OPENSHIFT_SDN:
        fill_openshift_sdn_defaults(conf, previous, host_mtu)
    elif network_type == NetworkType.OVN_KUBERNETES:
        fill_ovn_kubernetes_defaults(conf, previous, host_mtu)
    elif network_type == NetworkType.KURYR:
        fill_kuryr_defaults(conf)


def is_default_network_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a change to the default network is unsafe."""
    if prev.default_network.type != next.default_network.type:
        return ["cannot change default network type"]

    network_type = prev.default_network.type
    if network_type == NetworkType.OPENSHIFT_SDN:
        return is_openshift_sdn_change_safe(prev, next)
    if network_type == NetworkType.OVN_KUBERNETES:
        return is_ovn_kubernetes_change_safe(prev, next)
    if network_type == NetworkType.KURYR:
        return is_kuryr_change_safe(prev, next)
    return []


def validate_additional_networks(conf: NetworkSpec) -> list[str]:
    """Validate every additional network."""
    errors: list[str] = []
    for an in conf.additional_networks:
        if an.type == NetworkType.RAW:
            errors.extend(validate_raw(an))
        elif an.type == NetworkType.SIMPLE_MACVLAN:
            errors.extend(validate_simple_macvlan_config(an))
        else:
            errors.append(f"unknown or unsupported NetworkType: {an.type}")
    return errors


def render_additional_networks(conf: NetworkSpec, manifest_dir: str | os.PathLike) -> list[Manifest]:
    """Render the manifests of every additional network."""
    errors = validate_additional_networks(conf)
    if errors:
        raise ConfigError(f"invalid Additional Network Configuration: {_format_errors(errors)}", errors)

    out: list[Manifest] = []
    for an in conf.additional_networks:
        if an.type == NetworkType.RAW:
            out.extend(render_raw_cni_config(an, manifest_dir))
        elif an.type == NetworkType.SIMPLE_MACVLAN:
            out.extend(render_simple_macvlan_config(an, manifest_dir))
        else:
            raise ConfigError(f"unknown or unsupported NetworkType: {an.type}")
    return out


def render_multus(conf: NetworkSpec, manifest_dir: str | os.PathLike) -> list[Manifest]:
    """Render Multus and the network attachment CRD, unless multi-network is disabled."""
    if conf.disable_multi_network:
        return []
    out = list(render_additional_networks_crd(manifest_dir))
    out.extend(render_multus_config(manifest_dir, use_dhcp(conf)))
    return out


def render_multus_admission_controller(
    conf: NetworkSpec, manifest_dir: str | os.PathLike, webhook_name: str, service_ca_configmap: str
) -> list[Manifest]:
    """Render the Multus admission controller, unless multi-network is disabled."""
    if conf.disable_multi_network:
        return []
    return list(render_multus_admission_controller_config(manifest_dir, webhook_name, service_ca_configmap))