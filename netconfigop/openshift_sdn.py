"""Validation, defaults and rendering for openshift-sdn."""

from __future__ import annotations

import json
import os
from typing import Any

from .ipaddr import parse_cidr
from .kubeproxy import KubeProxyConfigError, to_yaml
from .proxy import kube_proxy_configuration, validate_kube_proxy
from .render import RenderData, TemplateRenderError, render_dir
from .types import (
    ConfigError,
    NetworkSpec,
    NetworkType,
    OpenShiftSDNConfig,
    ProxyConfig,
    SDNMode,
)

_PLUGIN_NAMES = {
    SDNMode.SUBNET.value: "redhat/openshift-ovs-subnet",
    SDNMode.MULTITENANT.value: "redhat/openshift-ovs-multitenant",
    SDNMode.NETWORK_POLICY.value: "redhat/openshift-ovs-networkpolicy",
}

_VXLAN_PORT = 4789
_VXLAN_OVERHEAD = 50


def _kube_proxy_defaults() -> dict[str, list[str]]:
    return {
        "metrics-bind-address": ["0.0.0.0"],
        "metrics-port": ["9101"],
        "healthz-port": ["10256"],
        "proxy-mode": ["iptables"],
        "iptables-masquerade-bit": ["0"],
    }


def render_openshift_sdn(conf: NetworkSpec, manifest_dir: str | os.PathLike) -> list[dict[str, Any]]:
    """Render the openshift-sdn manifests: namespace, daemonsets, ClusterNetwork and config."""
    c = conf.default_network.openshift_sdn_config
    data = RenderData()
    data.data.update(
        ReleaseVersion=os.environ.get("RELEASE_VERSION", ""),
        InstallOVS=not c.use_external_openvswitch,
        NodeImage=os.environ.get("NODE_IMAGE", ""),
        SDNControllerImage=os.environ.get("SDN_CONTROLLER_IMAGE", ""),
        KUBERNETES_SERVICE_HOST=os.environ.get("KUBERNETES_SERVICE_HOST", ""),
        KUBERNETES_SERVICE_PORT=os.environ.get("KUBERNETES_SERVICE_PORT", ""),
        Mode=str(c.mode),
    )

    try:
        data.data["ClusterNetwork"] = cluster_network(conf)
    except ValueError as exc:
        raise ConfigError(f"failed to build ClusterNetwork: {exc}") from exc

    overrides: dict[str, list[str]] = {}
    if c.enable_unidling:
        # proxy-mode has already been validated as unset or iptables
        overrides["proxy-mode"] = ["unidling+iptables"]

    try:
        data.data["KubeProxyConfig"] = kube_proxy_configuration(_kube_proxy_defaults(), conf, overrides)
    except KubeProxyConfigError as exc:
        raise KubeProxyConfigError(f"failed to build kube-proxy config: {exc}") from exc

    try:
        return render_dir(os.path.join(os.fspath(manifest_dir), "network", "openshift-sdn"), data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"failed to render manifests: {exc}") from exc


def validate_openshift_sdn(conf: NetworkSpec) -> list[str]:
    """Check that the openshift-sdn configuration is basically sane."""
    errors: list[str] = []

    if not conf.cluster_network:
        errors.append("ClusterNetwork cannot be empty")
    if len(conf.service_network) != 1:
        errors.append("ServiceNetwork must have exactly 1 entry")

    sc = conf.default_network.openshift_sdn_config
    if sc is not None:
        if not sdn_plugin_name(sc.mode):
            errors.append(f"invalid openshift-sdn mode {json.dumps(str(sc.mode))}")
        if sc.vxlan_port is not None and not 1 <= sc.vxlan_port <= 65535:
            errors.append(f"invalid VXLANPort {sc.vxlan_port}")
        if sc.mtu is not None and not 576 <= sc.mtu <= 65536:
            errors.append(f"invalid MTU {sc.mtu}")

        # unidling only works when the proxy mode is unset or iptables
        kpc = conf.kube_proxy_config
        proxy_mode = (kpc.proxy_arguments or {}).get("proxy-mode") if kpc is not None else None
        if (sc.enable_unidling is None or sc.enable_unidling) and proxy_mode and proxy_mode[0] != "iptables":
            errors.append('invalid proxy-mode - when unidling is enabled, proxy-mode must be "iptables"')

    errors.extend(validate_kube_proxy(conf))
    return errors


def is_openshift_sdn_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a change is unsafe; only unidling and external OVS may change."""
    pn = prev.default_network.openshift_sdn_config
    nn = next.default_network.openshift_sdn_config
    if pn == nn:
        return []
    pn = pn or OpenShiftSDNConfig()
    nn = nn or OpenShiftSDNConfig()

    errors: list[str] = []
    if pn.mode != nn.mode:
        errors.append("cannot change openshift-sdn mode")
    if pn.vxlan_port != nn.vxlan_port:
        errors.append("cannot change openshift-sdn vxlanPort")
    if pn.mtu != nn.mtu:
        errors.append("cannot change openshift-sdn mtu")
    return errors


def fill_openshift_sdn_defaults(conf: NetworkSpec, previous: NetworkSpec | None, host_mtu: int) -> None:
    """Fill in openshift-sdn defaults; the MTU is carried over from previous when known."""
    if conf.deploy_kube_proxy is None:
        conf.deploy_kube_proxy = False

    if conf.kube_proxy_config is None:
        conf.kube_proxy_config = ProxyConfig()
    if not conf.kube_proxy_config.bind_address:
        conf.kube_proxy_config.bind_address = "0.0.0.0"
    if conf.kube_proxy_config.proxy_arguments is None:
        conf.kube_proxy_config.proxy_arguments = {}

    if conf.default_network.openshift_sdn_config is None:
        conf.default_network.openshift_sdn_config = OpenShiftSDNConfig()
    sc = conf.default_network.openshift_sdn_config

    if sc.vxlan_port is None:
        sc.vxlan_port = _VXLAN_PORT
    if sc.enable_unidling is None:
        sc.enable_unidling = True

    # The MTU can never change, so a previously applied value always wins.
    if sc.mtu is None:
        mtu = (host_mtu - _VXLAN_OVERHEAD) % (1 << 32)
        if (
            previous is not None
            and previous.default_network.type == NetworkType.OPENSHIFT_SDN
            and previous.default_network.openshift_sdn_config is not None
            and previous.default_network.openshift_sdn_config.mtu is not None
        ):
            mtu = previous.default_network.openshift_sdn_config.mtu
        sc.mtu = mtu

    if not sc.mode:
        sc.mode = SDNMode.NETWORK_POLICY.value


def sdn_plugin_name(mode: str) -> str:
    """Return the plugin name for an openshift-sdn mode, or "" if it is unknown."""
    return _PLUGIN_NAMES.get(str(mode), "")


def cluster_network(conf: NetworkSpec) -> str:
    """Build the YAML of the ClusterNetwork object used by the controller and nodes."""
    c = conf.default_network.openshift_sdn_config or OpenShiftSDNConfig()

    networks = []
    for entry in conf.cluster_network:
        cidr = parse_cidr(entry.cidr)
        networks.append({"CIDR": entry.cidr, "hostSubnetLength": cidr.max_prefixlen - entry.host_prefix})
    if not networks:
        raise ValueError("no cluster networks")
    if not conf.service_network:
        raise ValueError("no service network")

    doc: dict[str, Any] = {
        "apiVersion": "network.openshift.io/v1",
        "kind": "ClusterNetwork",
        "metadata": {"name": "default", "creationTimestamp": None},
        "network": networks[0]["CIDR"],
        "clusterNetworks": networks,
        "serviceNetwork": conf.service_network[0],
    }
    plugin = sdn_plugin_name(c.mode)
    if plugin:
        doc["pluginName"] = plugin
    if networks[0]["hostSubnetLength"]:
        doc["hostsubnetlength"] = networks[0]["hostSubnetLength"]
    if c.vxlan_port is not None:
        doc["vxlanPort"] = c.vxlan_port
    if c.mtu is not None:
        doc["mtu"] = c.mtu
    return to_yaml(doc)