"""Validation, defaults and rendering for kube-proxy."""

from __future__ import annotations

import os
from typing import Any, Mapping

from .durations import parse_duration
from .ipaddr import parse_ip
from .kubeproxy import (
    KubeProxyConfigError,
    generate_kube_proxy_configuration,
    merge_kube_proxy_arguments,
)
from .render import RenderData, TemplateRenderError, render_dir
from .types import NetworkSpec, NetworkType, ProxyConfig

_SELF_PROXYING = {
    NetworkType.OPENSHIFT_SDN.value,
    NetworkType.OVN_KUBERNETES.value,
    NetworkType.KURYR.value,
}


def should_deploy_kube_proxy(conf: NetworkSpec) -> bool:
    """Report whether the default network needs a standalone kube-proxy."""
    return conf.default_network.type not in _SELF_PROXYING


def kube_proxy_configuration(
    plugin_defaults: Mapping[str, list[str]] | None,
    conf: NetworkSpec,
    plugin_overrides: Mapping[str, list[str]] | None,
) -> str:
    """Build the kube-proxy config YAML; user arguments override plugin defaults and
    plugin overrides override both."""
    p = conf.kube_proxy_config or ProxyConfig()
    args: dict[str, list[str]] = {"bind-address": [p.bind_address]}
    if len(conf.cluster_network) == 1:
        args["cluster-cidr"] = [conf.cluster_network[0].cidr]
    args["iptables-sync-period"] = [p.iptables_sync_period]

    args = merge_kube_proxy_arguments(args, plugin_defaults)
    args = merge_kube_proxy_arguments(args, p.proxy_arguments)
    args = merge_kube_proxy_arguments(args, plugin_overrides)
    return generate_kube_proxy_configuration(args)


def validate_standalone_kube_proxy(conf: NetworkSpec) -> list[str]:
    """Validate kube-proxy settings if a standalone kube-proxy will be deployed."""
    if should_deploy_kube_proxy(conf):
        return validate_kube_proxy(conf)
    return []


def validate_kube_proxy(conf: NetworkSpec) -> list[str]:
    """Check that the kube-proxy settings are basically sane."""
    errors: list[str] = []
    p = conf.kube_proxy_config
    if p is None:
        return errors

    if p.iptables_sync_period:
        try:
            parse_duration(p.iptables_sync_period)
        except ValueError as exc:
            errors.append(f"IptablesSyncPeriod is not a valid duration ({exc})")

    if p.bind_address and parse_ip(p.bind_address) is None:
        errors.append("BindAddress must be a valid IP address")

    if p.proxy_arguments is not None:
        for key, required in (("metrics-port", "9101"), ("healthz-port", "10256")):
            if key in p.proxy_arguments and p.proxy_arguments[key] != [required]:
                errors.append(f"kube-proxy --{key} must be {required}")

    return errors


def fill_kube_proxy_defaults(conf: NetworkSpec, previous: NetworkSpec | None) -> None:
    """Insert kube-proxy defaults, but only if kube-proxy is deployed explicitly."""
    if conf.deploy_kube_proxy is None:
        conf.deploy_kube_proxy = should_deploy_kube_proxy(conf)

    if not conf.deploy_kube_proxy:
        return

    if conf.kube_proxy_config is None:
        conf.kube_proxy_config = ProxyConfig()

    if not conf.kube_proxy_config.bind_address:
        conf.kube_proxy_config.bind_address = "0.0.0.0"


def is_kube_proxy_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a kube-proxy change is unsafe; every change currently is safe."""
    return []


def render_standalone_kube_proxy(conf: NetworkSpec, manifest_dir: str | os.PathLike) -> list[dict[str, Any]]:
    """Render the standalone kube-proxy manifests if deployment was requested."""
    if not conf.deploy_kube_proxy:
        return []

    defaults = {
        "metrics-bind-address": ["0.0.0.0"],
        "metrics-port": ["9101"],
        "healthz-port": ["10256"],
        "proxy-mode": ["iptables"],
    }
    try:
        kpc = kube_proxy_configuration(defaults, conf, None)
    except KubeProxyConfigError as exc:
        raise KubeProxyConfigError(f"failed to generate kube-proxy configuration file: {exc}") from exc

    data = RenderData()
    data.data.update(
        ReleaseVersion=os.environ.get("RELEASE_VERSION", ""),
        KubeProxyImage=os.environ.get("KUBE_PROXY_IMAGE", ""),
        KUBERNETES_SERVICE_HOST=os.environ.get("KUBERNETES_SERVICE_HOST", ""),
        KUBERNETES_SERVICE_PORT=os.environ.get("KUBERNETES_SERVICE_PORT", ""),
        KubeProxyConfig=kpc,
    )
    try:
        return render_dir(os.path.join(os.fspath(manifest_dir), "kube-proxy"), data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"failed to render kube-proxy manifests: {exc}") from exc