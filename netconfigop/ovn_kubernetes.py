"""Validation, defaults and rendering for ovn-kubernetes."""

from __future__ import annotations

import os
from typing import Any

from .render import RenderData, TemplateRenderError, render_dir
from .types import NetworkSpec, OVNKubernetesConfig

_GENEVE_OVERHEAD = 100


def render_ovn_kubernetes(conf: NetworkSpec, manifest_dir: str | os.PathLike) -> list[dict[str, Any]]:
    """Render the ovn-kubernetes manifests: namespace, node daemonset, master deployment."""
    c = conf.default_network.ovn_kubernetes_config or OVNKubernetesConfig()

    host = os.environ.get("KUBERNETES_SERVICE_HOST", "")
    port = os.environ.get("KUBERNETES_SERVICE_PORT", "")

    data = RenderData()
    data.data.update(
        ReleaseVersion=os.environ.get("RELEASE_VERSION", ""),
        OvnImage=os.environ.get("OVN_IMAGE", ""),
        K8S_APISERVER=f"https://{host}:{port}",
        MTU=c.mtu,
        OVN_cidr=",".join(f"{entry.cidr}/{entry.host_prefix}" for entry in conf.cluster_network),
        OVN_service_cidr=",".join(conf.service_network),
    )

    try:
        return render_dir(os.path.join(os.fspath(manifest_dir), "network", "ovn-kubernetes"), data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"failed to render manifests: {exc}") from exc


def validate_ovn_kubernetes(conf: NetworkSpec) -> list[str]:
    """Check that the ovn-kubernetes configuration is basically sane."""
    errors: list[str] = []

    if not conf.cluster_network:
        errors.append("ClusterNetworks cannot be empty")
    if len(conf.service_network) != 1:
        errors.append("ServiceNetwork must have exactly 1 entry")

    oc = conf.default_network.ovn_kubernetes_config
    if oc is not None and oc.mtu is not None and not 576 <= oc.mtu <= 65536:
        errors.append(f"invalid MTU {oc.mtu}")

    return errors


def is_ovn_kubernetes_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a change is unsafe; any change at all currently is."""
    if prev.default_network.ovn_kubernetes_config == next.default_network.ovn_kubernetes_config:
        return []
    return ["cannot change ovn-kubernetes configuration"]


def fill_ovn_kubernetes_defaults(conf: NetworkSpec, previous: NetworkSpec | None, host_mtu: int) -> None:
    """Fill in ovn-kubernetes defaults; the MTU is carried over from previous when known."""
    if conf.default_network.ovn_kubernetes_config is None:
        conf.default_network.ovn_kubernetes_config = OVNKubernetesConfig()
    sc = conf.default_network.ovn_kubernetes_config

    # The MTU can never change, so a previously applied value always wins.
    if sc.mtu is None:
        mtu = (host_mtu - _GENEVE_OVERHEAD) % (1 << 32)
        if (
            previous is not None
            and previous.default_network.ovn_kubernetes_config is not None
            and previous.default_network.ovn_kubernetes_config.mtu is not None
        ):
            mtu = previous.default_network.ovn_kubernetes_config.mtu
        sc.mtu = mtu


def network_plugin_name() -> str:
    """Return the name of the ovn-kubernetes network plugin."""
    return "ovn-kubernetes"