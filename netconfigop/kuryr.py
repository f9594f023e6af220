"""Validation, defaults and rendering for Kuryr."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from .render import RenderData, TemplateRenderError, render_dir
from .types import KuryrConfig, NetworkSpec

_DAEMON_PROBES_PORT = 8090
_CONTROLLER_PROBES_PORT = 8082


@dataclass
class KuryrBootstrapResult:
    """Cloud resources prepared for Kuryr before rendering."""

    cluster_id: str = ""
    pod_security_groups: list[str] = field(default_factory=list)
    worker_nodes_subnet: str = ""
    worker_nodes_router: str = ""
    pod_subnetpool: str = ""
    service_subnet: str = ""
    open_stack_cloud: dict[str, Any] = field(default_factory=dict)


def render_kuryr(
    conf: NetworkSpec, bootstrap_result: KuryrBootstrapResult | None, manifest_dir: str | os.PathLike
) -> list[dict[str, Any]]:
    """Render the Kuryr manifests: namespace, RBAC, CRDs, config, controller and daemon."""
    c = conf.default_network.kuryr_config or KuryrConfig()
    b = bootstrap_result or KuryrBootstrapResult()
    verify = b.open_stack_cloud.get("verify")

    data = RenderData()
    data.data.update(
        ResourceTags="openshiftClusterID=" + b.cluster_id,
        PodSecurityGroups=",".join(b.pod_security_groups),
        WorkerNodesSubnet=b.worker_nodes_subnet,
        WorkerNodesRouter=b.worker_nodes_router,
        PodSubnetpool=b.pod_subnetpool,
        ServiceSubnet=b.service_subnet,
        OpenStackCloud=b.open_stack_cloud,
        OpenStackInsecureAPI=verify is not None and not verify,
        DaemonEnableProbes=True,
        DaemonProbesPort=c.daemon_probes_port,
        ControllerEnableProbes=True,
        ControllerProbesPort=c.controller_probes_port,
        NodeImage=os.environ.get("NODE_IMAGE", ""),
        DaemonImage=os.environ.get("KURYR_DAEMON_IMAGE", ""),
        ControllerImage=os.environ.get("KURYR_CONTROLLER_IMAGE", ""),
        KUBERNETES_SERVICE_HOST=os.environ.get("KUBERNETES_SERVICE_HOST", ""),
        KUBERNETES_SERVICE_PORT=os.environ.get("KUBERNETES_SERVICE_PORT", ""),
    )

    try:
        return render_dir(os.path.join(os.fspath(manifest_dir), "network", "kuryr"), data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"failed to render manifests: {exc}") from exc


def validate_kuryr(conf: NetworkSpec) -> list[str]:
    """Check that the Kuryr configuration is basically sane."""
    errors: list[str] = []
    if len(conf.service_network) != 1:
        errors.append("serviceNetwork must have exactly 1 entry")
    if len(conf.cluster_network) != 1:
        errors.append("clusterNetwork must have exactly 1 entry")
    return errors


def is_kuryr_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a change is unsafe; any change at all currently is."""
    if prev.default_network.kuryr_config == next.default_network.kuryr_config:
        return []
    return ["cannot change kuryr configuration"]


def fill_kuryr_defaults(conf: NetworkSpec) -> None:
    """Fill in the Kuryr probe ports."""
    if conf.default_network.kuryr_config is None:
        conf.default_network.kuryr_config = KuryrConfig()
    kc = conf.default_network.kuryr_config

    if kc.daemon_probes_port is None:
        kc.daemon_probes_port = _DAEMON_PROBES_PORT
    if kc.controller_probes_port is None:
        kc.controller_probes_port = _CONTROLLER_PROBES_PORT