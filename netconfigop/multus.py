"""Rendering of Multus and its admission controller."""

from __future__ import annotations

import os
from typing import Any

from .render import RenderData, TemplateRenderError, render_dir


def render_multus_config(manifest_dir: str | os.PathLike, use_dhcp: bool) -> list[dict[str, Any]]:
    """Render the Multus manifests, including the DHCP daemon when requested."""
    data = RenderData()
    data.data.update(
        ReleaseVersion=os.environ.get("RELEASE_VERSION", ""),
        MultusImage=os.environ.get("MULTUS_IMAGE", ""),
        CNIPluginsSupportedImage=os.environ.get("CNI_PLUGINS_SUPPORTED_IMAGE", ""),
        CNIPluginsUnsupportedImage=os.environ.get("CNI_PLUGINS_UNSUPPORTED_IMAGE", ""),
        KUBERNETES_SERVICE_HOST=os.environ.get("KUBERNETES_SERVICE_HOST", ""),
        KUBERNETES_SERVICE_PORT=os.environ.get("KUBERNETES_SERVICE_PORT", ""),
        RenderDHCP=use_dhcp,
    )
    try:
        return render_dir(os.path.join(os.fspath(manifest_dir), "network", "multus"), data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"failed to render multus manifests: {exc}") from exc


def render_multus_admission_controller_config(
    manifest_dir: str | os.PathLike, webhook_name: str, service_ca_configmap: str
) -> list[dict[str, Any]]:
    """Render the Multus admission controller manifests."""
    data = RenderData()
    data.data.update(
        ReleaseVersion=os.environ.get("RELEASE_VERSION", ""),
        MultusAdmissionControllerImage=os.environ.get("MULTUS_ADMISSION_CONTROLLER_IMAGE", ""),
        MultusValidatingWebhookName=webhook_name,
        ServiceCAConfigMap=service_ca_configmap,
    )
    try:
        return render_dir(os.path.join(os.fspath(manifest_dir), "network", "multus-admission-controller"), data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"failed to render multus admission controller manifests: {exc}") from exc