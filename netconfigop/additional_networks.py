"""Validation and rendering of additional (secondary) pod networks."""

from __future__ import annotations

import json
import os
from typing import Any

from .ipaddr import parse_cidr, parse_ip
from .render import RenderData, TemplateRenderError, render_dir
from .types import (
    AdditionalNetworkDefinition,
    ConfigError,
    IPAMConfig,
    IPAMType,
    MacvlanMode,
    StaticIPAMConfig,
)

DHCP_IPAM_JSON = '{ "type": "dhcp" }'

_NAME_REQUIRED = "Additional Network Name cannot be nil"
_MACVLAN_MODES = {mode.value for mode in MacvlanMode}


def _render(manifest_dir: str | os.PathLike, subdir: str, data: RenderData, failure: str) -> list[dict[str, Any]]:
    path = os.path.join(os.fspath(manifest_dir), "network", "additional-networks", subdir)
    try:
        return render_dir(path, data)
    except TemplateRenderError as exc:
        raise TemplateRenderError(f"{failure}: {exc}") from exc


def render_additional_networks_crd(manifest_dir: str | os.PathLike) -> list[dict[str, Any]]:
    """Render the NetworkAttachmentDefinition custom resource definition."""
    return _render(manifest_dir, "crd", RenderData(), "failed to render additional network manifests")


def render_raw_cni_config(
    conf: AdditionalNetworkDefinition, manifest_dir: str | os.PathLike
) -> list[dict[str, Any]]:
    """Render the manifests of an additional network given as raw CNI config."""
    data = RenderData()
    data.data.update(
        AdditionalNetworkName=conf.name,
        AdditionalNetworkNamespace=conf.namespace,
        AdditionalNetworkConfig=conf.raw_cni_config,
    )
    return _render(manifest_dir, "raw", data, "failed to render additional network")


def _is_json_object(text: str) -> bool:
    try:
        value = json.loads(text)
    except ValueError:
        return False
    return value is None or isinstance(value, dict)


def validate_raw(conf: AdditionalNetworkDefinition) -> list[str]:
    """Check the name and raw CNI config of an additional network."""
    errors: list[str] = []
    if not conf.name:
        errors.append(_NAME_REQUIRED)
    if not _is_json_object(conf.raw_cni_config):
        raw_bytes = " ".join(str(b) for b in conf.raw_cni_config.encode("utf-8"))
        errors.append(f"Failed to Unmarshal RawCNIConfig: [{raw_bytes}]")
    return errors


def static_ipam_config_json(conf: StaticIPAMConfig) -> str:
    """Return the CNI JSON for static IP address management."""
    addresses = []
    for address in conf.addresses:
        entry: dict[str, Any] = {"address": address.address}
        gateway = parse_ip(address.gateway)
        if gateway is not None:
            entry["gateway"] = str(gateway)
        addresses.append(entry)

    routes = []
    for route in conf.routes:
        try:
            destination = parse_cidr(route.destination)
        except ValueError as exc:
            raise ConfigError(f"failed to parse macvlan route: {exc}") from exc
        entry = {"dst": str(destination)}
        gateway = parse_ip(route.gateway)
        if gateway is not None:
            entry["gw"] = str(gateway)
        routes.append(entry)

    dns: dict[str, Any] = {}
    if conf.dns is not None:
        if conf.dns.nameservers:
            dns["nameservers"] = list(conf.dns.nameservers)
        if conf.dns.domain:
            dns["domain"] = conf.dns.domain
        if conf.dns.search:
            dns["search"] = list(conf.dns.search)

    config: dict[str, Any] = {"type": "static", "routes": routes or None}
    if addresses:
        config["addresses"] = addresses
    config["dns"] = dns
    return json.dumps(config, separators=(",", ":"), ensure_ascii=False)


def ipam_config_json(conf: IPAMConfig | None) -> str:
    """Return the CNI JSON for an IPAM config; no config means DHCP."""
    if conf is None or conf.type == IPAMType.DHCP:
        return DHCP_IPAM_JSON
    if conf.type == IPAMType.STATIC:
        return static_ipam_config_json(conf.static_ipam_config or StaticIPAMConfig())
    raise ConfigError("failed to render IPAM JSON")


def render_simple_macvlan_config(
    conf: AdditionalNetworkDefinition, manifest_dir: str | os.PathLike
) -> list[dict[str, Any]]:
    """Render the manifests of a simple macvlan additional network."""
    data = RenderData()
    data.data["AdditionalNetworkName"] = conf.name

    macvlan = conf.simple_macvlan_config
    if macvlan is None:
        data.data["IPAMConfig"] = ipam_config_json(None)
    else:
        data.data["Master"] = macvlan.master
        try:
            data.data["IPAMConfig"] = ipam_config_json(macvlan.ipam_config)
        except ConfigError as exc:
            raise ConfigError(f"failed to render ipam config: {exc}") from exc
        if macvlan.mode:
            # the macvlan plugin only accepts the mode in lower case
            data.data["Mode"] = str(macvlan.mode).lower()
        if macvlan.mtu:
            data.data["MTU"] = macvlan.mtu

    return _render(manifest_dir, "simplemacvlan", data, "failed to render simplemacvlan additional network")


def validate_static_ipam_config(conf: StaticIPAMConfig) -> list[str]:
    """Check the addresses and routes of a static IPAM config."""
    errors: list[str] = []
    for address in conf.addresses:
        try:
            parse_cidr(address.address)
        except ValueError as exc:
            errors.append(f"invalid static address: {exc}")
        if address.gateway and parse_ip(address.gateway) is None:
            errors.append(f"invalid gateway: {address.gateway}")
    for route in conf.routes:
        try:
            parse_cidr(route.destination)
        except ValueError as exc:
            errors.append(f"invalid route destination: {exc}")
        if route.gateway and parse_ip(route.gateway) is None:
            errors.append(f"invalid gateway: {route.gateway}")
    return errors


def validate_ipam_config(conf: IPAMConfig) -> list[str]:
    """Check an IPAM config."""
    if conf.type == IPAMType.STATIC:
        return validate_static_ipam_config(conf.static_ipam_config or StaticIPAMConfig())
    if conf.type == IPAMType.DHCP:
        return []
    return [f"invalid IPAM type: {conf.type}"]


def validate_simple_macvlan_config(conf: AdditionalNetworkDefinition) -> list[str]:
    """Check the name and macvlan settings of an additional network."""
    errors: list[str] = []
    if not conf.name:
        errors.append(_NAME_REQUIRED)

    macvlan = conf.simple_macvlan_config
    if macvlan is not None:
        if macvlan.ipam_config is not None:
            errors.extend(validate_ipam_config(macvlan.ipam_config))
        if macvlan.mode and str(macvlan.mode) not in _MACVLAN_MODES:
            errors.append(f"invalid Macvlan mode: {macvlan.mode}")
    return errors