"""Builds the kube-proxy configuration file from command-line style arguments."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

import yaml

from .durations import format_duration, parse_duration
from .ipaddr import parse_cidr, parse_ip

ProxyArguments = Mapping[str, list[str]]


class KubeProxyConfigError(ValueError):
    """Raised when kube-proxy arguments are invalid or unused."""


def merge_kube_proxy_arguments(
    defaults: ProxyArguments | None, overrides: ProxyArguments | None
) -> dict[str, list[str]]:
    """Merge two argument sets, keeping only the last value given for each key."""
    merged: dict[str, list[str]] = {}
    for source in (defaults or {}, overrides or {}):
        for key, values in source.items():
            if values:
                merged[key] = [values[-1]]
    return merged


def _parse_int(text: str, bits: int) -> int:
    if not re.fullmatch(r"[+-]?\d+", text):
        raise ValueError(f'parsing "{text}": invalid syntax')
    value = int(text)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise ValueError(f'parsing "{text}": value out of range')
    return value


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f'parsing "{text}": invalid syntax')


def _parse_port_range(text: str) -> tuple[int, int]:
    parts = re.split(r"[-+]", text)
    try:
        numbers = [int(p) for p in parts if re.fullmatch(r"\d+", p)]
        if len(numbers) != len(parts) or len(parts) > 2:
            raise ValueError
    except ValueError:
        raise ValueError(f"unable to parse port range: {text}") from None
    base = numbers[0]
    if len(numbers) == 1:
        high = base
    elif "+" in text:
        high = base + numbers[1]
    else:
        high = numbers[1]
    if not (0 <= base <= 65535 and 0 <= high <= 65535 and base <= high):
        raise ValueError(f"invalid port range: {text}")
    return base, high


class _Args:
    """Consumes arguments, collecting errors along the way."""

    def __init__(self, args: ProxyArguments) -> None:
        self.args = merge_kube_proxy_arguments(args, None)
        self.errors: list[str] = []

    def get(self, key: str) -> str:
        values = self.args.get(key)
        if not values:
            return ""
        del self.args[key]
        return values[0]

    def _checked(self, key: str, parser, empty):
        value = self.get(key)
        if value == "":
            return empty
        try:
            return parser(value)
        except ValueError as exc:
            self.errors.append(f'invalid {key} "{value}" ({exc})')
            return empty

    def address(self, key: str) -> str:
        value = self.get(key)
        if value and parse_ip(value) is None:
            self.errors.append(f'invalid {key} "{value}" (not an IP address)')
        return value

    def address_and_port(self, address_key: str, port_key: str, default_port: str) -> str:
        address = self.get(address_key)
        if address and parse_ip(address) is None:
            self.errors.append(f'invalid {address_key} "{address}" (not an IP address)')
            return ""
        port = self.get(port_key)
        if port:
            try:
                _parse_int(port, 16)
            except ValueError as exc:
                self.errors.append(f'invalid {port_key} "{port}" ({exc})')
                return ""
        if address:
            return f"{address}:{port or default_port}"
        if port:
            return f"0.0.0.0:{port}"
        return ""

    def cidr(self, key: str) -> str:
        return self._checked(key, lambda v: (parse_cidr(v), v)[1], "")

    def cidr_list(self, key: str) -> list[str] | None:
        value = self.get(key)
        if value == "":
            return None
        items = value.split(",")
        for item in items:
            try:
                parse_cidr(item)
            except ValueError as exc:
                self.errors.append(f'invalid {key} "{value}" ({exc})')
                return None
        return items

    def opt_int32(self, key: str) -> int | None:
        return self._checked(key, lambda v: _parse_int(v, 32), None)

    def boolean(self, key: str) -> bool:
        return self._checked(key, _parse_bool, False)

    def duration(self, key: str) -> int:
        return self._checked(key, parse_duration, 0)

    def port_range(self, key: str) -> str:
        return self._checked(key, lambda v: (_parse_port_range(v), v)[1], "")

    def raise_if_failed(self) -> None:
        if self.errors:
            message = self.errors[0] if len(self.errors) == 1 else "[" + ", ".join(self.errors) + "]"
            raise KubeProxyConfigError(message)
        if self.args:
            raise KubeProxyConfigError("unused arguments: " + ", ".join(sorted(self.args)))


def generate_kube_proxy_configuration(args: ProxyArguments) -> str:
    """Return the YAML kube-proxy config file described by the arguments."""
    ka = _Args(args)
    bind_address = ka.address("bind-address")
    healthz = ka.address_and_port("healthz-bind-address", "healthz-port", "10256")
    metrics = ka.address_and_port("metrics-bind-address", "metrics-port", "10249")
    cluster_cidr = ka.cidr("cluster-cidr")
    iptables = {
        "masqueradeBit": ka.opt_int32("iptables-masquerade-bit"),
        "masqueradeAll": ka.boolean("masquerade-all"),
        "syncPeriod": format_duration(ka.duration("iptables-sync-period")),
        "minSyncPeriod": format_duration(ka.duration("iptables-min-sync-period")),
    }
    ipvs = {
        "syncPeriod": format_duration(ka.duration("ipvs-sync-period")),
        "minSyncPeriod": format_duration(ka.duration("ipvs-min-sync-period")),
        "scheduler": ka.get("ipvs-scheduler"),
        "excludeCIDRs": ka.cidr_list("ipvs-exclude-cidrs"),
    }
    mode = ka.get("proxy-mode")
    port_range = ka.port_range("proxy-port-range")
    udp_timeout = format_duration(ka.duration("udp-timeout"))
    conntrack: dict[str, Any] = {
        "max": ka.opt_int32("conntrack-max"),
        "maxPerCore": ka.opt_int32("conntrack-max-per-core"),
        "min": ka.opt_int32("conntrack-min"),
    }
    established = ka.duration("conntrack-tcp-timeout-established")
    conntrack["tcpEstablishedTimeout"] = format_duration(established) if established else None
    close_wait = ka.duration("conntrack-tcp-timeout-close-wait")
    conntrack["tcpCloseWaitTimeout"] = format_duration(close_wait) if close_wait else None
    config_sync = format_duration(ka.duration("config-sync-period"))
    node_port_addresses = ka.cidr_list("node-port-addresses")

    ka.raise_if_failed()

    return to_yaml(
        {
            "apiVersion": "kubeproxy.config.k8s.io/v1alpha1",
            "kind": "KubeProxyConfiguration",
            "bindAddress": bind_address,
            "clientConnection": {
                "acceptContentTypes": "",
                "burst": 0,
                "contentType": "",
                "kubeconfig": "",
                "qps": 0,
            },
            "clusterCIDR": cluster_cidr,
            "configSyncPeriod": config_sync,
            "conntrack": conntrack,
            "enableProfiling": False,
            "healthzBindAddress": healthz,
            "hostnameOverride": "",
            "iptables": iptables,
            "ipvs": ipvs,
            "metricsBindAddress": metrics,
            "mode": mode,
            "nodePortAddresses": node_port_addresses,
            "oomScoreAdj": None,
            "portRange": port_range,
            "resourceContainer": "",
            "udpIdleTimeout": udp_timeout,
        }
    )


def _scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value)
    if _needs_quotes(text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _needs_quotes(text: str) -> bool:
    if text == "" or text != text.strip() or "\n" in text:
        return True
    if ": " in text or " #" in text or text.endswith(":") or text[0] in "!&*-?{}[]|>'\"%@`#,":
        return True
    try:
        return yaml.safe_load(text) != text
    except yaml.YAMLError:
        return True


def _dict_lines(mapping: Mapping[str, Any], indent: int) -> list[str]:
    lines = []
    for key in sorted(mapping):
        value = mapping[key]
        head = " " * indent + _scalar(key) + ":"
        if isinstance(value, Mapping) and value:
            lines.append(head)
            lines.extend(_dict_lines(value, indent + 2))
        elif isinstance(value, list) and value:
            lines.append(head)
            lines.extend(_list_lines(value, indent))
        else:
            lines.append(f"{head} {_empty_or_scalar(value)}")
    return lines


def _empty_or_scalar(value: Any) -> str:
    if isinstance(value, Mapping):
        return "{}"
    if isinstance(value, list):
        return "[]"
    return _scalar(value)


def _list_lines(items: list[Any], indent: int) -> list[str]:
    lines = []
    for item in items:
        if isinstance(item, Mapping) and item:
            sub = _dict_lines(item, indent + 2)
        elif isinstance(item, list) and item:
            sub = _list_lines(item, indent + 2)
        else:
            lines.append(" " * indent + "- " + _empty_or_scalar(item))
            continue
        sub[0] = " " * indent + "- " + sub[0][indent + 2:]
        lines.extend(sub)
    return lines


def to_yaml(value: Any) -> str:
    """Serialize to block-style YAML with sorted keys and double-quoted strings."""
    if isinstance(value, Mapping) and value:
        lines = _dict_lines(value, 0)
    elif isinstance(value, list) and value:
        lines = _list_lines(value, 0)
    else:
        lines = [_empty_or_scalar(value)]
    return "\n".join(lines) + "\n"