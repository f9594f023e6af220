# netconfigop

A library for taking a cluster network configuration through its whole life:
canonicalizing it, validating it, filling in defaults, deciding whether a change
from the previous configuration is safe to roll out, and rendering the
Kubernetes manifests for the chosen default network (OpenShift SDN,
OVN-Kubernetes or Kuryr), Multus and its admission controller, additional
networks and a standalone kube-proxy.

## Installation

```
pip install netconfigop
```

Python 3.10 or later is required. Runtime dependencies are `jinja2` (manifest
templates) and `pyyaml` (manifest parsing and YAML output).

## Typical flow

```python
from netconfigop.types import NetworkSpec
from netconfigop.pipeline import canonicalize, validate, fill_defaults, is_change_safe, render

spec = NetworkSpec.from_dict({
    "clusterNetwork": [{"cidr": "10.128.0.0/14", "hostPrefix": 23}],
    "serviceNetwork": ["172.30.0.0/16"],
    "defaultNetwork": {"type": "OpenShiftSDN"},
})
previous = None                # the last applied NetworkSpec, if there is one

canonicalize(spec)
validate(spec)                 # raises ConfigError when the spec is not sane
fill_defaults(spec, previous)
is_change_safe(previous, spec) # raises ConfigError for changes that cannot be rolled out

objects = render(spec, None, "manifests",
                 "multus.example.com", "service-ca")
```

`render` returns a list of plain dictionaries, one per Kubernetes object. The
last two arguments name the Multus validating webhook and the service CA
config map used by the admission controller manifests. The second argument
is a `netconfigop.kuryr.KuryrBootstrapResult`, needed only for Kuryr.

`ConfigError` (in `netconfigop.types`) carries the individual messages in its
`errors` attribute.

## Manifest templates

The package does not ship any manifest templates. `render` and the
`render_*` functions read Jinja2 templates (`.yaml`, `.yml`, `.json`) from the
directory you pass, walking each subdirectory in lexical order:

- `network/multus`, `network/multus-admission-controller`
- `network/additional-networks/crd`, `.../raw`, `.../simplemacvlan`
- `network/openshift-sdn`, `network/ovn-kubernetes`, `network/kuryr`
- `kube-proxy`

Undefined template variables are errors. Templates can call `getOr(key,
fallback)` and `isSet(key)`.

## Building blocks

- `netconfigop.ipaddr` — `parse_ip`, `parse_cidr`; `IPPool` rejects overlapping
  networks; `nets_overlap`, `last_ip`, `first_usable_ip` and `last_usable_ip`
  work on `ipaddress` networks.
- `netconfigop.durations` — `parse_duration` and `format_duration` for
  duration strings such as `1m30s`, in nanoseconds.
- `netconfigop.kubeproxy` — `merge_kube_proxy_arguments` and
  `generate_kube_proxy_configuration` turn kube-proxy command-line arguments
  into a `KubeProxyConfiguration` YAML document, raising `KubeProxyConfigError`
  for bad or unused arguments.
- `netconfigop.render` — `RenderData`, `render_template`, `render_dir`,
  `get_or`, `is_set` and `to_unstructured`; failures raise `TemplateRenderError`.
- `netconfigop.types` — the configuration dataclasses (`NetworkSpec`,
  `ClusterConfigSpec`, `NetworkStatus`, …) and the `NetworkType`, `IPAMType`,
  `MacvlanMode` and `SDNMode` enums.
- `netconfigop.cluster_config` — `validate_cluster_config`,
  `merge_cluster_config` and `status_from_operator_config`.
- `netconfigop.proxy` — kube-proxy validation, defaults and standalone rendering.
- `netconfigop.openshift_sdn`, `netconfigop.ovn_kubernetes`,
  `netconfigop.kuryr` — per-provider validation, defaults, change checks and
  rendering.
- `netconfigop.additional_networks` — raw CNI and simple macvlan networks,
  including the static or DHCP IPAM JSON.
- `netconfigop.multus` and `netconfigop.dhcp_daemon` — Multus rendering and
  the decision (`use_dhcp`) whether the DHCP daemon is needed.
- `netconfigop.mtu` — `get_default_mtu` reads the IPv4 default routes from
  `/proc/net/route` on Linux and returns 1500 elsewhere; `fill_defaults` falls
  back to 1500 when it fails.

## Environment

Rendering reads image names and the API server address from environment
variables such as `RELEASE_VERSION`, `NODE_IMAGE`, `SDN_CONTROLLER_IMAGE`,
`MULTUS_IMAGE`, `MULTUS_ADMISSION_CONTROLLER_IMAGE`, `OVN_IMAGE`,
`KURYR_DAEMON_IMAGE`, `KURYR_CONTROLLER_IMAGE`, `KUBE_PROXY_IMAGE`,
`KUBERNETES_SERVICE_HOST` and `KUBERNETES_SERVICE_PORT`. Unset variables
render as empty strings.

## What it does not do

This is a library only. It has no command-line tool and does not talk to a
cluster: it does not watch or apply objects, report status back, or create
cloud resources for Kuryr — the `KuryrBootstrapResult` must be filled in by
the caller.

## Running the tests

```
pip install -e ".[test]"
pytest
```