import pytest

from netconfigop.ovn_kubernetes import (
    fill_ovn_kubernetes_defaults,
    is_ovn_kubernetes_change_safe,
    network_plugin_name,
    render_ovn_kubernetes,
    validate_ovn_kubernetes,
)
from netconfigop.render import TemplateRenderError
from netconfigop.types import (
    ClusterNetworkEntry,
    DefaultNetworkDefinition,
    NetworkSpec,
    NetworkType,
    OVNKubernetesConfig,
)


def _spec():
    return NetworkSpec(
        service_network=["172.30.0.0/16"],
        cluster_network=[
            ClusterNetworkEntry(cidr="10.128.0.0/15", host_prefix=23),
            ClusterNetworkEntry(cidr="10.0.0.0/14", host_prefix=24),
        ],
        default_network=DefaultNetworkDefinition(
            type=NetworkType.OVN_KUBERNETES.value,
            ovn_kubernetes_config=OVNKubernetesConfig(),
        ),
    )


def _write(root, rel, text):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _ids(objs):
    return {
        (o["kind"], o.get("metadata", {}).get("namespace", ""), o.get("metadata", {}).get("name", ""))
        for o in objs
    }


@pytest.fixture
def manifests(tmp_path):
    base = "network/ovn-kubernetes/"
    _write(
        tmp_path,
        base + "000-ns.yaml",
        "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: openshift-ovn-kubernetes\n",
    )
    _write(
        tmp_path,
        base + "010-config.yaml",
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: ovn-config\n"
        "  namespace: openshift-ovn-kubernetes\n"
        "data:\n"
        '  apiserver: "{{ K8S_APISERVER }}"\n'
        '  cidr: "{{ OVN_cidr }}"\n'
        '  service_cidr: "{{ OVN_service_cidr }}"\n'
        '  mtu: "{{ MTU }}"\n'
        '  image: "{{ OvnImage }}"\n',
    )
    _write(
        tmp_path,
        base + "020-node.yaml",
        "apiVersion: apps/v1\nkind: DaemonSet\nmetadata:\n  name: ovnkube-node\n"
        "  namespace: openshift-ovn-kubernetes\n",
    )
    _write(
        tmp_path,
        base + "030-master.yaml",
        "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: ovnkube-master\n"
        "  namespace: openshift-ovn-kubernetes\n"
        "spec:\n  template:\n    spec:\n      nodeSelector:\n"
        '        node-role.kubernetes.io/master: ""\n',
    )
    return tmp_path


def test_render_ovn_kubernetes(manifests, monkeypatch):
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "api.example.com")
    monkeypatch.setenv("KUBERNETES_SERVICE_PORT", "6443")
    monkeypatch.setenv("OVN_IMAGE", "ovn:latest")
    config = _spec()
    assert validate_ovn_kubernetes(config) == []
    fill_ovn_kubernetes_defaults(config, None, 1500)

    objs = render_ovn_kubernetes(config, manifests)
    ids = _ids(objs)
    assert ("DaemonSet", "openshift-ovn-kubernetes", "ovnkube-node") in ids
    assert ("Deployment", "openshift-ovn-kubernetes", "ovnkube-master") in ids
    assert objs[0]["kind"] == "Namespace"
    assert objs[0]["metadata"]["name"] == "openshift-ovn-kubernetes"

    for obj in objs:
        if obj["kind"] == "Deployment":
            assert "node-role.kubernetes.io/master" in obj["spec"]["template"]["spec"]["nodeSelector"]

    data = next(o for o in objs if o["kind"] == "ConfigMap")["data"]
    assert data["apiserver"] == "https://api.example.com:6443"
    assert data["cidr"] == "10.128.0.0/15/23,10.0.0.0/14/24"
    assert data["service_cidr"] == "172.30.0.0/16"
    assert data["mtu"] == "1400"
    assert data["image"] == "ovn:latest"


def test_render_ovn_kubernetes_missing_dir(tmp_path):
    config = _spec()
    fill_ovn_kubernetes_defaults(config, None, 1500)
    with pytest.raises(TemplateRenderError, match="failed to render manifests"):
        render_ovn_kubernetes(config, tmp_path)


def test_fill_ovn_kubernetes_defaults():
    conf = _spec()
    conf.default_network.ovn_kubernetes_config = None

    expected = NetworkSpec(
        service_network=["172.30.0.0/16"],
        cluster_network=[
            ClusterNetworkEntry(cidr="10.128.0.0/15", host_prefix=23),
            ClusterNetworkEntry(cidr="10.0.0.0/14", host_prefix=24),
        ],
        default_network=DefaultNetworkDefinition(
            type=NetworkType.OVN_KUBERNETES.value,
            ovn_kubernetes_config=OVNKubernetesConfig(mtu=8900),
        ),
    )

    fill_ovn_kubernetes_defaults(conf, None, 9000)
    assert conf == expected


def test_fill_ovn_kubernetes_defaults_prefers_previous():
    previous = _spec()
    previous.default_network.ovn_kubernetes_config = OVNKubernetesConfig(mtu=1234)
    conf = _spec()
    fill_ovn_kubernetes_defaults(conf, previous, 9000)
    assert conf.default_network.ovn_kubernetes_config.mtu == 1234


def test_validate_ovn_kubernetes():
    config = _spec()
    ovn_config = config.default_network.ovn_kubernetes_config
    assert validate_ovn_kubernetes(config) == []
    fill_ovn_kubernetes_defaults(config, None, 1500)

    ovn_config.mtu = 70000
    assert any("invalid MTU 70000" in e for e in validate_ovn_kubernetes(config))

    config.cluster_network = []
    assert any("ClusterNetworks cannot be empty" in e for e in validate_ovn_kubernetes(config))

    config.service_network = []
    assert any("ServiceNetwork must have exactly 1 entry" in e for e in validate_ovn_kubernetes(config))


def test_ovn_kubernetes_is_safe():
    prev = _spec()
    fill_ovn_kubernetes_defaults(prev, None, 1500)
    nxt = _spec()
    fill_ovn_kubernetes_defaults(nxt, None, 1500)

    assert is_ovn_kubernetes_change_safe(prev, nxt) == []

    nxt.default_network.ovn_kubernetes_config.mtu = 70000
    errs = is_ovn_kubernetes_change_safe(prev, nxt)
    assert errs == ["cannot change ovn-kubernetes configuration"]


def test_network_plugin_name():
    assert network_plugin_name() == "ovn-kubernetes"