import pytest

from netconfigop.kuryr import (
    KuryrBootstrapResult,
    fill_kuryr_defaults,
    is_kuryr_change_safe,
    render_kuryr,
    validate_kuryr,
)
from netconfigop.render import TemplateRenderError
from netconfigop.types import (
    ClusterNetworkEntry,
    DefaultNetworkDefinition,
    KuryrConfig,
    NetworkSpec,
    NetworkType,
)


def _spec():
    return NetworkSpec(
        service_network=["172.30.0.0/16"],
        cluster_network=[ClusterNetworkEntry(cidr="10.128.0.0/15", host_prefix=24)],
        default_network=DefaultNetworkDefinition(type=NetworkType.KURYR.value, kuryr_config=KuryrConfig()),
    )


def _bootstrap(**cloud):
    return KuryrBootstrapResult(
        cluster_id="cluster-1",
        pod_security_groups=["sg-a", "sg-b"],
        pod_subnetpool="pod-subnetpool-id",
        service_subnet="svc-subnet-id",
        worker_nodes_router="worker-nodes-router",
        worker_nodes_subnet="worker-nodes-subnet",
        open_stack_cloud={"auth_type": "password", **cloud},
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
    base = "network/kuryr/"
    _write(tmp_path, base + "000-ns.yaml", "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: openshift-kuryr\n")
    _write(
        tmp_path,
        base + "010-config.yaml",
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: kuryr-config\n  namespace: openshift-kuryr\n"
        "data:\n"
        '  tags: "{{ ResourceTags }}"\n'
        '  sgs: "{{ PodSecurityGroups }}"\n'
        '  router: "{{ WorkerNodesRouter }}"\n'
        '  insecure: "{{ OpenStackInsecureAPI }}"\n'
        '  daemon_port: "{{ DaemonProbesPort }}"\n'
        '  controller_port: "{{ ControllerProbesPort }}"\n',
    )
    _write(
        tmp_path,
        base + "020-daemon.yaml",
        "apiVersion: apps/v1\nkind: DaemonSet\nmetadata:\n  name: kuryr-cni\n  namespace: openshift-kuryr\n",
    )
    _write(
        tmp_path,
        base + "030-controller.yaml",
        "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: kuryr-controller\n  namespace: openshift-kuryr\n",
    )
    return tmp_path


def test_render_kuryr(manifests):
    config = _spec()
    assert validate_kuryr(config) == []
    fill_kuryr_defaults(config)

    objs = render_kuryr(config, _bootstrap(), manifests)
    ids = _ids(objs)
    assert ("DaemonSet", "openshift-kuryr", "kuryr-cni") in ids
    assert ("Deployment", "openshift-kuryr", "kuryr-controller") in ids
    assert ("ConfigMap", "openshift-kuryr", "kuryr-config") in ids
    assert objs[0]["kind"] == "Namespace"
    assert objs[0]["metadata"]["name"] == "openshift-kuryr"

    data = next(o for o in objs if o["kind"] == "ConfigMap")["data"]
    assert data["tags"] == "openshiftClusterID=cluster-1"
    assert data["sgs"] == "sg-a,sg-b"
    assert data["router"] == "worker-nodes-router"
    assert data["insecure"] == "False"
    assert data["daemon_port"] == "8090"
    assert data["controller_port"] == "8082"


def test_render_kuryr_insecure_when_verify_disabled(manifests):
    config = _spec()
    fill_kuryr_defaults(config)
    objs = render_kuryr(config, _bootstrap(verify=False), manifests)
    data = next(o for o in objs if o["kind"] == "ConfigMap")["data"]
    assert data["insecure"] == "True"


def test_render_kuryr_missing_dir(tmp_path):
    config = _spec()
    with pytest.raises(TemplateRenderError, match="failed to render manifests"):
        render_kuryr(config, _bootstrap(), tmp_path)


def test_validate_kuryr():
    config = _spec()
    assert validate_kuryr(config) == []

    config.service_network = ["172.30.0.0/16", "172.31.0.0/16"]
    assert any("serviceNetwork must have exactly 1 entry" in e for e in validate_kuryr(config))

    config.cluster_network = [
        ClusterNetworkEntry(cidr="10.128.0.0/15", host_prefix=24),
        ClusterNetworkEntry(cidr="10.129.0.0/15", host_prefix=24),
    ]
    assert any("clusterNetwork must have exactly 1 entry" in e for e in validate_kuryr(config))


def test_fill_kuryr_defaults_creates_config():
    config = _spec()
    config.default_network.kuryr_config = None
    fill_kuryr_defaults(config)
    assert config.default_network.kuryr_config == KuryrConfig(daemon_probes_port=8090, controller_probes_port=8082)


def test_fill_kuryr_defaults_keeps_values():
    config = _spec()
    config.default_network.kuryr_config = KuryrConfig(daemon_probes_port=1234)
    fill_kuryr_defaults(config)
    assert config.default_network.kuryr_config.daemon_probes_port == 1234
    assert config.default_network.kuryr_config.controller_probes_port == 8082


def test_is_kuryr_change_safe():
    prev = _spec()
    fill_kuryr_defaults(prev)
    nxt = _spec()
    fill_kuryr_defaults(nxt)
    assert is_kuryr_change_safe(prev, nxt) == []

    nxt.default_network.kuryr_config.daemon_probes_port = 9999
    assert is_kuryr_change_safe(prev, nxt) == ["cannot change kuryr configuration"]