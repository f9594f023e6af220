import pytest

from netconfigop.types import (
    AdditionalNetworkDefinition,
    ClusterNetworkEntry,
    ConfigError,
    DefaultNetworkDefinition,
    IPAMType,
    MacvlanMode,
    NetworkSpec,
    NetworkType,
    OpenShiftSDNConfig,
    ProxyConfig,
    SDNMode,
    StaticIPAMAddress,
)

INPUT = {
    "clusterNetwork": [{"cidr": "10.128.0.0/14", "hostPrefix": 23}],
    "defaultNetwork": {"type": "OpenShiftSDN"},
    "serviceNetwork": ["172.30.0.0/16"],
}

APPLIED = {
    "clusterNetwork": [{"cidr": "10.128.0.0/14", "hostPrefix": 23}],
    "serviceNetwork": ["172.30.0.0/16"],
    "defaultNetwork": {
        "type": "OpenShiftSDN",
        "openshiftSDNConfig": {"mode": "NetworkPolicy", "vxlanPort": 4789, "mtu": 8951},
    },
    "disableMultiNetwork": False,
    "deployKubeProxy": False,
    "kubeProxyConfig": {
        "bindAddress": "0.0.0.0",
        "proxyArguments": {"metrics-bind-address": ["0.0.0.0"], "metrics-port": ["9101"]},
    },
}


def test_from_dict_minimal_input():
    spec = NetworkSpec.from_dict(INPUT)
    assert spec == NetworkSpec(
        cluster_network=[ClusterNetworkEntry(cidr="10.128.0.0/14", host_prefix=23)],
        service_network=["172.30.0.0/16"],
        default_network=DefaultNetworkDefinition(type="OpenShiftSDN"),
    )
    assert spec.kube_proxy_config is None
    assert spec.disable_multi_network is None


def test_from_dict_applied_config():
    spec = NetworkSpec.from_dict(APPLIED)
    assert spec.default_network.openshift_sdn_config == OpenShiftSDNConfig(
        mode="NetworkPolicy", vxlan_port=4789, mtu=8951
    )
    assert spec.disable_multi_network is False
    assert spec.deploy_kube_proxy is False
    assert spec.kube_proxy_config == ProxyConfig(
        bind_address="0.0.0.0",
        proxy_arguments={"metrics-bind-address": ["0.0.0.0"], "metrics-port": ["9101"]},
    )


def test_from_dict_additional_networks():
    spec = NetworkSpec.from_dict(
        {
            "additionalNetworks": [
                {"type": "Raw", "name": "net-attach-1", "namespace": "foobar", "rawCNIConfig": "{}"},
                {
                    "type": "SimpleMacvlan",
                    "name": "net-attach-2",
                    "simpleMacvlanConfig": {
                        "master": "eth0",
                        "mode": "Bridge",
                        "ipamConfig": {
                            "type": "Static",
                            "staticIPAMConfig": {
                                "addresses": [{"address": "10.1.1.2/24", "gateway": "10.1.1.1"}],
                                "routes": [{"destination": "0.0.0.0/0", "gateway": "10.1.1.1"}],
                                "dns": {"nameservers": ["10.1.1.1"], "domain": "macvlantest.example"},
                            },
                        },
                    },
                },
            ]
        }
    )
    raw, macvlan = spec.additional_networks
    assert raw == AdditionalNetworkDefinition(
        type="Raw", name="net-attach-1", namespace="foobar", raw_cni_config="{}"
    )
    mc = macvlan.simple_macvlan_config
    assert mc.master == "eth0"
    assert mc.mode == MacvlanMode.BRIDGE
    assert mc.ipam_config.type == IPAMType.STATIC
    static = mc.ipam_config.static_ipam_config
    assert static.addresses == [StaticIPAMAddress(address="10.1.1.2/24", gateway="10.1.1.1")]
    assert static.routes[0].destination == "0.0.0.0/0"
    assert static.dns.domain == "macvlantest.example"
    assert static.dns.search == []


def test_from_dict_ignores_unknown_keys():
    data = dict(INPUT, somethingElse={"x": 1})
    assert NetworkSpec.from_dict(data) == NetworkSpec.from_dict(INPUT)


def test_copy_is_independent():
    spec = NetworkSpec.from_dict(APPLIED)
    clone = spec.copy()
    assert clone == spec
    clone.cluster_network[0].host_prefix = 31
    clone.kube_proxy_config.proxy_arguments["metrics-port"].append("1")
    clone.default_network.openshift_sdn_config.mtu = 1
    assert spec.cluster_network[0].host_prefix == 23
    assert spec.kube_proxy_config.proxy_arguments["metrics-port"] == ["9101"]
    assert spec.default_network.openshift_sdn_config.mtu == 8951
    assert clone != spec


@pytest.mark.parametrize(
    "member, value",
    [
        (NetworkType.OPENSHIFT_SDN, "OpenShiftSDN"),
        (NetworkType.OVN_KUBERNETES, "OVNKubernetes"),
        (NetworkType.KURYR, "Kuryr"),
        (NetworkType.RAW, "Raw"),
        (NetworkType.SIMPLE_MACVLAN, "SimpleMacvlan"),
        (IPAMType.DHCP, "DHCP"),
        (IPAMType.STATIC, "Static"),
        (MacvlanMode.PASSTHRU, "Passthru"),
        (SDNMode.NETWORK_POLICY, "NetworkPolicy"),
        (SDNMode.MULTITENANT, "Multitenant"),
    ],
)
def test_enum_members_are_plain_strings(member, value):
    assert member == value
    assert str(member) == value
    assert f"{member}" == value


def test_config_error_keeps_errors():
    err = ConfigError("invalid configuration", ["first", "second"])
    assert str(err) == "invalid configuration"
    assert err.errors == ["first", "second"]
    assert isinstance(err, ValueError)