import pytest

from netconfigop.dhcp_daemon import use_dhcp, use_dhcp_raw, use_dhcp_simple_macvlan
from netconfigop.types import (
    AdditionalNetworkDefinition,
    ClusterNetworkEntry,
    DefaultNetworkDefinition,
    IPAMConfig,
    IPAMType,
    MacvlanMode,
    NetworkSpec,
    NetworkType,
    OpenShiftSDNConfig,
    SDNMode,
    SimpleMacvlanConfig,
    StaticIPAMAddress,
    StaticIPAMConfig,
    StaticIPAMDNS,
    StaticIPAMRoute,
)

DHCP_RAW = (
    '{"cniVersion":"0.3.0","type":"macvlan","master":"eth0","mode":"bridge","ipam":{"type":"dhcp"}}'
)
INVALID_RAW = '{"cniVersion":"0.3.0","type":"macvlan","master":"eth0","mode":"bridge","ipam":"invalid"}'


def _spec(additional):
    return NetworkSpec(
        additional_networks=additional,
        service_network=["172.30.0.0/16"],
        cluster_network=[ClusterNetworkEntry(cidr="10.128.0.0/15", host_prefix=23)],
        default_network=DefaultNetworkDefinition(
            type=NetworkType.OPENSHIFT_SDN.value,
            openshift_sdn_config=OpenShiftSDNConfig(mode=SDNMode.NETWORK_POLICY.value),
        ),
        disable_multi_network=False,
    )


def _raw(name, config):
    return AdditionalNetworkDefinition(type=NetworkType.RAW.value, name=name, raw_cni_config=config)


def _macvlan(ipam):
    return AdditionalNetworkDefinition(
        type=NetworkType.SIMPLE_MACVLAN.value,
        name="net-attach-1",
        simple_macvlan_config=SimpleMacvlanConfig(
            ipam_config=ipam, master="eth0", mode=MacvlanMode.BRIDGE.value
        ),
    )


def _static_ipam():
    return IPAMConfig(
        type=IPAMType.STATIC.value,
        static_ipam_config=StaticIPAMConfig(
            addresses=[StaticIPAMAddress(address="10.1.1.2/24", gateway="10.1.1.1")],
            routes=[StaticIPAMRoute(destination="0.0.0.0/0", gateway="10.1.1.1")],
            dns=StaticIPAMDNS(
                nameservers=["10.1.1.1"],
                domain="macvlantest.example",
                search=["testdomain1.example", "testdomain2.example"],
            ),
        ),
    )


def test_with_dhcp_raw():
    assert use_dhcp(_spec([_raw("net-attach-dhcp", DHCP_RAW)])) is True


def test_no_dhcp_raw():
    assert use_dhcp(_spec([_raw("net-attach-1", "{}"), _raw("net-attach-2", "{}")])) is False


def test_invalid_dhcp_raw(caplog):
    assert use_dhcp(_spec([_raw("net-attach-dhcp", INVALID_RAW)])) is False
    assert "IPAM element" in caplog.text


def test_with_dhcp_simple_macvlan():
    assert use_dhcp(_spec([_macvlan(IPAMConfig(type=IPAMType.DHCP.value))])) is True


def test_no_dhcp_simple_macvlan():
    assert use_dhcp(_spec([_macvlan(_static_ipam())])) is False


def test_disabled_multi_network_never_uses_dhcp():
    spec = _spec([_raw("net-attach-dhcp", DHCP_RAW)])
    spec.disable_multi_network = True
    assert use_dhcp(spec) is False


def test_no_additional_networks():
    assert use_dhcp(_spec([])) is False


@pytest.mark.parametrize(
    "config, expected",
    [
        (DHCP_RAW, True),
        ('{"ipam":{"type":"static"}}', False),
        ('{"ipam":{"type":5}}', False),
        ('{"ipam":null}', False),
        ("null", False),
        ("[1, 2]", False),
        ("not json", False),
    ],
)
def test_use_dhcp_raw(config, expected):
    assert use_dhcp_raw(_raw("n", config)) is expected


def test_use_dhcp_simple_macvlan_defaults_to_dhcp():
    assert use_dhcp_simple_macvlan(None) is True
    assert use_dhcp_simple_macvlan(SimpleMacvlanConfig(master="eth0")) is True
    assert use_dhcp_simple_macvlan(SimpleMacvlanConfig(ipam_config=_static_ipam())) is False