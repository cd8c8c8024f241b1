import pytest

from features.certs.domain.catalog import (
    ca_definitions_for_topology,
    definitions_for_topology,
    find_ca_definition,
)
from features.certs.domain.exceptions import CertificateConfigurationError
from features.certs.domain.topology import ClusterTopology
from features.certs.domain.usage import EncryptionAlgorithm


def test_defaults():
    topology = ClusterTopology()

    assert topology.certificates_dir == "/etc/kubernetes/pki"
    assert topology.local_etcd is True
    assert topology.encryption_algorithm is EncryptionAlgorithm.RSA_2048
    assert topology.certificate_validity_days == 365


def test_from_mapping_cluster_configuration():
    topology = ClusterTopology.from_mapping(
        {
            "apiVersion": "kubeadm.k8s.io/v1beta4",
            "kind": "ClusterConfiguration",
            "certificatesDir": "/srv/pki",
            "etcd": {"external": {"endpoints": ["https://10.0.0.2:2379"]}},
            "encryptionAlgorithm": "ecdsa-p256",
            "certificateValidityPeriod": "8760h",
        }
    )

    assert topology.certificates_dir == "/srv/pki"
    assert topology.external_etcd is True
    assert topology.encryption_algorithm is EncryptionAlgorithm.ECDSA_P256
    assert topology.certificate_validity_days == 365


def test_from_mapping_keeps_defaults_for_missing_keys():
    defaults = ClusterTopology(certificates_dir="/data/pki", external_etcd=True)

    topology = ClusterTopology.from_mapping({"etcd": {"local": {}}}, defaults=defaults)

    assert topology.certificates_dir == "/data/pki"
    assert topology.external_etcd is True


def test_from_mapping_explicit_local_etcd():
    topology = ClusterTopology.from_mapping(
        {"etcd": {"external": None}}, defaults=ClusterTopology(external_etcd=True)
    )

    assert topology.external_etcd is False


def test_from_mapping_none_returns_defaults():
    assert ClusterTopology.from_mapping(None) == ClusterTopology()


@pytest.mark.parametrize(
    "raw, expected",
    [(30, 30), ("45d", 45), ("720h", 30), ("90", 90)],
)
def test_from_mapping_validity_period(raw, expected):
    topology = ClusterTopology.from_mapping({"certificateValidityPeriod": raw})

    assert topology.certificate_validity_days == expected


@pytest.mark.parametrize(
    "data",
    [
        ["not", "a", "mapping"],
        {"certificatesDir": 42},
        {"etcd": "external"},
        {"encryptionAlgorithm": "DSA-1024"},
        {"certificateValidityPeriod": "soon"},
        {"certificateValidityPeriod": "12h"},
        {"certificateValidityPeriod": "36h"},
        {"certificateValidityPeriod": True},
    ],
)
def test_from_mapping_rejects_invalid(data):
    with pytest.raises(CertificateConfigurationError):
        ClusterTopology.from_mapping(data)


def test_catalog_for_external_etcd():
    topology = ClusterTopology(external_etcd=True)

    assert all(not item.requires_local_etcd for item in definitions_for_topology(topology))
    assert [item.name for item in ca_definitions_for_topology(topology)] == ["ca", "front-proxy-ca"]


def test_find_ca_definition():
    assert find_ca_definition("etcd-ca").base_name == "etcd/ca"
    assert find_ca_definition("unknown") is None
