"""コントロールプレーンで管理する証明書とCAの一覧"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from features.certs.domain.topology import ClusterTopology


class StorageKind(str, Enum):
    """証明書の保存形式"""

    PKI = "pki"
    KUBECONFIG = "kubeconfig"


@dataclass(frozen=True, slots=True)
class CertificateDefinition:
    """管理対象の証明書/CAの定義"""

    name: str
    long_name: str
    base_name: str
    ca_name: str | None = None
    storage: StorageKind = StorageKind.PKI
    requires_local_etcd: bool = False


CA_ROOT = CertificateDefinition(
    name="ca",
    long_name="self-signed Kubernetes CA to provision identities for other Kubernetes components",
    base_name="ca",
)
CA_FRONT_PROXY = CertificateDefinition(
    name="front-proxy-ca",
    long_name="self-signed CA to provision identities for front proxy",
    base_name="front-proxy-ca",
)
CA_ETCD = CertificateDefinition(
    name="etcd-ca",
    long_name="self-signed CA to provision identities for etcd",
    base_name="etcd/ca",
    requires_local_etcd=True,
)

CA_DEFINITIONS: tuple[CertificateDefinition, ...] = (CA_ROOT, CA_FRONT_PROXY, CA_ETCD)

CERTIFICATE_DEFINITIONS: tuple[CertificateDefinition, ...] = (
    CertificateDefinition(
        name="apiserver",
        long_name="certificate for serving the Kubernetes API",
        base_name="apiserver",
        ca_name=CA_ROOT.name,
    ),
    CertificateDefinition(
        name="apiserver-kubelet-client",
        long_name="certificate for the API server to connect to kubelet",
        base_name="apiserver-kubelet-client",
        ca_name=CA_ROOT.name,
    ),
    CertificateDefinition(
        name="front-proxy-client",
        long_name="certificate for the front proxy client",
        base_name="front-proxy-client",
        ca_name=CA_FRONT_PROXY.name,
    ),
    CertificateDefinition(
        name="etcd-server",
        long_name="certificate for serving etcd",
        base_name="etcd/server",
        ca_name=CA_ETCD.name,
        requires_local_etcd=True,
    ),
    CertificateDefinition(
        name="etcd-peer",
        long_name="certificate for etcd nodes to communicate with each other",
        base_name="etcd/peer",
        ca_name=CA_ETCD.name,
        requires_local_etcd=True,
    ),
    CertificateDefinition(
        name="etcd-healthcheck-client",
        long_name="certificate for liveness probes to healthcheck etcd",
        base_name="etcd/healthcheck-client",
        ca_name=CA_ETCD.name,
        requires_local_etcd=True,
    ),
    CertificateDefinition(
        name="apiserver-etcd-client",
        long_name="certificate the apiserver uses to access etcd",
        base_name="apiserver-etcd-client",
        ca_name=CA_ETCD.name,
        requires_local_etcd=True,
    ),
)

KUBECONFIG_DEFINITIONS: tuple[CertificateDefinition, ...] = (
    CertificateDefinition(
        name="admin.conf",
        long_name="certificate embedded in the kubeconfig file for the admin to use and for kubeadm itself",
        base_name="admin.conf",
        ca_name=CA_ROOT.name,
        storage=StorageKind.KUBECONFIG,
    ),
    CertificateDefinition(
        name="super-admin.conf",
        long_name="certificate embedded in the kubeconfig file for the super-admin",
        base_name="super-admin.conf",
        ca_name=CA_ROOT.name,
        storage=StorageKind.KUBECONFIG,
    ),
    CertificateDefinition(
        name="controller-manager.conf",
        long_name="certificate embedded in the kubeconfig file for the controller manager to use",
        base_name="controller-manager.conf",
        ca_name=CA_ROOT.name,
        storage=StorageKind.KUBECONFIG,
    ),
    CertificateDefinition(
        name="scheduler.conf",
        long_name="certificate embedded in the kubeconfig file for the scheduler manager to use",
        base_name="scheduler.conf",
        ca_name=CA_ROOT.name,
        storage=StorageKind.KUBECONFIG,
    ),
)


def _applies(definition: CertificateDefinition, topology: ClusterTopology) -> bool:
    return topology.local_etcd or not definition.requires_local_etcd


def ca_definitions_for_topology(topology: ClusterTopology) -> list[CertificateDefinition]:
    return [item for item in CA_DEFINITIONS if _applies(item, topology)]


def definitions_for_topology(topology: ClusterTopology) -> list[CertificateDefinition]:
    """クラスタ構成に該当する証明書定義を返す"""

    candidates = CERTIFICATE_DEFINITIONS + KUBECONFIG_DEFINITIONS
    return [item for item in candidates if _applies(item, topology)]


def find_ca_definition(name: str) -> CertificateDefinition | None:
    for item in CA_DEFINITIONS:
        if item.name == name:
            return item
    return None


__all__ = [
    "CA_DEFINITIONS",
    "CA_ETCD",
    "CA_FRONT_PROXY",
    "CA_ROOT",
    "CERTIFICATE_DEFINITIONS",
    "CertificateDefinition",
    "KUBECONFIG_DEFINITIONS",
    "StorageKind",
    "ca_definitions_for_topology",
    "definitions_for_topology",
    "find_ca_definition",
]
