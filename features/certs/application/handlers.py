"""CAと証明書ごとのハンドラー"""
from __future__ import annotations

from dataclasses import dataclass, field

from features.certs.domain.catalog import (
    CertificateDefinition,
    StorageKind,
    ca_definitions_for_topology,
    definitions_for_topology,
    find_ca_definition,
)
from features.certs.domain.topology import ClusterTopology
from features.certs.infrastructure.kubeconfig_store import KubeConfigReadWriter
from features.certs.infrastructure.pki_store import PKICertificateReadWriter
from features.certs.infrastructure.readwriter import CertificateReadWriter


@dataclass(slots=True)
class CAExpirationHandler:
    """CA証明書の存在と有効期限を確認するハンドラー (更新は行わない)"""

    name: str
    long_name: str = ""
    file_name: str = ""
    readwriter: CertificateReadWriter | None = field(default=None, repr=False, compare=False)


@dataclass(slots=True)
class CertificateRenewHandler:
    """更新対象の証明書と、署名するCA・保存先の組"""

    name: str
    long_name: str = ""
    file_name: str = ""
    ca_name: str = ""
    ca_base_name: str = ""
    readwriter: CertificateReadWriter | None = field(default=None, repr=False, compare=False)


def default_ca_handlers(topology: ClusterTopology) -> dict[str, CAExpirationHandler]:
    return {
        definition.name: CAExpirationHandler(
            name=definition.name,
            long_name=definition.long_name,
            file_name=definition.base_name,
            readwriter=PKICertificateReadWriter(
                topology.certificates_dir, definition.base_name, name=definition.name
            ),
        )
        for definition in ca_definitions_for_topology(topology)
    }


def _readwriter_for(
    definition: CertificateDefinition,
    topology: ClusterTopology,
    kubeconfig_dir: str,
    ca_base_name: str,
) -> CertificateReadWriter:
    if definition.storage is StorageKind.KUBECONFIG:
        return KubeConfigReadWriter(
            kubeconfig_dir,
            definition.base_name,
            topology.certificates_dir,
            ca_base_name=ca_base_name,
            name=definition.name,
        )
    return PKICertificateReadWriter(
        topology.certificates_dir, definition.base_name, name=definition.name
    )


def default_certificate_handlers(
    topology: ClusterTopology, kubeconfig_dir: str
) -> dict[str, CertificateRenewHandler]:
    """クラスタ構成に応じた証明書ハンドラーを生成する"""

    handlers: dict[str, CertificateRenewHandler] = {}
    for definition in definitions_for_topology(topology):
        ca = find_ca_definition(definition.ca_name or "")
        ca_base_name = ca.base_name if ca is not None else ""
        handlers[definition.name] = CertificateRenewHandler(
            name=definition.name,
            long_name=definition.long_name,
            file_name=definition.base_name,
            ca_name=definition.ca_name or "",
            ca_base_name=ca_base_name,
            readwriter=_readwriter_for(definition, topology, kubeconfig_dir, ca_base_name),
        )
    return handlers


__all__ = [
    "CAExpirationHandler",
    "CertificateRenewHandler",
    "default_ca_handlers",
    "default_certificate_handlers",
]
