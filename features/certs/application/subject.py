"""既存証明書から再発行用の設定を復元する"""
from __future__ import annotations

from typing import TypeVar

from cryptography import x509
from cryptography.x509.oid import NameOID

from features.certs.domain.models import CertificateConfig

_ExtensionT = TypeVar("_ExtensionT", bound=x509.ExtensionType)


def _extension(certificate: x509.Certificate, kind: type[_ExtensionT]) -> _ExtensionT | None:
    try:
        return certificate.extensions.get_extension_for_class(kind).value
    except x509.ExtensionNotFound:
        return None


def _attribute_values(name: x509.Name, oid: x509.ObjectIdentifier) -> list[str]:
    return [str(attribute.value) for attribute in name.get_attributes_for_oid(oid)]


def cert_to_config(certificate: x509.Certificate) -> CertificateConfig:
    """CN・Organization・SAN・拡張キー用途をそのまま引き継いだ設定を返す"""

    common_names = _attribute_values(certificate.subject, NameOID.COMMON_NAME)

    ip_addresses = []
    dns_names: list[str] = []
    alt_names = _extension(certificate, x509.SubjectAlternativeName)
    if alt_names is not None:
        ip_addresses = list(alt_names.get_values_for_type(x509.IPAddress))
        dns_names = list(alt_names.get_values_for_type(x509.DNSName))

    usages = _extension(certificate, x509.ExtendedKeyUsage)

    return CertificateConfig(
        common_name=common_names[0] if common_names else "",
        organization=_attribute_values(certificate.subject, NameOID.ORGANIZATION_NAME),
        ip_addresses=ip_addresses,
        dns_names=dns_names,
        usages=list(usages) if usages is not None else [],
    )


__all__ = ["cert_to_config"]
