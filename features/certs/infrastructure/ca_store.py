"""ディスク上のCA鍵と証明書を読み込むストア"""
from __future__ import annotations

import os

from cryptography import x509

from core.time import utc_now
from features.certs.domain.exceptions import (
    CertificateConfigurationError,
    CertificateError,
)
from features.certs.domain.models import CAKeyMaterial
from features.certs.infrastructure.key_utils import (
    load_certificate,
    load_private_key,
    paths_for_cert_and_key,
)
from features.certs.infrastructure.pki_store import read_file


class CAKeyStore:
    """証明書ディレクトリに配置されたCAを管理"""

    def __init__(self, certificates_dir: str) -> None:
        self._certificates_dir = certificates_dir

    def load(self, base_name: str, *, name: str | None = None) -> CAKeyMaterial:
        """署名用のCA鍵と証明書を読み込む

        欠落・解析不能・CAでない・期限切れのいずれも復旧不能な構成として扱う。
        """

        ca_name = name or base_name
        cert_path, key_path = paths_for_cert_and_key(self._certificates_dir, base_name)
        try:
            certificate = load_certificate(
                read_file(cert_path, name=ca_name, operation="load certificate authority"),
                name=ca_name,
            )
            private_key = load_private_key(
                read_file(key_path, name=ca_name, operation="load certificate authority"),
                name=ca_name,
            )
        except CertificateError as exc:
            raise CertificateConfigurationError(
                f"failure loading certificate authority: {exc}",
                name=ca_name,
                operation="load certificate authority",
            ) from exc

        if not _is_ca(certificate):
            raise CertificateConfigurationError(
                "certificate is not a certificate authority",
                name=ca_name,
                operation="load certificate authority",
            )
        if certificate.not_valid_after_utc <= utc_now():
            raise CertificateConfigurationError(
                f"certificate authority expired at {certificate.not_valid_after_utc.isoformat()}",
                name=ca_name,
                operation="load certificate authority",
            )
        return CAKeyMaterial(private_key=private_key, certificate=certificate)

    def is_externally_managed(self, base_name: str) -> bool:
        """CA証明書のみが存在し、鍵が存在しない場合にTrue"""

        cert_path, key_path = paths_for_cert_and_key(self._certificates_dir, base_name)
        return os.path.isfile(cert_path) and not os.path.isfile(key_path)


def _is_ca(certificate: x509.Certificate) -> bool:
    try:
        constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        return False
    return bool(constraints.value.ca)


__all__ = ["CAKeyStore"]
