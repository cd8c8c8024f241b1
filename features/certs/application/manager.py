"""証明書更新マネージャー

クラスタ構成から管理対象のCAと証明書を登録し、ローカルCAによる再署名と
外部CA向けのCSR生成を提供する。
"""
from __future__ import annotations

import logging
import os

from cryptography import x509

from core.atomic_files import write_files_atomically
from core.logging_config import log_renewal_info
from core.time import validity_window
from features.certs.application.handlers import (
    CAExpirationHandler,
    CertificateRenewHandler,
    default_ca_handlers,
    default_certificate_handlers,
)
from features.certs.application.subject import cert_to_config
from features.certs.domain.exceptions import (
    CertificateConfigurationError,
    CertificateIOError,
    CertificateNotFoundError,
)
from features.certs.domain.models import CertificateConfig, ExpirationInfo
from features.certs.domain.policy import apply_organization_policy
from features.certs.domain.topology import ClusterTopology
from features.certs.infrastructure.ca_store import CAKeyStore
from features.certs.infrastructure.key_utils import (
    PRIVATE_KEY_EXTENSION,
    build_csr,
    generate_private_key,
    path_for_csr,
    serialize_csr,
    serialize_private_key,
    sign_certificate,
)
from features.certs.infrastructure.pki_store import (
    CERTIFICATE_FILE_MODE,
    PRIVATE_KEY_FILE_MODE,
)
from features.certs.infrastructure.readwriter import CertificateReadWriter

logger = logging.getLogger("certificates.renewal")


class RenewalManager:
    """管理対象のCA・証明書のレジストリ"""

    def __init__(
        self,
        topology: ClusterTopology | None = None,
        kubeconfig_dir: str = "",
        *,
        cas: dict[str, CAExpirationHandler] | None = None,
        certificates: dict[str, CertificateRenewHandler] | None = None,
    ) -> None:
        self._topology = topology or ClusterTopology()
        self._kubeconfig_dir = kubeconfig_dir
        self._cas: dict[str, CAExpirationHandler] = dict(cas or {})
        self._certificates: dict[str, CertificateRenewHandler] = dict(certificates or {})
        self._ca_store = CAKeyStore(self._topology.certificates_dir)

    @classmethod
    def from_topology(cls, topology: ClusterTopology, kubeconfig_dir: str) -> "RenewalManager":
        """クラスタ構成に該当するCAと証明書を登録したマネージャーを生成"""

        topology.validate()
        return cls(
            topology,
            kubeconfig_dir,
            cas=default_ca_handlers(topology),
            certificates=default_certificate_handlers(topology, kubeconfig_dir),
        )

    @property
    def topology(self) -> ClusterTopology:
        return self._topology

    # ------------------------------------------------------------------
    # registry
    # ------------------------------------------------------------------
    def certificates(self) -> list[CertificateRenewHandler]:
        return sorted(self._certificates.values(), key=lambda handler: handler.name)

    def cas(self) -> list[CAExpirationHandler]:
        return sorted(self._cas.values(), key=lambda handler: handler.name)

    def certificate_handler(self, name: str) -> CertificateRenewHandler:
        handler = self._certificates.get(name)
        if handler is None:
            raise CertificateNotFoundError(
                f"{name} is not a known certificate", name=name, operation="lookup certificate"
            )
        return handler

    def ca_handler(self, name: str) -> CAExpirationHandler:
        handler = self._cas.get(name)
        if handler is None:
            raise CertificateNotFoundError(
                f"{name} is not a known certificate authority", name=name, operation="lookup CA"
            )
        return handler

    def ca_exists(self, name: str) -> bool:
        return self._readwriter(self.ca_handler(name)).exists()

    def certificate_exists(self, name: str) -> bool:
        return self._readwriter(self.certificate_handler(name)).exists()

    def is_externally_managed(self, ca_base_name: str) -> bool:
        """CA鍵が手元にない (外部CAで運用されている) 場合にTrue"""

        return self._ca_store.is_externally_managed(ca_base_name)

    def get_certificate_expiration_info(self, name: str) -> ExpirationInfo:
        handler = self.certificate_handler(name)
        certificate = self._readwriter(handler).read()
        return ExpirationInfo(
            name=handler.name,
            expiration_date=certificate.not_valid_after_utc,
            externally_managed=self.is_externally_managed(handler.ca_base_name),
        )

    def get_ca_expiration_info(self, name: str) -> ExpirationInfo:
        handler = self.ca_handler(name)
        certificate = self._readwriter(handler).read()
        return ExpirationInfo(
            name=handler.name,
            expiration_date=certificate.not_valid_after_utc,
            externally_managed=self.is_externally_managed(handler.file_name),
        )

    # ------------------------------------------------------------------
    # renewal
    # ------------------------------------------------------------------
    def renew_using_local_ca(self, name: str) -> x509.Certificate:
        """ローカルのCA鍵で証明書を再署名し、元の保存先へ書き戻す"""

        handler = self.certificate_handler(name)
        readwriter = self._readwriter(handler)
        current = readwriter.read()
        config = self._renewal_config(handler.name, current)

        if not handler.ca_base_name:
            raise CertificateConfigurationError(
                "certificate has no governing certificate authority",
                name=name,
                operation="renew certificate",
            )
        ca = self._ca_store.load(handler.ca_base_name, name=handler.ca_name)

        not_before, not_after = validity_window(self._topology.certificate_validity_days)
        if not_after <= current.not_valid_after_utc:
            raise CertificateConfigurationError(
                "renewed certificate would not outlive the current one "
                f"(current expiry {current.not_valid_after_utc.isoformat()}); "
                "increase the certificate validity period",
                name=name,
                operation="renew certificate",
            )

        private_key = generate_private_key(self._topology.encryption_algorithm)
        certificate = sign_certificate(
            config,
            private_key,
            ca.certificate,
            ca.private_key,
            not_before=not_before,
            not_after=not_after,
            serial_number=_fresh_serial(current.serial_number),
        )
        readwriter.write(certificate, private_key)

        log_renewal_info(
            logger,
            "certificate renewed",
            "certificates.renew",
            certificate=name,
            ca=handler.ca_name,
            expires_at=not_after.isoformat(),
        )
        return certificate

    def create_renew_csr(self, name: str, output_dir: str) -> tuple[str, str]:
        """外部CAで署名するための鍵とCSRを出力ディレクトリに書き出す

        戻り値は ``(<name>.key, <name>.csr)`` のパス。
        """

        handler = self.certificate_handler(name)
        current = self._readwriter(handler).read()
        config = self._renewal_config(handler.name, current)

        private_key = generate_private_key(self._topology.encryption_algorithm)
        csr = build_csr(private_key, config)

        key_path = os.path.join(output_dir, name + PRIVATE_KEY_EXTENSION)
        csr_path = path_for_csr(output_dir, name)
        try:
            os.makedirs(output_dir, exist_ok=True)
            write_files_atomically(
                {
                    key_path: (serialize_private_key(private_key), PRIVATE_KEY_FILE_MODE),
                    csr_path: (serialize_csr(csr), CERTIFICATE_FILE_MODE),
                }
            )
        except OSError as exc:
            raise CertificateIOError(
                exc.strerror or str(exc),
                path=exc.filename or output_dir,
                name=name,
                operation="write certificate request",
            ) from exc

        log_renewal_info(
            logger,
            "certificate signing request created",
            "certificates.renew_csr",
            certificate=name,
            csr_path=csr_path,
        )
        return key_path, csr_path

    # ------------------------------------------------------------------
    def _renewal_config(self, name: str, certificate: x509.Certificate) -> CertificateConfig:
        config = cert_to_config(certificate)
        config.organization = apply_organization_policy(name, config.organization)
        return config

    @staticmethod
    def _readwriter(handler: CAExpirationHandler | CertificateRenewHandler) -> CertificateReadWriter:
        if handler.readwriter is None:
            raise CertificateConfigurationError(
                "no storage configured", name=handler.name, operation="lookup storage"
            )
        return handler.readwriter


def _fresh_serial(previous: int) -> int:
    serial = x509.random_serial_number()
    while serial == previous:
        serial = x509.random_serial_number()
    return serial


__all__ = ["RenewalManager"]
