"""証明書の管理対象を決めるクラスタ構成"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from features.certs.domain.exceptions import CertificateConfigurationError
from features.certs.domain.usage import EncryptionAlgorithm

DEFAULT_CERTIFICATES_DIR = "/etc/kubernetes/pki"
DEFAULT_CERTIFICATE_VALIDITY_DAYS = 365

_HOURS_PER_DAY = 24


@dataclass(frozen=True, slots=True)
class ClusterTopology:
    """更新処理が参照する解決済みのクラスタ構成"""

    certificates_dir: str = DEFAULT_CERTIFICATES_DIR
    external_etcd: bool = False
    encryption_algorithm: EncryptionAlgorithm = EncryptionAlgorithm.RSA_2048
    certificate_validity_days: int = DEFAULT_CERTIFICATE_VALIDITY_DAYS

    @property
    def local_etcd(self) -> bool:
        return not self.external_etcd

    def validate(self) -> None:
        """構造的に不正な構成であれば例外を送出する"""

        if not isinstance(self.certificates_dir, str):
            raise CertificateConfigurationError(
                "certificatesDir must be a string", operation="load cluster configuration"
            )
        if not isinstance(self.encryption_algorithm, EncryptionAlgorithm):
            raise CertificateConfigurationError(
                f"unsupported encryption algorithm: {self.encryption_algorithm!r}",
                operation="load cluster configuration",
            )
        if isinstance(self.certificate_validity_days, bool) or not isinstance(
            self.certificate_validity_days, int
        ):
            raise CertificateConfigurationError(
                "certificate validity must be an integer number of days",
                operation="load cluster configuration",
            )
        if self.certificate_validity_days <= 0:
            raise CertificateConfigurationError(
                "certificate validity must be at least one day",
                operation="load cluster configuration",
            )

    @classmethod
    def from_mapping(
        cls,
        data: Any,
        *,
        defaults: "ClusterTopology | None" = None,
    ) -> "ClusterTopology":
        """ClusterConfiguration形式の辞書から構成を組み立てる

        ``certificatesDir``, ``etcd.external``, ``encryptionAlgorithm`` と
        ``certificateValidityPeriod`` (``"8760h"`` 形式または日数) を解釈する。
        """

        base = defaults or cls()
        if data is None:
            return base
        if not isinstance(data, Mapping):
            raise CertificateConfigurationError(
                "cluster configuration must be a mapping",
                operation="load cluster configuration",
            )

        certificates_dir = data.get("certificatesDir", base.certificates_dir)
        if not isinstance(certificates_dir, str):
            raise CertificateConfigurationError(
                "certificatesDir must be a string", operation="load cluster configuration"
            )

        etcd = data.get("etcd") or {}
        if not isinstance(etcd, Mapping):
            raise CertificateConfigurationError(
                "etcd must be a mapping", operation="load cluster configuration"
            )
        if "external" in etcd:
            external_etcd = etcd.get("external") is not None
        else:
            external_etcd = base.external_etcd

        raw_algorithm = data.get("encryptionAlgorithm")
        try:
            algorithm = (
                EncryptionAlgorithm.from_str(str(raw_algorithm))
                if raw_algorithm is not None
                else base.encryption_algorithm
            )
        except ValueError as exc:
            raise CertificateConfigurationError(
                str(exc), operation="load cluster configuration"
            ) from exc

        validity_days = _parse_validity(
            data.get("certificateValidityPeriod"), base.certificate_validity_days
        )

        topology = cls(
            certificates_dir=certificates_dir,
            external_etcd=external_etcd,
            encryption_algorithm=algorithm,
            certificate_validity_days=validity_days,
        )
        topology.validate()
        return topology


def _parse_validity(raw: Any, default: int) -> int:
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise CertificateConfigurationError(
            "certificateValidityPeriod must be a duration", operation="load cluster configuration"
        )
    if isinstance(raw, int):
        return raw
    text = str(raw).strip().lower()
    try:
        if text.endswith("h"):
            hours = float(text[:-1])
            if hours % _HOURS_PER_DAY:
                raise CertificateConfigurationError(
                    f"certificateValidityPeriod must be a whole number of days: {raw}",
                    operation="load cluster configuration",
                )
            return int(hours) // _HOURS_PER_DAY
        if text.endswith("d"):
            return int(text[:-1])
        return int(text)
    except ValueError as exc:
        raise CertificateConfigurationError(
            f"invalid certificateValidityPeriod: {raw}", operation="load cluster configuration"
        ) from exc


__all__ = [
    "ClusterTopology",
    "DEFAULT_CERTIFICATES_DIR",
    "DEFAULT_CERTIFICATE_VALIDITY_DAYS",
]
