"""全証明書の一括更新ユースケース"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from cryptography import x509

from core.logging_config import log_renewal_error, log_renewal_info
from features.certs.application.manager import RenewalManager
from features.certs.domain.exceptions import CertificateError

logger = logging.getLogger("certificates.renewal")


class RenewalStatus(str, Enum):
    """更新結果のステータス"""

    RENEWED = "renewed"
    CSR_CREATED = "csr-created"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(slots=True)
class RenewalResult:
    name: str
    status: RenewalStatus
    certificate: x509.Certificate | None = None
    reason: str | None = None
    error: CertificateError | None = None


class RenewAllCertificatesUseCase:
    """登録済みの証明書を順に更新し、失敗しても残りの処理を継続する"""

    def __init__(self, manager: RenewalManager) -> None:
        self._manager = manager

    def execute(self, *, csr_dir: str | None = None) -> list[RenewalResult]:
        results: list[RenewalResult] = []
        for handler in self._manager.certificates():
            results.append(self._renew_one(handler.name, handler.ca_base_name, csr_dir))

        log_renewal_info(
            logger,
            "certificate renewal finished",
            "certificates.renew_all",
            renewed=sum(1 for item in results if item.status == RenewalStatus.RENEWED),
            csr_created=sum(1 for item in results if item.status == RenewalStatus.CSR_CREATED),
            skipped=sum(1 for item in results if item.status == RenewalStatus.SKIPPED),
            errors=sum(1 for item in results if item.status == RenewalStatus.ERROR),
        )
        return results

    def _renew_one(self, name: str, ca_base_name: str, csr_dir: str | None) -> RenewalResult:
        try:
            if not self._manager.certificate_exists(name):
                return RenewalResult(name=name, status=RenewalStatus.SKIPPED, reason="missing")

            if csr_dir is not None:
                self._manager.create_renew_csr(name, csr_dir)
                return RenewalResult(name=name, status=RenewalStatus.CSR_CREATED)

            if self._manager.is_externally_managed(ca_base_name):
                return RenewalResult(
                    name=name, status=RenewalStatus.SKIPPED, reason="externally-managed"
                )

            certificate = self._manager.renew_using_local_ca(name)
        except CertificateError as exc:
            log_renewal_error(
                logger,
                f"failed to renew {name}: {exc}",
                "certificates.renew_all",
                exc_info=False,
                certificate=name,
            )
            return RenewalResult(name=name, status=RenewalStatus.ERROR, reason=str(exc), error=exc)

        return RenewalResult(name=name, status=RenewalStatus.RENEWED, certificate=certificate)


__all__ = ["RenewAllCertificatesUseCase", "RenewalResult", "RenewalStatus"]
