"""証明書と秘密鍵をファイルペアとして保存するストア"""
from __future__ import annotations

import logging
import os

from cryptography import x509

from core.atomic_files import write_files_atomically
from features.certs.domain.exceptions import CertificateIOError, CertificateParseError
from features.certs.infrastructure.key_utils import (
    PrivateKey,
    load_certificate,
    paths_for_cert_and_key,
    serialize_certificate,
    serialize_private_key,
)

logger = logging.getLogger("certificates.store")

CERTIFICATE_FILE_MODE = 0o644
PRIVATE_KEY_FILE_MODE = 0o600


def read_file(path: str, *, name: str | None, operation: str) -> bytes:
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise CertificateIOError(
            exc.strerror or str(exc), path=path, name=name, operation=operation
        ) from exc


class PKICertificateReadWriter:
    """``<base_name>.crt`` / ``<base_name>.key`` の組で証明書を扱う"""

    def __init__(self, base_dir: str, base_name: str, *, name: str | None = None) -> None:
        self.base_dir = base_dir
        self.base_name = base_name
        self.name = name or base_name

    @property
    def certificate_path(self) -> str:
        return paths_for_cert_and_key(self.base_dir, self.base_name)[0]

    @property
    def key_path(self) -> str:
        return paths_for_cert_and_key(self.base_dir, self.base_name)[1]

    def exists(self) -> bool:
        """証明書と鍵の両方が存在し、証明書が解析可能な場合にTrue"""

        if not (os.path.isfile(self.certificate_path) and os.path.isfile(self.key_path)):
            return False
        try:
            self.read()
        except (CertificateIOError, CertificateParseError):
            logger.debug(
                "certificate file present but unreadable",
                extra={"event": "certificates.exists", "certificate": self.name},
            )
            return False
        return True

    def read(self) -> x509.Certificate:
        data = read_file(self.certificate_path, name=self.name, operation="read certificate")
        return load_certificate(data, name=self.name)

    def write(self, certificate: x509.Certificate, private_key: PrivateKey) -> None:
        try:
            write_files_atomically(
                {
                    self.key_path: (serialize_private_key(private_key), PRIVATE_KEY_FILE_MODE),
                    self.certificate_path: (serialize_certificate(certificate), CERTIFICATE_FILE_MODE),
                }
            )
        except OSError as exc:
            raise CertificateIOError(
                exc.strerror or str(exc),
                path=exc.filename or self.certificate_path,
                name=self.name,
                operation="write certificate",
            ) from exc
        logger.info(
            "certificate written",
            extra={
                "event": "certificates.write",
                "certificate": self.name,
                "path": self.certificate_path,
            },
        )

    def __repr__(self) -> str:
        return f"PKICertificateReadWriter({self.base_dir!r}, {self.base_name!r})"


__all__ = [
    "CERTIFICATE_FILE_MODE",
    "PKICertificateReadWriter",
    "PRIVATE_KEY_FILE_MODE",
    "read_file",
]
