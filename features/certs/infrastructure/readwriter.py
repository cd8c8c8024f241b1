"""証明書の保存先を抽象化するインターフェース"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography import x509

from features.certs.infrastructure.key_utils import PrivateKey


@runtime_checkable
class CertificateReadWriter(Protocol):
    """証明書の存在確認・読み込み・書き戻しを提供する保存先"""

    def exists(self) -> bool:
        ...

    def read(self) -> x509.Certificate:
        ...

    def write(self, certificate: x509.Certificate, private_key: PrivateKey) -> None:
        ...


__all__ = ["CertificateReadWriter"]
