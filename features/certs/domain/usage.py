"""更新後の鍵アルゴリズムに関する定義"""
from __future__ import annotations

from enum import Enum


class EncryptionAlgorithm(str, Enum):
    """更新時に生成する秘密鍵の種別"""

    RSA_2048 = "RSA-2048"
    RSA_3072 = "RSA-3072"
    RSA_4096 = "RSA-4096"
    ECDSA_P256 = "ECDSA-P256"

    @property
    def is_rsa(self) -> bool:
        return self.value.startswith("RSA-")

    @property
    def rsa_key_size(self) -> int:
        return int(self.value.split("-", 1)[1])

    @classmethod
    def from_str(cls, value: str | None) -> "EncryptionAlgorithm":
        """文字列からアルゴリズムを解決"""

        if value is None or not value.strip():
            return cls.RSA_2048
        normalized = value.strip().upper()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"unknown encryption algorithm: {value}")
