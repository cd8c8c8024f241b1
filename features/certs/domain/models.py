"""証明書更新機能で利用するドメインモデル"""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from cryptography import x509
from cryptography.x509 import ObjectIdentifier

from core.time import utc_now

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


@dataclass(slots=True)
class CertificateConfig:
    """既存証明書から復元した、再発行に必要な識別情報"""

    common_name: str
    organization: list[str] = field(default_factory=list)
    ip_addresses: list[IPAddress] = field(default_factory=list)
    dns_names: list[str] = field(default_factory=list)
    usages: list[ObjectIdentifier] = field(default_factory=list)

    @property
    def has_alt_names(self) -> bool:
        return bool(self.ip_addresses or self.dns_names)


@dataclass(slots=True)
class CAKeyMaterial:
    """署名に利用するCA鍵と証明書"""

    private_key: Any
    certificate: x509.Certificate


@dataclass(slots=True, frozen=True)
class ExpirationInfo:
    """証明書の有効期限情報"""

    name: str
    expiration_date: datetime
    externally_managed: bool = False

    def residual_time(self, now: datetime | None = None) -> timedelta:
        """失効までの残り時間。失効済みの場合は負の値"""

        return self.expiration_date - (now or utc_now())


__all__ = ["CAKeyMaterial", "CertificateConfig", "ExpirationInfo", "IPAddress"]
