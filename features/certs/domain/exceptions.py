"""証明書更新機能で利用する例外定義"""
from __future__ import annotations


class CertificateError(Exception):
    """証明書関連の基本例外

    対象の証明書/CA名と操作名を保持し、一括更新の呼び出し側で
    どの証明書が失敗したかを判別できるようにする。
    """

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.name = name
        self.operation = operation

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(self.operation)
        if self.name:
            parts.append(self.name)
        if not parts:
            return self.message
        return f"{' '.join(parts)}: {self.message}"


class CertificateNotFoundError(CertificateError):
    """未登録の証明書/CA名が指定された場合の例外"""


class CertificateConfigurationError(CertificateError):
    """署名に必要なCAが欠落・不正な場合など、設定起因の致命的な例外"""


class CertificateIOError(CertificateError):
    """ファイルの読み書きに失敗した場合の例外"""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        name: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, name=name, operation=operation)
        self.path = path

    def __str__(self) -> str:
        base = super().__str__()
        if self.path:
            return f"{base} ({self.path})"
        return base


class CertificateParseError(CertificateError):
    """証明書・鍵・CSR・kubeconfigの内容が解析できない場合の例外"""


class KeyGenerationError(CertificateError):
    """鍵生成時の例外"""


class CertificateSigningError(CertificateError):
    """証明書署名時の例外"""


__all__ = [
    "CertificateConfigurationError",
    "CertificateError",
    "CertificateIOError",
    "CertificateNotFoundError",
    "CertificateParseError",
    "CertificateSigningError",
    "KeyGenerationError",
]
