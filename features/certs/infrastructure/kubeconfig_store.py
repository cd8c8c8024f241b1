"""kubeconfigファイルに埋め込まれたクライアント証明書を扱うストア"""
from __future__ import annotations

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Any

import yaml
from cryptography import x509

from core.atomic_files import atomic_replace
from features.certs.domain.exceptions import (
    CertificateConfigurationError,
    CertificateIOError,
    CertificateParseError,
)
from features.certs.infrastructure.key_utils import (
    PrivateKey,
    load_certificate,
    paths_for_cert_and_key,
    serialize_certificate,
    serialize_private_key,
)
from features.certs.infrastructure.pki_store import PRIVATE_KEY_FILE_MODE, read_file

logger = logging.getLogger("certificates.store")

CLIENT_CERTIFICATE_DATA = "client-certificate-data"
CLIENT_KEY_DATA = "client-key-data"
CERTIFICATE_AUTHORITY_DATA = "certificate-authority-data"


@dataclass(slots=True)
class _CurrentEntry:
    document: dict[str, Any]
    cluster: dict[str, Any]
    user: dict[str, Any]


def _named_entry(items: Any, name: str, key: str) -> dict[str, Any] | None:
    if not isinstance(items, list):
        return None
    for item in items:
        if isinstance(item, dict) and item.get("name") == name:
            value = item.get(key)
            return value if isinstance(value, dict) else None
    return None


class KubeConfigReadWriter:
    """current-contextのユーザーに埋め込まれた証明書と鍵を読み書きする"""

    def __init__(
        self,
        kubeconfig_dir: str,
        file_name: str,
        certificates_dir: str,
        *,
        ca_base_name: str = "ca",
        name: str | None = None,
    ) -> None:
        self.kubeconfig_dir = kubeconfig_dir
        self.file_name = file_name
        self.certificates_dir = certificates_dir
        self.ca_base_name = ca_base_name
        self.name = name or file_name

    @property
    def path(self) -> str:
        return os.path.join(self.kubeconfig_dir, self.file_name)

    def exists(self) -> bool:
        """kubeconfigが存在し、埋め込み証明書が解析可能な場合にTrue"""

        if not os.path.isfile(self.path):
            return False
        try:
            self.read()
        except (CertificateIOError, CertificateParseError):
            logger.debug(
                "kubeconfig present but its client certificate is unreadable",
                extra={"event": "certificates.exists", "certificate": self.name},
            )
            return False
        return True

    def read(self) -> x509.Certificate:
        entry = self._load()
        encoded = entry.user.get(CLIENT_CERTIFICATE_DATA)
        if not encoded:
            raise CertificateParseError(
                "kubeconfig does not have an embedded client certificate",
                name=self.name,
                operation="read kubeconfig",
            )
        return load_certificate(self._decode(encoded, CLIENT_CERTIFICATE_DATA), name=self.name)

    def write(self, certificate: x509.Certificate, private_key: PrivateKey) -> None:
        """current-contextのユーザーの証明書と鍵のみを置き換えて保存する"""

        entry = self._load()
        ca_certificate = self._read_ca_certificate()

        entry.user[CLIENT_CERTIFICATE_DATA] = self._encode(serialize_certificate(certificate))
        entry.user[CLIENT_KEY_DATA] = self._encode(serialize_private_key(private_key))
        entry.cluster[CERTIFICATE_AUTHORITY_DATA] = self._encode(ca_certificate)

        content = yaml.safe_dump(entry.document, default_flow_style=False, sort_keys=False)
        try:
            with atomic_replace(self.path, mode=PRIVATE_KEY_FILE_MODE) as handle:
                handle.write(content.encode("utf-8"))
        except OSError as exc:
            raise CertificateIOError(
                exc.strerror or str(exc),
                path=self.path,
                name=self.name,
                operation="write kubeconfig",
            ) from exc
        logger.info(
            "kubeconfig client certificate written",
            extra={"event": "certificates.write", "certificate": self.name, "path": self.path},
        )

    # ------------------------------------------------------------------
    def _load(self) -> _CurrentEntry:
        raw = read_file(self.path, name=self.name, operation="read kubeconfig")
        try:
            document = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise CertificateParseError(
                f"invalid kubeconfig: {exc}", name=self.name, operation="read kubeconfig"
            ) from exc
        if not isinstance(document, dict):
            raise CertificateParseError(
                "kubeconfig must be a mapping", name=self.name, operation="read kubeconfig"
            )
        return self._locate(document)

    def _locate(self, document: dict[str, Any]) -> _CurrentEntry:
        current = document.get("current-context")
        context = _named_entry(document.get("contexts"), current, "context") if current else None
        if context is None:
            raise CertificateParseError(
                f"invalid kubeconfig: missing context {current!r}",
                name=self.name,
                operation="read kubeconfig",
            )

        cluster = _named_entry(document.get("clusters"), context.get("cluster"), "cluster")
        if cluster is None:
            raise CertificateParseError(
                f"invalid kubeconfig: missing cluster {context.get('cluster')!r}",
                name=self.name,
                operation="read kubeconfig",
            )
        if not cluster.get(CERTIFICATE_AUTHORITY_DATA):
            raise CertificateParseError(
                "kubeconfig does not have an embedded server certificate",
                name=self.name,
                operation="read kubeconfig",
            )

        user = _named_entry(document.get("users"), context.get("user"), "user")
        if user is None:
            raise CertificateParseError(
                f"invalid kubeconfig: missing user {context.get('user')!r}",
                name=self.name,
                operation="read kubeconfig",
            )
        return _CurrentEntry(document=document, cluster=cluster, user=user)

    def _read_ca_certificate(self) -> bytes:
        ca_path = paths_for_cert_and_key(self.certificates_dir, self.ca_base_name)[0]
        try:
            data = read_file(ca_path, name=self.name, operation="read certificate authority")
        except CertificateIOError as exc:
            raise CertificateConfigurationError(
                f"the CA certificate required to update the kubeconfig is unavailable: {exc}",
                name=self.name,
                operation="write kubeconfig",
            ) from exc
        return serialize_certificate(load_certificate(data, name=self.ca_base_name))

    def _decode(self, value: Any, field: str) -> bytes:
        try:
            return base64.b64decode(str(value), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CertificateParseError(
                f"{field} is not valid base64", name=self.name, operation="read kubeconfig"
            ) from exc

    @staticmethod
    def _encode(data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    def __repr__(self) -> str:
        return f"KubeConfigReadWriter({self.kubeconfig_dir!r}, {self.file_name!r})"


__all__ = ["KubeConfigReadWriter"]
