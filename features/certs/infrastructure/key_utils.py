"""鍵や証明書周りの共通関数"""
from __future__ import annotations

import os
from datetime import datetime
from typing import Iterable

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from features.certs.domain.exceptions import (
    CertificateParseError,
    CertificateSigningError,
    KeyGenerationError,
)
from features.certs.domain.models import CertificateConfig
from features.certs.domain.usage import EncryptionAlgorithm

PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey

CERTIFICATE_EXTENSION = ".crt"
PRIVATE_KEY_EXTENSION = ".key"
CSR_EXTENSION = ".csr"


class SubjectBuilder:
    """subject用のビルダー"""

    def __init__(self, config: CertificateConfig) -> None:
        self._config = config

    def build(self) -> x509.Name:
        attributes: list[x509.NameAttribute] = [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, org)
            for org in self._config.organization
            if org
        ]
        if self._config.common_name:
            attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, self._config.common_name))
        if not attributes:
            raise CertificateSigningError("subject is empty", operation="build subject")
        return x509.Name(attributes)


def generate_private_key(algorithm: EncryptionAlgorithm) -> PrivateKey:
    """鍵ペア生成"""

    try:
        if algorithm.is_rsa:
            return rsa.generate_private_key(public_exponent=65537, key_size=algorithm.rsa_key_size)
        if algorithm is EncryptionAlgorithm.ECDSA_P256:
            return ec.generate_private_key(ec.SECP256R1())
    except Exception as exc:  # noqa: BLE001 - cryptography例外のラップ
        raise KeyGenerationError(str(exc), operation="generate private key") from exc
    raise KeyGenerationError(
        f"unsupported key algorithm: {algorithm.value}", operation="generate private key"
    )


def serialize_private_key(key: PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def serialize_certificate(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


def serialize_csr(csr: x509.CertificateSigningRequest) -> bytes:
    return csr.public_bytes(serialization.Encoding.PEM)


def load_certificate(data: bytes, *, name: str | None = None) -> x509.Certificate:
    """PEMの先頭にある証明書を読み込む"""

    try:
        certificates = x509.load_pem_x509_certificates(data)
    except ValueError as exc:
        raise CertificateParseError(
            "data does not contain a valid PEM certificate", name=name, operation="parse certificate"
        ) from exc
    return certificates[0]


def load_private_key(data: bytes, *, name: str | None = None) -> PrivateKey:
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as exc:
        raise CertificateParseError(
            "data does not contain a valid PEM private key", name=name, operation="parse private key"
        ) from exc
    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise CertificateParseError(
            f"unsupported private key type: {type(key).__name__}",
            name=name,
            operation="parse private key",
        )
    return key


def paths_for_cert_and_key(base_dir: str | os.PathLike[str], base_name: str) -> tuple[str, str]:
    """``<base_name>.crt`` と ``<base_name>.key`` のパスを返す"""

    return (
        os.path.join(os.fspath(base_dir), base_name + CERTIFICATE_EXTENSION),
        os.path.join(os.fspath(base_dir), base_name + PRIVATE_KEY_EXTENSION),
    )


def path_for_csr(base_dir: str | os.PathLike[str], base_name: str) -> str:
    return os.path.join(os.fspath(base_dir), base_name + CSR_EXTENSION)


def build_key_usage_extension(usages: Iterable[str] | None) -> x509.KeyUsage | None:
    """keyUsageエクステンションを生成"""

    if usages is None:
        return None

    usage_set = {item for item in usages if item}
    if not usage_set:
        return None

    mapping = {
        "digitalSignature": "digital_signature",
        "contentCommitment": "content_commitment",
        "keyEncipherment": "key_encipherment",
        "dataEncipherment": "data_encipherment",
        "keyAgreement": "key_agreement",
        "keyCertSign": "key_cert_sign",
        "crlSign": "crl_sign",
    }

    params = {
        "digital_signature": False,
        "content_commitment": False,
        "key_encipherment": False,
        "data_encipherment": False,
        "key_agreement": False,
        "key_cert_sign": False,
        "crl_sign": False,
        "encipher_only": False,
        "decipher_only": False,
    }

    for usage in usage_set:
        attr = mapping.get(usage)
        if attr is None:
            raise CertificateSigningError(f"unsupported keyUsage: {usage}", operation="build key usage")
        params[attr] = True

    return x509.KeyUsage(**params)


def _key_usages_for(key: PrivateKey) -> list[str]:
    if isinstance(key, rsa.RSAPrivateKey):
        return ["digitalSignature", "keyEncipherment"]
    return ["digitalSignature"]


def _alt_names(config: CertificateConfig) -> x509.SubjectAlternativeName | None:
    if not config.has_alt_names:
        return None
    names: list[x509.GeneralName] = [x509.DNSName(value) for value in config.dns_names]
    names.extend(x509.IPAddress(value) for value in config.ip_addresses)
    return x509.SubjectAlternativeName(names)


def _authority_key_identifier(
    ca_certificate: x509.Certificate, ca_key: PrivateKey
) -> x509.AuthorityKeyIdentifier:
    try:
        ski = ca_certificate.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key())
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)


def build_csr(private_key: PrivateKey, config: CertificateConfig) -> x509.CertificateSigningRequest:
    """署名前のCSRを生成"""

    builder = x509.CertificateSigningRequestBuilder().subject_name(SubjectBuilder(config).build())
    alt_names = _alt_names(config)
    if alt_names is not None:
        builder = builder.add_extension(alt_names, critical=False)
    if config.usages:
        builder = builder.add_extension(x509.ExtendedKeyUsage(config.usages), critical=False)

    try:
        return builder.sign(private_key, hashes.SHA256())
    except Exception as exc:  # noqa: BLE001 - cryptography例外のラップ
        raise CertificateSigningError(str(exc), operation="sign certificate request") from exc


def sign_certificate(
    config: CertificateConfig,
    private_key: PrivateKey,
    ca_certificate: x509.Certificate,
    ca_key: PrivateKey,
    *,
    not_before: datetime,
    not_after: datetime,
    serial_number: int,
) -> x509.Certificate:
    """CA鍵でリーフ証明書に署名"""

    builder = (
        x509.CertificateBuilder()
        .subject_name(SubjectBuilder(config).build())
        .issuer_name(ca_certificate.subject)
        .public_key(private_key.public_key())
        .serial_number(serial_number)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
    )

    key_usage_extension = build_key_usage_extension(_key_usages_for(private_key))
    if key_usage_extension is not None:
        builder = builder.add_extension(key_usage_extension, critical=True)
    if config.usages:
        builder = builder.add_extension(x509.ExtendedKeyUsage(config.usages), critical=False)
    alt_names = _alt_names(config)
    if alt_names is not None:
        builder = builder.add_extension(alt_names, critical=False)
    builder = builder.add_extension(_authority_key_identifier(ca_certificate, ca_key), critical=False)

    try:
        return builder.sign(private_key=ca_key, algorithm=hashes.SHA256())
    except Exception as exc:  # noqa: BLE001 - cryptography例外のラップ
        raise CertificateSigningError(str(exc), operation="sign certificate") from exc


__all__ = [
    "CERTIFICATE_EXTENSION",
    "CSR_EXTENSION",
    "PRIVATE_KEY_EXTENSION",
    "PrivateKey",
    "SubjectBuilder",
    "build_csr",
    "build_key_usage_extension",
    "generate_private_key",
    "load_certificate",
    "load_private_key",
    "path_for_csr",
    "paths_for_cert_and_key",
    "serialize_certificate",
    "serialize_csr",
    "serialize_private_key",
    "sign_certificate",
]
