"""テスト用のCA・証明書・kubeconfigを生成するヘルパー"""
from __future__ import annotations

import base64
import ipaddress
import os
from datetime import datetime, timedelta, timezone

import yaml
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from features.certs.domain.models import CAKeyMaterial

TEST_COMMON_NAME = "test-common-name"
TEST_ORGANIZATION = ["sig-cluster-lifecycle"]
TEST_IP = ipaddress.ip_address("10.100.0.1")
TEST_DNS_NAME = "test-domain.space"


def new_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_ca(common_name: str = "kubernetes", *, days: int = 3650) -> CAKeyMaterial:
    key = new_key()
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .sign(key, hashes.SHA256())
    )
    return CAKeyMaterial(private_key=key, certificate=certificate)


def make_certificate(
    ca: CAKeyMaterial,
    organizations: list[str],
    *,
    common_name: str = TEST_COMMON_NAME,
    days: int = 30,
) -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    key = new_key()
    attributes = [x509.NameAttribute(NameOID.ORGANIZATION_NAME, org) for org in organizations]
    attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(attributes))
        .issuer_name(ca.certificate.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=days))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(TEST_DNS_NAME), x509.IPAddress(TEST_IP)]),
            critical=False,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False)
        .sign(ca.private_key, hashes.SHA256())
    )
    return certificate, key


def _cert_pem(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


def _key_pem(key) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def write_cert_and_key(directory, base_name: str, certificate: x509.Certificate, key) -> None:
    cert_path = os.path.join(str(directory), base_name + ".crt")
    key_path = os.path.join(str(directory), base_name + ".key")
    os.makedirs(os.path.dirname(cert_path), exist_ok=True)
    with open(cert_path, "wb") as handle:
        handle.write(_cert_pem(certificate))
    with open(key_path, "wb") as handle:
        handle.write(_key_pem(key))


def write_ca(directory, base_name: str, ca: CAKeyMaterial) -> None:
    write_cert_and_key(directory, base_name, ca.certificate, ca.private_key)


def write_test_certificate(
    directory, base_name: str, ca: CAKeyMaterial, organizations: list[str]
) -> x509.Certificate:
    certificate, key = make_certificate(ca, organizations)
    write_cert_and_key(directory, base_name, certificate, key)
    return certificate


def kubeconfig_document(
    ca: CAKeyMaterial,
    certificate: x509.Certificate,
    key,
    *,
    cluster: str = "kubernetes",
    user: str = "kubernetes-admin",
) -> dict:
    context = f"{user}@{cluster}"
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": cluster,
                "cluster": {
                    "certificate-authority-data": base64.b64encode(_cert_pem(ca.certificate)).decode(),
                    "server": "https://10.100.0.1:6443",
                },
            }
        ],
        "contexts": [{"name": context, "context": {"cluster": cluster, "user": user}}],
        "current-context": context,
        "preferences": {},
        "users": [
            {
                "name": user,
                "user": {
                    "client-certificate-data": base64.b64encode(_cert_pem(certificate)).decode(),
                    "client-key-data": base64.b64encode(_key_pem(key)).decode(),
                },
            }
        ],
    }


def write_kubeconfig(directory, file_name: str, document: dict) -> str:
    path = os.path.join(str(directory), file_name)
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(document, handle, default_flow_style=False, sort_keys=False)
    return path


def write_test_kubeconfig(
    directory, file_name: str, ca: CAKeyMaterial, organizations: list[str] | None = None
) -> x509.Certificate:
    certificate, key = make_certificate(ca, organizations or TEST_ORGANIZATION)
    write_kubeconfig(directory, file_name, kubeconfig_document(ca, certificate, key))
    return certificate
