from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from features.certs.application.subject import cert_to_config
from tests.helpers.pki import (
    TEST_COMMON_NAME,
    TEST_DNS_NAME,
    TEST_IP,
    TEST_ORGANIZATION,
    make_certificate,
    new_key,
)


def test_cert_to_config_copies_identity(test_ca):
    certificate, _ = make_certificate(test_ca, TEST_ORGANIZATION)

    config = cert_to_config(certificate)

    assert config.common_name == TEST_COMMON_NAME
    assert config.organization == TEST_ORGANIZATION
    assert config.dns_names == [TEST_DNS_NAME]
    assert config.ip_addresses == [TEST_IP]
    assert config.usages == [ExtendedKeyUsageOID.CLIENT_AUTH]
    assert config.has_alt_names is True


def test_cert_to_config_keeps_organization_order(test_ca):
    certificate, _ = make_certificate(test_ca, ["b-group", "a-group", "system:masters"])

    config = cert_to_config(certificate)

    assert config.organization == ["b-group", "a-group", "system:masters"]


def test_cert_to_config_without_extensions(test_ca):
    key = new_key()
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "bare")]))
        .issuer_name(test_ca.certificate.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .sign(test_ca.private_key, hashes.SHA256())
    )

    config = cert_to_config(certificate)

    assert config.common_name == "bare"
    assert config.organization == []
    assert config.dns_names == []
    assert config.ip_addresses == []
    assert config.usages == []
    assert config.has_alt_names is False
