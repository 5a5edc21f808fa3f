"""Unit tests for the PKCS#12 certificate bootstrap"""

import ssl
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from bb_gateway.domain.exceptions import (
    CertificateNotFoundError,
    CertificateParseError,
    MissingCertificateError,
    MissingPrivateKeyError,
)
from bb_gateway.infrastructure.security.certificates import CertificateIdentity, decode_pkcs12
from conftest import P12_PASSWORD


def test_load_modern_bundle(p12_bytes, client_cert):
    certificates = CertificateIdentity()

    identity = certificates.load(p12_bytes, P12_PASSWORD)

    assert identity is not None
    assert certificates.get_identity() is identity
    assert certificates.last_error is None
    assert identity.certificate_pem.startswith(b"-----BEGIN CERTIFICATE-----")
    assert b"PRIVATE KEY-----" in identity.private_key_pem
    assert x509.load_pem_x509_certificate(identity.certificate_pem) == client_cert
    assert "CN=bb-gateway-test" in identity.subject
    assert isinstance(certificates.ssl_context(), ssl.SSLContext)


def test_load_legacy_3des_bundle(legacy_p12_bytes, client_key):
    identity = CertificateIdentity().load(legacy_p12_bytes, P12_PASSWORD)

    assert identity is not None
    key = serialization.load_pem_private_key(identity.private_key_pem, password=None)
    assert key.private_numbers() == client_key.private_numbers()


def test_load_from_path(tmp_path, p12_bytes):
    path = tmp_path / "client.p12"
    path.write_bytes(p12_bytes)

    identity = CertificateIdentity().load(str(path), P12_PASSWORD)

    assert identity is not None


def test_wrong_passphrase_fails_open(p12_bytes):
    certificates = CertificateIdentity()

    identity = certificates.load(p12_bytes, "not-the-password")

    assert identity is None
    assert certificates.get_identity() is None
    assert certificates.ssl_context() is None
    assert isinstance(certificates.last_error, CertificateParseError)
    assert certificates.last_error.kind == "parse"


def test_missing_file_fails_open(tmp_path):
    certificates = CertificateIdentity()

    assert certificates.load(tmp_path / "missing.p12", P12_PASSWORD) is None
    assert isinstance(certificates.last_error, CertificateNotFoundError)
    assert certificates.last_error.kind == "not_found"


def test_corrupt_container_fails_open():
    certificates = CertificateIdentity()

    assert certificates.load(b"definitely not pkcs12", "") is None
    assert isinstance(certificates.last_error, CertificateParseError)


def test_bundle_without_certificate(key_only_p12_bytes):
    with pytest.raises(MissingCertificateError):
        decode_pkcs12(key_only_p12_bytes, P12_PASSWORD)

    certificates = CertificateIdentity()
    assert certificates.load(key_only_p12_bytes, P12_PASSWORD) is None
    assert certificates.last_error.kind == "missing_certificate"


def test_bundle_without_private_key(cert_only_p12_bytes):
    with pytest.raises(MissingPrivateKeyError):
        decode_pkcs12(cert_only_p12_bytes, P12_PASSWORD)

    certificates = CertificateIdentity()
    assert certificates.load(cert_only_p12_bytes, P12_PASSWORD) is None
    assert certificates.last_error.kind == "missing_private_key"


def test_verify_peer_flag_carried_into_context(p12_bytes):
    certificates = CertificateIdentity(verify_peer=False)

    identity = certificates.load(p12_bytes, P12_PASSWORD)

    assert identity.verify_peer is False
    assert certificates.ssl_context().verify_mode == ssl.CERT_NONE
    assert certificates.ssl_context().check_hostname is False


def test_key_with_certificate_in_additional_certs(client_key, client_cert):
    """A certificate bag without a matching local key id is still the client certificate"""
    data = pkcs12.serialize_key_and_certificates(
        b"client", client_key, None, [client_cert], serialization.BestAvailableEncryption(P12_PASSWORD.encode())
    )

    identity = decode_pkcs12(data, P12_PASSWORD)

    assert x509.load_pem_x509_certificate(identity.certificate_pem) == client_cert


def test_failed_reload_drops_previous_identity(p12_bytes):
    certificates = CertificateIdentity()
    assert certificates.load(p12_bytes, P12_PASSWORD) is not None

    assert certificates.load(p12_bytes, "not-the-password") is None

    assert certificates.get_identity() is None
    assert certificates.ssl_context() is None
    assert certificates.last_error.kind == "parse"
