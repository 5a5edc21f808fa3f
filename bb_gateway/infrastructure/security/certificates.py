"""PKCS#12 client certificate bootstrap for mutual TLS"""

import logging
import os
import ssl
import tempfile
from pathlib import Path
from typing import Optional, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from bb_gateway.domain.exceptions import (
    CertificateError,
    CertificateNotFoundError,
    CertificateParseError,
    CertificateUnreadableError,
    MissingCertificateError,
    MissingPrivateKeyError,
)
from bb_gateway.domain.models import TlsIdentity
from bb_gateway.infrastructure.observability.logging import mask_secret
from bb_gateway.infrastructure.observability.metrics import mtls_identity_gauge

logger = logging.getLogger(__name__)

Source = Union[bytes, str, Path]


def decode_pkcs12(data: bytes, passphrase: str = "", verify_peer: bool = True) -> TlsIdentity:
    """
    Extract one certificate and one private key from a PKCS#12 container.

    cryptography's loader handles legacy RC2/3DES protected bags as well as
    AES ones.

    Raises:
        CertificateParseError: wrong passphrase or corrupt structure
        MissingCertificateError: no certificate bag
        MissingPrivateKeyError: no private key bag
    """
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        bundle = pkcs12.load_pkcs12(data, password)
    except (ValueError, TypeError) as e:
        raise CertificateParseError(f"Could not decode PKCS#12 container: {e}") from e

    # Without a key, the certificate bag lands in additional_certs
    bag = bundle.cert or (bundle.additional_certs[0] if bundle.additional_certs else None)
    if bag is None:
        raise MissingCertificateError("No certificate found in PKCS#12 container")
    if bundle.key is None:
        raise MissingPrivateKeyError("No private key found in PKCS#12 container")

    certificate = bag.certificate
    return TlsIdentity(
        certificate_pem=certificate.public_bytes(serialization.Encoding.PEM),
        private_key_pem=bundle.key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
        verify_peer=verify_peer,
        subject=certificate.subject.rfc4514_string(),
    )


def build_ssl_context(identity: TlsIdentity) -> ssl.SSLContext:
    """
    Client SSL context presenting the identity's certificate.

    Raises:
        CertificateParseError: the TLS layer refuses the certificate/key pair
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    if not identity.verify_peer:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    # load_cert_chain only reads from files
    with tempfile.TemporaryDirectory(prefix="bb-mtls-") as workdir:
        cert_file = os.path.join(workdir, "client.crt")
        key_file = os.path.join(workdir, "client.key")
        with open(cert_file, "wb") as fh:
            fh.write(identity.certificate_pem)
        with open(os.open(key_file, os.O_WRONLY | os.O_CREAT, 0o600), "wb") as fh:
            fh.write(identity.private_key_pem)
        try:
            context.load_cert_chain(certfile=cert_file, keyfile=key_file)
        except ssl.SSLError as e:
            raise CertificateParseError(f"Certificate rejected by TLS layer: {e}") from e

    return context


class CertificateIdentity:
    """
    Holds the TLS client identity loaded once at startup.

    Loading fails open: any CertificateError is logged, kept in last_error,
    and the service proceeds without mutual authentication.
    """

    def __init__(self, verify_peer: bool = True):
        self.verify_peer = verify_peer
        self.last_error: Optional[CertificateError] = None
        self._identity: Optional[TlsIdentity] = None
        self._ssl_context: Optional[ssl.SSLContext] = None

    def load(self, source: Source, passphrase: str = "") -> Optional[TlsIdentity]:
        """
        Load the identity from raw PKCS#12 bytes or a path to a .p12/.pfx file.

        Returns None (no identity) on failure instead of raising.
        """
        try:
            data = self._read(source)
            identity = decode_pkcs12(data, passphrase, verify_peer=self.verify_peer)
            ssl_context = build_ssl_context(identity)
        except CertificateError as e:
            self.last_error = e
            self._identity = None
            self._ssl_context = None
            mtls_identity_gauge.set(0)
            logger.warning(
                "Certificate load failed, continuing without mTLS",
                extra={"step": "certificate_load", "failure_kind": e.kind, "error": str(e)},
            )
            return None

        self._identity = identity
        self._ssl_context = ssl_context
        self.last_error = None
        mtls_identity_gauge.set(1)
        logger.info(
            "Certificate loaded",
            extra={
                "step": "certificate_load",
                "subject": identity.subject,
                "passphrase": mask_secret(passphrase),
                "certificate_bytes": len(identity.certificate_pem),
                "key_bytes": len(identity.private_key_pem),
                "verify_peer": identity.verify_peer,
            },
        )
        return identity

    def get_identity(self) -> Optional[TlsIdentity]:
        return self._identity

    def ssl_context(self) -> Optional[ssl.SSLContext]:
        """SSL context built from the loaded identity, None when running without mTLS"""
        return self._ssl_context

    @staticmethod
    def _read(source: Source) -> bytes:
        if isinstance(source, bytes):
            return source

        path = Path(source)
        if not path.is_file():
            raise CertificateNotFoundError(f"Certificate file not found: {path}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise CertificateUnreadableError(f"Could not read certificate file {path}: {e}") from e
