"""Domain-specific exceptions"""

from typing import Any, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class BankAPIError(DomainException):
    """Outbound call to the bank (issuer or statement API) failed"""

    kind = "bank"


class ServiceUnavailableError(BankAPIError):
    """Issuer or API unreachable, TLS handshake failed, or the call timed out"""

    kind = "transport"


class MalformedResponseError(ServiceUnavailableError):
    """Upstream answered 2xx but the payload is unusable"""

    kind = "malformed"


class UpstreamRejectedError(BankAPIError):
    """Upstream answered with a non-2xx status"""

    kind = "upstream"

    def __init__(self, status_code: int, body: Any = None, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Bank API error: {status_code}")


class CertificateError(DomainException):
    """PKCS#12 bootstrap failed; the service keeps running without mTLS"""

    kind = "certificate"


class CertificateNotFoundError(CertificateError):
    kind = "not_found"


class CertificateUnreadableError(CertificateError):
    kind = "unreadable"


class CertificateParseError(CertificateError):
    """Wrong passphrase or corrupt container"""

    kind = "parse"


class MissingCertificateError(CertificateError):
    kind = "missing_certificate"


class MissingPrivateKeyError(CertificateError):
    kind = "missing_private_key"
