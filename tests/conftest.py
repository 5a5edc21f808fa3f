"""Pytest fixtures for testing"""

import json
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from bb_gateway.domain.models import AccessToken, TransactionEntry
from bb_gateway.infrastructure.auth.token_cache import TokenCache, TokenCacheState

P12_PASSWORD = "s3cret"


class FakeClock:
    """Controllable UTC clock"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 5, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeIssuer:
    """TokenIssuer double counting how many renewals hit the network"""

    def __init__(self, clock: FakeClock, expires_in: int = 3600):
        self.clock = clock
        self.expires_in = expires_in
        self.calls = 0
        self.error: Optional[Exception] = None

    async def request_token(self) -> AccessToken:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return AccessToken.issue(f"token-{self.calls}", self.clock(), self.expires_in)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def issuer(clock: FakeClock) -> FakeIssuer:
    return FakeIssuer(clock)


@pytest.fixture
def token_cache(issuer: FakeIssuer, clock: FakeClock) -> TokenCache:
    return TokenCache(issuer, state=TokenCacheState(), renewal_buffer=timedelta(minutes=5), clock=clock)


# PKCS#12 material


@pytest.fixture(scope="session")
def client_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def client_cert(client_key: rsa.RSAPrivateKey) -> x509.Certificate:
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "BR"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Empresa Teste"),
            x509.NameAttribute(NameOID.COMMON_NAME, "bb-gateway-test"),
        ]
    )
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(client_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(client_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def p12_bytes(client_key, client_cert) -> bytes:
    """Modern (AES) protected bundle"""
    return pkcs12.serialize_key_and_certificates(
        b"client",
        client_key,
        client_cert,
        None,
        serialization.BestAvailableEncryption(P12_PASSWORD.encode()),
    )


@pytest.fixture(scope="session")
def legacy_p12_bytes(client_key, client_cert) -> bytes:
    """3DES/SHA1 protected bundle, as issued by older banking tooling"""
    encryption = (
        serialization.PrivateFormat.PKCS12.encryption_builder()
        .kdf_rounds(2048)
        .key_cert_algorithm(pkcs12.PBES.PBESv1SHA1And3KeyTripleDESCBC)
        .hmac_hash(hashes.SHA1())
        .build(P12_PASSWORD.encode())
    )
    return pkcs12.serialize_key_and_certificates(b"client", client_key, client_cert, None, encryption)


@pytest.fixture(scope="session")
def cert_only_p12_bytes(client_cert) -> bytes:
    return pkcs12.serialize_key_and_certificates(
        b"client", None, client_cert, None, serialization.BestAvailableEncryption(P12_PASSWORD.encode())
    )


@pytest.fixture(scope="session")
def key_only_p12_bytes(client_key) -> bytes:
    return pkcs12.serialize_key_and_certificates(
        b"client", client_key, None, None, serialization.BestAvailableEncryption(P12_PASSWORD.encode())
    )


# Statement feeds


def lancamento(amount: Any, sign: str, description: str, day: str = "5012025") -> Dict[str, Any]:
    return {
        "indicadorTipoLancamento": "1",
        "dataLancamento": day,
        "dataMovimento": 0,
        "codigoAgenciaOrigem": 0,
        "numeroLote": 0,
        "numeroDocumento": "0",
        "codigoHistorico": 0,
        "textoDescricaoHistorico": description,
        "valorLancamento": amount,
        "indicadorSinalLancamento": sign,
        "textoInformacaoComplementar": "",
    }


def entry(amount: str, sign: str, description: str) -> TransactionEntry:
    return TransactionEntry(amount=Decimal(amount), sign=sign, date="05012025", description=description)


@pytest.fixture
def statement_payload() -> Dict[str, Any]:
    """Typical statement: opening line, movements, day balance line"""
    return {
        "numeroPaginaAtual": 1,
        "quantidadeRegistroPaginaAtual": 5,
        "numeroPaginaProximo": 0,
        "listaLancamento": [
            lancamento(1000.00, "C", "Saldo Anterior", "1012025"),
            lancamento(250.50, "C", "Pix - Recebido"),
            lancamento(120.00, "D", "Pagamento de Boleto"),
            lancamento(80.25, "D", "Tarifa Pacote de Servicos"),
            lancamento(1050.25, "C", "S A L D O do dia - Saldo do Dia"),
        ],
    }


def mock_transport(handler: Callable[[httpx.Request], httpx.Response], seen: Optional[List[httpx.Request]] = None):
    """MockTransport that records every request it serves"""

    def record(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    return httpx.MockTransport(record)


def json_response(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload), headers={"Content-Type": "application/json"})
