"""Dependency injection for FastAPI endpoints"""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request

from bb_gateway.config import Settings
from bb_gateway.infrastructure.auth.token_cache import TokenCache, TokenCacheState
from bb_gateway.infrastructure.clients.oauth import OAuthTokenIssuer
from bb_gateway.infrastructure.clients.statement import StatementClient
from bb_gateway.infrastructure.security.certificates import CertificateIdentity


@dataclass
class GatewayServices:
    """Lifecycle-scoped components shared by every request"""

    certificates: CertificateIdentity
    token_cache: TokenCache
    statement_client: StatementClient


def build_services(config: Settings) -> GatewayServices:
    """Wire the core from settings; the certificate is loaded here, once"""
    certificates = CertificateIdentity(verify_peer=config.verify_ssl)
    if config.use_mtls:
        certificates.load(config.cert_path, config.cert_password)

    issuer = OAuthTokenIssuer(
        certificates=certificates,
        oauth_url=config.oauth_url,
        client_id=config.client_id,
        client_secret=config.client_secret,
        scope=config.oauth_scope,
        timeout=config.http_timeout_seconds,
    )
    token_cache = TokenCache(
        issuer,
        state=TokenCacheState(),
        renewal_buffer=timedelta(seconds=config.token_renew_before_expiry_seconds),
    )
    statement_client = StatementClient(
        token_cache,
        certificates=certificates,
        api_url=config.api_url,
        dev_app_key=config.dev_app_key,
        timeout=config.http_timeout_seconds,
    )
    return GatewayServices(certificates=certificates, token_cache=token_cache, statement_client=statement_client)


def get_services(request: Request) -> GatewayServices:
    return request.app.state.services


def get_token_cache(request: Request) -> TokenCache:
    """Provide the application's token cache"""
    return get_services(request).token_cache


def get_statement_client(request: Request) -> StatementClient:
    """Provide the statement API client"""
    return get_services(request).statement_client
