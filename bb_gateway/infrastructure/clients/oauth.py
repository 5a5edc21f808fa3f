"""OAuth2 client-credentials token issuer"""

import base64
import logging
from datetime import datetime
from typing import Callable, Optional

import httpx

from bb_gateway.config import settings
from bb_gateway.domain.exceptions import MalformedResponseError
from bb_gateway.domain.models import AccessToken
from bb_gateway.infrastructure.clients.http import (
    RequestHooks,
    build_client,
    merge_hooks,
    raise_for_upstream,
    timing_hooks,
    translate_errors,
)
from bb_gateway.infrastructure.observability.logging import mask_secret
from bb_gateway.infrastructure.security.certificates import CertificateIdentity
from bb_gateway.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/token"


def basic_auth_header(client_id: str, client_secret: str) -> str:
    credentials = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"


def parse_token_response(payload: object, issued_at: datetime) -> AccessToken:
    """
    Build an AccessToken from the issuer's JSON body.

    Raises:
        MalformedResponseError: access_token or expires_in missing or invalid
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("Token response is not a JSON object")

    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise MalformedResponseError("Token response missing access_token")

    expires_in = payload.get("expires_in")
    if isinstance(expires_in, bool):
        raise MalformedResponseError("Token response has invalid expires_in")
    try:
        expires_in = int(expires_in)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError("Token response missing expires_in") from e

    return AccessToken.issue(access_token, issued_at, expires_in)


class OAuthTokenIssuer:
    """Requests tokens from {oauth_url}/oauth/token over the optional mTLS transport"""

    target = "oauth"

    def __init__(
        self,
        certificates: Optional[CertificateIdentity] = None,
        oauth_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        scope: str | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] = utcnow,
        hooks: Optional[RequestHooks] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.certificates = certificates
        self.oauth_url = oauth_url or settings.oauth_url
        self.client_id = client_id if client_id is not None else settings.client_id
        self.client_secret = client_secret if client_secret is not None else settings.client_secret
        self.scope = scope or settings.oauth_scope
        self.timeout = timeout or settings.http_timeout_seconds
        self.clock = clock
        self.hooks = merge_hooks(timing_hooks(self.target), hooks)
        self.transport = transport

    async def request_token(self) -> AccessToken:
        """
        Perform the client-credentials grant.

        Raises:
            ServiceUnavailableError: issuer unreachable or timed out
            UpstreamRejectedError: issuer answered non-2xx (e.g. bad credentials)
            MalformedResponseError: body lacks access_token/expires_in
        """
        ssl_context = self.certificates.ssl_context() if self.certificates else None
        logger.info(
            "Requesting new OAuth token",
            extra={
                "step": "token_request",
                "oauth_url": self.oauth_url,
                "client_id": self.client_id[:20],
                "client_secret": mask_secret(self.client_secret),
                "scope": self.scope,
                "mtls": ssl_context is not None,
            },
        )

        async with translate_errors(self.target, self.timeout):
            async with build_client(self.oauth_url, self.timeout, ssl_context, self.hooks, self.transport) as client:
                response = await client.post(
                    TOKEN_PATH,
                    headers={
                        "Authorization": basic_auth_header(self.client_id, self.client_secret),
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                    content=f"grant_type=client_credentials&scope={self.scope}",
                )
            raise_for_upstream(response)
            try:
                payload = response.json()
            except ValueError as e:
                raise MalformedResponseError("Token response is not valid JSON") from e
            return parse_token_response(payload, self.clock())
