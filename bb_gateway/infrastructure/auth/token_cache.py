"""Access token cache with proactive renewal"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from bb_gateway.config import settings
from bb_gateway.domain.exceptions import BankAPIError
from bb_gateway.domain.models import AccessToken, TokenInfo
from bb_gateway.utils.date_utils import utcnow
from bb_gateway.infrastructure.observability.metrics import token_cache_hit_counter, token_renewal_counter

logger = logging.getLogger(__name__)


class TokenIssuer(Protocol):
    async def request_token(self) -> AccessToken:
        ...


class TokenCacheState:
    """
    Single slot holding at most one AccessToken.

    Owned by the application lifecycle and injected into TokenCache. The slot is
    swapped with one reference assignment, so readers see either the old token
    or the new one, never a mix.
    """

    def __init__(self) -> None:
        self._token: Optional[AccessToken] = None

    @property
    def token(self) -> Optional[AccessToken]:
        return self._token

    def replace(self, token: AccessToken) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class TokenCache:
    """
    Serves bearer tokens, renewing them through the issuer when close to expiry.

    A token is usable while expires_at - now > renewal_buffer. Renewal failures
    propagate to the caller and leave the cache untouched; nothing is retried.

    Concurrent callers that all see a stale token each renew independently.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        state: Optional[TokenCacheState] = None,
        renewal_buffer: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.issuer = issuer
        self.state = state if state is not None else TokenCacheState()
        self.renewal_buffer = (
            renewal_buffer
            if renewal_buffer is not None
            else timedelta(seconds=settings.token_renew_before_expiry_seconds)
        )
        self.clock = clock

    def _is_usable(self, token: Optional[AccessToken]) -> bool:
        if token is None:
            return False
        return token.expires_at - self.clock() > self.renewal_buffer

    async def get_token(self) -> str:
        token = self.state.token
        if self._is_usable(token):
            token_cache_hit_counter.inc()
            logger.debug("Using cached token", extra={"expires_at": token.expires_at.isoformat()})
            return token.value
        return await self.force_refresh()

    async def force_refresh(self) -> str:
        """Request a new token unconditionally and replace the cached one"""
        try:
            token = await self.issuer.request_token()
        except BankAPIError as e:
            token_renewal_counter.labels(outcome="failure").inc()
            logger.error(
                "Token renewal failed",
                extra={
                    "step": "token_renewal",
                    "failure_kind": e.kind,
                    "status_code": getattr(e, "status_code", None),
                    "error": str(e),
                },
            )
            raise

        self.state.replace(token)
        token_renewal_counter.labels(outcome="success").inc()
        logger.info(
            "Token renewed",
            extra={
                "step": "token_renewal",
                "expires_in": token.lifetime_seconds,
                "expires_at": token.expires_at.isoformat(),
                "token_preview": token.preview,
            },
        )
        return token.value

    def invalidate(self) -> None:
        self.state.clear()
        logger.info("Token cache cleared", extra={"step": "token_invalidate"})

    def inspect(self) -> TokenInfo:
        """Report cache state without touching the network"""
        token = self.state.token
        if token is None:
            return TokenInfo(cached=False, expires_at=None, expires_in=0)
        return TokenInfo(
            cached=self._is_usable(token),
            expires_at=token.expires_at,
            expires_in=int((token.expires_at - self.clock()).total_seconds()),
        )
