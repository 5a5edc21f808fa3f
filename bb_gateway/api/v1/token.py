"""/v1/token - inspect, renew and clear the cached OAuth token"""

import logging
from fastapi import APIRouter, Depends

from bb_gateway.api.v1.schemas import MessageResponse, TokenResponse
from bb_gateway.api.dependencies import get_token_cache
from bb_gateway.infrastructure.auth.token_cache import TokenCache

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/token", response_model=TokenResponse)
async def get_token(token_cache: TokenCache = Depends(get_token_cache)):
    """Return the current token (renewing it if needed) and its expiry"""
    token = await token_cache.get_token()
    return TokenResponse.build(token, token_cache.inspect())


@router.post("/token/refresh", response_model=TokenResponse)
async def refresh_token(token_cache: TokenCache = Depends(get_token_cache)):
    """Force a renewal against the issuer"""
    logger.info("Forced token refresh requested")
    token = await token_cache.force_refresh()
    return TokenResponse.build(token, token_cache.inspect())


@router.delete("/token", response_model=MessageResponse)
def clear_token(token_cache: TokenCache = Depends(get_token_cache)):
    """Drop the cached token; the next call renews"""
    token_cache.invalidate()
    return MessageResponse(message="Token cache cleared")
