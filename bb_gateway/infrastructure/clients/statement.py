"""Bank statement API client: transaction feed and derived balance"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from bb_gateway.config import settings
from bb_gateway.domain.balance import DEFAULT_MATCHERS, DEFAULT_OPENING_KEYWORDS, BalanceMatcher, derive_balance
from bb_gateway.domain.exceptions import MalformedResponseError
from bb_gateway.domain.models import DerivedBalance, TransactionEntry
from bb_gateway.infrastructure.auth.token_cache import TokenCache
from bb_gateway.infrastructure.clients.http import (
    RequestHooks,
    build_client,
    merge_hooks,
    raise_for_upstream,
    timing_hooks,
    translate_errors,
)
from bb_gateway.infrastructure.security.certificates import CertificateIdentity
from bb_gateway.utils.date_utils import normalize_date

logger = logging.getLogger(__name__)

STATEMENT_PATH = "/extratos/v1/conta-corrente/agencia/{branch}/conta/{account}"

DateInput = Union[str, date, None]


def parse_entry(item: Dict[str, Any]) -> TransactionEntry:
    """Map one listaLancamento item onto a TransactionEntry"""
    try:
        value = item.get("valorLancamento")
        amount = Decimal("0") if value is None else Decimal(str(value))
    except InvalidOperation as e:
        raise MalformedResponseError(f"Invalid transaction amount: {item.get('valorLancamento')!r}") from e

    return TransactionEntry(
        amount=amount,
        sign=str(item.get("indicadorSinalLancamento") or "").strip().upper(),
        date=str(item.get("dataLancamento") or ""),
        description=str(item.get("textoDescricaoHistorico") or ""),
        raw=item,
    )


def parse_statement(payload: Any) -> List[TransactionEntry]:
    """Entries in feed order; a missing listaLancamento means an empty statement"""
    if not isinstance(payload, dict):
        raise MalformedResponseError("Statement response is not a JSON object")
    items = payload.get("listaLancamento") or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise MalformedResponseError("Statement listaLancamento is not a list of objects")
    return [parse_entry(item) for item in items]


class StatementClient:
    """Client for the statement (extratos) API"""

    target = "statement"

    def __init__(
        self,
        token_cache: TokenCache,
        certificates: Optional[CertificateIdentity] = None,
        api_url: str | None = None,
        dev_app_key: str | None = None,
        timeout: float | None = None,
        matchers: Sequence[BalanceMatcher] = DEFAULT_MATCHERS,
        opening_keywords: Sequence[str] = DEFAULT_OPENING_KEYWORDS,
        hooks: Optional[RequestHooks] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_cache = token_cache
        self.certificates = certificates
        self.api_url = api_url or settings.api_url
        self.dev_app_key = dev_app_key if dev_app_key is not None else settings.dev_app_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.matchers = tuple(matchers)
        self.opening_keywords = tuple(opening_keywords)
        self.hooks = merge_hooks(timing_hooks(self.target), hooks)
        self.transport = transport

    def build_params(self, start_date: DateInput = None, end_date: DateInput = None) -> Dict[str, str]:
        """Query parameters; dates that are not supplied are left out entirely"""
        params = {"gw-dev-app-key": self.dev_app_key}
        start = normalize_date(start_date)
        end = normalize_date(end_date)
        if start:
            params["dataInicioSolicitacao"] = start
        if end:
            params["dataFimSolicitacao"] = end
        return params

    async def get_statement(
        self,
        branch: str,
        account: str,
        start_date: DateInput = None,
        end_date: DateInput = None,
    ) -> List[TransactionEntry]:
        """
        Fetch the transaction feed for a branch/account.

        Entries are returned in upstream order.

        Raises:
            ServiceUnavailableError: API unreachable or timed out
            UpstreamRejectedError: API answered non-2xx
            MalformedResponseError: body is not a statement payload
        """
        params = self.build_params(start_date, end_date)
        path = STATEMENT_PATH.format(branch=branch, account=account)
        logger.info(
            "Fetching statement",
            extra={
                "step": "statement_fetch",
                "branch": branch,
                "account": account,
                "start_date": params.get("dataInicioSolicitacao"),
                "end_date": params.get("dataFimSolicitacao"),
            },
        )

        token = await self.token_cache.get_token()
        ssl_context = self.certificates.ssl_context() if self.certificates else None

        async with translate_errors(self.target, self.timeout):
            async with build_client(self.api_url, self.timeout, ssl_context, self.hooks, self.transport) as client:
                response = await client.get(
                    path,
                    params=params,
                    headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                )
            raise_for_upstream(response)
            try:
                payload = response.json()
            except ValueError as e:
                raise MalformedResponseError("Statement response is not valid JSON") from e
            entries = parse_statement(payload)

        logger.info(
            "Statement fetched",
            extra={"step": "statement_fetch", "branch": branch, "account": account, "entry_count": len(entries)},
        )
        return entries

    async def get_balance(self, branch: str, account: str) -> DerivedBalance:
        """Derive balances from the unfiltered statement feed"""
        entries = await self.get_statement(branch, account)
        balance = derive_balance(entries, self.matchers, self.opening_keywords)
        logger.info(
            "Balance derived",
            extra={
                "step": "balance_derivation",
                "branch": branch,
                "account": account,
                "current_balance": str(balance.current_balance) if balance.current_balance is not None else None,
                "calculated": balance.calculated is not None,
            },
        )
        return balance
