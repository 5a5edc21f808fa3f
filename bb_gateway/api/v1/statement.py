"""GET /v1/statement and /v1/balance - statement feed and derived balance"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from bb_gateway.api.v1.schemas import BalanceResponse, StatementResponse, TransactionEntrySchema
from bb_gateway.api.dependencies import get_statement_client
from bb_gateway.infrastructure.clients.statement import StatementClient

router = APIRouter()


@router.get("/statement/{branch}/{account}", response_model=StatementResponse)
async def get_statement(
    branch: str,
    account: str,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, DD.MM.YYYY or DDMMYYYY"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, DD.MM.YYYY or DDMMYYYY"),
    statement_client: StatementClient = Depends(get_statement_client),
):
    """
    Fetch the account statement.

    Entries are relayed in the order the bank returned them.
    """
    entries = await statement_client.get_statement(branch, account, start_date, end_date)
    return StatementResponse(
        branch=branch,
        account=account,
        entries=[TransactionEntrySchema.from_entry(e) for e in entries],
    )


@router.get("/balance/{branch}/{account}", response_model=BalanceResponse)
async def get_balance(
    branch: str,
    account: str,
    statement_client: StatementClient = Depends(get_statement_client),
):
    """Balance figures derived from the unfiltered statement"""
    derived = await statement_client.get_balance(branch, account)
    return BalanceResponse.from_derived(branch, account, derived)
