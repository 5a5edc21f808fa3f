"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from bb_gateway.domain.models import CalculatedBalance, DerivedBalance, TokenInfo, TransactionEntry


class TokenResponse(BaseModel):
    """Response for GET /v1/token and POST /v1/token/refresh"""

    token_preview: str
    cached: bool
    expires_at: Optional[datetime] = None
    expires_in: int

    @classmethod
    def build(cls, token: str, info: TokenInfo) -> "TokenResponse":
        preview = token[:100] + "..." if len(token) > 100 else token
        return cls(token_preview=preview, cached=info.cached, expires_at=info.expires_at, expires_in=info.expires_in)


class MessageResponse(BaseModel):
    message: str


class TransactionEntrySchema(BaseModel):
    """Single statement line"""

    amount: Decimal
    sign: str
    date: str
    description: str

    @classmethod
    def from_entry(cls, entry: TransactionEntry) -> "TransactionEntrySchema":
        return cls(amount=entry.amount, sign=entry.sign, date=entry.date, description=entry.description)


class StatementResponse(BaseModel):
    """Response for GET /v1/statement/{branch}/{account}"""

    branch: str
    account: str
    entries: List[TransactionEntrySchema]


class CalculatedBalanceSchema(BaseModel):
    opening: Decimal
    total_credits: Decimal
    total_debits: Decimal
    balance: Decimal

    @classmethod
    def from_calculated(cls, calculated: CalculatedBalance) -> "CalculatedBalanceSchema":
        return cls(
            opening=calculated.opening,
            total_credits=calculated.total_credits,
            total_debits=calculated.total_debits,
            balance=calculated.balance,
        )


class BalanceResponse(BaseModel):
    """Response for GET /v1/balance/{branch}/{account}"""

    branch: str
    account: str
    previous_balance: Optional[Decimal] = None
    day_balance: Optional[Decimal] = None
    current_balance: Optional[Decimal] = None
    calculated: Optional[CalculatedBalanceSchema] = None
    last_entry: Optional[TransactionEntrySchema] = None

    @classmethod
    def from_derived(cls, branch: str, account: str, derived: DerivedBalance) -> "BalanceResponse":
        return cls(
            branch=branch,
            account=account,
            previous_balance=derived.previous_balance,
            day_balance=derived.day_balance,
            current_balance=derived.current_balance,
            calculated=CalculatedBalanceSchema.from_calculated(derived.calculated) if derived.calculated else None,
            last_entry=TransactionEntrySchema.from_entry(derived.last_entry) if derived.last_entry else None,
        )
