"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

CREDIT = "C"
DEBIT = "D"


@dataclass(frozen=True)
class AccessToken:
    """Bearer token issued by the OAuth endpoint. Replaced wholesale, never mutated."""

    value: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def issue(cls, value: str, issued_at: datetime, expires_in: int) -> "AccessToken":
        return cls(value=value, issued_at=issued_at, expires_at=issued_at + timedelta(seconds=expires_in))

    @property
    def lifetime_seconds(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())

    @property
    def preview(self) -> str:
        return self.value[:12] + "..." if len(self.value) > 12 else self.value


@dataclass(frozen=True)
class TokenInfo:
    """Snapshot of the token cache, as reported by TokenCache.inspect()"""

    cached: bool
    expires_at: Optional[datetime]
    expires_in: int


@dataclass(frozen=True)
class TlsIdentity:
    """Client certificate and key extracted from a PKCS#12 bundle, PEM encoded"""

    certificate_pem: bytes
    private_key_pem: bytes
    verify_peer: bool = True
    subject: str = ""


@dataclass(frozen=True)
class TransactionEntry:
    """One line of the upstream statement feed (listaLancamento)"""

    amount: Decimal
    sign: str  # "C" (credit) or "D" (debit)
    date: str
    description: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_credit(self) -> bool:
        return self.sign == CREDIT

    @property
    def is_debit(self) -> bool:
        return self.sign == DEBIT

    @property
    def signed_amount(self) -> Decimal:
        """Amount as a balance figure: debit-marked values are negative"""
        return -abs(self.amount) if self.is_debit else self.amount


@dataclass(frozen=True)
class CalculatedBalance:
    """Best-effort reconstruction: opening + credits - debits. Not authoritative."""

    opening: Decimal
    total_credits: Decimal
    total_debits: Decimal
    balance: Decimal


@dataclass
class DerivedBalance:
    """Balance figures inferred from a statement feed"""

    previous_balance: Optional[Decimal] = None
    day_balance: Optional[Decimal] = None
    current_balance: Optional[Decimal] = None
    calculated: Optional[CalculatedBalance] = None
    last_entry: Optional[TransactionEntry] = None
