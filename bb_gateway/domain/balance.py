"""Balance derivation - infer account balances from a raw statement feed"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from bb_gateway.domain.models import CalculatedBalance, DerivedBalance, TransactionEntry

PREVIOUS_BALANCE = "previous_balance"
DAY_BALANCE = "day_balance"
CURRENT_BALANCE = "current_balance"


@dataclass(frozen=True)
class BalanceMatcher:
    """Case-insensitive substring matcher assigning a description to a balance category"""

    category: str
    phrases: Tuple[str, ...]

    def matches(self, description: str) -> bool:
        text = description.lower()
        return any(phrase.lower() in text for phrase in self.phrases)


DEFAULT_MATCHERS: Tuple[BalanceMatcher, ...] = (
    BalanceMatcher(PREVIOUS_BALANCE, ("saldo anterior", "previous balance")),
    BalanceMatcher(DAY_BALANCE, ("saldo do dia", "day balance")),
    BalanceMatcher(CURRENT_BALANCE, ("saldo atual", "current balance")),
)

DEFAULT_OPENING_KEYWORDS: Tuple[str, ...] = ("saldo", "balance")


def find_balance_entries(
    entries: Sequence[TransactionEntry],
    matchers: Sequence[BalanceMatcher] = DEFAULT_MATCHERS,
) -> Dict[str, TransactionEntry]:
    """First entry per category wins; later matches are ignored"""
    found: Dict[str, TransactionEntry] = {}
    for entry in entries:
        for matcher in matchers:
            if matcher.category not in found and matcher.matches(entry.description):
                found[matcher.category] = entry
    return found


def calculate_balance(
    entries: Sequence[TransactionEntry],
    opening_keywords: Sequence[str] = DEFAULT_OPENING_KEYWORDS,
) -> Optional[CalculatedBalance]:
    """
    Reconstruct a balance arithmetically.

    The first entry counts as the opening balance only when its description
    mentions one of the opening keywords; otherwise the opening is zero and
    every entry contributes to the totals.
    """
    if not entries:
        return None

    first = entries[0]
    description = first.description.lower()
    if any(keyword.lower() in description for keyword in opening_keywords):
        opening = first.signed_amount
        movements: Sequence[TransactionEntry] = entries[1:]
    else:
        opening = Decimal("0")
        movements = entries

    total_credits = sum((abs(e.amount) for e in movements if e.is_credit), Decimal("0"))
    total_debits = sum((abs(e.amount) for e in movements if e.is_debit), Decimal("0"))

    return CalculatedBalance(
        opening=opening,
        total_credits=total_credits,
        total_debits=total_debits,
        balance=opening + total_credits - total_debits,
    )


def derive_balance(
    entries: List[TransactionEntry],
    matchers: Sequence[BalanceMatcher] = DEFAULT_MATCHERS,
    opening_keywords: Sequence[str] = DEFAULT_OPENING_KEYWORDS,
) -> DerivedBalance:
    """
    Derive balance figures from a statement feed.

    Rules:
    - First match per category (previous / day / current balance)
    - Last entry in feed order is always reported
    - Day balance overrides a direct current balance match
    - Without previous or day balance, fall back to calculate_balance()
    """
    result = DerivedBalance()
    if not entries:
        return result

    found = find_balance_entries(entries, matchers)
    if PREVIOUS_BALANCE in found:
        result.previous_balance = found[PREVIOUS_BALANCE].signed_amount
    if DAY_BALANCE in found:
        result.day_balance = found[DAY_BALANCE].signed_amount
    if CURRENT_BALANCE in found:
        result.current_balance = found[CURRENT_BALANCE].signed_amount

    result.last_entry = entries[-1]

    if result.day_balance is not None:
        result.current_balance = result.day_balance

    if result.previous_balance is None and result.day_balance is None:
        result.calculated = calculate_balance(entries, opening_keywords)

    return result
