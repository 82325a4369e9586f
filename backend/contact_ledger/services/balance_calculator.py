# Overview: Pure running-balance fold over an ordered ledger history.

"""
Balance Calculator

Given a contact's entries in ledger order and a way to tell whether a
PAYMENT entry's payment is confirmed, produce the running balance after every
entry plus the final balance.

RULES:
- Start at 0.
- PAYMENT entries whose payment is not confirmed keep their place in the
  timeline but carry the balance from just before them, unchanged.
- Every other entry moves the balance by debit - credit.

No I/O happens here. The same input always produces the same output, which
is what lets the ledger service skip writes for balances that did not change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Hashable, Iterable

from ..models.ledger import TX_PAYMENT
from ..money import to_money


@dataclass(frozen=True)
class BalanceResult:
    per_entry: dict[Hashable, Decimal] = field(default_factory=dict)
    final_balance: Decimal = Decimal("0.00")


def is_balance_contributing(entry: Any, confirmed: bool) -> bool:
    """Whether an entry moves the running balance."""
    if entry.transaction_type == TX_PAYMENT:
        return confirmed
    return True


def compute_running_balances(
    entries: Iterable[Any],
    is_confirmed: Callable[[Any], bool],
    *,
    key: Callable[[Any], Hashable] = lambda entry: entry.id,
) -> BalanceResult:
    """
    Fold an ordered entry sequence into per-entry running balances.

    Args:
        entries: Entries already sorted by (transaction_date, created_at, id).
            Anything exposing transaction_type, debit_amount and credit_amount.
        is_confirmed: Payment-confirmation lookup. Only consulted for PAYMENT
            entries.
        key: How to key the per-entry map (entry id by default).

    Returns:
        BalanceResult with the balance after each entry and the final balance.
    """
    balance = Decimal("0.00")
    per_entry: dict[Hashable, Decimal] = {}

    for entry in entries:
        confirmed = is_confirmed(entry) if entry.transaction_type == TX_PAYMENT else True
        if is_balance_contributing(entry, confirmed):
            balance = balance + to_money(entry.debit_amount) - to_money(entry.credit_amount)
        per_entry[key(entry)] = balance

    return BalanceResult(per_entry=per_entry, final_balance=balance)
