"""
Balance aggregation for a group.

Sign convention (all amounts in integer cents):
- Positive = owes money
- Negative = is owed money
- Zero = settled up
"""

from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from app.models.expense import GroupExpense
from app.models.settlement import GroupSettlement


def compute_balances(
    expenses: Iterable[GroupExpense],
    completed_settlements: Iterable[GroupSettlement] = ()
) -> Mapping[str, int]:
    """
    Fold expenses and completed settlements into per-user net balances.

    1. The payer of each expense is credited the full amount
    2. Every split user is debited their share (the payer too, if included)
    3. A completed settlement reduces both the debtor's remaining debt and the
       creditor's remaining credit

    Users appear in the order they are first seen; the settlement generator
    relies on that order. Settlements that are not completed are ignored.
    Returns a read-only mapping; no state is kept between calls.
    """
    balance: Dict[str, int] = {}

    for expense in expenses:
        balance[expense.paid_by] = balance.get(expense.paid_by, 0) - expense.amount_cents
        for split in expense.split_details:
            balance[split.user_id] = balance.get(split.user_id, 0) + split.amount_cents

    for settlement in completed_settlements:
        if not settlement.is_completed:
            continue
        balance[settlement.from_user_id] = balance.get(settlement.from_user_id, 0) - settlement.amount_cents
        balance[settlement.to_user_id] = balance.get(settlement.to_user_id, 0) + settlement.amount_cents

    return MappingProxyType(balance)
