from typing import List, Mapping

from app.core.logging import get_logger
from app.models.settlement import GroupSettlement, SettlementStatus, natural_settlement_id

logger = get_logger(__name__)


def generate_settlements(group_id: str, balances: Mapping[str, int]) -> List[GroupSettlement]:
    """
    Turn net balances into directed debtor -> creditor settlements.

    Greedy two-pointer sweep over creditors and debtors, both kept in the
    balance map's insertion order (not sorted by size). Each step settles
    min(creditor, debtor) and advances whichever side reached zero, so at most
    (#creditors + #debtors - 1) settlements come out and a pair never repeats.

    Returns pending GroupSettlement objects (not yet persisted) carrying their
    natural id.
    """
    creditors = [[user_id, -amount] for user_id, amount in balances.items() if amount < 0]
    debtors = [[user_id, amount] for user_id, amount in balances.items() if amount > 0]

    settlements: List[GroupSettlement] = []
    creditor_idx = 0
    debtor_idx = 0

    while creditor_idx < len(creditors) and debtor_idx < len(debtors):
        creditor_id, credit = creditors[creditor_idx]
        debtor_id, debt = debtors[debtor_idx]

        amount = min(credit, debt)
        settlements.append(GroupSettlement(
            id=natural_settlement_id(group_id, debtor_id, creditor_id),
            group_id=group_id,
            from_user_id=debtor_id,
            to_user_id=creditor_id,
            amount_cents=amount,
            status=SettlementStatus.PENDING
        ))

        creditors[creditor_idx][1] = credit - amount
        debtors[debtor_idx][1] = debt - amount

        if creditors[creditor_idx][1] == 0:
            creditor_idx += 1
        if debtors[debtor_idx][1] == 0:
            debtor_idx += 1

    # Balances always net to zero, so both sides run out together
    leftover = sum(c[1] for c in creditors[creditor_idx:]) + sum(d[1] for d in debtors[debtor_idx:])
    if leftover:
        logger.warning("settlement_leftover", group_id=group_id, leftover_cents=leftover)

    for settlement in settlements:
        logger.info(
            "settlement_computed",
            group_id=group_id,
            settlement_id=settlement.id,
            from_user_id=settlement.from_user_id,
            to_user_id=settlement.to_user_id,
            amount_cents=settlement.amount_cents
        )

    return settlements
