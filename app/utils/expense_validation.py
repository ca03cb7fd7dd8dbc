"""Group expense validation and split allocation."""
from typing import Iterable, List, Sequence

from app.core.errors import InvariantViolation
from app.models.expense import ExpenseSplit


def allocate_equal_split(amount_cents: int, member_ids: Sequence[str]) -> List[int]:
    """
    Divide amount_cents equally between members.

    Every member gets amount // n; the remaining minor units are handed out
    one each to the first members, so the shares always add up to the amount
    exactly and differ by at most one unit.
    """
    if not member_ids:
        raise InvariantViolation("Equal split needs at least one member")
    if amount_cents <= 0:
        raise InvariantViolation(f"Expense amount must be positive: {amount_cents}")

    per_member, remainder = divmod(amount_cents, len(member_ids))
    return [per_member + (1 if i < remainder else 0) for i in range(len(member_ids))]


def build_equal_splits(amount_cents: int, member_ids: Sequence[str], paid_by: str) -> List[ExpenseSplit]:
    """Equal splits; the payer's own share starts out settled."""
    shares = allocate_equal_split(amount_cents, member_ids)
    return [
        ExpenseSplit(user_id=user_id, amount_cents=share, settled=user_id == paid_by)
        for user_id, share in zip(member_ids, shares)
    ]


def validate_splits(amount_cents: int, splits: List[ExpenseSplit]) -> None:
    """
    Validate the split details of an expense.

    Rules:
    - amount must be positive
    - at least one split
    - no negative split amounts
    - each user appears once
    - split amounts sum to the expense amount exactly
    """
    if amount_cents <= 0:
        raise InvariantViolation(f"Expense amount must be positive: {amount_cents}")

    if not splits:
        raise InvariantViolation("Expense needs at least one split")

    seen = set()
    for split in splits:
        if split.amount_cents < 0:
            raise InvariantViolation(
                f"Split for user '{split.user_id}' has negative amount: {split.amount_cents}"
            )
        if split.user_id in seen:
            raise InvariantViolation(f"User '{split.user_id}' appears in more than one split")
        seen.add(split.user_id)

    split_total = sum(split.amount_cents for split in splits)
    if split_total != amount_cents:
        raise InvariantViolation(
            f"Split sum ({split_total}) does not equal expense amount ({amount_cents})"
        )


def validate_members(user_ids: Iterable[str], member_ids: Iterable[str]) -> None:
    """Every referenced user must belong to the group."""
    members = set(member_ids)
    outsiders = [user_id for user_id in user_ids if user_id not in members]
    if outsiders:
        raise InvariantViolation(f"Users are not group members: {', '.join(outsiders)}")
