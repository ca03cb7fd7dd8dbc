from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import InvariantViolation, NotFoundError
from app.core.logging import get_logger
from app.models.base import _utcnow
from app.models.expense import ExpenseSplit, GroupExpense, SplitType
from app.models.group import ExpenseGroup
from app.models.transaction import LedgerTransaction, TransactionType
from app.repositories.expense_repo import ExpenseRepository
from app.repositories.group_repo import GroupRepository
from app.repositories.transaction_repo import TransactionRepository
from app.schemas.expense import ExpenseCreate
from app.services.wallet_service import WalletService
from app.utils.expense_validation import build_equal_splits, validate_members, validate_splits

logger = get_logger(__name__)


class ExpenseService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.groups = GroupRepository(db)
        self.expenses = ExpenseRepository(db)
        self.transactions = TransactionRepository(db)
        self.wallet_service = WalletService(db)

    async def get_group_expenses(self, group_id: str) -> List[GroupExpense]:
        """Ledger reader: every expense of the group, newest first."""
        group = await self.groups.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")
        return await self.expenses.list_by_group(group_id)

    async def create_expense(self, group: ExpenseGroup, user_id: str, expense_in: ExpenseCreate) -> GroupExpense:
        """
        Validate and record a group expense.

        Nothing is written unless the payer and every split user are members
        and the splits add up to the amount exactly.
        """
        paid_by = expense_in.paid_by or user_id
        splits = self._build_splits(group, paid_by, expense_in)

        validate_members([paid_by] + [split.user_id for split in splits], group.member_ids)
        validate_splits(expense_in.amount_cents, splits)

        expense = GroupExpense(
            group_id=group.id,
            paid_by=paid_by,
            amount_cents=expense_in.amount_cents,
            description=expense_in.description.strip(),
            category=expense_in.category,
            split_type=expense_in.split_type,
            split_details=splits,
            date=expense_in.date or _utcnow()
        )
        await self.expenses.create_expense(expense)
        logger.info(
            "expense_recorded",
            group_id=group.id,
            expense_id=expense.id,
            paid_by=paid_by,
            amount_cents=expense.amount_cents,
            split_count=len(splits)
        )

        if expense_in.wallet is not None:
            await self._charge_payer(expense, expense_in.wallet)

        return expense

    def _build_splits(self, group: ExpenseGroup, paid_by: str, expense_in: ExpenseCreate) -> List[ExpenseSplit]:
        if expense_in.split_type == SplitType.EQUAL:
            member_ids = expense_in.member_ids or group.member_ids
            if len(set(member_ids)) != len(member_ids):
                raise InvariantViolation("Equal split lists a member more than once")
            return build_equal_splits(expense_in.amount_cents, member_ids, paid_by)

        if not expense_in.splits:
            raise InvariantViolation("Custom split needs explicit split amounts")
        return [
            ExpenseSplit(
                user_id=split.user_id,
                amount_cents=split.amount_cents,
                settled=split.user_id == paid_by
            )
            for split in expense_in.splits
        ]

    async def _charge_payer(self, expense: GroupExpense, wallet) -> None:
        """Post the payer's outflow to their personal ledger and wallet."""
        await self.transactions.add(LedgerTransaction(
            user_id=expense.paid_by,
            date=expense.date,
            amount_cents=expense.amount_cents,
            category=expense.category,
            item=expense.description,
            wallet=wallet,
            type=TransactionType.EXPENSE,
            notes=f"Group expense: {expense.description}",
            group_id=expense.group_id,
            expense_id=expense.id
        ))
        await self.wallet_service.adjust_balance(
            expense.paid_by,
            wallet,
            -expense.amount_cents,
            reason=f"Group expense: {expense.description}"
        )
