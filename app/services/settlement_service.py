"""
Group settlement engine.

reconcile(): expenses -> balances -> greedy settlements -> merged with what
is already stored.
- completed settlements are history: never deleted, never re-priced
- a generated settlement equal to an existing pending one reuses it
- pending settlements no longer implied by the balances are pruned
- each write is attempted on its own; a failed write is logged and skipped,
  earlier writes in the same pass stay

complete(): pending -> completed, plus the payer's ledger entry, wallet
history record and wallet debit.
"""

from typing import Callable, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import NotFoundError, SettlementStateError, StoreError
from app.core.logging import get_logger
from app.models.settlement import (
    GroupSettlement,
    SettlementStatus,
    versioned_settlement_id,
)
from app.models.transaction import SETTLEMENT_CATEGORY, LedgerTransaction, TransactionType
from app.models.wallet import WalletType
from app.repositories.expense_repo import ExpenseRepository
from app.repositories.settlement_repo import SettlementRepository
from app.repositories.transaction_repo import TransactionRepository
from app.services.balances import compute_balances
from app.services.settlement_generator import generate_settlements
from app.services.wallet_service import WalletService

logger = get_logger(__name__)

# Versions tried when minting a superseding record before giving up
MAX_MINT_ATTEMPTS = 5


class SettlementService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.settlements = SettlementRepository(db)
        self.expenses = ExpenseRepository(db)
        self.transactions = TransactionRepository(db)
        self.wallet_service = WalletService(db)

    async def get_balances(self, group_id: str):
        """Current net balance per user, completed settlements applied."""
        expenses = await self.expenses.list_by_group(group_id)
        completed = await self.settlements.list_by_group(group_id, SettlementStatus.COMPLETED)
        return compute_balances(expenses, completed)

    async def get_settlement(self, settlement_id: str) -> GroupSettlement:
        settlement = await self.settlements.get(settlement_id)
        if settlement is None:
            raise NotFoundError(f"Settlement {settlement_id} not found")
        return settlement

    async def list_group_settlements(self, group_id: str) -> List[GroupSettlement]:
        return await self.settlements.list_by_group(group_id)

    async def list_pending_for_user(self, user_id: str) -> List[GroupSettlement]:
        return await self.settlements.list_pending_for_user(user_id)

    # ===== RECONCILIATION =====

    async def reconcile(self, group_id: str) -> List[GroupSettlement]:
        """
        Bring stored settlements in line with the group's expenses.

        Idempotent: a second call with no new expenses or completions finds
        every generated settlement already stored and writes nothing.

        Returns completed settlements plus the retained/created pending ones.
        """
        existing = await self.settlements.list_by_group(group_id)
        completed = [s for s in existing if s.is_completed]
        pending = [s for s in existing if s.is_pending]
        # Natural records by pair; ids are derived, the pair is the identity
        completed_by_pair = {
            (s.from_user_id, s.to_user_id): s for s in completed if s.version == 0
        }

        expenses = await self.expenses.list_by_group(group_id)
        balances = compute_balances(expenses, completed)
        generated = generate_settlements(group_id, balances)

        retained: Dict[str, GroupSettlement] = {}

        for candidate in generated:
            paid = completed_by_pair.get((candidate.from_user_id, candidate.to_user_id))

            if paid is not None and paid.amount_cents == candidate.amount_cents:
                logger.info(
                    "settlement_already_completed",
                    group_id=group_id,
                    settlement_id=paid.id,
                    amount_cents=paid.amount_cents
                )
                continue

            match = self._find_pending_match(pending, candidate, retained)
            if match is not None:
                retained[match.id] = match
                logger.info(
                    "settlement_reused",
                    group_id=group_id,
                    settlement_id=match.id,
                    amount_cents=match.amount_cents
                )
                continue

            try:
                if paid is not None:
                    record = await self._mint_superseding(candidate, paid, existing)
                else:
                    record = await self.settlements.upsert_pending(candidate)
            except StoreError as exc:
                logger.error(
                    "settlement_write_failed",
                    group_id=group_id,
                    settlement_id=candidate.id,
                    operation="create",
                    error=str(exc)
                )
                continue

            retained[record.id] = record
            logger.info(
                "settlement_persisted",
                group_id=group_id,
                settlement_id=record.id,
                from_user_id=record.from_user_id,
                to_user_id=record.to_user_id,
                amount_cents=record.amount_cents,
                supersedes=record.supersedes
            )

        for stale in pending:
            if stale.id in retained:
                continue
            try:
                deleted = await self.settlements.delete_pending(stale.id)
            except StoreError as exc:
                logger.error(
                    "settlement_write_failed",
                    group_id=group_id,
                    settlement_id=stale.id,
                    operation="delete",
                    error=str(exc)
                )
                continue
            if deleted:
                logger.info(
                    "settlement_pruned",
                    group_id=group_id,
                    settlement_id=stale.id,
                    amount_cents=stale.amount_cents
                )

        return completed + list(retained.values())

    @staticmethod
    def _find_pending_match(
        pending: List[GroupSettlement],
        candidate: GroupSettlement,
        retained: Dict[str, GroupSettlement]
    ) -> Optional[GroupSettlement]:
        """First unclaimed pending record with the same debtor, creditor and amount."""
        for record in pending:
            if record.id not in retained and record.matches(candidate):
                return record
        return None

    async def _mint_superseding(
        self,
        candidate: GroupSettlement,
        paid: GroupSettlement,
        existing: List[GroupSettlement]
    ) -> GroupSettlement:
        """
        Create a pending record for a debt that came back with a new amount
        after the natural settlement was completed.

        The version is one past the highest stored for the pair, so the id is
        the same for every reconciliation that sees the same state. If the id
        is taken by an identical pending record, that record is reused.
        """
        version = 1 + max(
            s.version for s in existing
            if s.from_user_id == candidate.from_user_id and s.to_user_id == candidate.to_user_id
        )

        for _ in range(MAX_MINT_ATTEMPTS):
            record = candidate.model_copy(update={
                "id": versioned_settlement_id(candidate.natural_id, version),
                "version": version,
                "supersedes": paid.id
            })
            if await self.settlements.insert_if_absent(record):
                return record

            taken = await self.settlements.get(record.id)
            if taken is not None and taken.is_pending and taken.matches(record):
                return taken
            version += 1

        raise StoreError(f"Could not mint a new version of settlement {paid.id}")

    # ===== COMPLETION =====

    async def complete(
        self,
        settlement_id: str,
        payment_method: WalletType,
        notes: Optional[str] = None
    ) -> GroupSettlement:
        """
        Mark a pending settlement as paid by the debtor.

        Raises NotFoundError for an unknown id and SettlementStateError if it
        is already completed.
        """
        settlement = await self.get_settlement(settlement_id)
        if not settlement.is_pending:
            raise SettlementStateError(f"Settlement {settlement_id} is already {settlement.status}")

        if settings.ATOMIC_SETTLEMENT_COMPLETION:
            completed = await self._complete_atomically(settlement_id, payment_method, notes)
        else:
            completed = await self._complete_best_effort(settlement_id, payment_method, notes)

        logger.info(
            "settlement_completed",
            group_id=completed.group_id,
            settlement_id=completed.id,
            from_user_id=completed.from_user_id,
            to_user_id=completed.to_user_id,
            amount_cents=completed.amount_cents,
            payment_method=completed.payment_method
        )
        return completed

    async def _complete_atomically(
        self,
        settlement_id: str,
        payment_method: WalletType,
        notes: Optional[str]
    ) -> GroupSettlement:
        """Status change and all payment writes commit or abort together."""
        try:
            async with await self.db.client.start_session() as session:
                async with session.start_transaction():
                    completed = await self.settlements.mark_completed(
                        settlement_id, payment_method, notes, session=session
                    )
                    if completed is None:
                        raise SettlementStateError(f"Settlement {settlement_id} is no longer pending")
                    for _, step in self._payment_steps(completed, session=session):
                        await step()
        except PyMongoError as exc:
            raise StoreError(f"Completing settlement {settlement_id} failed: {exc}") from exc
        return completed

    async def _complete_best_effort(
        self,
        settlement_id: str,
        payment_method: WalletType,
        notes: Optional[str]
    ) -> GroupSettlement:
        """Status change must succeed; payment writes are independent and may fail."""
        completed = await self.settlements.mark_completed(settlement_id, payment_method, notes)
        if completed is None:
            raise SettlementStateError(f"Settlement {settlement_id} is no longer pending")

        for name, step in self._payment_steps(completed):
            try:
                await step()
            except StoreError as exc:
                logger.error(
                    "settlement_side_effect_failed",
                    settlement_id=settlement_id,
                    step=name,
                    error=str(exc)
                )
        return completed

    def _payment_steps(self, settlement: GroupSettlement, session=None) -> List[Tuple[str, Callable]]:
        """Ledger entry, wallet history and wallet debit for the payer, in order."""
        payer = settlement.from_user_id
        wallet = WalletType(settlement.payment_method)
        reason = f"Settlement to {settlement.to_user_id}"

        entry = LedgerTransaction(
            user_id=payer,
            amount_cents=settlement.amount_cents,
            category=SETTLEMENT_CATEGORY,
            item=reason,
            wallet=wallet,
            type=TransactionType.EXPENSE,
            notes=settlement.notes or reason,
            is_settlement=True,
            settled=True,
            group_id=settlement.group_id,
            settlement_id=settlement.id
        )

        return [
            ("ledger_entry", lambda: self.transactions.add(entry, session=session)),
            ("wallet_history", lambda: self.wallet_service.record_history(
                payer, wallet, -settlement.amount_cents, reason, session=session
            )),
            ("wallet_balance", lambda: self.wallet_service.apply_delta(
                payer, wallet, -settlement.amount_cents, session=session
            )),
        ]
