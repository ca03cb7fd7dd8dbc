"""
Group settlement model - a directed debt between two group members.

Identity:
- The natural settlement of a (debtor, creditor) pair has version 0 and id
  ``{group_id}_{from_user_id}_{to_user_id}``, with ``%`` and ``_`` inside a
  part percent-escaped so two pairs never share an id
- A debt that reappears with a different amount after the natural record was
  completed gets a new pending record with a higher version that
  ``supersedes`` the completed one
- Completed records are immutable: never deleted, never re-priced
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from app.models.base import MongoModel
from app.models.wallet import WalletType


class SettlementStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


def _id_part(value: str) -> str:
    # "_" separates id parts, so it must never appear inside one
    return value.replace("%", "%25").replace("_", "%5F")


def natural_settlement_id(group_id: str, from_user_id: str, to_user_id: str) -> str:
    return f"{_id_part(group_id)}_{_id_part(from_user_id)}_{_id_part(to_user_id)}"


def versioned_settlement_id(natural_id: str, version: int) -> str:
    if version == 0:
        return natural_id
    return f"{natural_id}_v{version}"


class GroupSettlement(MongoModel):
    group_id: str
    from_user_id: str  # Debtor
    to_user_id: str    # Creditor
    amount_cents: int = Field(gt=0)
    status: SettlementStatus = SettlementStatus.PENDING

    version: int = 0
    supersedes: Optional[str] = None

    payment_method: Optional[WalletType] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def natural_id(self) -> str:
        return natural_settlement_id(self.group_id, self.from_user_id, self.to_user_id)

    @property
    def is_pending(self) -> bool:
        return self.status == SettlementStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == SettlementStatus.COMPLETED

    def matches(self, other: "GroupSettlement") -> bool:
        """Same debtor, creditor and exact amount."""
        return (
            self.from_user_id == other.from_user_id
            and self.to_user_id == other.to_user_id
            and self.amount_cents == other.amount_cents
        )
