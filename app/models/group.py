import secrets
from typing import List, Optional

from pydantic import Field

from app.models.base import MongoModel

INVITATION_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITATION_CODE_LENGTH = 6


def generate_invitation_code() -> str:
    return "".join(secrets.choice(INVITATION_ALPHABET) for _ in range(INVITATION_CODE_LENGTH))


class ExpenseGroup(MongoModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    owner_id: str
    member_ids: List[str] = []
    invitation_code: str = Field(default_factory=generate_invitation_code)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.member_ids
