from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import NotFoundError, PermissionDeniedError
from app.core.logging import get_logger
from app.models.group import ExpenseGroup
from app.repositories.group_repo import GroupRepository

logger = get_logger(__name__)


class GroupService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.groups = GroupRepository(db)

    async def create_group(self, owner_id: str, name: str, description: Optional[str] = None) -> ExpenseGroup:
        group = ExpenseGroup(
            name=name,
            description=description,
            owner_id=owner_id,
            member_ids=[owner_id]
        )
        await self.groups.create_group(group)
        logger.info("group_created", group_id=group.id, owner_id=owner_id)
        return group

    async def list_groups(self, user_id: str) -> List[ExpenseGroup]:
        return await self.groups.list_for_member(user_id)

    async def get_group(self, group_id: str) -> ExpenseGroup:
        group = await self.groups.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")
        return group

    async def get_group_for_member(self, group_id: str, user_id: str) -> ExpenseGroup:
        group = await self.get_group(group_id)
        if not group.has_member(user_id):
            raise PermissionDeniedError(f"User {user_id} is not a member of group {group_id}")
        return group

    async def join_group(self, user_id: str, invitation_code: str) -> ExpenseGroup:
        group = await self.groups.get_by_invitation_code(invitation_code.strip().upper())
        if group is None:
            raise NotFoundError("Invalid invitation code")
        if group.has_member(user_id):
            return group

        updated = await self.groups.add_member(group.id, user_id)
        if updated is None:
            raise NotFoundError(f"Group {group.id} not found")
        logger.info("group_joined", group_id=group.id, user_id=user_id)
        return updated
