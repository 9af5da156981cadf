from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.security import get_password_hash
from fitmate.crud.base import CRUDBase
from fitmate.models.core import User as UserModel
from fitmate.schemas.auth import RegisterRequest
from fitmate.schemas.enums import Role
from fitmate.schemas.user import UserRoleUpdate


class CRUDUser(CRUDBase[UserModel, RegisterRequest, UserRoleUpdate]):
    """CRUD operations for user management."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[UserModel]:
        """Get a user by email."""
        stmt = select(UserModel).where(UserModel.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_with_password(
        self, db: AsyncSession, *, obj_in: RegisterRequest, role: Role = Role.USER
    ) -> UserModel:
        """Create a user, hashing the plain password."""
        return await self.create(
            db,
            obj_in={
                "email": str(obj_in.email).strip().lower(),
                "password_hash": get_password_hash(obj_in.password),
                "name": obj_in.name,
                "role": role,
            },
        )

    async def get_by_role(self, db: AsyncSession, *, role: Role) -> List[UserModel]:
        """Get all users holding a role."""
        stmt = select(UserModel).where(UserModel.role == role).order_by(UserModel.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_trainer(self, db: AsyncSession, *, id: int) -> Optional[UserModel]:
        """Get a user only if they are a trainer."""
        stmt = select(UserModel).where(UserModel.id == id, UserModel.role == Role.TRAINER)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def set_password(self, db: AsyncSession, *, user: UserModel, new_password: str) -> UserModel:
        """Store a new password hash. Any outstanding reset token stops working."""
        return await self.update(
            db, db_obj=user, obj_in={"password_hash": get_password_hash(new_password), "reset_token_id": None}
        )

    async def set_reset_token_id(self, db: AsyncSession, *, user: UserModel, token_id: Optional[str]) -> UserModel:
        return await self.update(db, db_obj=user, obj_in={"reset_token_id": token_id})


user = CRUDUser(UserModel)
