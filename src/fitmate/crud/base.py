from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.models.base import Base

SQLModelType = TypeVar("SQLModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[SQLModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, sql_model: Type[SQLModelType]):
        """
        CRUD object with default methods to Create, Read, Update, Delete (CRUD).
        **Parameters**
        * `sql_model`: A SQLAlchemy model class
        """
        self.sql_model = sql_model

    async def exists(self, db: AsyncSession, *, id: int) -> bool:
        """Check if an object exists."""
        stmt = select(self.sql_model.id).where(self.sql_model.id == id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get(self, db: AsyncSession, *, id: int, options: Sequence[Any] = ()) -> Optional[SQLModelType]:
        """Get a single object by ID."""
        stmt = select(self.sql_model).where(self.sql_model.id == id)
        if options:
            stmt = stmt.options(*options)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: Optional[int] = None, options: Sequence[Any] = ()
    ) -> List[SQLModelType]:
        """Get multiple objects.

        Args:
            db: Database session
            skip: Number of records to skip
            limit: Maximum number of records to return, all when None
            options: Loader options such as ``selectinload``

        Returns:
            List of model objects ordered by id
        """
        stmt = select(self.sql_model).order_by(self.sql_model.id).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        if options:
            stmt = stmt.options(*options)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self, db: AsyncSession, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True
    ) -> SQLModelType:
        """Create a new object."""
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.sql_model(**obj_in_data)
        db.add(db_obj)
        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: SQLModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True,
    ) -> SQLModelType:
        """Update an object with the fields that were explicitly set."""
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for field in update_data:
            setattr(db_obj, field, update_data[field])
        db.add(db_obj)
        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()
        return db_obj

    async def remove(self, db: AsyncSession, *, id: int) -> Optional[SQLModelType]:
        """Remove an object."""
        obj = await self.get(db, id=id)
        if not obj:
            return None
        await db.delete(obj)
        await db.commit()
        return obj
