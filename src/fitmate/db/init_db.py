import asyncio
import logging
import sys
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from fitmate.core.config import settings
from fitmate.core.security import get_password_hash
from fitmate.crud.crud_category import category as crud_category
from fitmate.crud.crud_user import user as crud_user
from fitmate.db.session import AsyncSessionLocal, engine
from fitmate.models import Base
from fitmate.schemas.enums import Role

logger = logging.getLogger(__name__)

# Define default categories
DEFAULT_CATEGORIES: list[Tuple[str, str]] = [
    ("Yoga", "Flexibility, balance and breathing"),
    ("Boxing", "Pad work, footwork and conditioning"),
    ("HIIT", "High intensity interval training"),
    ("Strength", "Barbell and dumbbell sessions"),
]


async def _create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def _create_admin(db: AsyncSession) -> None:
    """Create the first admin from FIRST_ADMIN_EMAIL/FIRST_ADMIN_PASSWORD if configured."""
    if not settings.FIRST_ADMIN_EMAIL or not settings.FIRST_ADMIN_PASSWORD:
        logger.info("FIRST_ADMIN_EMAIL/FIRST_ADMIN_PASSWORD not set - skipping admin creation")
        return

    email = settings.FIRST_ADMIN_EMAIL.strip().lower()
    if await crud_user.get_by_email(db, email=email):
        logger.info(f"Admin already exists: {email} - skipping")
        return

    await crud_user.create(
        db,
        obj_in={
            "email": email,
            "password_hash": get_password_hash(settings.FIRST_ADMIN_PASSWORD),
            "name": "Admin",
            "role": Role.ADMIN,
        },
        commit=False,
    )
    logger.info(f"Created admin: {email}")


async def _create_categories(db: AsyncSession) -> None:
    """Create default categories if they don't exist."""
    for name, description in DEFAULT_CATEGORIES:
        if await crud_category.get_by_name(db, name=name):
            logger.info(f"Category already exists: {name} - skipping")
            continue
        await crud_category.create(db, obj_in={"name": name, "description": description}, commit=False)
        logger.info(f"Created category: {name}")


async def init_db(
    bind: Optional[AsyncEngine] = None,
    session_factory: Optional[async_sessionmaker] = None,
) -> None:
    """Create the schema and seed the first admin and default categories.

    Safe to run repeatedly; existing rows are left alone.
    """
    await _create_tables(bind or engine)
    async with (session_factory or AsyncSessionLocal)() as db:
        try:
            await _create_admin(db)
            await _create_categories(db)
            await db.commit()
            logger.info("Database initialization completed successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {str(e)}")
            await db.rollback()
            raise


def main() -> None:
    """Main function to run database initialization."""
    try:
        asyncio.run(init_db())
        print("Database initialization completed successfully!")
    except Exception as e:
        print(f"Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
