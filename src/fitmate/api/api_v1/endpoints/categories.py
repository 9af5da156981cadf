import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError

from fitmate.core.errors import BadRequestError, ConflictError, NotFoundError
from fitmate.core.pbac import require_permission
from fitmate.crud.crud_category import category as crud_category
from fitmate.db.session import SessionDep
from fitmate.schemas import MessageResponse
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from fitmate.utils.validation import parse_id

logger = logging.getLogger(__name__)

router = APIRouter()

NAME_TAKEN = "Category name already exists"


@router.get("", response_model=list[CategoryResponse])
async def read_categories(db: SessionDep) -> list[CategoryResponse]:
    return await crud_category.get_multi(db)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: CategoryCreate,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("create", "categories"))],
) -> CategoryResponse:
    """Create a category with a unique name."""
    if await crud_category.get_by_name(db, name=category_in.name):
        raise ConflictError(NAME_TAKEN)
    try:
        db_category = await crud_category.create(db, obj_in=category_in)
    except IntegrityError:
        # Another request took the name between the check and the insert
        await db.rollback()
        raise ConflictError(NAME_TAKEN)
    logger.info(f"Category {db_category.id} '{db_category.name}' created by admin {current_user.id}")
    return db_category


@router.get("/{category_id}", response_model=CategoryResponse)
async def read_category(category_id: str, db: SessionDep) -> CategoryResponse:
    db_category = await crud_category.get(db, id=parse_id(category_id, "categoryId"))
    if not db_category:
        raise NotFoundError("Category not found")
    return db_category


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    category_in: CategoryUpdate,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("update", "categories"))],
) -> CategoryResponse:
    """Rename a category or change its description."""
    db_category = await crud_category.get(db, id=parse_id(category_id, "categoryId"))
    if not db_category:
        raise NotFoundError("Category not found")

    update_data = category_in.model_dump(exclude_unset=True)
    if not update_data:
        raise BadRequestError("No fields to update")
    if update_data.get("name") is None:
        update_data.pop("name", None)

    if "name" in update_data:
        existing = await crud_category.get_by_name(db, name=update_data["name"])
        if existing and existing.id != db_category.id:
            raise ConflictError(NAME_TAKEN)

    try:
        return await crud_category.update(db, db_obj=db_category, obj_in=update_data)
    except IntegrityError:
        await db.rollback()
        raise ConflictError(NAME_TAKEN)


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("delete", "categories"))],
) -> MessageResponse:
    """Delete a category. Refused while any class still uses it."""
    db_category = await crud_category.get(db, id=parse_id(category_id, "categoryId"))
    if not db_category:
        raise NotFoundError("Category not found")

    in_use = await crud_category.count_classes(db, category_id=db_category.id)
    if in_use:
        raise BadRequestError(f"Cannot delete category in use by {in_use} class(es)")

    await crud_category.remove(db, id=db_category.id)
    logger.info(f"Category {db_category.id} deleted by admin {current_user.id}")
    return MessageResponse(message="Category deleted successfully")
