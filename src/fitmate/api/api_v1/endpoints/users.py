import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from fitmate.api.auth_deps import CurrentUser, get_token_user, oauth2_scheme
from fitmate.core.errors import ForbiddenError, NotFoundError
from fitmate.core.pbac import check_policy, require_permission
from fitmate.core.roles import TIER_ORDER
from fitmate.crud.crud_user import user as crud_user
from fitmate.db.session import SessionDep
from fitmate.schemas import MessageResponse, Role
from fitmate.schemas.auth import ChangePasswordRequest, TokenUser
from fitmate.schemas.fitness_class import EnrollmentResponse
from fitmate.schemas.user import RoleListResponse, UserPublic, UserRoleUpdate
from fitmate.services.auth_service import auth_service
from fitmate.services.catalog_service import catalog_service
from fitmate.services.enrollment_service import enrollment_service
from fitmate.utils.validation import parse_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[UserPublic])
async def read_users(
    current_user: Annotated[TokenUser, Depends(require_permission("read", "users"))],
    db: SessionDep,
    skip: int = 0,
    limit: Optional[int] = None,
) -> list[UserPublic]:
    """Get all users."""
    return await crud_user.get_multi(db, skip=skip, limit=limit)


@router.get("/roles", response_model=RoleListResponse)
async def read_roles(
    current_user: Annotated[TokenUser, Depends(require_permission("read", "roles"))],
) -> RoleListResponse:
    """List every role and the ordered membership tiers."""
    return RoleListResponse(roles=list(Role), tiers=list(TIER_ORDER))


@router.get("/me", response_model=UserPublic)
async def read_user_me(current_user: CurrentUser) -> UserPublic:
    """Get current user."""
    return current_user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_in: ChangePasswordRequest,
    current_user: CurrentUser,
    db: SessionDep,
) -> MessageResponse:
    await auth_service.change_password(db, db_user=current_user, obj_in=password_in)
    return MessageResponse(message="Password changed successfully")


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(user_id: str, db: SessionDep) -> UserPublic:
    """Get a specific user."""
    db_user = await crud_user.get(db, id=parse_id(user_id, "userId"))
    if not db_user:
        raise NotFoundError("User not found")
    return db_user


@router.put("/{user_id}/role", response_model=UserPublic)
async def update_user_role(
    user_id: str,
    role_in: UserRoleUpdate,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("update", "users"))],
) -> UserPublic:
    """Set a user's role directly."""
    db_user = await crud_user.get(db, id=parse_id(user_id, "userId"))
    if not db_user:
        raise NotFoundError("User not found")
    previous = db_user.role
    db_user = await crud_user.update(db, db_obj=db_user, obj_in={"role": role_in.role})
    logger.info(f"Admin {current_user.id} changed role of user {db_user.id}: {previous.value} -> {db_user.role.value}")
    return db_user


@router.get("/{user_id}/classes", response_model=list[EnrollmentResponse])
async def read_user_classes(user_id: str, db: SessionDep) -> list[EnrollmentResponse]:
    """Classes the user is enrolled in, with live availability."""
    return await catalog_service.get_user_classes(db, user_id=parse_id(user_id, "userId"))


@router.delete("/{user_id}/classes/{class_id}", response_model=MessageResponse)
async def cancel_user_enrollment(
    user_id: str,
    class_id: str,
    db: SessionDep,
    token: Optional[str] = Depends(oauth2_scheme),
) -> MessageResponse:
    """Cancel an enrollment on behalf of a user. Members may only cancel their own."""
    target_id = parse_id(user_id, "userId")
    target_class_id = parse_id(class_id, "classId")
    caller = await get_token_user(token)
    if caller.id != target_id and not check_policy(caller.role, "delete", "users"):
        raise ForbiddenError("You can only cancel your own enrollments")
    await enrollment_service.unenroll(db, class_id=target_class_id, user_id=target_id)
    return MessageResponse(message="Enrollment cancelled successfully")
