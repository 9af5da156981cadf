import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Union

from fastapi import Depends
from pydantic import BaseModel
from yaml import safe_load

from fitmate.api.auth_deps import get_token_user
from fitmate.core.errors import ForbiddenError
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.enums import Role

logger = logging.getLogger(__name__)

POLICY_FILE = Path(__file__).resolve().parent.parent / "policies.yaml"

ADMIN_ONLY = "Only admins can perform this action."


class Policy(BaseModel):
    roles: List[str]
    actions: List[str]
    resources: List[str]


@lru_cache(maxsize=None)
def load_policies(path: str = str(POLICY_FILE)) -> tuple[Policy, ...]:
    """Load policies from the YAML file shipped with the package."""
    logger.info(f"Loading policies from: {path}")
    with open(path, "r") as f:
        data = safe_load(f) or {}
    return tuple(Policy(**policy) for policy in data.get("policies", []))


def check_policy(role: Union[Role, str], action: str, resource: str) -> bool:
    """Check if a role may perform an action on a resource."""
    role_name = role.value if isinstance(role, Role) else str(role)
    for policy in load_policies():
        if role_name not in policy.roles:
            continue
        if action not in policy.actions:
            continue
        if "*" not in policy.resources and resource not in policy.resources:
            continue
        return True
    return False


def require_permission(action: str, resource: str, detail: str = ADMIN_ONLY):
    """Dependency factory requiring a token whose role grants the permission.

    The role is taken from the verified token, so a missing or invalid token
    fails with 401 before the policy is consulted.
    """
    async def permission_dependency(
        current_user: Annotated[TokenUser, Depends(get_token_user)],
    ) -> TokenUser:
        if not check_policy(current_user.role, action, resource):
            logger.warning(
                f"Permission denied for user {current_user.id} ({current_user.role.value}): {action} {resource}"
            )
            raise ForbiddenError(detail)
        return current_user

    return permission_dependency
