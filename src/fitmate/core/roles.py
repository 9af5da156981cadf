"""
Membership tier ordering and role eligibility checks.
"""
from typing import Optional, Union

from fitmate.schemas.enums import Role

# Increasing privilege. Staff roles have no rank.
TIER_ORDER: tuple[Role, ...] = (
    Role.USER,
    Role.USER_BRONZE,
    Role.USER_GOLD,
    Role.USER_PLATINUM,
)

TIER_RANK: dict[Role, int] = {role: rank for rank, role in enumerate(TIER_ORDER)}

STAFF_ROLES: frozenset[Role] = frozenset({Role.TRAINER, Role.ADMIN})


def parse_role(value: Union[str, Role, None]) -> Optional[Role]:
    """Return the Role for a token, or None when it is not a recognised role."""
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def is_tier_role(value: Union[str, Role, None]) -> bool:
    role = parse_role(value)
    return role is not None and role in TIER_RANK


def tier_rank(value: Union[str, Role, None]) -> Optional[int]:
    """Rank of a tier role, or None for staff roles and unknown tokens."""
    role = parse_role(value)
    if role is None:
        return None
    return TIER_RANK.get(role)


def satisfies_role(
    actual: Union[str, Role, None],
    required: Union[str, Role, None],
    ranks: dict[Role, int] = TIER_RANK,
) -> bool:
    """Check whether a user holding ``actual`` meets a ``required`` tier.

    No requirement is always satisfied. Staff roles are not comparable with
    tiers, so they never satisfy a tier requirement.

    Args:
        actual: The user's role
        required: The tier the class asks for, or None
        ranks: Tier rank table, lowest privilege first

    Returns:
        True if the user's tier is at or above the required tier
    """
    if required is None:
        return True
    required_role = parse_role(required)
    actual_role = parse_role(actual)
    if required_role not in ranks or actual_role not in ranks:
        return False
    return ranks[actual_role] >= ranks[required_role]


def is_strict_upgrade(current: Union[str, Role, None], target: Union[str, Role]) -> bool:
    """True when ``target`` is a tier strictly above the tier held in ``current``."""
    current_rank = tier_rank(current)
    target_rank = tier_rank(target)
    if current_rank is None or target_rank is None:
        return False
    return target_rank > current_rank


def tier_role_names() -> list[str]:
    return [role.value for role in TIER_ORDER]


def validate_required_role(value: Union[str, Role, None]) -> Optional[Role]:
    """Validate a class ``requiredRole`` value.

    Raises:
        ValueError: If the value is a staff role or not a role at all
    """
    if value is None:
        return None
    if not is_tier_role(value):
        raise ValueError(f"requiredRole must be one of {', '.join(tier_role_names())}")
    return parse_role(value)
