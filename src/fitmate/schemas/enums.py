from enum import Enum


class Role(str, Enum):
    """Account roles. The USER* values are membership tiers; TRAINER and ADMIN are staff roles."""
    USER = "USER"
    USER_BRONZE = "USER_BRONZE"
    USER_GOLD = "USER_GOLD"
    USER_PLATINUM = "USER_PLATINUM"
    TRAINER = "TRAINER"
    ADMIN = "ADMIN"


class ClassStatus(str, Enum):
    """Lifecycle of a scheduled class relative to the current time."""
    UPCOMING = "UPCOMING"
    ONGOING = "ONGOING"
    ENDED = "ENDED"
