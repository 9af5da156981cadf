from .fitness_class import ClassResponse
from .user import UserPublic


class TrainerResponse(UserPublic):
    """Trainer with review aggregates."""
    total_reviews: int
    average_rating: float


class TrainerDetailResponse(TrainerResponse):
    rating_counts: dict[str, int]
    upcoming_classes: list[ClassResponse]
