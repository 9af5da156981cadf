from fastapi import APIRouter

from fitmate.api.api_v1.endpoints import (
    auth,
    categories,
    classes,
    contact,
    memberships,
    payments,
    reviews,
    trainers,
    users,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(classes.router, prefix="/classes", tags=["classes"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(trainers.router, prefix="/trainers", tags=["trainers"])
api_router.include_router(memberships.router, prefix="/memberships", tags=["memberships"])
api_router.include_router(contact.router, prefix="/contact", tags=["contact"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
