from typing import Annotated

from fastapi import APIRouter, Depends, status

from fitmate.core.pbac import require_permission
from fitmate.db.session import SessionDep
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.contact import ContactCreate, ContactResponse
from fitmate.services.contact_service import contact_service
from fitmate.services.mail_service import Mailer, get_mailer

router = APIRouter()


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def submit_contact_request(
    contact_in: ContactCreate,
    db: SessionDep,
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> ContactResponse:
    """Leave a message for the gym staff. No account needed."""
    return await contact_service.submit(db, obj_in=contact_in, mailer=mailer)


@router.get("", response_model=list[ContactResponse])
async def read_contact_requests(
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("read", "contact_requests"))],
) -> list[ContactResponse]:
    """All contact messages, newest first."""
    return await contact_service.list_requests(db)
