import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.config import settings
from fitmate.core.errors import ServiceUnavailableError
from fitmate.crud.crud_contact import contact_request as crud_contact
from fitmate.models.contact import ContactRequest
from fitmate.schemas.contact import ContactCreate, ContactResponse
from fitmate.services.mail_service import Mailer


class ContactService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def submit(self, db: AsyncSession, *, obj_in: ContactCreate, mailer: Mailer) -> ContactResponse:
        """Store a contact message and forward it to the staff inbox.

        The message is saved even when mail is not configured or fails.
        """
        db_contact = await crud_contact.create(db, obj_in=obj_in)
        self.logger.info(f"Contact request {db_contact.id} received")
        await self._notify_staff(db_contact, mailer)
        return ContactResponse.model_validate(db_contact)

    async def _notify_staff(self, db_contact: ContactRequest, mailer: Mailer) -> None:
        if not mailer.configured or not settings.CONTACT_NOTIFY_EMAIL:
            return
        try:
            await mailer.send(
                to=settings.CONTACT_NOTIFY_EMAIL,
                subject=f"[FitMate contact] {db_contact.subject}",
                body=(
                    f"From: {db_contact.name} <{db_contact.email}>\n"
                    f"Phone: {db_contact.phone_number or '-'}\n\n"
                    f"{db_contact.message}"
                ),
            )
        except ServiceUnavailableError:
            self.logger.warning(f"Could not forward contact request {db_contact.id}")

    async def list_requests(self, db: AsyncSession) -> List[ContactResponse]:
        contacts = await crud_contact.list_newest_first(db)
        return [ContactResponse.model_validate(c) for c in contacts]


contact_service = ContactService()
