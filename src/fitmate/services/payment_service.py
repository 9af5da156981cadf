"""
Payment proofs: transfer slips uploaded for staff to check by hand.

The row keeps the metadata; the image bytes go to the proof store. An upload
is accepted with or without a known user so walk-in payments can be recorded.
"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple
from uuid import uuid4

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.config import settings
from fitmate.core.errors import BadRequestError, NotFoundError
from fitmate.crud.crud_payment import payment_proof as crud_proof
from fitmate.crud.crud_user import user as crud_user
from fitmate.schemas.payment import PaymentProofResponse
from fitmate.utils.storage import ALLOWED_IMAGE_TYPES, ProofStore, read_upload, validate_image

PROOF_NOT_FOUND = "Payment proof not found"


def parse_number(value: Optional[str], name: str) -> Optional[int]:
    """Parse a non-negative integer form field; blank means absent."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        raise BadRequestError(f"{name} must be a number")
    return int(value)


class PaymentService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def upload_proof(
        self,
        db: AsyncSession,
        *,
        store: ProofStore,
        file: Optional[UploadFile],
        amount: Optional[str],
        user_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> PaymentProofResponse:
        """Validate and store a proof image with its metadata.

        Raises:
            BadRequestError: Missing file, bad amount or userId, or a file
                that is not an image or is too large
            NotFoundError: If userId names no user
        """
        if file is None or not file.filename:
            raise BadRequestError("paymentImage file is required")

        owner_id = parse_number(user_id, "userId")
        parsed_amount = parse_number(amount, "amount")
        if parsed_amount is None:
            raise BadRequestError("amount is required")
        if parsed_amount <= 0:
            raise BadRequestError("amount must be greater than 0")
        if owner_id is not None and not await crud_user.exists(db, id=owner_id):
            raise NotFoundError("User not found")

        mime_type = validate_image(file)
        content = await read_upload(file, settings.MAX_PAYMENT_PROOF_BYTES)

        storage_key = f"{uuid4().hex}{ALLOWED_IMAGE_TYPES[mime_type]}"
        await store.save(storage_key, content)
        try:
            proof = await crud_proof.create(
                db,
                obj_in={
                    "user_id": owner_id,
                    "amount": parsed_amount,
                    "note": note.strip() if note and note.strip() else None,
                    "filename": Path(file.filename).name,
                    "mime_type": mime_type,
                    "storage_key": storage_key,
                },
            )
        except SQLAlchemyError:
            await db.rollback()
            await store.delete(storage_key)
            raise

        self.logger.info(f"Payment proof {proof.id} uploaded ({len(content)} bytes, user {owner_id})")
        return PaymentProofResponse.model_validate(proof)

    async def list_proofs(self, db: AsyncSession, *, user_id: Optional[int] = None) -> List[PaymentProofResponse]:
        proofs = await crud_proof.list_proofs(db, user_id=user_id)
        return [PaymentProofResponse.model_validate(p) for p in proofs]

    async def get_image(self, db: AsyncSession, *, store: ProofStore, proof_id: int) -> Tuple[bytes, str]:
        """Return the image bytes and content type of a proof.

        Raises:
            NotFoundError: If the proof or its stored image is missing
        """
        proof = await crud_proof.get(db, id=proof_id)
        if not proof:
            raise NotFoundError(PROOF_NOT_FOUND)
        content = await store.load(proof.storage_key)
        if content is None:
            self.logger.error(f"Image for payment proof {proof.id} is missing from the store")
            raise NotFoundError("Payment proof image not found")
        return content, proof.mime_type


payment_service = PaymentService()
