from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from fitmate.core.pbac import require_permission
from fitmate.db.session import SessionDep
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.payment import PaymentProofResponse
from fitmate.services.payment_service import payment_service
from fitmate.utils.storage import ProofStore, get_proof_store
from fitmate.utils.validation import parse_id

router = APIRouter()


@router.post("", response_model=PaymentProofResponse, status_code=status.HTTP_201_CREATED)
async def upload_payment_proof(
    db: SessionDep,
    store: Annotated[ProofStore, Depends(get_proof_store)],
    payment_image: Annotated[Optional[UploadFile], File(alias="paymentImage")] = None,
    amount: Annotated[Optional[str], Form()] = None,
    user_id: Annotated[Optional[str], Form(alias="userId")] = None,
    note: Annotated[Optional[str], Form()] = None,
) -> PaymentProofResponse:
    """
    Upload a transfer slip as multipart form data. The image goes in
    ``paymentImage``; ``userId`` is optional for payments made at the desk.
    """
    return await payment_service.upload_proof(
        db, store=store, file=payment_image, amount=amount, user_id=user_id, note=note
    )


@router.get("", response_model=list[PaymentProofResponse])
async def read_payment_proofs(
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("read", "payment_proofs"))],
    user_id: Annotated[Optional[str], Query(alias="userId")] = None,
) -> list[PaymentProofResponse]:
    """Payment proofs, newest first, optionally for one user."""
    filter_id = parse_id(user_id, "userId") if user_id is not None else None
    return await payment_service.list_proofs(db, user_id=filter_id)


@router.get("/all", response_model=list[PaymentProofResponse])
async def read_all_payment_proofs(
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("read", "payment_proofs"))],
) -> list[PaymentProofResponse]:
    return await payment_service.list_proofs(db)


@router.get("/{payment_id}/image")
async def read_payment_proof_image(
    payment_id: str,
    db: SessionDep,
    store: Annotated[ProofStore, Depends(get_proof_store)],
    current_user: Annotated[TokenUser, Depends(require_permission("read", "payment_proofs"))],
) -> Response:
    content, mime_type = await payment_service.get_image(db, store=store, proof_id=parse_id(payment_id, "paymentId"))
    return Response(content=content, media_type=mime_type)
