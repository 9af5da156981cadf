from typing import Optional

from .base import BaseResponseSchema


class PaymentProofResponse(BaseResponseSchema):
    """Metadata of an uploaded payment proof. The image is served separately."""
    user_id: Optional[int] = None
    amount: int
    note: Optional[str] = None
    filename: str
    mime_type: str
