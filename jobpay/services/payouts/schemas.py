"""API request/response schemas for B2C payouts."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from jobpay.common.schemas import Msisdn


class PayoutCreateRequest(BaseModel):
    """Body of `POST /payouts`; `is_refund` sends money back to a client."""

    phone: Msisdn
    amount: int = Field(gt=0)
    # The gateway caps Remarks at 100 characters.
    remarks: str = Field(min_length=2, max_length=100)
    is_refund: bool = False
    job_id: str | None = None


class PayoutAttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payout_id: str
    job_id: str | None
    phone: str
    amount: int
    is_refund: bool
    remarks: str
    status: str
    response_code: str | None
    conversation_id: str | None
    originator_conversation_id: str | None
    is_successful: bool | None
    result_code: int | None
    result_description: str | None
    transaction_id: str | None
    error_message: str | None
    created_at: datetime | None
