"""API request/response schemas for STK Push payments."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from jobpay.common.schemas import Msisdn


class PaymentInitiateRequest(BaseModel):
    """Body of `POST /jobs/{job_id}/payments`."""

    phone: Msisdn


class PaymentAttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attempt_id: str
    job_id: str
    phone: str
    amount: int
    status: str
    response_code: str | None
    merchant_request_id: str | None
    checkout_request_id: str | None
    is_successful: bool | None
    result_code: int | None
    result_description: str | None
    receipt_number: str | None
    error_message: str | None
    created_at: datetime | None
