"""STK Push payment attempt model.

One row per initiation, written before the gateway is called and updated with
the synchronous response, then once more by the asynchronous callback.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from jobpay.common.attempts import JsonColumn
from jobpay.common.db import Base
from jobpay.common.state_machine import UNSENT


class PaymentAttempt(Base):
    """One customer-to-business payment attempt for a job."""

    __tablename__ = "payment_attempts"

    attempt_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.job_id"), index=True)
    phone: Mapped[str] = mapped_column(String)
    amount: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String, default=UNSENT, index=True)
    response_code: Mapped[str | None] = mapped_column(String, nullable=True)
    # Correlation key for callbacks; NULLs do not collide.
    merchant_request_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True, index=True)
    checkout_request_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_successful: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    result_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_description: Mapped[str | None] = mapped_column(String, nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String, nullable=True)
    callback_payload: Mapped[dict | None] = mapped_column(JsonColumn, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
