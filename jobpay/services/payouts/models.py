"""B2C payout attempt model (freelancer payments and client refunds)."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from jobpay.common.attempts import JsonColumn
from jobpay.common.db import Base
from jobpay.common.state_machine import UNSENT


class PayoutAttempt(Base):
    """One business-to-customer payout attempt."""

    __tablename__ = "payout_attempts"

    payout_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    job_id: Mapped[str | None] = mapped_column(ForeignKey("jobs.job_id"), nullable=True, index=True)
    phone: Mapped[str] = mapped_column(String)
    amount: Mapped[int] = mapped_column(Integer)
    is_refund: Mapped[bool] = mapped_column(Boolean, default=False)
    remarks: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, default=UNSENT, index=True)
    response_code: Mapped[str | None] = mapped_column(String, nullable=True)
    conversation_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True, index=True)
    originator_conversation_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_successful: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    result_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_description: Mapped[str | None] = mapped_column(String, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String, nullable=True)
    callback_payload: Mapped[dict | None] = mapped_column(JsonColumn, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
