"""Buffer for callbacks that arrive before their attempt can be matched."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from jobpay.common.attempts import JsonColumn
from jobpay.common.db import Base


class UnmatchedCallback(Base):
    """Raw callback whose correlation id matched no attempt when received."""

    __tablename__ = "unmatched_callbacks"

    callback_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    kind: Mapped[str] = mapped_column(String)
    correlation_id: Mapped[str] = mapped_column(String, index=True)
    payload: Mapped[dict] = mapped_column(JsonColumn)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
