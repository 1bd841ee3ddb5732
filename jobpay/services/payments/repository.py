"""Storage for STK Push payment attempts."""

from sqlalchemy import select

from jobpay.common.attempts import apply_terminal_update, transition_status
from jobpay.services.payments.models import PaymentAttempt


class PaymentRepository:
    """Payment attempt store behind a session factory."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def save(self, attempt: PaymentAttempt) -> PaymentAttempt:
        with self.session_factory() as db:
            db.add(attempt)
            db.commit()
            db.refresh(attempt)
            return attempt

    def get(self, attempt_id: str) -> PaymentAttempt | None:
        with self.session_factory() as db:
            return db.get(PaymentAttempt, attempt_id)

    def find_by_correlation_id(self, merchant_request_id: str) -> PaymentAttempt | None:
        with self.session_factory() as db:
            return db.execute(
                select(PaymentAttempt).where(PaymentAttempt.merchant_request_id == merchant_request_id)
            ).scalar_one_or_none()

    def list_for_job(self, job_id: str) -> list[PaymentAttempt]:
        with self.session_factory() as db:
            return list(
                db.execute(
                    select(PaymentAttempt)
                    .where(PaymentAttempt.job_id == job_id)
                    .order_by(PaymentAttempt.created_at)
                ).scalars()
            )

    def has_successful_payment(self, job_id: str) -> bool:
        with self.session_factory() as db:
            return (
                db.execute(
                    select(PaymentAttempt.attempt_id)
                    .where(PaymentAttempt.job_id == job_id, PaymentAttempt.is_successful.is_(True))
                    .limit(1)
                ).first()
                is not None
            )

    def transition(self, attempt: PaymentAttempt, new_status: str, **values) -> PaymentAttempt:
        """Advance `attempt` to `new_status` and return the refreshed row."""

        with self.session_factory() as db:
            transition_status(
                db, PaymentAttempt, "attempt_id", attempt.attempt_id, attempt.status, new_status, **values
            )
            db.commit()
            return db.get(PaymentAttempt, attempt.attempt_id, populate_existing=True)

    def apply_callback(
        self,
        merchant_request_id: str,
        new_status: str,
        result_code: int,
        result_description: str | None,
        receipt_number: str | None,
        payload: dict,
    ) -> bool:
        """Record the callback outcome; False when the attempt was already terminal."""

        with self.session_factory() as db:
            applied = apply_terminal_update(
                db,
                PaymentAttempt,
                "merchant_request_id",
                merchant_request_id,
                new_status,
                is_successful=result_code == 0,
                result_code=result_code,
                result_description=result_description,
                receipt_number=receipt_number,
                callback_payload=payload,
            )
            db.commit()
            return applied
