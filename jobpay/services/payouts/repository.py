"""Storage for B2C payout attempts."""

from sqlalchemy import select

from jobpay.common.attempts import apply_terminal_update, transition_status
from jobpay.services.payouts.models import PayoutAttempt


class PayoutRepository:
    """Payout attempt store behind a session factory."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def save(self, payout: PayoutAttempt) -> PayoutAttempt:
        with self.session_factory() as db:
            db.add(payout)
            db.commit()
            db.refresh(payout)
            return payout

    def get(self, payout_id: str) -> PayoutAttempt | None:
        with self.session_factory() as db:
            return db.get(PayoutAttempt, payout_id)

    def find_by_correlation_id(self, conversation_id: str) -> PayoutAttempt | None:
        with self.session_factory() as db:
            return db.execute(
                select(PayoutAttempt).where(PayoutAttempt.conversation_id == conversation_id)
            ).scalar_one_or_none()

    def list_for_job(self, job_id: str) -> list[PayoutAttempt]:
        with self.session_factory() as db:
            return list(
                db.execute(
                    select(PayoutAttempt).where(PayoutAttempt.job_id == job_id).order_by(PayoutAttempt.created_at)
                ).scalars()
            )

    def transition(self, payout: PayoutAttempt, new_status: str, **values) -> PayoutAttempt:
        with self.session_factory() as db:
            transition_status(db, PayoutAttempt, "payout_id", payout.payout_id, payout.status, new_status, **values)
            db.commit()
            return db.get(PayoutAttempt, payout.payout_id, populate_existing=True)

    def apply_callback(
        self,
        conversation_id: str,
        new_status: str,
        is_successful: bool,
        result_code: int | None,
        result_description: str | None,
        transaction_id: str | None,
        payload: dict,
    ) -> bool:
        """Record a result or timeout; False when the payout was already terminal."""

        with self.session_factory() as db:
            applied = apply_terminal_update(
                db,
                PayoutAttempt,
                "conversation_id",
                conversation_id,
                new_status,
                is_successful=is_successful,
                result_code=result_code,
                result_description=result_description,
                transaction_id=transaction_id,
                callback_payload=payload,
            )
            db.commit()
            return applied
