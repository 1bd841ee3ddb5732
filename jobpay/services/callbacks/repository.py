"""Early-callback buffer storage."""

from datetime import datetime, timezone

from sqlalchemy import delete, select, update

from jobpay.services.callbacks.models import UnmatchedCallback


class UnmatchedCallbackRepository:
    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def buffer(self, kind: str, correlation_id: str, payload: dict) -> UnmatchedCallback:
        with self.session_factory() as db:
            row = UnmatchedCallback(kind=kind, correlation_id=correlation_id, payload=payload)
            db.add(row)
            db.commit()
            db.refresh(row)
            return row

    def claim(self, kinds: list[str], correlation_id: str) -> list[UnmatchedCallback]:
        """Claim unclaimed buffered callbacks for `correlation_id`, oldest first.

        A row is returned to exactly one caller even when two claim at once.
        """

        claimed = []
        with self.session_factory() as db:
            rows = db.execute(
                select(UnmatchedCallback)
                .where(
                    UnmatchedCallback.correlation_id == correlation_id,
                    UnmatchedCallback.kind.in_(kinds),
                    UnmatchedCallback.claimed_at.is_(None),
                )
                .order_by(UnmatchedCallback.received_at)
            ).scalars().all()
            for row in rows:
                result = db.execute(
                    update(UnmatchedCallback)
                    .where(UnmatchedCallback.callback_id == row.callback_id, UnmatchedCallback.claimed_at.is_(None))
                    .values(claimed_at=datetime.now(timezone.utc))
                )
                if result.rowcount == 1:
                    claimed.append(row)
            db.commit()
        return claimed

    def discard(self, callback_id: str) -> None:
        """Delete a buffered callback once it has been applied."""

        with self.session_factory() as db:
            db.execute(delete(UnmatchedCallback).where(UnmatchedCallback.callback_id == callback_id))
            db.commit()

    def purge(self, received_before: datetime) -> int:
        """Delete callbacks buffered before `received_before`; returns the count."""

        with self.session_factory() as db:
            result = db.execute(delete(UnmatchedCallback).where(UnmatchedCallback.received_at < received_before))
            db.commit()
            return result.rowcount
