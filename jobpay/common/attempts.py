"""Reusable status-update helpers for attempt tables.

These utilities are model-agnostic so payments and payouts reuse the same
guarded transition and terminal-update logic against their own tables. Each
model is expected to expose `status`, `is_successful` and `updated_at`
columns.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, update
from sqlalchemy.dialects.postgresql import JSONB

from jobpay.common.state_machine import SENT, validate_transition


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests and local runs).
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


def transition_status(db, model, key_column: str, key: str, current: str, new: str, **values) -> None:
    """Apply one validated transition guarded by the expected current status."""

    validate_transition(current, new)
    table = model.__table__
    result = db.execute(
        update(table)
        .where(table.c[key_column] == key, table.c.status == current)
        .values(status=new, updated_at=datetime.now(timezone.utc), **values)
    )
    if result.rowcount != 1:
        raise RuntimeError(f"concurrent status change for {table.name} {key} (expected {current})")


def apply_terminal_update(db, model, correlation_column: str, correlation_id: str, new: str, **values) -> bool:
    """Move a pending attempt to a terminal status at most once.

    The update only matches rows still in `SENT` with an unknown outcome, so a
    redelivered callback matches nothing. Returns whether a row was updated.
    """

    validate_transition(SENT, new)
    table = model.__table__
    result = db.execute(
        update(table)
        .where(
            table.c[correlation_column] == correlation_id,
            table.c.status == SENT,
            table.c.is_successful.is_(None),
        )
        .values(status=new, updated_at=datetime.now(timezone.utc), **values)
    )
    return result.rowcount == 1
