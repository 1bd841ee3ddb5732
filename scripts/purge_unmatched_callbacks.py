"""Delete buffered callbacks that never matched an attempt.

Applied callbacks are removed as they are replayed; this clears the ones whose
correlation id never showed up.
"""

import argparse
from datetime import datetime, timedelta, timezone

from jobpay.common.config import Settings
from jobpay.common.db import build_engine, build_session_factory
from jobpay.services.callbacks.repository import UnmatchedCallbackRepository


def main() -> None:
    parser = argparse.ArgumentParser(description="Purge stale unmatched gateway callbacks.")
    parser.add_argument("--older-than-hours", type=float, default=72.0)
    args = parser.parse_args()

    settings = Settings()
    repository = UnmatchedCallbackRepository(build_session_factory(build_engine(settings)))
    cutoff = datetime.now(timezone.utc) - timedelta(hours=args.older_than_hours)
    deleted = repository.purge(cutoff)
    print(f"deleted {deleted} unmatched callback(s) received before {cutoff.isoformat()}")


if __name__ == "__main__":
    main()
