"""Fetch and print a payment or payout attempt."""

import argparse
import json

import httpx


def main() -> None:
    parser = argparse.ArgumentParser(description="Show one payment or payout attempt.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--payout", action="store_true", help="Look up a payout instead of a payment")
    parser.add_argument("attempt_id")
    args = parser.parse_args()

    collection = "payouts" if args.payout else "payments"
    resp = httpx.get(f"{args.base_url}/{collection}/{args.attempt_id}", timeout=10.0)
    resp.raise_for_status()
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
