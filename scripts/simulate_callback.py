"""Post a sandbox-style gateway callback to a running instance.

Useful for exercising callback correlation locally, where the real gateway
cannot reach the callback URLs.
"""

import argparse
import json

import httpx


def stk_callback(merchant_request_id: str, result_code: int, receipt: str | None) -> dict:
    callback = {
        "MerchantRequestID": merchant_request_id,
        "CheckoutRequestID": f"ws_CO_{merchant_request_id}",
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully."
        if result_code == 0
        else "Request cancelled by user",
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": 1.00},
                {"Name": "MpesaReceiptNumber", "Value": receipt or "NLJ7RT61SV"},
                {"Name": "PhoneNumber", "Value": 254708374149},
            ]
        }
    return {"Body": {"stkCallback": callback}}


def b2c_result(conversation_id: str, result_code: int) -> dict:
    return {
        "Result": {
            "ResultType": 0,
            "ResultCode": result_code,
            "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Declined",
            "OriginatorConversationID": f"orig-{conversation_id}",
            "ConversationID": conversation_id,
            "TransactionID": "NLJ41HAY6Q",
        }
    }


def main() -> None:
    """CLI entrypoint."""

    parser = argparse.ArgumentParser(description="Send a fake M-Pesa callback.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--kind", choices=["stk", "b2c-result", "b2c-timeout"], default="stk")
    parser.add_argument("--id", required=True, help="MerchantRequestID (stk) or ConversationID (b2c)")
    parser.add_argument("--result-code", type=int, default=0)
    parser.add_argument("--receipt", default=None)
    args = parser.parse_args()

    if args.kind == "stk":
        path = "/callbacks/job-payment"
        payload = stk_callback(args.id, args.result_code, args.receipt)
    elif args.kind == "b2c-result":
        path = "/callbacks/dispatch-payment-result"
        payload = b2c_result(args.id, args.result_code)
    else:
        path = "/callbacks/dispatch-queue-timeout"
        payload = b2c_result(args.id, args.result_code)

    resp = httpx.post(f"{args.base_url}{path}", json=payload, timeout=10.0)
    print(resp.status_code)
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
