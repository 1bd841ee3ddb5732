"""HTTP surface exercised through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from conftest import b2c_result, stk_callback
from jobpay.common.mpesa import STK_PUSH_PATH
from jobpay.services.api.main import create_app


@pytest.fixture
def client(settings, session_factory, http_client):
    app = create_app(settings, session_factory=session_factory, http_client=http_client)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def job_id(client):
    resp = client.post("/jobs", json={"title": "Logo design", "client_id": "client-42", "budget": 2500})
    assert resp.status_code == 200
    return resp.json()["job_id"]


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_create_and_get_job(client, job_id):
    body = client.get(f"/jobs/{job_id}").json()
    assert body["title"] == "Logo design"
    assert body["budget"] == 2500
    assert body["is_paid"] is False


def test_unknown_job(client):
    assert client.get("/jobs/nope").status_code == 404
    assert client.post("/jobs/nope/payments", json={"phone": "0712345678"}).status_code == 404


def test_payment_flow(client, job_id, daraja):
    """Initiate, receive the callback, and see the job marked paid."""

    resp = client.post(f"/jobs/{job_id}/payments", json={"phone": "0712 345 678"})
    assert resp.status_code == 200
    attempt = resp.json()
    assert attempt["status"] == "SENT"
    assert attempt["is_successful"] is None
    assert attempt["merchant_request_id"] == "29115-1"
    assert daraja.body(STK_PUSH_PATH)["PhoneNumber"] == "254712345678"

    resp = client.post("/callbacks/job-payment", json=stk_callback("29115-1", 0, "ok"))
    assert resp.status_code == 200
    assert resp.json() == {"ResultCode": 0, "ResultDesc": "Accepted", "outcome": "APPLIED"}

    resp = client.post("/callbacks/job-payment", json=stk_callback("29115-1", 0, "ok"))
    assert resp.json()["outcome"] == "DUPLICATE"

    payment = client.get(f"/payments/{attempt['attempt_id']}").json()
    assert payment["is_successful"] is True
    assert payment["result_code"] == 0
    assert client.get(f"/jobs/{job_id}").json()["is_paid"] is True

    resp = client.post(f"/jobs/{job_id}/payments", json={"phone": "0712345678"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "ALREADY_PAID"
    assert len(client.get(f"/jobs/{job_id}/payments").json()) == 1


def test_invalid_phone_rejected(client, job_id, daraja):
    resp = client.post(f"/jobs/{job_id}/payments", json={"phone": "12345"})
    assert resp.status_code == 422
    assert daraja.requests == []


def test_provider_error_maps_to_bad_gateway(client, job_id, daraja):
    daraja.answer(STK_PUSH_PATH, (400, {"errorCode": "400.002.02", "errorMessage": "Bad Request - Invalid Amount"}))

    resp = client.post(f"/jobs/{job_id}/payments", json={"phone": "0712345678"})

    assert resp.status_code == 502
    assert resp.json()["error"] == "PROVIDER_ERROR"
    attempts = client.get(f"/jobs/{job_id}/payments").json()
    assert [a["status"] for a in attempts] == ["REJECTED"]


def test_config_invalid_maps_to_service_unavailable(settings, session_factory, http_client, job_id):
    app = create_app(
        settings.model_copy(update={"mpesa_consumer_key": None}),
        session_factory=session_factory,
        http_client=http_client,
    )
    with TestClient(app) as client:
        resp = client.post(f"/jobs/{job_id}/payments", json={"phone": "0712345678"})
        assert resp.status_code == 503
        assert resp.json()["error"] == "CONFIG_INVALID"
        assert client.get(f"/jobs/{job_id}/payments").json()[0]["status"] == "CONFIG_INVALID"


def test_unknown_callback_is_404(client):
    resp = client.post("/callbacks/job-payment", json=stk_callback("nobody", 0))
    assert resp.status_code == 404
    assert resp.json()["error"] == "NOT_FOUND"


def test_malformed_callback_is_400(client):
    resp = client.post("/callbacks/job-payment", json={"Body": {"stkCallback": {}}})
    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_CALLBACK"


def test_payout_flow(client, job_id):
    resp = client.post(
        "/payouts",
        json={"phone": "+254712345678", "amount": 2000, "remarks": "Payment for logo design", "job_id": job_id},
    )
    assert resp.status_code == 200
    payout = resp.json()
    assert payout["status"] == "SENT"
    assert payout["phone"] == "254712345678"

    resp = client.post("/callbacks/dispatch-payment-result", json=b2c_result(payout["conversation_id"], 0))
    assert resp.json()["outcome"] == "APPLIED"

    stored = client.get(f"/payouts/{payout['payout_id']}").json()
    assert stored["status"] == "SUCCEEDED"
    assert stored["transaction_id"] == "NLJ41HAY6Q"


def test_payout_queue_timeout(client):
    payout = client.post(
        "/payouts", json={"phone": "0712345678", "amount": 100, "remarks": "Refund", "is_refund": True}
    ).json()

    resp = client.post("/callbacks/dispatch-queue-timeout", json=b2c_result(payout["conversation_id"], 1))
    assert resp.status_code == 200

    stored = client.get(f"/payouts/{payout['payout_id']}").json()
    assert stored["status"] == "TIMED_OUT"
    assert stored["is_successful"] is False


def test_unknown_payout(client):
    assert client.get("/payouts/nope").status_code == 404


def test_metrics_exposed(client, job_id):
    client.post(f"/jobs/{job_id}/payments", json={"phone": "0712345678"})
    text = client.get("/metrics").text
    assert "payment_requests_total" in text
    assert "http_requests_total" in text
