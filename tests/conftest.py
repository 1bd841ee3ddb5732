"""Shared fixtures: in-memory database and a fake Daraja gateway."""

import json

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from jobpay.common.config import Settings
from jobpay.common.db import Base, build_session_factory
from jobpay.common.mpesa import B2C_PAYMENT_PATH, STK_PUSH_PATH, MpesaGateway, TokenProvider
from jobpay.services.callbacks.models import UnmatchedCallback  # noqa: F401
from jobpay.services.callbacks.repository import UnmatchedCallbackRepository
from jobpay.services.jobs.repository import JobRepository
from jobpay.services.payments.repository import PaymentRepository
from jobpay.services.payments.service import PaymentService
from jobpay.services.payouts.repository import PayoutRepository
from jobpay.services.payouts.service import PayoutService


TOKEN_PATH = "/oauth/v1/generate"


class FakeDaraja:
    """httpx MockTransport handler answering like the Daraja sandbox.

    Each path holds a queue of answers: a `(status, body)` tuple, raw bytes,
    or an exception instance to raise. The last answer repeats.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.answers = {
            TOKEN_PATH: [(200, {"access_token": "sandbox-token", "expires_in": "3599"})],
            STK_PUSH_PATH: [
                (
                    200,
                    {
                        "MerchantRequestID": "29115-1",
                        "CheckoutRequestID": "ws_1",
                        "ResponseCode": "0",
                        "ResponseDescription": "Success. Request accepted for processing",
                        "CustomerMessage": "Success. Request accepted for processing",
                    },
                )
            ],
            B2C_PAYMENT_PATH: [
                (
                    200,
                    {
                        "ConversationID": "AG_20220519_201043fae2022600fa58",
                        "OriginatorConversationID": "45735-9773440-1",
                        "ResponseCode": "0",
                        "ResponseDescription": "Accept the service request successfully.",
                    },
                )
            ],
        }

    def answer(self, path: str, *answers) -> None:
        self.answers[path] = list(answers)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.answers[request.url.path]
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, bytes):
            return httpx.Response(200, content=answer)
        status, body = answer
        return httpx.Response(status, json=body)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def body(self, path: str, index: int = -1) -> dict:
        return json.loads(self.calls(path)[index].content)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        public_base_url="https://jobs.example.com/",
        mpesa_env="sandbox",
        mpesa_business_short_code="174379",
        mpesa_consumer_key="key",
        mpesa_consumer_secret="secret",
        mpesa_passkey="passkey",
        mpesa_security_credential="credential",
        mpesa_initiator_name="testapi",
        redis_url=None,
        mpesa_fixed_amount=None,
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def daraja():
    return FakeDaraja()


@pytest.fixture
def http_client(daraja):
    with httpx.Client(transport=httpx.MockTransport(daraja)) as client:
        yield client


@pytest.fixture
def gateway(settings, http_client):
    return MpesaGateway(settings, http_client, TokenProvider(settings, http_client))


@pytest.fixture
def jobs(session_factory):
    return JobRepository(session_factory)


@pytest.fixture
def job(jobs):
    return jobs.create(title="Logo design", client_id="client-42", budget=2500)


@pytest.fixture
def unmatched(session_factory):
    return UnmatchedCallbackRepository(session_factory)


@pytest.fixture
def payment_service(settings, session_factory, gateway, unmatched):
    return PaymentService(settings, PaymentRepository(session_factory), gateway, unmatched)


@pytest.fixture
def payout_service(settings, session_factory, gateway, unmatched):
    return PayoutService(settings, PayoutRepository(session_factory), gateway, unmatched)


def stk_callback(merchant_request_id: str = "29115-1", result_code=0, result_desc: str = "ok", receipt=None) -> dict:
    callback = {
        "MerchantRequestID": merchant_request_id,
        "CheckoutRequestID": "ws_1",
        "ResultCode": result_code,
        "ResultDesc": result_desc,
    }
    if receipt:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": 1.0},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "Balance"},
                {"Name": "TransactionDate", "Value": 20191219102115},
                {"Name": "PhoneNumber", "Value": 254708374149},
            ]
        }
    return {"Body": {"stkCallback": callback}}


def b2c_result(conversation_id: str = "AG_20220519_201043fae2022600fa58", result_code=0, parameters=None) -> dict:
    result = {
        "ResultType": 0,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully.",
        "OriginatorConversationID": "45735-9773440-1",
        "ConversationID": conversation_id,
        "TransactionID": "NLJ41HAY6Q",
    }
    if parameters is not None:
        result["ResultParameters"] = {"ResultParameter": parameters}
    return {"Result": result}
