"""B2C payouts and their result / queue-timeout callbacks."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import TOKEN_PATH, b2c_result
from jobpay.common.errors import AuthError, ConfigInvalid, InvalidCallback, NotFound, ProviderError, TransportError
from jobpay.common.mpesa import B2C_PAYMENT_PATH
from jobpay.services.callbacks.schemas import APPLIED, DUPLICATE, B2CResultEnvelope
from jobpay.services.payouts.repository import PayoutRepository
from jobpay.services.payouts.service import PayoutService

CONVERSATION_ID = "AG_20220519_201043fae2022600fa58"


def test_dispatch_payment_records_pending_payout(payout_service, job, daraja):
    payout = payout_service.dispatch_payment(False, "254712345678", "Payment for logo design", 2000, job.job_id)

    assert payout.status == "SENT"
    assert payout.is_successful is None
    assert payout.conversation_id == CONVERSATION_ID
    assert payout.originator_conversation_id == "45735-9773440-1"
    assert payout.response_code == "0"
    assert payout.job_id == job.job_id
    assert payout.is_refund is False
    sent = daraja.body(B2C_PAYMENT_PATH)
    assert sent["CommandID"] == "BusinessPayment"
    assert sent["Amount"] == 2000
    assert sent["Remarks"] == "Payment for logo design"
    assert sent["Occasion"] == "Freelancer payment"


def test_refund_is_flagged(payout_service, daraja):
    payout = payout_service.dispatch_payment(True, "254712345678", "Job cancelled", 2500)

    assert payout.is_refund is True
    assert payout.job_id is None
    assert daraja.body(B2C_PAYMENT_PATH)["Occasion"] == "Refund"


def test_missing_security_credential(settings, session_factory, gateway, unmatched, job, daraja):
    service = PayoutService(
        settings.model_copy(update={"mpesa_security_credential": None}),
        PayoutRepository(session_factory),
        gateway,
        unmatched,
    )

    with pytest.raises(ConfigInvalid):
        service.dispatch_payment(False, "254712345678", "Payment", 100, job.job_id)

    assert daraja.requests == []
    [payout] = service.repository.list_for_job(job.job_id)
    assert payout.status == "CONFIG_INVALID"
    assert payout.conversation_id is None
    assert payout.is_successful is None


def test_transport_failure_leaves_send_failed_payout(payout_service, job, daraja):
    daraja.answer(B2C_PAYMENT_PATH, httpx.ConnectError("connection refused"))

    with pytest.raises(TransportError):
        payout_service.dispatch_payment(False, "254712345678", "Payment", 100, job.job_id)

    [payout] = payout_service.repository.list_for_job(job.job_id)
    assert payout.status == "SEND_FAILED"
    assert payout.conversation_id is None
    assert len(daraja.calls(B2C_PAYMENT_PATH)) == 2


def test_auth_failure_leaves_send_failed_payout(payout_service, job, daraja):
    daraja.answer(TOKEN_PATH, (400, {"errorCode": "400.008.01", "errorMessage": "Invalid Authentication passed"}))

    with pytest.raises(AuthError):
        payout_service.dispatch_payment(False, "254712345678", "Payment", 100, job.job_id)

    [payout] = payout_service.repository.list_for_job(job.job_id)
    assert payout.status == "SEND_FAILED"
    assert daraja.calls(B2C_PAYMENT_PATH) == []


def test_error_message_answer_rejects_payout(payout_service, job, daraja):
    daraja.answer(
        B2C_PAYMENT_PATH,
        (400, {"requestId": "r-2", "errorCode": "400.002.02", "errorMessage": "Bad Request - Invalid PartyB"}),
    )

    with pytest.raises(ProviderError) as excinfo:
        payout_service.dispatch_payment(False, "254712345678", "Payment", 100, job.job_id)

    assert "Invalid PartyB" in excinfo.value.message
    [payout] = payout_service.repository.list_for_job(job.job_id)
    assert payout.status == "REJECTED"
    assert payout.response_code is None
    assert "Invalid PartyB" in payout.error_message


def test_rejected_payout(payout_service, daraja):
    daraja.answer(
        B2C_PAYMENT_PATH,
        (200, {"ConversationID": "AG_x", "OriginatorConversationID": "o-x", "ResponseCode": "2001",
               "ResponseDescription": "The initiator information is invalid."}),
    )

    with pytest.raises(ProviderError) as excinfo:
        payout_service.dispatch_payment(False, "254712345678", "Payment", 100)

    assert "initiator information" in excinfo.value.message
    payout = payout_service.repository.find_by_correlation_id("AG_x")
    assert payout.status == "REJECTED"
    assert payout.response_code == "2001"


def test_result_callback_success(payout_service):
    payout = payout_service.dispatch_payment(False, "254712345678", "Payment", 100)

    assert payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 0)) == APPLIED

    stored = payout_service.repository.get(payout.payout_id)
    assert stored.status == "SUCCEEDED"
    assert stored.is_successful is True
    assert stored.transaction_id == "NLJ41HAY6Q"
    assert stored.result_code == 0


def test_result_callback_failure(payout_service):
    payout = payout_service.dispatch_payment(False, "254712345678", "Payment", 100)

    payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 2001))

    stored = payout_service.repository.get(payout.payout_id)
    assert stored.status == "FAILED"
    assert stored.is_successful is False


def test_queue_timeout_is_terminal(payout_service):
    payout = payout_service.dispatch_payment(False, "254712345678", "Payment", 100)

    assert payout_service.handle_queue_timeout(b2c_result(CONVERSATION_ID, 1)) == APPLIED
    assert payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 0)) == DUPLICATE

    stored = payout_service.repository.get(payout.payout_id)
    assert stored.status == "TIMED_OUT"
    assert stored.is_successful is False


def test_redelivered_result_is_duplicate(payout_service):
    payout_service.dispatch_payment(False, "254712345678", "Payment", 100)

    assert payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 0)) == APPLIED
    assert payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 0)) == DUPLICATE


def test_unknown_conversation_is_not_found(payout_service):
    with pytest.raises(NotFound):
        payout_service.handle_result_callback(b2c_result("AG_unknown", 0))


def test_early_result_replayed_after_dispatch(payout_service):
    with pytest.raises(NotFound):
        payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 0))

    payout = payout_service.dispatch_payment(False, "254712345678", "Payment", 100)

    assert payout.status == "SUCCEEDED"


def test_malformed_result(payout_service):
    with pytest.raises(InvalidCallback):
        payout_service.handle_result_callback({"Result": {"ResultCode": 0}})


def test_result_parameters_accept_single_object():
    envelope = B2CResultEnvelope.model_validate(
        b2c_result(CONVERSATION_ID, 0, parameters={"Key": "TransactionAmount", "Value": 100})
    )
    assert envelope.result.parameter("TransactionAmount") == 100

    envelope = B2CResultEnvelope.model_validate(
        b2c_result(
            CONVERSATION_ID,
            0,
            parameters=[
                {"Key": "TransactionReceipt", "Value": "NLJ41HAY6Q"},
                {"Key": "ReceiverPartyPublicName", "Value": "254708374149 - John Doe"},
            ],
        )
    )
    assert envelope.result.parameter("TransactionReceipt") == "NLJ41HAY6Q"
    assert envelope.result.parameter("Missing") is None


def test_result_racing_the_dispatcher_is_applied(payout_service, unmatched, monkeypatch):
    """The dispatcher stores ids and replays between lookup and buffer write."""

    real_buffer = unmatched.buffer
    dispatched = []

    def buffer_after_dispatch(kind, correlation_id, payload):
        dispatched.append(payout_service.dispatch_payment(False, "254712345678", "Payment", 100))
        return real_buffer(kind, correlation_id, payload)

    monkeypatch.setattr(unmatched, "buffer", buffer_after_dispatch)

    assert payout_service.handle_result_callback(b2c_result(CONVERSATION_ID, 0)) == APPLIED

    assert dispatched[0].status == "SENT"
    stored = payout_service.repository.get(dispatched[0].payout_id)
    assert stored.status == "SUCCEEDED"
    assert stored.is_successful is True
    assert unmatched.purge(datetime.now(timezone.utc) + timedelta(days=1)) == 0


def test_replayed_result_is_removed_from_buffer(payout_service, unmatched):
    with pytest.raises(NotFound):
        payout_service.handle_queue_timeout(b2c_result(CONVERSATION_ID, 1))

    assert payout_service.dispatch_payment(False, "254712345678", "Payment", 100).status == "TIMED_OUT"
    assert unmatched.purge(datetime.now(timezone.utc) + timedelta(days=1)) == 0
