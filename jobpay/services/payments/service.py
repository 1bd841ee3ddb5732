"""STK Push payment flow for jobs.

An attempt row is written before the gateway is called, updated with the
synchronous response, and moved to a terminal status by the asynchronous
callback exactly once. Callbacks that race ahead of the identifiers being
stored are buffered and replayed by the initiator.
"""

from pydantic import ValidationError

from jobpay.common.config import Settings
from jobpay.common.errors import (
    AlreadyPaid,
    AuthError,
    ConfigInvalid,
    InvalidCallback,
    NotFound,
    ProviderError,
    TransportError,
)
from jobpay.common.logging import attempt_id_ctx, correlation_id_ctx, logger
from jobpay.common.metrics import (
    callbacks_total,
    duplicate_callbacks_skipped_total,
    payment_failure_total,
    payment_requests_total,
    payment_sent_total,
)
from jobpay.common.mpesa import MpesaGateway
from jobpay.common.state_machine import CONFIG_INVALID, FAILED, REJECTED, SEND_FAILED, SENT, SUCCEEDED
from jobpay.services.callbacks.repository import UnmatchedCallbackRepository
from jobpay.services.callbacks.schemas import APPLIED, DUPLICATE, StkCallbackEnvelope
from jobpay.services.jobs.models import Job
from jobpay.services.payments.models import PaymentAttempt
from jobpay.services.payments.repository import PaymentRepository


STK_CALLBACK_KIND = "stk"


class PaymentService:
    """Charges clients for jobs through STK Push and reconciles callbacks."""

    def __init__(
        self,
        settings: Settings,
        repository: PaymentRepository,
        gateway: MpesaGateway,
        unmatched: UnmatchedCallbackRepository,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self.gateway = gateway
        self.unmatched = unmatched
        self.service_name = settings.service_name

    def has_been_paid_for(self, job: Job) -> bool:
        return self.repository.has_successful_payment(job.job_id)

    def amount_for(self, job: Job) -> int:
        if self.settings.mpesa_fixed_amount:
            return self.settings.mpesa_fixed_amount
        return job.budget

    def _fail(self, attempt: PaymentAttempt, status: str, exc, **values) -> None:
        self.repository.transition(attempt, status, error_message=exc.message, **values)
        payment_failure_total.labels(service=self.service_name, kind="stk", reason=exc.code).inc()
        logger.warning("stk push failed job_id=%s status=%s reason=%s", attempt.job_id, status, exc.message)

    def initiate_payment(self, phone: str, job: Job) -> PaymentAttempt:
        """Send an STK Push for `job` and return the pending attempt.

        Raises `AlreadyPaid` without recording anything; every other failure
        is recorded on the attempt before being raised.
        """

        if self.has_been_paid_for(job):
            raise AlreadyPaid()

        payment_requests_total.labels(service=self.service_name, kind="stk").inc()
        attempt = self.repository.save(
            PaymentAttempt(job_id=job.job_id, phone=phone, amount=self.amount_for(job))
        )
        token = attempt_id_ctx.set(attempt.attempt_id)
        try:
            return self._send(attempt)
        finally:
            attempt_id_ctx.reset(token)

    def _send(self, attempt: PaymentAttempt) -> PaymentAttempt:
        if not self.settings.stk_config_complete:
            exc = ConfigInvalid()
            self._fail(attempt, CONFIG_INVALID, exc)
            raise exc

        try:
            response = self.gateway.stk_push(attempt.phone, attempt.amount)
        except (AuthError, TransportError) as exc:
            self._fail(attempt, SEND_FAILED, exc)
            raise
        except ProviderError as exc:
            self._fail(attempt, REJECTED, exc)
            raise

        response_code = response.get("ResponseCode")
        merchant_request_id = response.get("MerchantRequestID")
        identifiers = {
            "response_code": None if response_code is None else str(response_code),
            "merchant_request_id": merchant_request_id,
            "checkout_request_id": response.get("CheckoutRequestID"),
        }
        if identifiers["response_code"] != "0":
            exc = ProviderError(
                response.get("ResponseDescription")
                or f"Payment request not accepted (ResponseCode={response_code})."
            )
            self._fail(attempt, REJECTED, exc, **identifiers)
            raise exc

        attempt = self.repository.transition(attempt, SENT, **identifiers)
        payment_sent_total.labels(service=self.service_name, kind="stk").inc()
        logger.info(
            "stk push sent job_id=%s merchant_request_id=%s checkout_request_id=%s",
            attempt.job_id,
            attempt.merchant_request_id,
            attempt.checkout_request_id,
        )
        if merchant_request_id:
            self._replay_buffered(merchant_request_id)
            attempt = self.repository.get(attempt.attempt_id)
        return attempt

    def _replay_buffered(self, merchant_request_id: str) -> list[str]:
        outcomes = []
        for row in self.unmatched.claim([STK_CALLBACK_KIND], merchant_request_id):
            logger.info("replaying buffered stk callback merchant_request_id=%s", merchant_request_id)
            outcomes.append(self.handle_callback(row.payload, buffer_unmatched=False))
            self.unmatched.discard(row.callback_id)
        return outcomes

    def handle_callback(self, payload: dict, buffer_unmatched: bool = True) -> str:
        """Apply an STK callback; returns `APPLIED` or `DUPLICATE`.

        Raises `NotFound` (after buffering the payload) when no attempt carries
        the callback's `MerchantRequestID`.
        """

        try:
            callback = StkCallbackEnvelope.model_validate(payload).body.stk_callback
        except ValidationError as exc:
            callbacks_total.labels(service=self.service_name, kind="stk", outcome="invalid").inc()
            raise InvalidCallback(f"Malformed STK callback: {exc.error_count()} error(s)") from exc

        token = correlation_id_ctx.set(callback.merchant_request_id)
        try:
            attempt = self.repository.find_by_correlation_id(callback.merchant_request_id)
            if attempt is None:
                if buffer_unmatched:
                    self.unmatched.buffer(STK_CALLBACK_KIND, callback.merchant_request_id, payload)
                    # The initiator may have stored the ids and replayed between
                    # the lookup and the buffer write.
                    if self.repository.find_by_correlation_id(callback.merchant_request_id) is not None:
                        outcomes = self._replay_buffered(callback.merchant_request_id)
                        return APPLIED if APPLIED in outcomes else DUPLICATE
                callbacks_total.labels(service=self.service_name, kind="stk", outcome="not_found").inc()
                message = f"Job payment not found for MerchantRequestID: {callback.merchant_request_id}"
                logger.error("job payment callback: %s", message)
                raise NotFound(message)

            applied = self.repository.apply_callback(
                callback.merchant_request_id,
                SUCCEEDED if callback.result_code == 0 else FAILED,
                result_code=callback.result_code,
                result_description=callback.result_desc,
                receipt_number=callback.metadata_value("MpesaReceiptNumber"),
                payload=payload,
            )
            if not applied:
                duplicate_callbacks_skipped_total.labels(service=self.service_name, kind="stk").inc()
                callbacks_total.labels(service=self.service_name, kind="stk", outcome="duplicate").inc()
                logger.info("duplicate stk callback skipped attempt_id=%s status=%s", attempt.attempt_id, attempt.status)
                return DUPLICATE

            callbacks_total.labels(service=self.service_name, kind="stk", outcome="applied").inc()
            logger.info(
                "stk callback applied attempt_id=%s result_code=%s result_desc=%s",
                attempt.attempt_id,
                callback.result_code,
                callback.result_desc,
            )
            return APPLIED
        finally:
            correlation_id_ctx.reset(token)
