"""B2C payouts: paying freelancers and refunding clients.

Mirrors the STK Push flow: the attempt is recorded before the gateway call,
the synchronous answer stores the conversation identifiers, and the result or
queue-timeout callback settles the outcome once.
"""

from pydantic import ValidationError

from jobpay.common.config import Settings
from jobpay.common.errors import (
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
from jobpay.common.state_machine import (
    CONFIG_INVALID,
    FAILED,
    REJECTED,
    SEND_FAILED,
    SENT,
    SUCCEEDED,
    TIMED_OUT,
)
from jobpay.services.callbacks.repository import UnmatchedCallbackRepository
from jobpay.services.callbacks.schemas import APPLIED, DUPLICATE, B2CResultEnvelope
from jobpay.services.payouts.models import PayoutAttempt
from jobpay.services.payouts.repository import PayoutRepository


RESULT_KIND = "b2c_result"
TIMEOUT_KIND = "b2c_timeout"


class PayoutService:
    """Dispatches B2C payouts and reconciles their result callbacks."""

    def __init__(
        self,
        settings: Settings,
        repository: PayoutRepository,
        gateway: MpesaGateway,
        unmatched: UnmatchedCallbackRepository,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self.gateway = gateway
        self.unmatched = unmatched
        self.service_name = settings.service_name

    def _fail(self, payout: PayoutAttempt, status: str, exc, **values) -> None:
        self.repository.transition(payout, status, error_message=exc.message, **values)
        payment_failure_total.labels(service=self.service_name, kind="b2c", reason=exc.code).inc()
        logger.warning("b2c payout failed payout_id=%s status=%s reason=%s", payout.payout_id, status, exc.message)

    def dispatch_payment(
        self,
        is_refund: bool,
        phone: str,
        remarks: str,
        amount: int,
        job_id: str | None = None,
    ) -> PayoutAttempt:
        """Send a payout (or refund when `is_refund`) and return the pending attempt."""

        payment_requests_total.labels(service=self.service_name, kind="b2c").inc()
        payout = self.repository.save(
            PayoutAttempt(job_id=job_id, phone=phone, amount=amount, is_refund=is_refund, remarks=remarks)
        )
        token = attempt_id_ctx.set(payout.payout_id)
        try:
            return self._send(payout)
        finally:
            attempt_id_ctx.reset(token)

    def _send(self, payout: PayoutAttempt) -> PayoutAttempt:
        if not self.settings.b2c_config_complete:
            exc = ConfigInvalid()
            self._fail(payout, CONFIG_INVALID, exc)
            raise exc

        occasion = "Refund" if payout.is_refund else "Freelancer payment"
        try:
            response = self.gateway.b2c_payment(payout.phone, payout.amount, payout.remarks, occasion)
        except (AuthError, TransportError) as exc:
            self._fail(payout, SEND_FAILED, exc)
            raise
        except ProviderError as exc:
            self._fail(payout, REJECTED, exc)
            raise

        logger.info("b2c payment response payout_id=%s response=%s", payout.payout_id, response)
        response_code = response.get("ResponseCode")
        conversation_id = response.get("ConversationID")
        identifiers = {
            "response_code": None if response_code is None else str(response_code),
            "conversation_id": conversation_id,
            "originator_conversation_id": response.get("OriginatorConversationID"),
        }
        if identifiers["response_code"] != "0":
            exc = ProviderError(
                response.get("ResponseDescription") or f"Payout not accepted (ResponseCode={response_code})."
            )
            self._fail(payout, REJECTED, exc, **identifiers)
            raise exc

        payout = self.repository.transition(payout, SENT, **identifiers)
        payment_sent_total.labels(service=self.service_name, kind="b2c").inc()
        if conversation_id:
            self._replay_buffered(conversation_id)
            payout = self.repository.get(payout.payout_id)
        return payout

    def _replay_buffered(self, conversation_id: str) -> list[str]:
        outcomes = []
        for row in self.unmatched.claim([RESULT_KIND, TIMEOUT_KIND], conversation_id):
            logger.info("replaying buffered %s callback conversation_id=%s", row.kind, conversation_id)
            outcomes.append(self._handle(row.payload, row.kind, buffer_unmatched=False))
            self.unmatched.discard(row.callback_id)
        return outcomes

    def handle_result_callback(self, payload: dict) -> str:
        return self._handle(payload, RESULT_KIND)

    def handle_queue_timeout(self, payload: dict) -> str:
        return self._handle(payload, TIMEOUT_KIND)

    def _handle(self, payload: dict, kind: str, buffer_unmatched: bool = True) -> str:
        try:
            result = B2CResultEnvelope.model_validate(payload).result
        except ValidationError as exc:
            callbacks_total.labels(service=self.service_name, kind=kind, outcome="invalid").inc()
            raise InvalidCallback(f"Malformed B2C callback: {exc.error_count()} error(s)") from exc

        token = correlation_id_ctx.set(result.conversation_id)
        try:
            payout = self.repository.find_by_correlation_id(result.conversation_id)
            if payout is None:
                if buffer_unmatched:
                    self.unmatched.buffer(kind, result.conversation_id, payload)
                    # The dispatcher may have stored the ids and replayed between
                    # the lookup and the buffer write.
                    if self.repository.find_by_correlation_id(result.conversation_id) is not None:
                        outcomes = self._replay_buffered(result.conversation_id)
                        return APPLIED if APPLIED in outcomes else DUPLICATE
                callbacks_total.labels(service=self.service_name, kind=kind, outcome="not_found").inc()
                message = f"Payout not found for ConversationID: {result.conversation_id}"
                logger.error("payout callback: %s", message)
                raise NotFound(message)

            if kind == TIMEOUT_KIND:
                new_status, is_successful = TIMED_OUT, False
            else:
                is_successful = result.result_code == 0
                new_status = SUCCEEDED if is_successful else FAILED
            applied = self.repository.apply_callback(
                result.conversation_id,
                new_status,
                is_successful=is_successful,
                result_code=result.result_code,
                result_description=result.result_desc,
                transaction_id=result.transaction_id,
                payload=payload,
            )
            if not applied:
                duplicate_callbacks_skipped_total.labels(service=self.service_name, kind=kind).inc()
                callbacks_total.labels(service=self.service_name, kind=kind, outcome="duplicate").inc()
                logger.info("duplicate %s callback skipped payout_id=%s", kind, payout.payout_id)
                return DUPLICATE

            callbacks_total.labels(service=self.service_name, kind=kind, outcome="applied").inc()
            logger.info(
                "%s callback applied payout_id=%s status=%s result_desc=%s",
                kind,
                payout.payout_id,
                new_status,
                result.result_desc,
            )
            return APPLIED
        finally:
            correlation_id_ctx.reset(token)
