"""Inbound gateway callbacks.

The gateway does not redeliver on application-level failures, so these
endpoints acknowledge anything they could apply (or had already applied)
and answer 404 for unknown correlation ids, which are buffered for replay.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from jobpay.common.logging import logger
from jobpay.common.mpesa import B2C_QUEUE_TIMEOUT_PATH, B2C_RESULT_PATH, STK_CALLBACK_PATH
from jobpay.services.api.dependencies import get_payment_service, get_payout_service
from jobpay.services.callbacks.schemas import ACCEPTED
from jobpay.services.payments.service import PaymentService
from jobpay.services.payouts.service import PayoutService


router = APIRouter(tags=["callbacks"])


@router.post(STK_CALLBACK_PATH)
def job_payment_callback(
    payload: dict[str, Any] = Body(...),
    service: PaymentService = Depends(get_payment_service),
):
    """STK Push result for a job payment."""

    logger.info("stk callback received")
    outcome = service.handle_callback(payload)
    return {**ACCEPTED, "outcome": outcome}


@router.post(B2C_RESULT_PATH)
def dispatch_payment_result(
    payload: dict[str, Any] = Body(...),
    service: PayoutService = Depends(get_payout_service),
):
    logger.info("b2c result callback received")
    outcome = service.handle_result_callback(payload)
    return {**ACCEPTED, "outcome": outcome}


@router.post(B2C_QUEUE_TIMEOUT_PATH)
def dispatch_queue_timeout(
    payload: dict[str, Any] = Body(...),
    service: PayoutService = Depends(get_payout_service),
):
    logger.info("b2c queue timeout callback received")
    outcome = service.handle_queue_timeout(payload)
    return {**ACCEPTED, "outcome": outcome}
