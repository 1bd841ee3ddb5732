"""B2C payout endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from jobpay.services.api.dependencies import get_payout_service
from jobpay.services.payouts.schemas import PayoutAttemptResponse, PayoutCreateRequest
from jobpay.services.payouts.service import PayoutService


router = APIRouter(prefix="/payouts", tags=["payouts"])


@router.post("", response_model=PayoutAttemptResponse)
def dispatch_payout(req: PayoutCreateRequest, service: PayoutService = Depends(get_payout_service)):
    """Pay a freelancer, or refund a client when `is_refund` is set."""

    return service.dispatch_payment(
        is_refund=req.is_refund,
        phone=req.phone,
        remarks=req.remarks,
        amount=req.amount,
        job_id=req.job_id,
    )


@router.get("/{payout_id}", response_model=PayoutAttemptResponse)
def get_payout(payout_id: str, service: PayoutService = Depends(get_payout_service)):
    payout = service.repository.get(payout_id)
    if not payout:
        raise HTTPException(status_code=404, detail="payout not found")
    return payout
