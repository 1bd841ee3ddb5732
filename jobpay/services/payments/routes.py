"""STK Push endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from jobpay.services.api.dependencies import get_jobs, get_payment_service
from jobpay.services.jobs.repository import JobRepository
from jobpay.services.payments.schemas import PaymentAttemptResponse, PaymentInitiateRequest
from jobpay.services.payments.service import PaymentService


router = APIRouter(tags=["payments"])


@router.post("/jobs/{job_id}/payments", response_model=PaymentAttemptResponse)
def initiate_job_payment(
    job_id: str,
    req: PaymentInitiateRequest,
    jobs: JobRepository = Depends(get_jobs),
    service: PaymentService = Depends(get_payment_service),
):
    """Prompt the client's phone to pay for `job_id`.

    The returned attempt stays `SENT` until the gateway calls back.
    """

    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="job not found")
    return service.initiate_payment(req.phone, job)


@router.get("/jobs/{job_id}/payments", response_model=list[PaymentAttemptResponse])
def list_job_payments(job_id: str, service: PaymentService = Depends(get_payment_service)):
    return service.repository.list_for_job(job_id)


@router.get("/payments/{attempt_id}", response_model=PaymentAttemptResponse)
def get_payment(attempt_id: str, service: PaymentService = Depends(get_payment_service)):
    """Fetch current status for one payment attempt."""

    attempt = service.repository.get(attempt_id)
    if not attempt:
        raise HTTPException(status_code=404, detail="payment not found")
    return attempt
