"""Job endpoints: just enough to post a job and see whether it is paid."""

from fastapi import APIRouter, Depends, HTTPException

from jobpay.services.api.dependencies import get_jobs, get_payment_service
from jobpay.services.jobs.models import Job
from jobpay.services.jobs.repository import JobRepository
from jobpay.services.jobs.schemas import JobCreateRequest, JobResponse
from jobpay.services.payments.service import PaymentService


router = APIRouter(prefix="/jobs", tags=["jobs"])


def _job_response(job: Job, payments: PaymentService) -> JobResponse:
    return JobResponse(
        job_id=job.job_id,
        title=job.title,
        client_id=job.client_id,
        budget=job.budget,
        is_paid=payments.has_been_paid_for(job),
        created_at=job.created_at,
    )


@router.post("", response_model=JobResponse)
def create_job(
    req: JobCreateRequest,
    jobs: JobRepository = Depends(get_jobs),
    payments: PaymentService = Depends(get_payment_service),
):
    """Create a job a client can later pay for."""

    job = jobs.create(title=req.title, client_id=req.client_id, budget=req.budget)
    return _job_response(job, payments)


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: str,
    jobs: JobRepository = Depends(get_jobs),
    payments: PaymentService = Depends(get_payment_service),
):
    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="job not found")
    return _job_response(job, payments)
