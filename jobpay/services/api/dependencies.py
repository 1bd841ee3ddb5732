"""FastAPI dependencies resolving the components wired by `create_app`."""

from fastapi import Request

from jobpay.services.jobs.repository import JobRepository
from jobpay.services.payments.service import PaymentService
from jobpay.services.payouts.service import PayoutService


def get_jobs(request: Request) -> JobRepository:
    return request.app.state.jobs


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_payout_service(request: Request) -> PayoutService:
    return request.app.state.payout_service
