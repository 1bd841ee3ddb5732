"""Job storage."""

from jobpay.services.jobs.models import Job


class JobRepository:
    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def create(self, title: str, client_id: str, budget: int) -> Job:
        with self.session_factory() as db:
            job = Job(title=title, client_id=client_id, budget=budget)
            db.add(job)
            db.commit()
            db.refresh(job)
            return job

    def get(self, job_id: str) -> Job | None:
        with self.session_factory() as db:
            return db.get(Job, job_id)
