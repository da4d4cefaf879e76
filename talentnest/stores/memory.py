"""In-process store for tests, demos and single-worker deployments."""
from __future__ import annotations

import threading
from dataclasses import replace
from typing import Collection

from talentnest.log import get_logger
from talentnest.models import Application, ApplicationStatus, JobPosting, TalentProfile
from talentnest.stores.base import (
    ApplicationStore,
    JobStore,
    TalentStore,
    job_text_changed,
    status_writable,
)

log = get_logger(__name__)


class MemoryStore(JobStore, TalentStore, ApplicationStore):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.jobs: dict[str, JobPosting] = {}
        self.talents: dict[str, TalentProfile] = {}
        # (job_id, talent_id) -> score/status/feedback
        self.applications: dict[tuple[str, str], dict] = {}

    # ── Editing (owned by the CRUD layer in production) ──────────────────

    def save_job(self, job: JobPosting) -> JobPosting:
        with self._lock:
            old = self.jobs.get(job.id)
            if old is not None and job_text_changed(old, job):
                job = replace(job, embedding=[])
                log.debug("Job %s edited, cleared cached embedding", job.id)
            self.jobs[job.id] = job
            return job

    def save_talent(self, talent: TalentProfile) -> TalentProfile:
        with self._lock:
            self.talents[talent.id] = talent
            return talent

    def set_resume(self, talent_id: str, resume_url: str, original_name: str | None = None) -> None:
        with self._lock:
            talent = self.talents[talent_id]
            self.talents[talent_id] = replace(
                talent, resume_url=resume_url, resume_original_name=original_name, embedding=[]
            )

    def apply(self, job_id: str, talent_id: str, status: ApplicationStatus = ApplicationStatus.UNDER_REVIEW) -> None:
        with self._lock:
            self.applications.setdefault(
                (job_id, talent_id), {"score": 0.0, "status": status, "feedback": ""}
            )

    # ── Store interfaces ─────────────────────────────────────────────────

    def find_job_by_id(self, job_id: str) -> JobPosting | None:
        with self._lock:
            job = self.jobs.get(job_id)
            return replace(job, embedding=list(job.embedding)) if job else None

    def update_job_embedding(self, job_id: str, vector: list[float]) -> None:
        with self._lock:
            self.jobs[job_id] = replace(self.jobs[job_id], embedding=list(vector))

    def update_talent_embedding(self, talent_id: str, vector: list[float]) -> None:
        with self._lock:
            self.talents[talent_id] = replace(self.talents[talent_id], embedding=list(vector))

    def find_applications_by_job(self, job_id: str) -> list[Application]:
        with self._lock:
            return [
                Application(
                    job_id=jid,
                    talent=replace(self.talents[tid]),
                    score=row["score"],
                    status=row["status"],
                    feedback=row["feedback"],
                )
                for (jid, tid), row in self.applications.items()
                if jid == job_id and tid in self.talents
            ]

    def upsert_application_score(
        self,
        job_id: str,
        talent_id: str,
        *,
        score: float,
        status: ApplicationStatus,
        feedback: str | None = None,
        promote_from: Collection[ApplicationStatus] | None = None,
    ) -> Application:
        with self._lock:
            row = self.applications.setdefault(
                (job_id, talent_id),
                {"score": 0.0, "status": ApplicationStatus.UNDER_REVIEW, "feedback": ""},
            )
            row["score"] = score
            if status_writable(row["status"], promote_from):
                row["status"] = status
                if feedback is not None:
                    row["feedback"] = feedback
            return Application(
                job_id=job_id,
                talent=replace(self.talents[talent_id]),
                score=row["score"],
                status=row["status"],
                feedback=row["feedback"],
            )
