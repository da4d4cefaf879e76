from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Collection

from talentnest.models import Application, ApplicationStatus, JobPosting


class JobStore(ABC):
    @abstractmethod
    def find_job_by_id(self, job_id: str) -> JobPosting | None:
        pass

    @abstractmethod
    def update_job_embedding(self, job_id: str, vector: list[float]) -> None:
        pass


class TalentStore(ABC):
    @abstractmethod
    def update_talent_embedding(self, talent_id: str, vector: list[float]) -> None:
        pass


class ApplicationStore(ABC):
    @abstractmethod
    def find_applications_by_job(self, job_id: str) -> list[Application]:
        pass

    @abstractmethod
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
        """Record *score* and move the application to *status*.

        With *promote_from*, the status (and feedback) are only written when
        the status stored at write time is one of *promote_from*; otherwise
        only the score changes. The check and the write happen atomically.
        """


# Fields that feed the embedded job text; editing any of them invalidates
# the cached job embedding.
EMBEDDED_JOB_FIELDS: tuple[str, ...] = (
    "title", "description", "role", "skills", "experience",
    "department", "country", "company_name",
)


def job_text_changed(old: JobPosting, new: JobPosting) -> bool:
    return any(getattr(old, f) != getattr(new, f) for f in EMBEDDED_JOB_FIELDS)


def status_writable(stored: ApplicationStatus, promote_from: Collection[ApplicationStatus] | None) -> bool:
    return promote_from is None or stored in promote_from
