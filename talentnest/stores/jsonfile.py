"""Document store backed by a single JSON file with advisory file locking.

Layout::

    {
      "jobs":         {"<job id>": {...JobPosting...}},
      "talents":      {"<talent id>": {...TalentProfile...}},
      "applications": [{"job_id", "talent_id", "score", "status", "feedback"}]
    }

Every write is a read-modify-write under an exclusive ``fcntl`` lock, so
several worker processes can share one file.
"""
from __future__ import annotations

import fcntl
import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Collection, Iterator

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

_EMPTY: dict[str, Any] = {"jobs": {}, "talents": {}, "applications": []}


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class JsonFileStore(JobStore, TalentStore, ApplicationStore):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._thread_lock = threading.Lock()
        self.ensure()

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            with open(self.path, "w", encoding="utf-8") as f:
                _lock(f)
                json.dump(_EMPTY, f)
                _unlock(f)
            log.info("Created document store → %s", self.path.name)

    # ── File access ──────────────────────────────────────────────────────

    def _read(self) -> dict[str, Any]:
        with self._thread_lock, open(self.path, "r", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            try:
                raw = f.read()
            finally:
                _unlock(f)
        data = json.loads(raw) if raw.strip() else {}
        for key, empty in _EMPTY.items():
            data.setdefault(key, type(empty)())
        return data

    @contextmanager
    def _transaction(self) -> Iterator[dict[str, Any]]:
        """Yield the parsed document; write it back if the block succeeds."""
        with self._thread_lock, open(self.path, "r+", encoding="utf-8") as f:
            _lock(f)
            try:
                raw = f.read()
                data = json.loads(raw) if raw.strip() else {}
                for key, empty in _EMPTY.items():
                    data.setdefault(key, type(empty)())
                yield data
                f.seek(0)
                f.truncate()
                json.dump(data, f, indent=2)
                f.flush()
            finally:
                _unlock(f)

    @staticmethod
    def _find_row(data: dict[str, Any], job_id: str, talent_id: str) -> dict[str, Any] | None:
        for row in data["applications"]:
            if row["job_id"] == job_id and row["talent_id"] == talent_id:
                return row
        return None

    @staticmethod
    def _to_application(data: dict[str, Any], row: dict[str, Any]) -> Application:
        return Application(
            job_id=row["job_id"],
            talent=TalentProfile.from_dict(data["talents"][row["talent_id"]]),
            score=float(row.get("score", 0.0)),
            status=ApplicationStatus.parse(row.get("status")),
            feedback=row.get("feedback") or "",
        )

    # ── Editing (owned by the CRUD layer in production) ──────────────────

    def save_job(self, job: JobPosting) -> JobPosting:
        with self._transaction() as data:
            old = data["jobs"].get(job.id)
            if old is not None and job_text_changed(JobPosting.from_dict(old), job):
                job.embedding = []
                log.debug("Job %s edited, cleared cached embedding", job.id)
            data["jobs"][job.id] = job.to_dict()
        return job

    def save_talent(self, talent: TalentProfile) -> TalentProfile:
        with self._transaction() as data:
            data["talents"][talent.id] = talent.to_dict()
        return talent

    def set_resume(self, talent_id: str, resume_url: str, original_name: str | None = None) -> None:
        with self._transaction() as data:
            talent = data["talents"][talent_id]
            talent["resume_url"] = resume_url
            talent["resume_original_name"] = original_name
            talent["embedding"] = []

    def apply(self, job_id: str, talent_id: str, status: ApplicationStatus = ApplicationStatus.UNDER_REVIEW) -> None:
        with self._transaction() as data:
            if self._find_row(data, job_id, talent_id) is None:
                data["applications"].append({
                    "job_id": job_id, "talent_id": talent_id,
                    "score": 0.0, "status": status.value, "feedback": "",
                })

    # ── Store interfaces ─────────────────────────────────────────────────

    def find_job_by_id(self, job_id: str) -> JobPosting | None:
        raw = self._read()["jobs"].get(job_id)
        return JobPosting.from_dict(raw) if raw else None

    def update_job_embedding(self, job_id: str, vector: list[float]) -> None:
        with self._transaction() as data:
            data["jobs"][job_id]["embedding"] = list(vector)

    def update_talent_embedding(self, talent_id: str, vector: list[float]) -> None:
        with self._transaction() as data:
            data["talents"][talent_id]["embedding"] = list(vector)

    def find_applications_by_job(self, job_id: str) -> list[Application]:
        data = self._read()
        return [
            self._to_application(data, row)
            for row in data["applications"]
            if row["job_id"] == job_id and row["talent_id"] in data["talents"]
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
        with self._transaction() as data:
            row = self._find_row(data, job_id, talent_id)
            if row is None:
                row = {
                    "job_id": job_id, "talent_id": talent_id,
                    "status": ApplicationStatus.UNDER_REVIEW.value, "feedback": "",
                }
                data["applications"].append(row)
            row["score"] = score
            if status_writable(ApplicationStatus.parse(row.get("status")), promote_from):
                row["status"] = status.value
                if feedback is not None:
                    row["feedback"] = feedback
            application = self._to_application(data, row)
        log.debug("Upserted %s/%s → %.3f %s", job_id, talent_id, score, application.status.value)
        return application
