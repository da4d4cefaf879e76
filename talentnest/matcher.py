"""
Resume-to-job matching pipeline.

Runs: init → extract → embed → compare → shortlist/persist → done, yielding a
progress event after each stage. One ``MatchingRun`` handles one job's
applicant pool; runs for different jobs share nothing but the stores.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable, Iterator

from talentnest.config import MatchingConfig
from talentnest.embedding import EmbeddingClient, format_job_description
from talentnest.errors import (
    EmbeddingFailed,
    ExtractionFailed,
    JobNotFound,
    NoValidResumes,
    RunTimedOut,
    UnsupportedFormat,
)
from talentnest.extractor import ResumeExtractor
from talentnest.feedback import FeedbackGenerator
from talentnest.log import get_logger
from talentnest.models import (
    PROMOTABLE_STATUSES,
    Application,
    ApplicationStatus,
    JobPosting,
    MatchResult,
    SignalScores,
)
from talentnest.signals import (
    aggregate,
    experience_match,
    keyword_match,
    role_match,
    semantic_similarity,
)
from talentnest.stores.base import ApplicationStore, JobStore, TalentStore

log = get_logger(__name__)

Event = dict[str, Any]


class RunCancelled(Exception):
    """Raised inside a run once the consumer has gone away."""


def _event(step: str, success: bool = True, **payload: Any) -> Event:
    return {"step": step, "success": success, **payload}


class MatchingRun:
    def __init__(
        self,
        job_id: str | None,
        *,
        jobs: JobStore,
        talents: TalentStore,
        applications: ApplicationStore,
        extractor: ResumeExtractor,
        embedder: EmbeddingClient,
        feedback: FeedbackGenerator,
        config: MatchingConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.job_id = job_id
        self.jobs = jobs
        self.talents = talents
        self.applications = applications
        self.extractor = extractor
        self.embedder = embedder
        self.feedback = feedback
        self.config = config or MatchingConfig()
        self._clock = clock
        self._deadline: float | None = None
        self._cancelled = threading.Event()
        self._applicants: dict[str, Application] = {}
        self._text_vectors: dict[str, list[float] | None] = {}
        self._vectors_lock = threading.Lock()
        self.results: list[MatchResult] = []

    # ── Lifecycle ────────────────────────────────────────────────────────

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            log.info("Matching run for job %s cancelled", self.job_id)
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _check(self) -> None:
        """Called before every remote call."""
        if self._cancelled.is_set():
            raise RunCancelled()
        if self._deadline is not None and self._clock() > self._deadline:
            raise RunTimedOut(str(self.job_id), self.config.pipeline.run_timeout)

    def events(self) -> Iterator[Event]:
        """Yield progress events; always ends with a terminal or failure event
        unless the run was cancelled."""
        self._deadline = self._clock() + self.config.pipeline.run_timeout
        started = time.perf_counter()
        try:
            yield from self._run()
        except RunCancelled:
            log.info("Stopped matching job %s after cancellation", self.job_id)
        except Exception as exc:
            log.exception("Match error for job %s", self.job_id)
            yield _event("error", False, message=str(exc))
        finally:
            self._cancelled.set()
            log.debug("Matching run for job %s finished in %.1fs", self.job_id, time.perf_counter() - started)

    # ── Stages ───────────────────────────────────────────────────────────

    def _run(self) -> Iterator[Event]:
        job_id = self.job_id
        job = self.jobs.find_job_by_id(job_id) if job_id else None
        if job is None:
            log.warning("%s", JobNotFound(job_id))
            yield _event("init", False, message="Job not found")
            return
        yield _event("init", message=f"Matching applicants for {job.title}")

        # 1. Extract
        applications = self.applications.find_applications_by_job(job.id)
        self._applicants = {a.talent.id: a for a in applications}
        extracted = self._extract_all(applications)
        if not extracted:
            log.warning("Job %s: none of %d applicants had a usable resume", job.id, len(applications))
            yield _event("extract", False, message=str(NoValidResumes(job.id)))
            return
        yield _event(
            "extract",
            extracted=len(extracted),
            skipped=len(applications) - len(extracted),
        )
        log.info("Resume extraction complete — %d/%d usable", len(extracted), len(applications))

        # 2. Embed
        try:
            job_vector = self._job_embedding(job)
        except EmbeddingFailed as exc:
            log.error("Job %s embedding failed: %s", job.id, exc)
            yield _event("embed", False, message="Failed to embed job description")
            return
        embedded = self._embed_resumes(extracted)
        if not embedded:
            yield _event("embed", False, message=str(NoValidResumes(job.id)))
            return
        yield _event("embed", embedded=len(embedded))
        log.info("Embedding complete — %d resumes", len(embedded))

        # 3. Compare
        self.results = self._compare(job, job_vector, embedded)
        yield _event("compare", compared=len(self.results))

        # 4. Shortlist and persist
        shortlisted, failed = self._shortlist(job, self.results)
        log.info(
            "Run complete for job %s — compared=%d, shortlisted=%d, write failures=%d",
            job.id, len(self.results), shortlisted, failed,
        )
        yield _event(
            "done",
            message="Match complete",
            matches=[r.summary() for r in self.results],
            job=self._job_view(job.id),
        )

    def _fan_out(self, fn: Callable[[Any], Any], items: Iterable[Any]) -> Iterator[tuple[Any, Any]]:
        """Run *fn* over *items* on a bounded pool, yielding ``(item, result)``
        pairs as they complete."""
        pool = ThreadPoolExecutor(
            max_workers=max(1, self.config.pipeline.max_workers),
            thread_name_prefix="match",
        )
        try:
            futures = {pool.submit(fn, item): item for item in items}
            for future in as_completed(futures):
                yield futures[future], future.result()
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

    def _extract_one(self, application: Application) -> str | None:
        talent = application.talent
        self._check()
        try:
            log.debug("Extracting resume for %s...", talent.id)
            return self.extractor.extract_text(talent.resume_url, talent.resume_original_name)
        except (UnsupportedFormat, ExtractionFailed) as exc:
            log.warning("Skipping talent %s: %s", talent.id, exc)
            return None

    def _extract_all(self, applications: list[Application]) -> list[tuple[Application, str]]:
        with_resume = []
        for a in applications:
            if a.talent.resume_url:
                with_resume.append(a)
            else:
                log.info("Skipping talent %s: no resume on file", a.talent.id)
        return [
            (application, text)
            for application, text in self._fan_out(self._extract_one, with_resume)
            if text
        ]

    def _job_embedding(self, job: JobPosting) -> list[float]:
        if job.embedding:
            log.debug("Reusing cached embedding for job %s", job.id)
            return job.embedding
        self._check()
        vector = self.embedder.embed(format_job_description(job))
        try:
            self.jobs.update_job_embedding(job.id, vector)
        except Exception as exc:
            log.warning("Could not cache embedding for job %s: %s", job.id, exc)
        return vector

    def _embed_one(self, item: tuple[Application, str]) -> MatchResult | None:
        application, text = item
        talent = application.talent
        vector = talent.embedding
        if not vector:
            self._check()
            try:
                vector = self.embedder.embed(text)
            except EmbeddingFailed as exc:
                log.warning("Skipping talent %s: %s", talent.id, exc)
                return None
            try:
                self.talents.update_talent_embedding(talent.id, vector)
            except Exception as exc:
                log.warning("Could not cache embedding for talent %s: %s", talent.id, exc)
        return MatchResult(talent_id=talent.id, resume_text=text, embedding=vector)

    def _embed_resumes(self, extracted: list[tuple[Application, str]]) -> list[MatchResult]:
        return [r for _, r in self._fan_out(self._embed_one, extracted) if r is not None]

    def _text_vector(self, text: str) -> list[float] | None:
        """Embedding of a short profession/role string, once per run."""
        with self._vectors_lock:
            if text in self._text_vectors:
                return self._text_vectors[text]
        self._check()
        try:
            vector: list[float] | None = self.embedder.embed(text)
        except EmbeddingFailed as exc:
            log.warning("Role embedding failed for %r: %s", text, exc)
            vector = None
        with self._vectors_lock:
            self._text_vectors[text] = vector
        return vector

    def _compare(self, job: JobPosting, job_vector: list[float], embedded: list[MatchResult]) -> list[MatchResult]:
        scoring = self.config.scoring
        titles = {job.role} | {self._applicants[r.talent_id].talent.profession for r in embedded}
        titles = {t.strip() for t in titles if t and t.strip()}
        list(self._fan_out(self._text_vector, sorted(titles)))

        role_vector = self._text_vectors.get(job.role.strip()) if job.role else None
        for r in embedded:
            talent = self._applicants[r.talent_id].talent
            profession = (talent.profession or "").strip()
            r.signals = SignalScores(
                similarity=semantic_similarity(job_vector, r.embedding, scoring),
                keyword=keyword_match(r.resume_text, job.skills, scoring),
                experience=experience_match(
                    job.description,
                    talent.experience_years,
                    scoring,
                    fallback_requirement=job.experience,
                ),
                role=role_match(self._text_vectors.get(profession), role_vector, scoring),
            )
            s = r.signals
            r.score = aggregate(s.similarity, s.keyword, s.experience, s.role)
            log.info(
                "Comparing %s — sim: %.2f, keyword: %.2f, exp: %.2f, role: %.2f, total: %.3f",
                r.talent_id, s.similarity, s.keyword, s.experience, s.role, r.score,
            )
        return sorted(embedded, key=lambda r: -r.score)

    def _shortlist(self, job: JobPosting, results: list[MatchResult]) -> tuple[int, int]:
        scoring = self.config.scoring
        job_context = format_job_description(job)
        shortlisted = failed = 0
        for r in results:
            if r.score <= scoring.shortlist_threshold:
                continue
            r.shortlisted = True
            # Snapshot only decides whether feedback is worth generating; the
            # store re-checks the status at write time.
            snapshot = self._applicants[r.talent_id].status
            if snapshot in PROMOTABLE_STATUSES and len(r.resume_text) > scoring.feedback_min_resume_chars:
                self._check()
                r.feedback = self.feedback.generate_feedback(
                    r.resume_text, job.role, job.company_name, job_context,
                )
            self._check()
            try:
                saved = self.applications.upsert_application_score(
                    job.id,
                    r.talent_id,
                    score=r.score,
                    status=ApplicationStatus.SHORTLISTED,
                    feedback=r.feedback,
                    promote_from=PROMOTABLE_STATUSES,
                )
            except Exception as exc:
                failed += 1
                log.error("Failed to save score for talent %s on job %s: %s", r.talent_id, job.id, exc)
                continue
            if saved.status is ApplicationStatus.SHORTLISTED:
                shortlisted += 1
            else:
                # Interview/Hired/Declined belong to other workflows
                log.info("Talent %s already %s — recorded score only", r.talent_id, saved.status.value)
        return shortlisted, failed

    def _job_view(self, job_id: str) -> dict[str, Any] | None:
        job = self.jobs.find_job_by_id(job_id)
        if job is None:
            return None
        view = job.to_dict()
        view.pop("embedding", None)
        applicants = []
        for a in sorted(self.applications.find_applications_by_job(job_id), key=lambda a: -a.score):
            row = a.to_dict()
            row["talent"].pop("embedding", None)
            applicants.append(row)
        view["applicants"] = applicants
        return view


class TalentMatcher:
    """Shared collaborators for all runs; ``start`` creates one run per job."""

    def __init__(
        self,
        *,
        jobs: JobStore,
        talents: TalentStore,
        applications: ApplicationStore,
        config: MatchingConfig | None = None,
        extractor: ResumeExtractor | None = None,
        embedder: EmbeddingClient | None = None,
        feedback: FeedbackGenerator | None = None,
    ) -> None:
        self.config = config or MatchingConfig()
        self.jobs = jobs
        self.talents = talents
        self.applications = applications
        self.extractor = extractor or ResumeExtractor(self.config.pipeline)
        self.embedder = embedder or EmbeddingClient(self.config.pipeline)
        self.feedback = feedback or FeedbackGenerator(self.config.pipeline)

    def start(self, job_id: str | None) -> MatchingRun:
        return MatchingRun(
            job_id,
            jobs=self.jobs,
            talents=self.talents,
            applications=self.applications,
            extractor=self.extractor,
            embedder=self.embedder,
            feedback=self.feedback,
            config=self.config,
        )

    def match(self, job_id: str | None) -> list[Event]:
        """Run to completion and return every event."""
        return list(self.start(job_id).events())
