"""Shared fixtures: fake remote collaborators and a seeded in-memory store."""
import math
import os
import threading

os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from talentnest.config import MatchingConfig, PipelineConfig
from talentnest.errors import EmbeddingFailed, ExtractionFailed
from talentnest.matcher import MatchingRun, TalentMatcher
from talentnest.models import JobPosting, TalentProfile
from talentnest.stores.memory import MemoryStore

JOB_VECTOR = [1.0, 0.0]


def vector_at(similarity):
    """Unit vector whose cosine with JOB_VECTOR is *similarity*."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity * similarity))]


def long_resume(*keywords, length=400):
    body = "Experienced engineer building services in " + ", ".join(keywords) + ". "
    filler = "Designed, shipped and operated production systems with a focus on reliability. "
    text = body
    while len(text) < length:
        text += filler
    return text


class FakeEmbedder:
    """Looks vectors up by exact text; job descriptions get ``job_vector``."""

    def __init__(self, vectors=None, job_vector=None, fail_on=()):
        self.vectors = dict(vectors or {})
        self.job_vector = list(job_vector or JOB_VECTOR)
        self.fail_on = set(fail_on)
        self.calls = []
        self._lock = threading.Lock()

    def embed(self, text):
        with self._lock:
            self.calls.append(text)
        is_job = text.startswith("Job Title:")
        if text in self.fail_on or (is_job and "job" in self.fail_on):
            raise EmbeddingFailed(f"boom: {text[:20]}")
        if is_job:
            return list(self.job_vector)
        if text not in self.vectors:
            raise EmbeddingFailed(f"no vector for {text[:20]!r}")
        return list(self.vectors[text])

    def job_calls(self):
        return [c for c in self.calls if c.startswith("Job Title:")]


class FakeExtractor:
    def __init__(self, texts=None):
        self.texts = dict(texts or {})
        self.calls = []
        self._lock = threading.Lock()

    def extract_text(self, resume_url, original_name=None):
        with self._lock:
            self.calls.append(resume_url)
        result = self.texts.get(resume_url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise ExtractionFailed(resume_url, "not found")
        return result


class FakeFeedback:
    def __init__(self, text="Strong backend profile with Go and SQL."):
        self.text = text
        self.calls = []

    def generate_feedback(self, resume_text, job_role, company_name, job_description=""):
        self.calls.append((job_role, company_name))
        return self.text


@pytest.fixture
def config():
    return MatchingConfig(pipeline=PipelineConfig(max_workers=2, retry_attempts=1))


@pytest.fixture
def backend_job():
    return JobPosting(
        id="job-1",
        title="Backend Engineer",
        description="We need a Backend Engineer with 5 years of experience in Go and SQL.",
        role="Backend Engineer",
        skills=["Go", "SQL"],
        experience="5 years",
        company_name="Acme",
    )


@pytest.fixture
def store(backend_job):
    store = MemoryStore()
    store.save_job(backend_job)
    return store


@pytest.fixture
def make_run(store, config):
    def _make(job_id="job-1", *, extractor, embedder, feedback=None, clock=None, cfg=None):
        kwargs = {}
        if clock is not None:
            kwargs["clock"] = clock
        return MatchingRun(
            job_id,
            jobs=store,
            talents=store,
            applications=store,
            extractor=extractor,
            embedder=embedder,
            feedback=feedback or FakeFeedback(),
            config=cfg or config,
            **kwargs,
        )

    return _make


@pytest.fixture
def add_applicant(store):
    def _add(talent_id, *, profession="Backend Software Engineer", years="6", resume=True, status=None):
        store.save_talent(
            TalentProfile(
                id=talent_id,
                profession=profession,
                experience_years=years,
                resume_url=f"https://files.example.com/{talent_id}.pdf" if resume else None,
            )
        )
        if status is None:
            store.apply("job-1", talent_id)
        else:
            store.apply("job-1", talent_id, status=status)
        return f"https://files.example.com/{talent_id}.pdf"

    return _add


@pytest.fixture
def matcher_factory(store, config):
    def _make(extractor, embedder, feedback=None):
        return TalentMatcher(
            jobs=store,
            talents=store,
            applications=store,
            config=config,
            extractor=extractor,
            embedder=embedder,
            feedback=feedback or FakeFeedback(),
        )

    return _make
