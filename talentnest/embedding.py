"""Text embeddings through an OpenAI-compatible embeddings API."""
from __future__ import annotations

from typing import Any

from openai import APIConnectionError, APITimeoutError, OpenAI, RateLimitError

from talentnest.config import PipelineConfig, get_env
from talentnest.errors import EmbeddingFailed
from talentnest.log import get_logger
from talentnest.models import JobPosting
from talentnest.retry import RetryPolicy, call_with_retry

log = get_logger(__name__)

# Inputs longer than this are truncated before embedding
MAX_EMBED_CHARS = 8000


def format_job_description(job: JobPosting) -> str:
    """The text that stands for a job posting when it is embedded."""
    skills = ", ".join(job.skills)
    return (
        f"Job Title: {job.title}\n"
        f"Experience: {job.experience}\n"
        f"Role: {job.role}\n"
        f"Department: {job.department}\n"
        f"Location: {job.country}\n\n"
        f"**Must-Have Skills:** {skills}\n\n"
        f"Company: {job.company_name}\n\n"
        f"Description:\n{job.description}"
    )


class EmbeddingClient:
    """Turns text into a fixed-length float vector.

    Transient API errors are retried; anything else, or a response without
    a vector, surfaces as ``EmbeddingFailed``.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        client: Any | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.model = get_env("EMBEDDING_MODEL") or self.config.embedding_model
        self._client = client
        self.retry_policy = RetryPolicy(
            max_attempts=self.config.retry_attempts,
            base_delay=self.config.retry_base_delay,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            api_key = get_env("EMBEDDING_API_KEY") or get_env("OPENAI_API_KEY")
            if not api_key:
                raise EmbeddingFailed("No EMBEDDING_API_KEY or OPENAI_API_KEY configured")
            self._client = OpenAI(
                api_key=api_key,
                base_url=get_env("EMBEDDING_BASE_URL") or None,
                timeout=self.config.request_timeout,
                max_retries=0,
            )
        return self._client

    def _create(self, text: str) -> list[float]:
        r = self.client.embeddings.create(model=self.model, input=[text])
        if not r.data:
            raise EmbeddingFailed("Embedding response contained no vectors")
        return [float(x) for x in r.data[0].embedding]

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmbeddingFailed("Cannot embed empty text")
        try:
            vector = call_with_retry(
                self._create,
                text.strip()[:MAX_EMBED_CHARS],
                policy=self.retry_policy,
                retryable=(APIConnectionError, APITimeoutError, RateLimitError),
            )
        except EmbeddingFailed:
            raise
        except Exception as exc:
            raise EmbeddingFailed(f"Embedding request failed: {exc}") from exc
        if not vector:
            raise EmbeddingFailed("Embedding model returned an empty vector")
        log.debug("Embedded %d chars → %d dims (%s)", len(text), len(vector), self.model)
        return vector
