"""Generate short reviewer feedback for shortlisted applicants using Groq."""
from __future__ import annotations

from typing import Any

from openai import APIConnectionError, APITimeoutError, OpenAI, RateLimitError

from talentnest.config import PipelineConfig, get_env
from talentnest.errors import FeedbackGenerationFailed
from talentnest.log import get_logger
from talentnest.retry import retry

log = get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

_FEEDBACK_PROMPT = """\
You are an AI assistant evaluating a resume for the role of {job_role} at {company_name}.

Below is the applicant's resume:
\"\"\"
{resume_text}
\"\"\"

And here's the job description for reference:
\"\"\"
{job_description}
\"\"\"

In 2-3 concise sentences, provide a brief evaluation of the applicant. Highlight their key strengths and relevant experiences, mention any noticeable gaps or weaknesses in relation to the job description, and identify relevant skills or qualifications.
"""


class FeedbackGenerator:
    def __init__(self, config: PipelineConfig | None = None, client: Any | None = None) -> None:
        self.config = config or PipelineConfig()
        self.model = get_env("GROQ_LLM_MODEL") or self.config.feedback_model
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(get_env("GROQ_API_KEY"))

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(
                api_key=get_env("GROQ_API_KEY"),
                base_url=get_env("GROQ_BASE_URL") or GROQ_BASE_URL,
                timeout=self.config.request_timeout,
                max_retries=0,
            )
        return self._client

    @retry(max_attempts=2, base_delay=2.0, retryable=(APIConnectionError, APITimeoutError, RateLimitError))
    def _complete(self, prompt: str) -> str:
        r = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.config.feedback_max_tokens,
            temperature=0.4,
        )
        text = (r.choices[0].message.content or "").strip() if r.choices else ""
        if not text:
            raise FeedbackGenerationFailed("Model returned no feedback text")
        return text

    def generate_feedback(
        self,
        resume_text: str,
        job_role: str,
        company_name: str,
        job_description: str = "",
    ) -> str | None:
        """2-3 sentence evaluation, or ``None`` when it cannot be produced."""
        if not self.enabled:
            log.debug("No GROQ_API_KEY — skipping feedback generation")
            return None

        prompt = _FEEDBACK_PROMPT.format(
            job_role=job_role,
            company_name=company_name or "the company",
            resume_text=resume_text[:6000],
            job_description=job_description[:3000],
        )
        try:
            feedback = self._complete(prompt)
        except Exception as exc:
            log.warning("Feedback generation failed for %s role: %s", job_role, exc)
            return None
        log.info("Feedback generated for %s @ %s", job_role, company_name)
        return feedback
