"""Error taxonomy for the matching pipeline.

Per-applicant errors (``UnsupportedFormat``, ``ExtractionFailed``,
``EmbeddingFailed`` on a resume) exclude that applicant from the run.
Job-level errors (``JobNotFound``, ``NoValidResumes``, ``EmbeddingFailed`` on
the job itself, ``RunTimedOut``) end the run with a failure event.
"""
from __future__ import annotations


class MatchingError(Exception):
    """Base class for all pipeline errors."""


class JobNotFound(MatchingError):
    def __init__(self, job_id: str | None) -> None:
        super().__init__(f"Job not found: {job_id!r}" if job_id else "Job not found")
        self.job_id = job_id


class UnsupportedFormat(MatchingError):
    def __init__(self, reference: str, extension: str) -> None:
        super().__init__(f"Unsupported resume format {extension or '(none)'!r}: {reference}")
        self.reference = reference
        self.extension = extension


class ExtractionFailed(MatchingError):
    """Download or decode failure; the originating error is ``__cause__``."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(f"Could not extract resume text from {reference}: {reason}")
        self.reference = reference
        self.reason = reason


class EmbeddingFailed(MatchingError):
    pass


class NoValidResumes(MatchingError):
    def __init__(self, job_id: str) -> None:
        super().__init__("No valid resumes found")
        self.job_id = job_id


class FeedbackGenerationFailed(MatchingError):
    pass


class RunTimedOut(MatchingError):
    def __init__(self, job_id: str, seconds: float) -> None:
        super().__init__(f"Matching run for job {job_id} exceeded {seconds:.0f}s")
        self.job_id = job_id
        self.seconds = seconds
