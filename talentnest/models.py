"""Data models for jobs, talents, applications and match results."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ApplicationStatus(str, Enum):
    UNDER_REVIEW = "Under Review"
    SHORTLISTED = "Shortlisted"
    INTERVIEW = "Interview"
    HIRED = "Hired"
    DECLINED = "Declined"

    @classmethod
    def parse(cls, value: str | None) -> "ApplicationStatus":
        if not value:
            return cls.UNDER_REVIEW
        for status in cls:
            if status.value.lower() == value.strip().lower():
                return status
        raise ValueError(f"Unknown application status: {value!r}")


# Statuses the matcher may (re)write to Shortlisted. Anything further along
# the hiring workflow belongs to other workflows.
PROMOTABLE_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.UNDER_REVIEW, ApplicationStatus.SHORTLISTED}
)


@dataclass
class JobPosting:
    id: str
    title: str
    description: str
    role: str
    skills: list[str] = field(default_factory=list)
    experience: str = ""
    company_name: str = ""
    department: str = ""
    country: str = ""
    status: str = "Open"
    embedding: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobPosting":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            role=data.get("role", ""),
            skills=list(data.get("skills") or []),
            experience=data.get("experience", ""),
            company_name=data.get("company_name", ""),
            department=data.get("department", ""),
            country=data.get("country", ""),
            status=data.get("status", "Open"),
            embedding=list(data.get("embedding") or []),
        )


@dataclass
class TalentProfile:
    id: str
    profession: str = ""
    experience_years: str = ""
    resume_url: str | None = None
    resume_original_name: str | None = None
    embedding: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TalentProfile":
        return cls(
            id=str(data["id"]),
            profession=data.get("profession", ""),
            experience_years=str(data.get("experience_years") or ""),
            resume_url=data.get("resume_url"),
            resume_original_name=data.get("resume_original_name"),
            embedding=list(data.get("embedding") or []),
        )


@dataclass
class Application:
    job_id: str
    talent: TalentProfile
    score: float = 0.0
    status: ApplicationStatus = ApplicationStatus.UNDER_REVIEW
    feedback: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "talent": self.talent.to_dict(),
            "score": self.score,
            "status": self.status.value,
            "feedback": self.feedback,
        }


@dataclass
class SignalScores:
    similarity: float = 0.0
    keyword: float = 0.0
    experience: float = 0.0
    role: float = 0.0


@dataclass
class MatchResult:
    talent_id: str
    resume_text: str
    embedding: list[float]
    signals: SignalScores = field(default_factory=SignalScores)
    score: float = 0.0
    shortlisted: bool = False
    feedback: str | None = None

    def summary(self) -> dict[str, Any]:
        """Event payload view: no resume text or vectors."""
        return {
            "talentId": self.talent_id,
            "score": round(self.score, 4),
            "signals": {k: round(v, 4) for k, v in asdict(self.signals).items()},
            "shortlisted": self.shortlisted,
        }
