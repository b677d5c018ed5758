import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_resume_id() -> str:
    return uuid.uuid4().hex


class PersonalInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""


class Education(BaseModel):
    degree: str = ""
    institution: str = ""
    year: str = ""
    gpa: str = ""


class Experience(BaseModel):
    title: str = ""
    company: str = ""
    duration: str = ""
    responsibilities: List[str] = Field(default_factory=list)


class Project(BaseModel):
    name: str = ""
    description: str = ""
    technologies: List[str] = Field(default_factory=list)


class ResumeRecord(BaseModel):
    """One parsed resume.

    ``personal_info`` is ``None`` only when the extractor returned no
    personal section at all; such records are never visible through filters.
    ``match_score`` and ``match_explanation`` are set together by the match
    pass and by nothing else.
    """
    id: str = Field(default_factory=new_resume_id)
    personal_info: Optional[PersonalInfo] = None
    education: List[Education] = Field(default_factory=list)
    experience: List[Experience] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    file_url: str = ""
    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    match_explanation: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @validator('skills', pre=True)
    def lowercase_skills(cls, v):
        if v is None:
            return []
        return [str(s).strip().lower() for s in v if str(s).strip()]

    @validator('match_explanation', always=True)
    def score_and_explanation_together(cls, v, values):
        has_score = values.get('match_score') is not None
        if has_score != (v is not None):
            raise ValueError('match_score and match_explanation must be set together')
        return v

    @property
    def is_scored(self) -> bool:
        return self.match_score is not None

    def with_match(self, score: int, explanation: str) -> "ResumeRecord":
        """Copy of this record annotated by a match pass; other fields untouched"""
        return self.copy(update={
            "match_score": max(0, min(100, int(score))),
            "match_explanation": explanation or "",
        })


class MatchAnnotation(BaseModel):
    """Score produced for one record by the match pass"""
    record_id: str
    score: int = Field(ge=0, le=100)
    explanation: str = ""
