# models/response.py
from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime

from app.models.filters import FilterCriterion
from app.models.resume import ResumeRecord, utc_now


class BatchUploadResponse(BaseModel):
    records: List[ResumeRecord]
    count: int
    total: int  # collection size after the batch


class FilterVocabularyResponse(BaseModel):
    vocabulary: Dict[str, List[str]]
    options: List[FilterCriterion]


class VisibleResumesResponse(BaseModel):
    records: List[ResumeRecord]
    count: int
    total: int
    ranked: bool


class DeleteResponse(BaseModel):
    id: str
    deleted: bool
    total: int


class MatchResponse(BaseModel):
    records: List[ResumeRecord]
    count: int
    matched_at: datetime = Field(default_factory=utc_now)
