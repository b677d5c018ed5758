from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class FilterCategory(str, Enum):
    """Structured filter categories, in display order"""
    LOCATION = "location"
    EDUCATION = "education"
    SKILL = "skill"
    JOB_TITLE = "jobTitle"
    COMPANY = "company"
    CERTIFICATION = "certification"


class FilterCriterion(BaseModel):
    """A single (category, value) selector; the value is matched verbatim"""
    category: FilterCategory
    value: str

    class Config:
        frozen = True


class ActiveFilterState(BaseModel):
    """Free text plus structured selectors.

    ``selected_criterion`` is the single-select case; ``criteria`` holds a
    multi-select (e.g. several skills). A record must satisfy every selector.
    """
    free_text_query: str = ""
    selected_criterion: Optional[FilterCriterion] = None
    criteria: List[FilterCriterion] = []

    @property
    def active_criteria(self) -> List[FilterCriterion]:
        selected = [self.selected_criterion] if self.selected_criterion is not None else []
        return selected + [c for c in self.criteria if c not in selected]
