"""
Filter/Rank engine over parsed resume records.

Everything here is a pure function of (records, filter state): nothing reads
global state and nothing mutates its inputs, so the same snapshot and state
always produce the same ordered output.
"""
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from app.models.filters import ActiveFilterState, FilterCategory, FilterCriterion
from app.models.resume import ResumeRecord

Matcher = Callable[[ResumeRecord, str], bool]
ValuesOf = Callable[[ResumeRecord], Iterable[str]]


# ---------- vocabulary ----------

def _location_values(r: ResumeRecord) -> Iterable[str]:
    return [r.personal_info.location] if r.personal_info else []


_VALUES_BY_CATEGORY: Dict[FilterCategory, ValuesOf] = {
    FilterCategory.LOCATION: _location_values,
    FilterCategory.EDUCATION: lambda r: [e.degree for e in r.education],
    FilterCategory.SKILL: lambda r: r.skills,
    FilterCategory.JOB_TITLE: lambda r: [e.title for e in r.experience],
    FilterCategory.COMPANY: lambda r: [e.company for e in r.experience],
    FilterCategory.CERTIFICATION: lambda r: r.certifications,
}


def extract_vocabulary(records: Iterable[ResumeRecord]) -> Dict[FilterCategory, List[str]]:
    """Distinct non-empty values per category, each list sorted lexicographically"""
    seen: Dict[FilterCategory, set] = {c: set() for c in FilterCategory}
    for record in records:
        for category, values_of in _VALUES_BY_CATEGORY.items():
            seen[category].update(v for v in values_of(record) if v)
    return {c: sorted(seen[c]) for c in FilterCategory}


def options_from_vocabulary(vocabulary: Dict[FilterCategory, List[str]]) -> List[FilterCriterion]:
    """Every selectable (category, value) pair, categories in display order"""
    return [
        FilterCriterion(category=category, value=value)
        for category in FilterCategory
        for value in vocabulary.get(category, [])
    ]


def filter_options(records: Iterable[ResumeRecord]) -> List[FilterCriterion]:
    return options_from_vocabulary(extract_vocabulary(records))


# ---------- predicates ----------

def matches_free_text(record: ResumeRecord, query: str) -> bool:
    if not query:
        return True
    q = query.lower()
    info = record.personal_info
    if info and (q in info.name.lower() or q in info.email.lower()):
        return True
    return any(q in skill.lower() for skill in record.skills)


# Structured criteria compare verbatim (case-sensitive); the vocabulary is
# built from the same record values so every offered value round-trips.
_MATCHERS: Dict[FilterCategory, Matcher] = {
    FilterCategory.LOCATION: lambda r, v: r.personal_info is not None and r.personal_info.location == v,
    FilterCategory.EDUCATION: lambda r, v: any(e.degree == v for e in r.education),
    FilterCategory.SKILL: lambda r, v: v in r.skills,
    FilterCategory.JOB_TITLE: lambda r, v: any(e.title == v for e in r.experience),
    FilterCategory.COMPANY: lambda r, v: any(e.company == v for e in r.experience),
    FilterCategory.CERTIFICATION: lambda r, v: v in r.certifications,
}

_missing = set(FilterCategory) - set(_MATCHERS)
if _missing:
    raise RuntimeError(f"No matcher for filter categories: {sorted(c.value for c in _missing)}")


def matches_criterion(record: ResumeRecord, criterion: Optional[FilterCriterion]) -> bool:
    if criterion is None:
        return True
    return _MATCHERS[criterion.category](record, criterion.value)


def matches_all_criteria(record: ResumeRecord, criteria: Iterable[FilterCriterion]) -> bool:
    """AND over the selectors; an empty selection matches everything"""
    return all(matches_criterion(record, c) for c in criteria)


def is_visible(record: ResumeRecord, state: ActiveFilterState) -> bool:
    if record.personal_info is None:
        return False
    return (matches_free_text(record, state.free_text_query)
            and matches_all_criteria(record, state.active_criteria))


# ---------- ordering ----------

def is_ranked(records: Iterable[ResumeRecord]) -> bool:
    return any(r.match_score is not None for r in records)


def rank(records: Sequence[ResumeRecord]) -> List[ResumeRecord]:
    """Insertion order until a match pass has run, then a stable descending score sort"""
    if not is_ranked(records):
        return list(records)
    return sorted(records, key=lambda r: r.match_score or 0, reverse=True)


def visible_records(records: Sequence[ResumeRecord], state: ActiveFilterState) -> List[ResumeRecord]:
    return rank([r for r in records if is_visible(r, state)])
