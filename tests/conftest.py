import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from app.models.resume import Education, Experience, PersonalInfo, Project, ResumeRecord


def _record(
    name="Anna Lee",
    email="anna@example.com",
    location="Berlin",
    skills=(),
    degrees=(),
    jobs=(),
    certifications=(),
    **kwargs,
):
    """jobs: iterable of (title, company) pairs"""
    return ResumeRecord(
        personal_info=PersonalInfo(name=name, email=email, phone="555-0100", location=location),
        education=[Education(degree=d, institution="TU Berlin", year="2019") for d in degrees],
        experience=[Experience(title=t, company=c, duration="2 years") for t, c in jobs],
        skills=list(skills),
        certifications=list(certifications),
        **kwargs,
    )


@pytest.fixture
def make_record():
    return _record


class FakeExtractor:
    """Stands in for ExtractionService: records keyed by filename, failures by name"""

    def __init__(self, records=None, failing=(), scores=None, match_error=None):
        self.records = dict(records or {})
        self.failing = set(failing)
        self.scores = dict(scores or {})
        self.match_error = match_error
        self.extract_calls = []
        self.match_calls = 0

    def extract(self, content, mime_type, filename=""):
        self.extract_calls.append(filename)
        if filename in self.failing:
            from app.utils.exceptions import ExtractionError
            raise ExtractionError("Failed to process resume", filename=filename)
        if filename in self.records:
            return self.records[filename]
        return _record(name=filename, email=f"{filename}@example.com")

    def match(self, job_description, records):
        self.match_calls += 1
        if self.match_error is not None:
            raise self.match_error
        scored = [r.with_match(self.scores.get(r.id, 0), f"fit for {job_description[:10]}") for r in records]
        return sorted(scored, key=lambda r: r.match_score, reverse=True)


@pytest.fixture
def fake_extractor_cls():
    return FakeExtractor
