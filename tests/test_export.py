import io

import pandas as pd
import pytest

from app.models.resume import Education, Experience, PersonalInfo, Project, ResumeRecord
from app.services.export import COLUMNS, export_records, prepare_rows, to_row
from app.utils.exceptions import EmptyExportError, ValidationError


@pytest.fixture
def full_record():
    return ResumeRecord(
        personal_info=PersonalInfo(name="Anna Lee", email="anna@example.com", phone="123", location="Berlin"),
        education=[
            Education(degree="BSc", institution="TU Berlin", year="2016"),
            Education(degree="MSc", institution="ETH", year="2018"),
        ],
        experience=[Experience(title="Engineer", company="Acme", duration="3 years")],
        projects=[Project(name="Parser", description="Reads resumes"), Project(name="Bot", description="Chats")],
        skills=["go", "sql"],
        certifications=["CKA", "AWS SA"],
        file_url="/files/abc.pdf",
    )


class TestExportProjection:
    """Row projection of resume records"""

    def test_full_row(self, full_record):
        assert to_row(full_record) == {
            "Name": "Anna Lee",
            "Email": "anna@example.com",
            "Location": "Berlin",
            "Phone": "123",
            "Education": "BSc - TU Berlin (2016); MSc - ETH (2018)",
            "Skills": "go, sql",
            "Experience": "Engineer at Acme (3 years)",
            "Projects": "Parser: Reads resumes; Bot: Chats",
            "Certifications": "CKA, AWS SA",
            "Resume URL": "/files/abc.pdf",
        }

    def test_missing_data_becomes_empty_strings(self):
        row = to_row(ResumeRecord())
        assert list(row) == COLUMNS
        assert all(v == "" for v in row.values())

    def test_projection_does_not_mutate(self, full_record):
        before = full_record.dict()
        prepare_rows([full_record])
        assert full_record.dict() == before

    def test_rows_follow_given_order(self, make_record):
        records = [make_record(name="b"), make_record(name="a")]
        assert [r["Name"] for r in prepare_rows(records)] == ["b", "a"]


class TestExportRecords:
    """Serialized exports"""

    def test_empty_export_is_refused(self):
        with pytest.raises(EmptyExportError):
            export_records([])

    def test_unknown_format_rejected(self, make_record):
        with pytest.raises(ValidationError):
            export_records([make_record()], fmt="pdf")

    def test_xlsx_has_one_row_per_record(self, make_record):
        records = [make_record(name="Anna", skills=["go", "sql"]), make_record(name="Bob", skills=["python"])]
        payload = export_records(records, fmt="xlsx", sheet_name="Resumes")

        df = pd.read_excel(io.BytesIO(payload), sheet_name="Resumes", dtype=str, keep_default_na=False)
        assert list(df.columns) == COLUMNS
        assert len(df) == 2
        assert list(df["Skills"]) == ["go, sql", "python"]

    def test_csv_export(self, make_record):
        payload = export_records([make_record(name="Anna", skills=["go"])], fmt="csv")
        df = pd.read_csv(io.BytesIO(payload), dtype=str, keep_default_na=False)
        assert list(df["Name"]) == ["Anna"]
        assert list(df["Skills"]) == ["go"]
