"""
Spreadsheet export of the visible resume set
"""
import io
from typing import Dict, List, Sequence

import pandas as pd

from app.models.resume import ResumeRecord
from app.utils.exceptions import EmptyExportError, ValidationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

COLUMNS = [
    "Name", "Email", "Location", "Phone", "Education", "Skills",
    "Experience", "Projects", "Certifications", "Resume URL",
]

MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}


def to_row(resume: ResumeRecord) -> Dict[str, str]:
    info = resume.personal_info
    return {
        "Name": info.name if info else "",
        "Email": info.email if info else "",
        "Location": info.location if info else "",
        "Phone": info.phone if info else "",
        "Education": "; ".join(f"{e.degree} - {e.institution} ({e.year})" for e in resume.education),
        "Skills": ", ".join(resume.skills),
        "Experience": "; ".join(f"{e.title} at {e.company} ({e.duration})" for e in resume.experience),
        "Projects": "; ".join(f"{p.name}: {p.description}" for p in resume.projects),
        "Certifications": ", ".join(resume.certifications),
        "Resume URL": resume.file_url or "",
    }


def prepare_rows(resumes: Sequence[ResumeRecord]) -> List[Dict[str, str]]:
    return [to_row(r) for r in resumes]


def write_spreadsheet(rows: List[Dict[str, str]], sheet_name: str = "Resumes") -> bytes:
    df = pd.DataFrame(rows, columns=COLUMNS)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return buf.getvalue()


def write_csv(rows: List[Dict[str, str]]) -> bytes:
    df = pd.DataFrame(rows, columns=COLUMNS)
    return df.to_csv(index=False).encode("utf-8")


def export_records(resumes: Sequence[ResumeRecord], fmt: str = "xlsx", sheet_name: str = "Resumes") -> bytes:
    """Serialize the given records in order; refuses an empty set"""
    if fmt not in MEDIA_TYPES:
        raise ValidationError(f"Unsupported export format: {fmt}", field="format", value=fmt)
    if not resumes:
        raise EmptyExportError()

    rows = prepare_rows(resumes)
    logger.info(f"Exporting {len(rows)} resumes as {fmt}")
    if fmt == "csv":
        return write_csv(rows)
    return write_spreadsheet(rows, sheet_name=sheet_name)
