import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.helpers import parsing
from app.models.response import MatchResponse
from app.services.dependencies import get_resume_service
from app.services.resume_service import ResumeService
from app.utils.exceptions import ExtractionError, UnsupportedFileTypeError, ValidationError
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)

JD_MIME_TYPES = (parsing.PDF, parsing.DOC, parsing.DOCX, parsing.TXT)


async def read_job_description(jd_file: Optional[UploadFile], jd_text: Optional[str]) -> str:
    if jd_file is not None:
        mime_type = jd_file.content_type or ""
        if mime_type not in JD_MIME_TYPES:
            raise UnsupportedFileTypeError(mime_type, filename=jd_file.filename)
        content = await jd_file.read()
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, parsing.extract_text, content, mime_type)
        except Exception as e:
            raise ExtractionError(f"Could not read job description: {e}",
                                  filename=jd_file.filename, mime_type=mime_type, cause=e) from e
    if jd_text and jd_text.strip():
        return jd_text.strip()
    raise ValidationError("No JD file provided", field="jd_file")


@router.post("", response_model=MatchResponse)
@log_api_call("match_job_description")
async def match_job_description(
    jd_file: Optional[UploadFile] = File(None),
    jd_text: Optional[str] = Form(None),
    service: ResumeService = Depends(get_resume_service),
):
    """Score every resume against a job description and return them ranked"""
    job_description = await read_job_description(jd_file, jd_text)
    logger.info(f"Matching {len(service.collection)} resumes against a {len(job_description)}-char JD")
    records = await service.match(job_description)
    return MatchResponse(records=records, count=len(records))
