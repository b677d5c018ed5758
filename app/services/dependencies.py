from fastapi import Request

from app.services.resume_service import ResumeService
from app.utils.exceptions import ResumeParserException


def get_resume_service(request: Request) -> ResumeService:
    service = getattr(request.app.state, "resume_service", None)
    if service is None:
        raise ResumeParserException("Resume service is not initialized", error_code="SERVICE_UNAVAILABLE")
    return service
