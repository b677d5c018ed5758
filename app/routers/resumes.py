from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import Response

from app.models.filters import ActiveFilterState, FilterCategory, FilterCriterion
from app.models.models import UploadedDocument
from app.models.response import (
    BatchUploadResponse, DeleteResponse, FilterVocabularyResponse, VisibleResumesResponse
)
from app.models.resume import ResumeRecord
from app.services.dependencies import get_resume_service
from app.services.export import MEDIA_TYPES, export_records
from app.services.filtering import is_ranked, options_from_vocabulary
from app.services.resume_service import ResumeService
from app.utils.exceptions import ValidationError
from app.utils.logging_config import get_logger, log_api_call, PerformanceMonitor

router = APIRouter()
logger = get_logger(__name__)


async def read_upload(file: UploadFile) -> UploadedDocument:
    content = await file.read()
    return UploadedDocument(
        filename=file.filename or "upload",
        mime_type=file.content_type or "",
        content=content,
    )


def filter_state(
    q: str = Query("", description="Free-text search over name, email and skills"),
    category: List[FilterCategory] = Query([], description="Structured filter category; repeat with value to AND several"),
    value: List[str] = Query([], description="Exact value for the category at the same position"),
) -> ActiveFilterState:
    if len(category) != len(value):
        raise ValidationError("category and value must be given together",
                              field="value" if len(category) > len(value) else "category")
    pairs = [FilterCriterion(category=c, value=v) for c, v in zip(category, value)]
    if len(pairs) == 1:
        return ActiveFilterState(free_text_query=q, selected_criterion=pairs[0])
    return ActiveFilterState(free_text_query=q, criteria=pairs)


@router.post("/parse", response_model=ResumeRecord)
@log_api_call("parse_resume")
async def parse_resume(file: UploadFile = File(...), service: ResumeService = Depends(get_resume_service)):
    """Parse one resume and return the extracted record without storing it"""
    doc = await read_upload(file)
    return await service.parse(doc)


@router.post("/upload", response_model=BatchUploadResponse)
@log_api_call("upload_resumes")
async def upload_resumes(
    request: Request,
    files: List[UploadFile] = File(...),
    service: ResumeService = Depends(get_resume_service),
):
    """Parse and store a batch of resumes; if any file fails, none are kept"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    docs = [await read_upload(f) for f in files]
    logger.info(f"Upload batch of {len(docs)} files", extra={"request_id": request_id})

    with PerformanceMonitor("upload_resumes", logger, threshold_ms=30000):
        records = await service.upload(docs)

    return BatchUploadResponse(records=records, count=len(records), total=len(service.collection))


@router.get("", response_model=List[ResumeRecord])
async def list_resumes(service: ResumeService = Depends(get_resume_service)):
    """Get all resumes in insertion order"""
    return service.all()


@router.get("/search", response_model=List[ResumeRecord])
async def search_resumes(
    skills: Optional[str] = Query(None, description="Comma separated skills"),
    service: ResumeService = Depends(get_resume_service),
):
    """Find resumes holding any of the given skills"""
    skill_list = [s.strip() for s in (skills or "").split(",") if s.strip()]
    if not skill_list:
        raise ValidationError("No skills provided", field="skills", value=skills)
    return await service.search_by_skills(skill_list)


@router.get("/filters", response_model=FilterVocabularyResponse)
async def list_filters(service: ResumeService = Depends(get_resume_service)):
    """Selectable filter values derived from the current collection"""
    vocabulary = service.vocabulary()
    return FilterVocabularyResponse(
        vocabulary={c.value: values for c, values in vocabulary.items()},
        options=options_from_vocabulary(vocabulary),
    )


@router.get("/visible", response_model=VisibleResumesResponse)
async def list_visible(
    state: ActiveFilterState = Depends(filter_state),
    service: ResumeService = Depends(get_resume_service),
):
    """Resumes matching the filter, ranked by match score once a match has run"""
    records = service.visible(state)
    return VisibleResumesResponse(
        records=records,
        count=len(records),
        total=len(service.collection),
        ranked=is_ranked(records),
    )


@router.get("/export")
async def export_resumes(
    state: ActiveFilterState = Depends(filter_state),
    format: str = Query("xlsx", description="xlsx or csv"),
    service: ResumeService = Depends(get_resume_service),
):
    """Download the visible resumes as a spreadsheet"""
    records = service.visible(state)
    payload = export_records(records, fmt=format)
    filename = f"resumes.{format}"
    return Response(
        content=payload,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{resume_id}", response_model=DeleteResponse)
async def delete_resume(resume_id: str, service: ResumeService = Depends(get_resume_service)):
    """Delete a resume; unknown ids are ignored"""
    deleted = await service.delete(resume_id)
    return DeleteResponse(id=resume_id, deleted=deleted, total=len(service.collection))
