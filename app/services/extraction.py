"""
LLM-backed extraction of resume records and job-description scoring
"""
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.helpers import parsing
from app.helpers.prompts import EXTRACT_PROMPT, IMAGE_DOC_PLACEHOLDER, MATCH_PROMPT
from app.models.resume import (
    Education, Experience, PersonalInfo, Project, ResumeRecord, MatchAnnotation
)
from app.models.settings import LLMSettings
from app.utils.exceptions import (
    ExtractionError, MatchingError, ResumeParserException, UnsupportedFileTypeError
)
from app.utils.logging_config import get_logger
from app.utils.utils import ollama_generate, safe_json

logger = get_logger(__name__)

Generate = Callable[..., str]


def _as_text(x: Any) -> str:
    if x is None:
        return ""
    if isinstance(x, list):
        # join list of sentences or tokens into one paragraph
        return " ".join([str(t).strip() for t in x if str(t).strip()])
    return str(x).strip()


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        # split on commas/semicolons; normalize tokens
        parts = [p.strip() for p in x.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(x, list):
        return [_as_text(t) for t in x if _as_text(t)]
    return []


def _as_dicts(x: Any) -> List[Dict[str, Any]]:
    if isinstance(x, dict):
        return [x]
    if isinstance(x, list):
        return [d for d in x if isinstance(d, dict)]
    return []


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in data:
            return data[k]
    return None


def coerce_record(data: Dict[str, Any], file_url: str = "") -> ResumeRecord:
    """Build a ResumeRecord from loosely-shaped LLM output.

    Accepts camelCase or snake_case keys; every scalar becomes a string and
    every list a list, so a sloppy but well-formed reply still yields a
    complete record.
    """
    info = _pick(data, "personalInfo", "personal_info")
    personal_info = None
    if isinstance(info, dict):
        personal_info = PersonalInfo(
            name=_as_text(info.get("name")),
            email=_as_text(info.get("email")),
            phone=_as_text(info.get("phone")),
            location=_as_text(info.get("location")),
        )

    education = [
        Education(
            degree=_as_text(e.get("degree")),
            institution=_as_text(e.get("institution")),
            year=_as_text(e.get("year")),
            gpa=_as_text(e.get("gpa")),
        )
        for e in _as_dicts(data.get("education"))
    ]
    experience = [
        Experience(
            title=_as_text(e.get("title")),
            company=_as_text(e.get("company")),
            duration=_as_text(e.get("duration")),
            responsibilities=_as_list(e.get("responsibilities")),
        )
        for e in _as_dicts(data.get("experience"))
    ]
    projects = [
        Project(
            name=_as_text(p.get("name")),
            description=_as_text(p.get("description")),
            technologies=_as_list(p.get("technologies")),
        )
        for p in _as_dicts(data.get("projects"))
    ]

    return ResumeRecord(
        personal_info=personal_info,
        education=education,
        experience=experience,
        projects=projects,
        skills=_as_list(data.get("skills")),
        certifications=_as_list(data.get("certifications")),
        file_url=file_url,
    )


def _parse_score(raw: Any) -> int:
    if isinstance(raw, list):
        # sometimes model returns ["80"]; take first
        raw = raw[0] if raw else None
    if isinstance(raw, str):
        raw = raw.strip().rstrip("%")
    score = float(raw)
    return max(0, min(100, int(round(score))))


class ExtractionService:
    """Turns documents into records and scores records against a job description"""

    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        generate: Optional[Generate] = None,
        max_concurrent: int = 5,
    ):
        self.settings = settings or LLMSettings()
        self._generate = generate or ollama_generate
        self.max_concurrent = max(1, max_concurrent)

    def _ask(self, prompt: str, images: Optional[List[str]] = None) -> str:
        return self._generate(prompt, self.settings, images=images)

    def extract(self, content: bytes, mime_type: str, filename: str = "") -> ResumeRecord:
        if not parsing.is_supported(mime_type):
            raise UnsupportedFileTypeError(mime_type, filename=filename)

        try:
            if parsing.is_image(mime_type):
                prompt = EXTRACT_PROMPT.format(doc=IMAGE_DOC_PLACEHOLDER)
                resp = self._ask(prompt, images=[parsing.encode_image(content)])
            else:
                text = parsing.extract_text(content, mime_type)
                if not text:
                    raise ExtractionError("No text could be read from the document",
                                          filename=filename, mime_type=mime_type)
                resp = self._ask(EXTRACT_PROMPT.format(doc=text))
        except ResumeParserException:
            raise
        except Exception as e:
            logger.error(f"Reading {filename or 'document'} failed: {e}")
            raise ExtractionError(f"Failed to read document: {e}",
                                  filename=filename, mime_type=mime_type, cause=e) from e

        data = safe_json(resp)
        if not isinstance(data, dict):
            logger.warning(f"Unparseable extraction output for {filename or 'document'}: {resp[:200]!r}")
            raise ExtractionError("Failed to process resume: the model returned no usable JSON",
                                  filename=filename, mime_type=mime_type)

        record = coerce_record(data)
        logger.info(f"Extracted resume {record.id} from {filename or 'document'} "
                    f"({len(record.skills)} skills, {len(record.experience)} roles)")
        return record

    def score(self, job_description: str, record: ResumeRecord) -> MatchAnnotation:
        info = record.personal_info or PersonalInfo()
        experience = "\n".join(
            f"{e.title} at {e.company} - {', '.join(e.responsibilities)}" for e in record.experience
        )
        prompt = MATCH_PROMPT.format(
            job_description=job_description,
            name=info.name,
            skills=", ".join(record.skills),
            experience=experience,
        )

        try:
            resp = self._ask(prompt)
        except ResumeParserException as e:
            raise MatchingError(f"Scoring failed for resume {record.id}: {e.message}",
                                record_id=record.id, cause=e) from e

        data = safe_json(resp)
        if not isinstance(data, dict) or "score" not in data:
            raise MatchingError(f"Unparseable match output for resume {record.id}", record_id=record.id)
        try:
            score = _parse_score(data.get("score"))
        except (TypeError, ValueError) as e:
            raise MatchingError(f"Invalid score for resume {record.id}: {data.get('score')!r}",
                                record_id=record.id, cause=e) from e

        return MatchAnnotation(record_id=record.id, score=score,
                               explanation=_as_text(_pick(data, "explanation", "why")))

    def match(self, job_description: str, records: Sequence[ResumeRecord]) -> List[ResumeRecord]:
        """Score every record, up to ``max_concurrent`` at a time.

        All-or-nothing: the first failure cancels the scorings not yet started
        and is raised. The result is sorted by descending score.
        """
        records = list(records)
        if not records:
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_concurrent, len(records))) as pool:
            futures = [pool.submit(self.score, job_description, r) for r in records]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            failed = [f for f in futures if f in done and f.exception() is not None]
            if failed:
                logger.error(f"Match pass aborted: {len(failed)} of {len(records)} scorings failed")
                raise failed[0].exception()

        annotations = [f.result() for f in futures]
        scored = [r.with_match(a.score, a.explanation) for r, a in zip(records, annotations)]
        # sorted() is stable: equal scores keep their input order
        return sorted(scored, key=lambda r: r.match_score, reverse=True)
