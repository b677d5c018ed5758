import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from app.helpers.parsing import JPEG, TXT
from app.models.settings import LLMSettings
from app.services.extraction import ExtractionService, coerce_record
from app.utils.exceptions import (
    ExternalServiceError, ExtractionError, MatchingError, UnsupportedFileTypeError
)

LLM_REPLY = {
    "personalInfo": {"name": "Anna Lee", "email": "anna@example.com", "phone": "123", "location": "Berlin"},
    "education": [{"degree": "MSc", "institution": "ETH", "year": 2018, "gpa": None}],
    "experience": [{"title": "Engineer", "company": "Acme", "duration": "3y",
                    "responsibilities": ["build", "ship"]}],
    "projects": [{"name": "Parser", "description": "Reads resumes", "technologies": "python, fastapi"}],
    "skills": ["Python", "SQL", " "],
    "certifications": ["CKA"],
}


def generator(*replies):
    gen = MagicMock(side_effect=list(replies))
    return gen


class TestCoerceRecord:
    """Turning loose LLM JSON into records"""

    def test_full_reply(self):
        record = coerce_record(LLM_REPLY)
        assert record.personal_info.name == "Anna Lee"
        assert record.education[0].year == "2018"
        assert record.education[0].gpa == ""
        assert record.experience[0].responsibilities == ["build", "ship"]
        assert record.projects[0].technologies == ["python", "fastapi"]
        assert record.skills == ["python", "sql"]
        assert record.certifications == ["CKA"]
        assert record.match_score is None and record.match_explanation is None

    def test_missing_sections_default_empty(self):
        record = coerce_record({"skills": "Go; Rust"})
        assert record.personal_info is None
        assert record.education == [] and record.experience == [] and record.projects == []
        assert record.skills == ["go", "rust"]

    def test_snake_case_keys_accepted(self):
        record = coerce_record({"personal_info": {"name": "Bob"}})
        assert record.personal_info.name == "Bob"
        assert record.personal_info.email == ""


class TestExtract:
    """ExtractionService.extract"""

    def test_text_document(self):
        gen = generator("```json\n" + json.dumps(LLM_REPLY) + "\n```")
        service = ExtractionService(LLMSettings(), generate=gen)

        record = service.extract(b"Anna Lee\nPython developer", TXT, "anna.txt")

        assert record.personal_info.email == "anna@example.com"
        prompt = gen.call_args.args[0]
        assert "Anna Lee Python developer" in prompt
        assert gen.call_args.kwargs["images"] is None

    def test_image_sent_as_base64(self):
        gen = generator(json.dumps(LLM_REPLY))
        service = ExtractionService(LLMSettings(), generate=gen)

        service.extract(b"\x89PNGfake", JPEG, "scan.jpg")

        images = gen.call_args.kwargs["images"]
        assert images == ["iVBOR2Zha2U="]

    def test_unparseable_reply_raises(self):
        service = ExtractionService(LLMSettings(), generate=generator("Sorry, I cannot help"))
        with pytest.raises(ExtractionError):
            service.extract(b"text", TXT, "a.txt")

    def test_empty_document_raises(self):
        gen = generator()
        service = ExtractionService(LLMSettings(), generate=gen)
        with pytest.raises(ExtractionError):
            service.extract(b"   ", TXT, "blank.txt")
        gen.assert_not_called()

    def test_unsupported_type(self):
        service = ExtractionService(LLMSettings(), generate=generator())
        with pytest.raises(UnsupportedFileTypeError):
            service.extract(b"x", "application/zip", "a.zip")

    def test_transport_error_propagates(self):
        gen = MagicMock(side_effect=ExternalServiceError("LLM request failed", service_name="ollama"))
        service = ExtractionService(LLMSettings(), generate=gen)
        with pytest.raises(ExternalServiceError):
            service.extract(b"text", TXT, "a.txt")


def replies_by_name(replies):
    """Generator stand-in that answers according to the candidate named in the prompt"""
    def _generate(prompt, settings, images=None):
        for name, reply in replies.items():
            if f"Name: {name}\n" in prompt:
                return reply
        raise AssertionError("unexpected prompt")
    return _generate


class TestMatch:
    """ExtractionService.match"""

    def test_scores_and_sorts_stably(self, make_record):
        r1, r2, r3 = make_record(name="R1"), make_record(name="R2"), make_record(name="R3")
        gen = replies_by_name({
            "R1": '{"score": 90, "explanation": "strong"}',
            "R3": '{"score": "40", "explanation": "weak"}',
            "R2": '{"score": 90.2, "explanation": "strong too"}',
        })
        service = ExtractionService(LLMSettings(), generate=gen, max_concurrent=3)

        result = service.match("Go developer", [r1, r3, r2])

        assert [r.id for r in result] == [r1.id, r2.id, r3.id]
        assert [r.match_score for r in result] == [90, 90, 40]
        assert result[0].skills == r1.skills
        assert result[0].personal_info == r1.personal_info

    def test_scores_concurrently(self, make_record):
        records = [make_record(name=f"C{i}") for i in range(3)]
        # every scoring waits for the other two; a sequential pass would break the barrier
        barrier = threading.Barrier(3, timeout=5)

        def gen(prompt, settings, images=None):
            barrier.wait()
            return '{"score": 50, "explanation": "ok"}'

        result = ExtractionService(LLMSettings(), generate=gen, max_concurrent=3).match("JD", records)
        assert [r.match_score for r in result] == [50, 50, 50]

    def test_score_clamped(self, make_record):
        service = ExtractionService(LLMSettings(), generate=generator('{"score": 140, "why": "wow"}'))
        [record] = service.match("JD", [make_record()])
        assert record.match_score == 100
        assert record.match_explanation == "wow"

    def test_unparseable_score_fails_pass(self, make_record):
        gen = replies_by_name({"Good": '{"score": 50}', "Bad": "no json here"})
        service = ExtractionService(LLMSettings(), generate=gen)
        with pytest.raises(MatchingError):
            service.match("JD", [make_record(name="Good"), make_record(name="Bad")])

    def test_llm_failure_becomes_matching_error(self, make_record):
        gen = MagicMock(side_effect=ExternalServiceError("down", service_name="ollama"))
        service = ExtractionService(LLMSettings(), generate=gen)
        with pytest.raises(MatchingError):
            service.match("JD", [make_record()])

    def test_empty_collection(self):
        assert ExtractionService(LLMSettings(), generate=generator()).match("JD", []) == []


class TestOllamaClient:
    """HTTP client for Ollama"""

    @patch('app.utils.utils.requests.post')
    def test_generate_posts_prompt_and_images(self, mock_post):
        from app.utils.utils import ollama_generate

        mock_post.return_value.json.return_value = {"response": "{}"}
        settings = LLMSettings(base_url="http://llm:11434/", timeout=5)

        assert ollama_generate("hi", settings, images=["abc"]) == "{}"

        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "http://llm:11434/api/generate"
        assert payload["images"] == ["abc"]
        assert payload["stream"] is False
        assert mock_post.call_args.kwargs["timeout"] == 5

    @patch('app.utils.utils.requests.post')
    def test_generate_wraps_transport_errors(self, mock_post):
        import requests
        from app.utils.utils import ollama_generate

        mock_post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ExternalServiceError):
            ollama_generate("hi", LLMSettings())

    def test_safe_json_tolerates_chatter(self):
        from app.utils.utils import safe_json

        assert safe_json('Sure! ```json\n{"score": 70}\n``` hope this helps') == {"score": 70}
        assert safe_json("no object here", fallback={}) == {}
        assert safe_json('{"broken": ') is None
