import asyncio
import time

import pytest

from app.helpers.parsing import PDF, PNG, TXT
from app.models.models import UploadedDocument
from app.services.ingestion import ingest_batch
from app.utils.exceptions import BatchIngestionError, UnsupportedFileTypeError


def doc(name, mime=TXT, content=b"resume text"):
    return UploadedDocument(filename=name, mime_type=mime, content=content)


class SlowExtractor:
    def __init__(self, delay):
        self.delay = delay

    def extract(self, content, mime_type, filename=""):
        time.sleep(self.delay)
        raise AssertionError("should have timed out")


class TestIngestBatch:
    """All-or-nothing batch extraction"""

    def test_returns_records_in_upload_order(self, fake_extractor_cls):
        extractor = fake_extractor_cls()
        docs = [doc("one.txt"), doc("two.pdf", PDF), doc("three.png", PNG)]

        records = asyncio.run(ingest_batch(docs, extractor, max_concurrent=2))

        assert [r.personal_info.name for r in records] == ["one.txt", "two.pdf", "three.png"]
        assert sorted(extractor.extract_calls) == sorted(d.filename for d in docs)

    def test_one_failure_fails_whole_batch(self, fake_extractor_cls):
        extractor = fake_extractor_cls(failing={"second.pdf"})
        docs = [doc("first.txt"), doc("second.pdf", PDF), doc("third.txt")]

        with pytest.raises(BatchIngestionError) as exc_info:
            asyncio.run(ingest_batch(docs, extractor, max_concurrent=1))

        assert exc_info.value.details["failed_files"] == ["second.pdf"]
        assert exc_info.value.details["batch_size"] == 3
        assert "second.pdf" in exc_info.value.message

    def test_unsupported_type_rejected_before_extraction(self, fake_extractor_cls):
        extractor = fake_extractor_cls()
        docs = [doc("ok.txt"), doc("slides.pptx", "application/vnd.ms-powerpoint")]

        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            asyncio.run(ingest_batch(docs, extractor))

        assert extractor.extract_calls == []
        assert exc_info.value.details["filename"] == "slides.pptx"

    def test_empty_batch(self, fake_extractor_cls):
        assert asyncio.run(ingest_batch([], fake_extractor_cls())) == []

    def test_timeout_fails_batch(self):
        with pytest.raises(BatchIngestionError) as exc_info:
            asyncio.run(ingest_batch([doc("slow.txt")], SlowExtractor(0.5), timeout=0.05))

        assert exc_info.value.details["failed_files"] == ["slow.txt"]
        assert "timed out" in exc_info.value.message
