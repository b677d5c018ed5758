"""
Concurrent extraction of an upload batch.

Policy is all-or-nothing: the batch yields records only if every document
extracts successfully. The first failure (or the batch timeout) cancels the
remaining work and surfaces as a single BatchIngestionError.
"""
import asyncio
from typing import List, Optional, Sequence

from app.helpers.parsing import is_supported
from app.models.models import UploadedDocument
from app.models.resume import ResumeRecord
from app.utils.exceptions import BatchIngestionError, ResumeParserException, UnsupportedFileTypeError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def check_supported(docs: Sequence[UploadedDocument]) -> None:
    for doc in docs:
        if not is_supported(doc.mime_type):
            logger.warning(f"Rejected {doc.filename}: unsupported type {doc.mime_type}")
            raise UnsupportedFileTypeError(doc.mime_type, filename=doc.filename)


async def ingest_batch(
    docs: Sequence[UploadedDocument],
    extractor,
    max_concurrent: int = 5,
    timeout: Optional[float] = None,
) -> List[ResumeRecord]:
    """Extract every document; returns records in upload order"""
    check_supported(docs)
    if not docs:
        return []

    loop = asyncio.get_running_loop()
    semaphore = asyncio.Semaphore(max_concurrent)

    async def extract_one(doc: UploadedDocument) -> ResumeRecord:
        async with semaphore:
            logger.debug(f"Extracting {doc.filename} ({doc.mime_type}, {doc.size} bytes)")
            return await loop.run_in_executor(None, extractor.extract, doc.content, doc.mime_type, doc.filename)

    tasks = [asyncio.ensure_future(extract_one(d)) for d in docs]
    done, pending = await asyncio.wait(tasks, timeout=timeout, return_when=asyncio.FIRST_EXCEPTION)

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    failures = [(doc, task.exception()) for doc, task in zip(docs, tasks)
                if task in done and task.exception() is not None]

    if failures:
        doc, first = failures[0]
        reason = first.message if isinstance(first, ResumeParserException) else str(first)
        logger.error(f"Batch of {len(docs)} rejected: {doc.filename} failed: {reason}")
        raise BatchIngestionError(
            f"Failed to process resume {doc.filename}: {reason}",
            failed_files=[d.filename for d, _ in failures],
            batch_size=len(docs),
            cause=first,
        )

    if pending:
        logger.error(f"Batch of {len(docs)} timed out after {timeout}s with {len(pending)} unfinished")
        raise BatchIngestionError(
            f"Resume batch timed out after {timeout} seconds",
            failed_files=[doc.filename for doc, task in zip(docs, tasks) if task in pending],
            batch_size=len(docs),
        )

    records = [task.result() for task in tasks]
    logger.info(f"Extracted batch of {len(records)} resumes")
    return records
