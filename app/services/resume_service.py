"""
Resume service: ties the in-memory collection to the store, file storage
and the LLM extractor
"""
import asyncio
from typing import Dict, List, Optional, Sequence

from app.models.filters import ActiveFilterState, FilterCategory
from app.models.models import UploadedDocument
from app.models.resume import ResumeRecord
from app.models.settings import ProcessingSettings
from app.services.collection import ResumeCollection
from app.services.db import ResumeStore, normalize_skills
from app.services.filtering import rank, visible_records
from app.services.ingestion import check_supported, ingest_batch
from app.services.storage import FileStorage
from app.utils.exceptions import FileStorageError, MatchingError, ResumeParserException, ValidationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class ResumeService:

    def __init__(
        self,
        extractor,
        collection: Optional[ResumeCollection] = None,
        store: Optional[ResumeStore] = None,
        storage: Optional[FileStorage] = None,
        processing: Optional[ProcessingSettings] = None,
    ):
        self.extractor = extractor
        self.collection = collection if collection is not None else ResumeCollection()
        self.store = store
        self.storage = storage
        self.processing = processing or ProcessingSettings()

    async def load(self) -> int:
        """Fill the collection from the store (store order is newest first)"""
        if self.store is None:
            return 0
        records = await self.store.find_all()
        fresh = [r for r in reversed(records) if r.id not in self.collection]
        self.collection.add_many(fresh)
        logger.info(f"Loaded {len(fresh)} resumes from the store")
        return len(fresh)

    # ---------- ingestion ----------

    async def parse(self, doc: UploadedDocument) -> ResumeRecord:
        """Extract a single document without storing anything"""
        check_supported([doc])
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extractor.extract, doc.content, doc.mime_type, doc.filename)

    async def upload(self, docs: Sequence[UploadedDocument]) -> List[ResumeRecord]:
        if not docs:
            raise ValidationError("No files provided", field="files")

        records = await ingest_batch(
            docs,
            self.extractor,
            max_concurrent=self.processing.max_concurrent,
            timeout=self.processing.batch_timeout,
        )

        if self.storage is not None:
            records = self._save_originals(docs, records)

        try:
            if self.store is not None:
                await self.store.insert_many(records)
        except Exception:
            self._discard_originals(records)
            raise

        self.collection.add_many(records)
        logger.info(f"Added batch of {len(records)} resumes; collection size {len(self.collection)}")
        return records

    def _save_originals(self, docs: Sequence[UploadedDocument], records: List[ResumeRecord]) -> List[ResumeRecord]:
        """Write every original and attach its URL; any failure removes the files already written"""
        saved: List[ResumeRecord] = []
        for doc, record in zip(docs, records):
            try:
                url = self.storage.save(record.id, doc.content, doc.filename, doc.mime_type)
            except Exception as e:
                self._discard_originals(saved)
                logger.error(f"Could not store {doc.filename}; discarded {len(saved)} files of the batch: {e}")
                raise FileStorageError(f"Failed to store resume file {doc.filename}: {e}",
                                       filename=doc.filename, cause=e) from e
            saved.append(record.copy(update={"file_url": url}))
        return saved

    def _discard_originals(self, records: Sequence[ResumeRecord]) -> None:
        if self.storage is None:
            return
        for r in records:
            try:
                self.storage.remove(r.file_url)
            except OSError as e:
                logger.error(f"Could not remove stored file {r.file_url}: {e}")

    # ---------- queries ----------

    def all(self) -> List[ResumeRecord]:
        return list(self.collection.snapshot())

    def visible(self, state: ActiveFilterState) -> List[ResumeRecord]:
        return visible_records(self.collection.snapshot(), state)

    def vocabulary(self) -> Dict[FilterCategory, List[str]]:
        return self.collection.vocabulary()

    async def search_by_skills(self, skills: Sequence[str]) -> List[ResumeRecord]:
        if self.store is not None:
            return await self.store.find_by_skills(skills)
        wanted = set(normalize_skills(skills))
        newest_first = reversed(self.collection.snapshot())
        return [r for r in newest_first if wanted.intersection(r.skills)]

    # ---------- mutation ----------

    async def delete(self, record_id: str) -> bool:
        record = self.collection.get(record_id)
        if self.store is not None:
            await self.store.delete(record_id)
        removed = self.collection.delete(record_id)
        if record is not None and self.storage is not None:
            self.storage.remove(record.file_url)
        if removed:
            logger.info(f"Deleted resume {record_id}")
        return removed

    async def match(self, job_description: str) -> List[ResumeRecord]:
        """Score the whole collection against a job description.

        Nothing is changed unless every record was scored.
        """
        if not job_description or not job_description.strip():
            raise ValidationError("Job description is empty", field="job_description")

        snapshot = list(self.collection.snapshot())
        if not snapshot:
            raise ValidationError("There are no resumes to match", field="resumes")

        loop = asyncio.get_running_loop()
        try:
            scored = await loop.run_in_executor(None, self.extractor.match, job_description, snapshot)
        except ResumeParserException:
            raise
        except Exception as e:
            logger.error(f"Match pass failed: {e}")
            raise MatchingError(f"Failed to process job description: {e}", cause=e) from e

        if len(scored) != len(snapshot) or any(r.match_score is None for r in scored):
            raise MatchingError("Match pass did not score every resume")

        if self.store is not None:
            await self.store.set_matches(scored, previous=snapshot)
        updated = self.collection.apply_match(scored)
        logger.info(f"Match pass scored {updated} resumes")
        return rank(self.collection.snapshot())
