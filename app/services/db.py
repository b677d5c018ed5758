import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING, UpdateOne
from typing import Any, Dict, Iterable, List, Optional

from app.models.resume import ResumeRecord
from app.models.settings import DatabaseSettings
from app.utils.exceptions import DatabaseError, ExceptionContext
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def create_collection(settings: DatabaseSettings):
    """Motor collection for resumes; the client connects lazily on first use"""
    logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")
    try:
        client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details, tz_aware=True)
        db = client[settings.db_name]
        logger.info("MongoDB client initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize MongoDB client: {e}")
        raise DatabaseError("Failed to initialize MongoDB client", operation="connect", cause=e)
    return db[settings.collection_name]


def to_record(doc: Optional[Dict[str, Any]]) -> Optional[ResumeRecord]:
    if not doc:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return ResumeRecord(**doc)


def normalize_skills(skills: Iterable[str]) -> List[str]:
    return [s.strip().lower() for s in skills if s and s.strip()]


class ResumeStore:
    """Persistent record store backed by a MongoDB collection"""

    def __init__(self, collection):
        self.coll = collection
        self.name = getattr(collection, "name", "resumes")

    async def init_indexes(self):
        """Index initialization for the resumes collection."""
        logger.info("Starting database index initialization")

        try:
            await self.coll.create_index([("id", ASCENDING)], unique=True)
            logger.debug("Created unique index on resumes.id")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug("Index on resumes.id already exists")
            else:
                logger.warning(f"Could not create unique index on resumes.id: {e}")

        try:
            await self.coll.create_index([("skills", ASCENDING)])
            await self.coll.create_index([("created_at", DESCENDING)])
            logger.debug("Created additional indexes on resumes collection")
        except Exception as e:
            logger.warning(f"Could not create some resumes indexes: {e}")

        logger.info("Database index initialization completed")

    async def insert(self, record: ResumeRecord) -> ResumeRecord:
        with ExceptionContext("insert_resume", logger, collection=self.name, record_id=record.id):
            await self.coll.insert_one(record.dict())
        return record

    async def insert_many(self, records: List[ResumeRecord]) -> List[ResumeRecord]:
        """Insert a batch; on failure the documents that did land are deleted again"""
        if not records:
            return []
        ids = [r.id for r in records]
        try:
            with ExceptionContext("insert_resumes", logger, collection=self.name, count=len(records)):
                await self.coll.insert_many([r.dict() for r in records])
        except Exception:
            await self._delete_ids(ids)
            raise
        logger.info(f"Persisted {len(records)} resumes")
        return records

    async def find_all(self) -> List[ResumeRecord]:
        """All records, newest first"""
        with ExceptionContext("find_all_resumes", logger, collection=self.name):
            cursor = self.coll.find({}).sort("created_at", DESCENDING)
            docs = await cursor.to_list(length=None)
        return [to_record(d) for d in docs]

    async def find_by_skills(self, skills: Iterable[str]) -> List[ResumeRecord]:
        """Records holding any of ``skills`` (compared lowercase), newest first"""
        wanted = normalize_skills(skills)
        if not wanted:
            return []
        with ExceptionContext("find_resumes_by_skills", logger, collection=self.name, skills=wanted):
            cursor = self.coll.find({"skills": {"$in": wanted}}).sort("created_at", DESCENDING)
            docs = await cursor.to_list(length=None)
        return [to_record(d) for d in docs]

    async def delete(self, record_id: str) -> bool:
        with ExceptionContext("delete_resume", logger, collection=self.name, record_id=record_id):
            result = await self.coll.delete_one({"id": record_id})
        return bool(getattr(result, "deleted_count", 0))

    async def set_matches(
        self,
        records: Iterable[ResumeRecord],
        previous: Iterable[ResumeRecord] = (),
    ) -> int:
        """Persist match annotations in one bulk write; records without a score are skipped.

        If the write fails, the annotations of every targeted id are put back to
        their values in ``previous`` (unscored when an id is not listed there).
        """
        scored = [r for r in records if r.match_score is not None]
        if not scored:
            return 0
        ops = [
            UpdateOne({"id": r.id}, {"$set": {"match_score": r.match_score, "match_explanation": r.match_explanation}})
            for r in scored
        ]
        try:
            with ExceptionContext("set_resume_matches", logger, collection=self.name, count=len(ops)):
                await self.coll.bulk_write(ops, ordered=True)
        except Exception:
            before = {r.id: r for r in previous}
            await self._restore_matches([r.id for r in scored], before)
            raise
        return len(ops)

    async def _restore_matches(self, ids: List[str], before: Dict[str, ResumeRecord]) -> None:
        ops = []
        for record_id in ids:
            old = before.get(record_id)
            ops.append(UpdateOne({"id": record_id}, {"$set": {
                "match_score": old.match_score if old else None,
                "match_explanation": old.match_explanation if old else None,
            }}))
        try:
            await self.coll.bulk_write(ops, ordered=False)
            logger.warning(f"Restored match annotations of {len(ops)} resumes after a failed write")
        except Exception as e:
            logger.error(f"Could not restore match annotations for {ids}: {e}")

    async def _delete_ids(self, ids: List[str]) -> None:
        try:
            await self.coll.delete_many({"id": {"$in": ids}})
            logger.warning(f"Removed partially inserted batch of {len(ids)} resumes")
        except Exception as e:
            logger.error(f"Could not remove partially inserted resumes {ids}: {e}")
