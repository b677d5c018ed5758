"""
In-memory resume collection shared by the HTTP layer and the filter engine
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.models.filters import FilterCategory
from app.models.resume import ResumeRecord
from app.services.filtering import extract_vocabulary
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class ResumeCollection:
    """Ordered set of records keyed by id, in insertion order.

    Writers are the upload batch, deletion, and the match pass; readers get
    immutable snapshots. The filter vocabulary is rebuilt from scratch
    whenever the contents change.
    """

    def __init__(self, records: Iterable[ResumeRecord] = ()):
        self._records: Dict[str, ResumeRecord] = {}
        self._version = 0
        self._vocabulary: Optional[Dict[FilterCategory, List[str]]] = None
        self._vocabulary_version = -1
        self.add_many(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    @property
    def version(self) -> int:
        return self._version

    def get(self, record_id: str) -> Optional[ResumeRecord]:
        return self._records.get(record_id)

    def snapshot(self) -> Tuple[ResumeRecord, ...]:
        return tuple(self._records.values())

    def add_many(self, records: Iterable[ResumeRecord]) -> List[ResumeRecord]:
        """Append a batch; the whole batch is rejected if any id collides"""
        batch = list(records)
        ids = [r.id for r in batch]
        duplicates = {i for i in ids if i in self._records or ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"Duplicate resume ids: {sorted(duplicates)}")
        if not batch:
            return []
        for record in batch:
            self._records[record.id] = record
        self._changed()
        logger.debug(f"Added {len(batch)} resumes, collection size {len(self._records)}")
        return batch

    def add(self, record: ResumeRecord) -> ResumeRecord:
        return self.add_many([record])[0]

    def delete(self, record_id: str) -> bool:
        """Remove by id; unknown ids are a no-op"""
        if self._records.pop(record_id, None) is None:
            logger.debug(f"Delete of unknown resume {record_id} ignored")
            return False
        self._changed()
        return True

    def apply_match(self, scored: Sequence[ResumeRecord]) -> int:
        """Copy match annotations onto the stored records.

        Only ``match_score`` / ``match_explanation`` are taken from ``scored``.
        Ids no longer in the collection (deleted mid-pass) are skipped.
        """
        updated = 0
        for record in scored:
            current = self._records.get(record.id)
            if current is None or record.match_score is None:
                continue
            self._records[record.id] = current.with_match(record.match_score, record.match_explanation)
            updated += 1
        if updated:
            self._changed()
        return updated

    def vocabulary(self) -> Dict[FilterCategory, List[str]]:
        """Cached per version; callers get copies of the lists"""
        if self._vocabulary_version != self._version:
            self._vocabulary = extract_vocabulary(self._records.values())
            self._vocabulary_version = self._version
        return {category: list(values) for category, values in self._vocabulary.items()}

    def _changed(self) -> None:
        self._version += 1
