"""
Durable persistence for generation jobs that are still in flight.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from aicamera.clients.sqlite_store import SQLiteStore
from aicamera.models.jobs import GenerationJob

logger = logging.getLogger(__name__)

_JOB_SORT_PREFIX = "job#"


class GenerationJobStore:
    """Store jobs keyed by the capture record that owns them.

    A record is written with its terminal status before the completion handoff
    and deleted once the handoff succeeds.
    """

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    @staticmethod
    def _partition_key(owner_id: str) -> str:
        return f"capture#{owner_id}"

    @staticmethod
    def _sort_key(job_id: str) -> str:
        return f"{_JOB_SORT_PREFIX}{job_id}"

    def save(self, job: GenerationJob) -> None:
        item = job.to_record()
        item["pk"] = self._partition_key(job.owner_id)
        item["sk"] = self._sort_key(job.id)
        self._store.put_item(item)

    def load(self, owner_id: str, job_id: str) -> Optional[GenerationJob]:
        record = self._store.get_item(
            partition_key=self._partition_key(owner_id),
            sort_key=self._sort_key(job_id),
        )
        return GenerationJob.from_record(record) if record else None

    def clear(self, job: GenerationJob) -> None:
        self._store.delete_item(
            partition_key=self._partition_key(job.owner_id),
            sort_key=self._sort_key(job.id),
        )

    def load_pending(self) -> List[GenerationJob]:
        """Return every persisted job whose status is not terminal."""
        jobs: List[GenerationJob] = []
        for record in self._store.scan_sort_key_prefix(_JOB_SORT_PREFIX):
            try:
                job = GenerationJob.from_record(record)
            except (KeyError, ValueError):
                logger.warning(
                    "Skipping unreadable job record",
                    extra={"pk": record.get("pk"), "sk": record.get("sk")},
                )
                continue
            if not job.status.is_terminal:
                jobs.append(job)
        return jobs


__all__ = ["GenerationJobStore"]
