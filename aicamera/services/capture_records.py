"""SQLite-backed storage for capture records and their media files."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from aicamera.models.inspiration import InspirationPersona


def _ensure_directory(path: Path) -> None:
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)


@dataclass(slots=True)
class CaptureRecord:
    """A captured photo plus everything generated from it."""

    id: str
    original_image_file: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    persona: Optional[InspirationPersona] = None
    inspiration_text: Optional[str] = None
    edited_image_file: Optional[str] = None
    generated_video_file: Optional[str] = None
    video_script: Optional[str] = None
    video_job_id: Optional[str] = None
    clip_analysis_text: Optional[str] = None
    is_generating_edited_image: bool = False
    is_generating_video_script: bool = False
    is_generating_video: bool = False

    @property
    def video_busy(self) -> bool:
        return self.is_generating_video or self.is_generating_video_script


class CaptureRecordStore:
    """Persist capture records in SQLite and their binary media on disk."""

    def __init__(self, db_path: str, media_dir: str) -> None:
        self._db_path = Path(db_path)
        self._media_dir = Path(media_dir)
        if self._db_path.parent:
            _ensure_directory(self._db_path.parent)
        _ensure_directory(self._media_dir)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS capture_records (
                    record_id TEXT PRIMARY KEY,
                    original_image_file TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    persona TEXT,
                    inspiration_text TEXT,
                    edited_image_file TEXT,
                    generated_video_file TEXT,
                    video_script TEXT,
                    video_job_id TEXT,
                    clip_analysis_text TEXT,
                    is_generating_edited_image INTEGER NOT NULL DEFAULT 0,
                    is_generating_video_script INTEGER NOT NULL DEFAULT 0,
                    is_generating_video INTEGER NOT NULL DEFAULT 0
                )
                """
            )

    def create(
        self,
        *,
        image: bytes,
        persona: InspirationPersona | None = None,
        inspiration_text: str | None = None,
    ) -> CaptureRecord:
        record_id = uuid4().hex
        file_name = f"{record_id}.jpg"
        self.write_media(file_name, image)
        record = CaptureRecord(
            id=record_id,
            original_image_file=file_name,
            persona=persona,
            inspiration_text=inspiration_text,
        )
        self.save(record)
        return record

    def get(self, record_id: str) -> Optional[CaptureRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM capture_records WHERE record_id = ?",
                (record_id,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_record(row)

    def list_records(self) -> List[CaptureRecord]:
        """Return all records, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM capture_records ORDER BY created_at DESC"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def save(self, record: CaptureRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO capture_records (
                    record_id,
                    original_image_file,
                    created_at,
                    persona,
                    inspiration_text,
                    edited_image_file,
                    generated_video_file,
                    video_script,
                    video_job_id,
                    clip_analysis_text,
                    is_generating_edited_image,
                    is_generating_video_script,
                    is_generating_video
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(record_id) DO UPDATE SET
                    persona = excluded.persona,
                    inspiration_text = excluded.inspiration_text,
                    edited_image_file = excluded.edited_image_file,
                    generated_video_file = excluded.generated_video_file,
                    video_script = excluded.video_script,
                    video_job_id = excluded.video_job_id,
                    clip_analysis_text = excluded.clip_analysis_text,
                    is_generating_edited_image = excluded.is_generating_edited_image,
                    is_generating_video_script = excluded.is_generating_video_script,
                    is_generating_video = excluded.is_generating_video
                """,
                (
                    record.id,
                    record.original_image_file,
                    record.created_at.isoformat(),
                    record.persona.value if record.persona else None,
                    record.inspiration_text,
                    record.edited_image_file,
                    record.generated_video_file,
                    record.video_script,
                    record.video_job_id,
                    record.clip_analysis_text,
                    int(record.is_generating_edited_image),
                    int(record.is_generating_video_script),
                    int(record.is_generating_video),
                ),
            )

    def write_media(self, file_name: str, data: bytes) -> Path:
        path = self._media_dir / file_name
        path.write_bytes(data)
        return path

    def read_media(self, file_name: str | None) -> Optional[bytes]:
        if not file_name:
            return None
        path = self._media_dir / file_name
        if not path.exists():
            return None
        return path.read_bytes()

    def read_original(self, record: CaptureRecord) -> Optional[bytes]:
        return self.read_media(record.original_image_file)

    def _row_to_record(self, row: sqlite3.Row) -> CaptureRecord:
        created_at = datetime.fromisoformat(row["created_at"])
        return CaptureRecord(
            id=row["record_id"],
            original_image_file=row["original_image_file"],
            created_at=created_at,
            persona=InspirationPersona(row["persona"]) if row["persona"] else None,
            inspiration_text=row["inspiration_text"],
            edited_image_file=row["edited_image_file"],
            generated_video_file=row["generated_video_file"],
            video_script=row["video_script"],
            video_job_id=row["video_job_id"],
            clip_analysis_text=row["clip_analysis_text"],
            is_generating_edited_image=bool(row["is_generating_edited_image"]),
            is_generating_video_script=bool(row["is_generating_video_script"]),
            is_generating_video=bool(row["is_generating_video"]),
        )


__all__ = ["CaptureRecord", "CaptureRecordStore"]
