import json
import logging
import os
import sqlite3
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from models import JobFilter, JobKey, JobListing, JobSource

logger = logging.getLogger(__name__)

LOCK_STALE_AFTER = timedelta(hours=2)


class DuplicateKeyError(Exception):
    """An active posting with the same (source, url) already exists."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ts(value: datetime | None) -> str | None:
    """Serialize a timestamp so that string comparison orders it correctly."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_job(row: sqlite3.Row) -> JobListing:
    return JobListing(
        id=row["id"],
        title=row["title"],
        company=row["company"],
        location=row["location"],
        salary=row["salary"],
        description=row["description"],
        url=row["url"],
        source=row["source"],
        job_type=row["job_type"],
        certifications_req=json.loads(row["certifications_req"] or "[]"),
        specialty=row["specialty"],
        posted_date=_parse_ts(row["posted_date"]),
        scraped_at=_parse_ts(row["scraped_at"]),
        updated_at=_parse_ts(row["updated_at"]),
        is_active=bool(row["is_active"]),
    )


class JobRepository:
    """SQLite-backed store for job postings.

    Opens a short-lived connection per call, so one instance can be shared
    between the scheduler thread and HTTP handler threads.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        conn = self._connect()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    company TEXT NOT NULL,
                    location TEXT NOT NULL,
                    salary TEXT,
                    description TEXT NOT NULL,
                    url TEXT NOT NULL,
                    source TEXT NOT NULL,
                    job_type TEXT,
                    certifications_req TEXT NOT NULL DEFAULT '[]',
                    specialty TEXT,
                    posted_date TEXT,
                    scraped_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1
                );
                CREATE UNIQUE INDEX IF NOT EXISTS ux_jobs_source_url
                    ON jobs (source, url) WHERE is_active = 1;
                CREATE INDEX IF NOT EXISTS ix_jobs_active_source
                    ON jobs (is_active, source);
                CREATE INDEX IF NOT EXISTS ix_jobs_scraped_at
                    ON jobs (scraped_at);
                CREATE TABLE IF NOT EXISTS scrape_locks (
                    source TEXT PRIMARY KEY,
                    acquired_at TEXT NOT NULL
                );
            """)
            conn.commit()
        finally:
            conn.close()

    def find_active_by_source(self, source: str) -> list[JobKey]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT title, company, url FROM jobs WHERE source = ? AND is_active = 1",
                (JobSource(source).value,),
            ).fetchall()
        finally:
            conn.close()
        return [JobKey(title=r["title"], company=r["company"], url=r["url"]) for r in rows]

    def create(self, job: JobListing) -> JobListing:
        """Insert a posting and return it with id and timestamps set.

        Raises DuplicateKeyError if an active posting from the same source
        already has this url.
        """
        now = _now()
        conn = self._connect()
        try:
            cursor = conn.execute(
                "INSERT INTO jobs (title, company, location, salary, description, url, source, "
                "job_type, certifications_req, specialty, posted_date, scraped_at, updated_at, is_active) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)",
                (
                    job.title,
                    job.company,
                    job.location,
                    job.salary,
                    job.description,
                    job.url,
                    JobSource(job.source).value,
                    job.job_type,
                    json.dumps(job.certifications_req),
                    job.specialty,
                    _ts(job.posted_date),
                    _ts(now),
                    _ts(now),
                ),
            )
            conn.commit()
            job_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(f"{job.source} posting already active: {job.url}") from e
        finally:
            conn.close()

        return replace(job, id=job_id, scraped_at=now, updated_at=now, is_active=True)

    def update_many_inactive(self, older_than: datetime) -> int:
        """Mark active postings scraped before older_than inactive. Returns the count changed."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE jobs SET is_active = 0, updated_at = ? WHERE is_active = 1 AND scraped_at < ?",
                (_ts(_now()), _ts(older_than)),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def get(self, job_id: int) -> JobListing | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_job(row) if row else None

    def find_jobs(self, filters: JobFilter) -> tuple[list[JobListing], int]:
        """Active postings matching filters, newest first, plus the unpaged total."""
        clauses = ["is_active = 1"]
        params: list = []

        if filters.location:
            clauses.append("location LIKE ?")
            params.append(f"%{filters.location}%")
        if filters.job_type:
            clauses.append("job_type = ?")
            params.append(filters.job_type)
        if filters.specialty:
            clauses.append("specialty LIKE ?")
            params.append(f"%{filters.specialty}%")
        if filters.certification:
            clauses.append("EXISTS (SELECT 1 FROM json_each(jobs.certifications_req) WHERE value = ?)")
            params.append(filters.certification.upper())
        if filters.source:
            clauses.append("source = ?")
            params.append(filters.source)
        if filters.search:
            clauses.append("(title LIKE ? OR company LIKE ? OR description LIKE ?)")
            params.extend([f"%{filters.search}%"] * 3)

        where = " AND ".join(clauses)
        offset = (filters.page - 1) * filters.limit

        conn = self._connect()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM jobs WHERE {where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM jobs WHERE {where} ORDER BY scraped_at DESC, id DESC LIMIT ? OFFSET ?",
                [*params, filters.limit, offset],
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_job(r) for r in rows], total

    def stats(self) -> dict:
        """Total and active counts, active counts per source, and the 10 newest active postings."""
        conn = self._connect()
        try:
            total = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]
            active = conn.execute("SELECT COUNT(*) FROM jobs WHERE is_active = 1").fetchone()[0]
            by_source = conn.execute(
                "SELECT source, COUNT(*) AS n FROM jobs WHERE is_active = 1 GROUP BY source ORDER BY source"
            ).fetchall()
            recent = conn.execute(
                "SELECT * FROM jobs WHERE is_active = 1 ORDER BY scraped_at DESC, id DESC LIMIT 10"
            ).fetchall()
        finally:
            conn.close()

        return {
            "total_jobs": total,
            "active_jobs": active,
            "jobs_by_source": {r["source"]: r["n"] for r in by_source},
            "recent_jobs": [_row_to_job(r) for r in recent],
        }

    def acquire_source_lock(self, source: str, stale_after: timedelta = LOCK_STALE_AFTER) -> bool:
        """Take the scrape lock for source. False if another run holds a fresh one."""
        now = _now()
        source = JobSource(source).value
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT acquired_at FROM scrape_locks WHERE source = ?", (source,)
            ).fetchone()
            if row and _parse_ts(row["acquired_at"]) > now - stale_after:
                conn.rollback()
                return False
            if row:
                logger.warning(f"[{source}] Taking over stale scrape lock from {row['acquired_at']}")
            conn.execute(
                "INSERT OR REPLACE INTO scrape_locks (source, acquired_at) VALUES (?, ?)",
                (source, _ts(now)),
            )
            conn.commit()
            return True
        finally:
            conn.close()

    def release_source_lock(self, source: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM scrape_locks WHERE source = ?", (JobSource(source).value,))
            conn.commit()
        finally:
            conn.close()
