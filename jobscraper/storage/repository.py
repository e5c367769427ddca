from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import replace
from pathlib import Path

from jobscraper.core.models import InsertResult, JobRecord, ScheduleBinding, SearchSpecification, now_iso
from jobscraper.storage.base import JobStore


class JobRepository(JobStore):
    def __init__(self, db_path: str = "data/jobscraper.db") -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(
            """
            PRAGMA foreign_keys = ON;
            CREATE TABLE IF NOT EXISTS jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                company TEXT NOT NULL,
                location TEXT NOT NULL,
                salary TEXT DEFAULT '',
                posted_date TEXT DEFAULT '',
                description TEXT DEFAULT '',
                url TEXT NOT NULL,
                source TEXT NOT NULL,
                contract_type TEXT DEFAULT '',
                work_mode TEXT DEFAULT '',
                scraped_at TEXT NOT NULL,
                specification_id INTEGER,
                UNIQUE(url, source)
            );
            CREATE TABLE IF NOT EXISTS search_profiles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                keywords TEXT NOT NULL,
                location TEXT DEFAULT 'United Kingdom',
                radius_miles INTEGER DEFAULT 0,
                salary_min INTEGER DEFAULT 0,
                salary_max INTEGER DEFAULT 0,
                contract_type TEXT DEFAULT 'all',
                work_mode TEXT DEFAULT 'all',
                date_posted TEXT DEFAULT 'all',
                sites TEXT NOT NULL,
                is_active INTEGER DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS schedules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                specification_id INTEGER NOT NULL,
                cron_expression TEXT NOT NULL DEFAULT '0 9 * * *',
                enabled INTEGER DEFAULT 0,
                last_run TEXT,
                next_run TEXT,
                FOREIGN KEY (specification_id) REFERENCES search_profiles(id) ON DELETE CASCADE
            );
            CREATE INDEX IF NOT EXISTS idx_jobs_source ON jobs(source);
            CREATE INDEX IF NOT EXISTS idx_jobs_scraped ON jobs(scraped_at);
            """
        )
        self.conn.commit()

    def insert_if_absent(self, record: JobRecord) -> InsertResult:
        with self._lock:
            cur = self.conn.execute(
                """
                INSERT OR IGNORE INTO jobs (title, company, location, salary, posted_date, description, url,
                    source, contract_type, work_mode, scraped_at, specification_id)
                VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    record.title,
                    record.company,
                    record.location,
                    record.salary,
                    record.posted_date,
                    record.description,
                    record.url,
                    record.source,
                    record.contract_type,
                    record.work_mode,
                    record.scraped_at,
                    record.specification_id,
                ),
            )
            self.conn.commit()
        if cur.rowcount > 0:
            return InsertResult(inserted=True, job_id=int(cur.lastrowid))
        return InsertResult(inserted=False)

    def list_jobs(self, source: str | None = None, limit: int = 50) -> list[sqlite3.Row]:
        with self._lock:
            if source:
                return self.conn.execute(
                    "SELECT * FROM jobs WHERE source=? ORDER BY scraped_at DESC LIMIT ?", (source, limit)
                ).fetchall()
            return self.conn.execute("SELECT * FROM jobs ORDER BY scraped_at DESC LIMIT ?", (limit,)).fetchall()

    def count_jobs(self) -> int:
        with self._lock:
            return int(self.conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0])

    def save_specification(self, spec: SearchSpecification) -> SearchSpecification:
        now = now_iso()
        values = (
            spec.name,
            spec.keywords,
            spec.location,
            spec.radius_miles,
            spec.salary_min,
            spec.salary_max,
            spec.contract_type,
            spec.work_mode,
            spec.date_posted,
            json.dumps(list(spec.sites)),
            1 if spec.is_active else 0,
        )
        with self._lock:
            if spec.id is not None:
                self.conn.execute(
                    """
                    UPDATE search_profiles SET name=?, keywords=?, location=?, radius_miles=?, salary_min=?,
                        salary_max=?, contract_type=?, work_mode=?, date_posted=?, sites=?, is_active=?, updated_at=?
                    WHERE id=?
                    """,
                    (*values, now, spec.id),
                )
                spec_id = spec.id
            else:
                cur = self.conn.execute(
                    """
                    INSERT INTO search_profiles (name, keywords, location, radius_miles, salary_min, salary_max,
                        contract_type, work_mode, date_posted, sites, is_active, created_at, updated_at)
                    VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)
                    """,
                    (*values, now, now),
                )
                spec_id = int(cur.lastrowid)
            self.conn.commit()
        return replace(spec, id=spec_id, created_at=spec.created_at or now, updated_at=now)

    def delete_specification(self, spec_id: int) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM search_profiles WHERE id=?", (spec_id,))
            self.conn.commit()

    def list_specifications(self) -> list[SearchSpecification]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM search_profiles ORDER BY updated_at DESC").fetchall()
        return [SearchSpecification.from_dict(dict(row)) for row in rows]

    def get_specification(self, spec_id: int) -> SearchSpecification | None:
        with self._lock:
            row = self.conn.execute("SELECT * FROM search_profiles WHERE id=?", (spec_id,)).fetchone()
        return SearchSpecification.from_dict(dict(row)) if row else None

    def save_schedule_binding(self, binding: ScheduleBinding) -> ScheduleBinding:
        values = (
            binding.specification_id,
            binding.cron_expression,
            1 if binding.enabled else 0,
            binding.last_run,
            binding.next_run,
        )
        with self._lock:
            if binding.id is not None:
                self.conn.execute(
                    "UPDATE schedules SET specification_id=?, cron_expression=?, enabled=?, last_run=?, next_run=? WHERE id=?",
                    (*values, binding.id),
                )
                binding_id = binding.id
            else:
                cur = self.conn.execute(
                    "INSERT INTO schedules (specification_id, cron_expression, enabled, last_run, next_run) VALUES (?,?,?,?,?)",
                    values,
                )
                binding_id = int(cur.lastrowid)
            self.conn.commit()
        return ScheduleBinding(
            id=binding_id,
            specification_id=binding.specification_id,
            cron_expression=binding.cron_expression,
            enabled=binding.enabled,
            last_run=binding.last_run,
            next_run=binding.next_run,
        )

    def delete_schedule_binding(self, binding_id: int) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM schedules WHERE id=?", (binding_id,))
            self.conn.commit()

    def list_schedule_bindings(self) -> list[ScheduleBinding]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM schedules ORDER BY id").fetchall()
        return [
            ScheduleBinding(
                id=row["id"],
                specification_id=row["specification_id"],
                cron_expression=row["cron_expression"],
                enabled=bool(row["enabled"]),
                last_run=row["last_run"],
                next_run=row["next_run"],
            )
            for row in rows
        ]

    def update_last_run(self, binding_id: int, last_run: str, next_run: str) -> None:
        with self._lock:
            self.conn.execute("UPDATE schedules SET last_run=?, next_run=? WHERE id=?", (last_run, next_run, binding_id))
            self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.close()
