from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.database.models import BatchJobRecord


class BatchJobRepository:
    """Database operations for the report_batch_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def enqueue(self, uploaded_by: str, reports: list[dict[str, Any]]) -> int:
        """Queue a report batch for reconciliation and return the job ID."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO report_batch_jobs (uploaded_by, reports, status, attempts)
                    VALUES (%s, %s, 'pending', 0)
                    RETURNING id
                    """,
                    (uploaded_by, Jsonb(reports)),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT into report_batch_jobs returned no id")
        return int(row[0])

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> BatchJobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, uploaded_by, reports, status, attempts
                FROM report_batch_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE report_batch_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return BatchJobRecord(
            id=row["id"],
            uploaded_by=str(row["uploaded_by"]),
            reports=row["reports"],
            status="processing",
            attempts=row["attempts"],
        )

    def mark_done(self, job_id: int, result: dict[str, Any]) -> None:
        """Mark a job as done and store its reconciliation result."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE report_batch_jobs
                SET status = 'done', result = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (Jsonb(result), job_id),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE report_batch_jobs
                SET status = 'failed', error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def increment_attempts(self, job_id: int) -> None:
        """Increment attempt count and return job to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE report_batch_jobs
                SET attempts = attempts + 1, status = 'pending',
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> BatchJobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, uploaded_by, reports, status, attempts,
                           error_message, result, locked_at, created_at, updated_at
                    FROM report_batch_jobs
                    WHERE id = %s
                    """,
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return BatchJobRecord(
            id=row["id"],
            uploaded_by=str(row["uploaded_by"]),
            reports=row["reports"],
            status=row["status"],
            attempts=row["attempts"],
            error_message=row["error_message"],
            result=row["result"] or {},
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
