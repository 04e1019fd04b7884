from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.reconciliation.exceptions import UnmatchedReportNotFoundError
from app.reconciliation.models import UnmatchedEntry, UnmatchedReport

_COLUMNS = """
    id, file_name, normalized_filename, file_path, reason, resolved,
    matched_document_id, uploaded_by, resolved_by, created_at, resolved_at
"""


def _row_to_report(row: dict[str, Any]) -> UnmatchedReport:
    def _opt_str(value: Any) -> str | None:
        return str(value) if value is not None else None

    return UnmatchedReport(
        id=row["id"],
        file_name=row["file_name"],
        identity_key=row["normalized_filename"],
        file_path=row["file_path"],
        reason=row.get("reason"),
        resolved=bool(row.get("resolved")),
        matched_document_id=_opt_str(row.get("matched_document_id")),
        uploaded_by=_opt_str(row.get("uploaded_by")),
        resolved_by=_opt_str(row.get("resolved_by")),
        created_at=row.get("created_at"),
        resolved_at=row.get("resolved_at"),
    )


class UnmatchedReportsRepository:
    """Database operations for the unmatched_reports table."""

    def record(
        self,
        conn: psycopg.Connection[Any],
        entry: UnmatchedEntry,
        uploaded_by: str | None,
    ) -> bool:
        """Insert an unmatched report unless one is already open for its path.

        Caller commits. Returns True when a row was inserted.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO unmatched_reports
                    (file_name, normalized_filename, file_path, reason, uploaded_by)
                SELECT %s, %s, %s, %s, %s
                WHERE NOT EXISTS (
                    SELECT 1 FROM unmatched_reports
                    WHERE file_path = %s AND resolved IS NOT TRUE
                )
                """,
                (
                    entry.file_name,
                    entry.identity_key or entry.file_name,
                    entry.file_path,
                    entry.reason,
                    uploaded_by,
                    entry.file_path,
                ),
            )
            return cur.rowcount > 0

    def find_by_id(self, report_id: int) -> UnmatchedReport:
        """Find an unmatched report by ID.

        Raises:
            UnmatchedReportNotFoundError: if no row with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM unmatched_reports WHERE id = %s",
                    (report_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise UnmatchedReportNotFoundError(f"Unmatched report {report_id} not found")
        return _row_to_report(row)

    def find_pending(self, identity_key: str | None = None) -> list[UnmatchedReport]:
        """List unresolved reports, oldest first, optionally for one identity key."""
        query = f"SELECT {_COLUMNS} FROM unmatched_reports WHERE resolved IS NOT TRUE"
        params: tuple[Any, ...] = ()
        if identity_key is not None:
            query += " AND normalized_filename = %s"
            params = (identity_key,)
        query += " ORDER BY created_at, id"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [_row_to_report(row) for row in rows]

    def mark_resolved(
        self,
        conn: psycopg.Connection[Any],
        report_id: int,
        document_id: str,
        resolved_by: str | None,
    ) -> None:
        """Mark a report as manually matched to a document. Caller commits.

        Raises:
            UnmatchedReportNotFoundError: if no unresolved row with this ID exists.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE unmatched_reports
                SET resolved = true, resolved_at = NOW(), resolved_by = %s,
                    matched_document_id = %s
                WHERE id = %s AND resolved IS NOT TRUE
                """,
                (resolved_by, document_id, report_id),
            )
            if cur.rowcount == 0:
                raise UnmatchedReportNotFoundError(
                    f"Unresolved unmatched report {report_id} not found"
                )
