from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.reconciliation.exceptions import DocumentNotFoundError, DocumentStateConflictError
from app.reconciliation.models import (
    STATUS_AWAITING,
    STATUS_COMPLETED,
    Document,
    DocumentUpdate,
    ReviewFlag,
)

AWAITING_DB_STATUSES = ("pending", "in_progress")

_DOCUMENT_COLUMNS = """
    id, file_name, user_id, status, similarity_report_path, ai_report_path,
    needs_review, review_reason
"""


def row_to_document(row: dict[str, Any]) -> Document:
    """Build a Document from a documents row; pending/in_progress map to awaiting."""
    status = STATUS_COMPLETED if row["status"] == STATUS_COMPLETED else STATUS_AWAITING
    user_id = row.get("user_id")
    return Document(
        id=str(row["id"]),
        file_name=row["file_name"],
        status=status,
        similarity_report_path=row.get("similarity_report_path"),
        ai_report_path=row.get("ai_report_path"),
        needs_review=bool(row.get("needs_review")),
        review_reason=row.get("review_reason"),
        customer_id=str(user_id) if user_id is not None else None,
    )


class DocumentsRepository:
    """Database operations for the documents table."""

    def find_awaiting(self) -> list[Document]:
        """Load every document still waiting for its reports."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE status = ANY(%s)
                    ORDER BY uploaded_at, id
                    """,
                    (list(AWAITING_DB_STATUSES),),
                )
                rows = cur.fetchall()
        return [row_to_document(row) for row in rows]

    def find_holding_paths(self, paths: list[str]) -> list[Document]:
        """Load documents of any status whose slots reference one of ``paths``."""
        if not paths:
            return []
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE similarity_report_path = ANY(%s)
                       OR ai_report_path = ANY(%s)
                    """,
                    (paths, paths),
                )
                rows = cur.fetchall()
        return [row_to_document(row) for row in rows]

    def find_by_id(self, document_id: str) -> Document:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return row_to_document(row)

    def apply_update(self, conn: psycopg.Connection[Any], update: DocumentUpdate) -> None:
        """Write slot assignments and the completed transition. Caller commits.

        A slot is written only when it is empty or already holds the same
        path, so re-applying an assignment changes nothing.

        Raises:
            DocumentStateConflictError: if the document is completed, missing,
                or a slot holds a different report.
        """
        params = {
            "id": update.document_id,
            "similarity": update.similarity_report_path,
            "ai": update.ai_report_path,
            "complete": update.complete,
            "clear_review": update.clear_review,
        }
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE documents
                SET similarity_report_path = COALESCE(similarity_report_path, %(similarity)s),
                    ai_report_path = COALESCE(ai_report_path, %(ai)s),
                    status = CASE WHEN %(complete)s THEN 'completed' ELSE status END,
                    completed_at = CASE WHEN %(complete)s THEN NOW() ELSE completed_at END,
                    needs_review = CASE WHEN %(clear_review)s THEN false ELSE needs_review END,
                    review_reason = CASE WHEN %(clear_review)s THEN NULL ELSE review_reason END
                WHERE id = %(id)s
                  AND status <> 'completed'
                  AND (%(similarity)s::text IS NULL
                       OR similarity_report_path IS NULL
                       OR similarity_report_path = %(similarity)s)
                  AND (%(ai)s::text IS NULL
                       OR ai_report_path IS NULL
                       OR ai_report_path = %(ai)s)
                """,
                params,
            )
            if cur.rowcount == 0:
                raise DocumentStateConflictError(
                    f"Document {update.document_id} is completed, missing, "
                    "or holds a different report in the target slot"
                )

    def flag_for_review(self, conn: psycopg.Connection[Any], flag: ReviewFlag) -> None:
        """Set needs_review with its reason. Caller commits.

        Raises:
            DocumentStateConflictError: if the document is completed or missing.
        """
        if not flag.reason:
            raise ValueError("review reason must be a non-empty string")
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE documents
                SET needs_review = true, review_reason = %s
                WHERE id = %s AND status <> 'completed'
                """,
                (flag.reason, flag.document_id),
            )
            if cur.rowcount == 0:
                raise DocumentStateConflictError(
                    f"Document {flag.document_id} is completed or missing"
                )

    def clear_review(self, document_id: str) -> None:
        """Clear the review flag so the document is matched automatically again.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET needs_review = false, review_reason = NULL
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()
