from collections.abc import Iterable

from app.reconciliation.models import Document, ReportFile


def build_document_index(documents: Iterable[Document]) -> dict[str, list[Document]]:
    """Group documents eligible for automatic matching by document key.

    Completed documents and documents flagged for review are left out.
    """
    index: dict[str, list[Document]] = {}
    for doc in documents:
        if doc.is_completed or doc.needs_review:
            continue
        index.setdefault(doc.document_key, []).append(doc)
    return index


def group_reports(reports: Iterable[ReportFile]) -> dict[str, list[ReportFile]]:
    """Group batch reports by report key, keeping batch order within a group."""
    groups: dict[str, list[ReportFile]] = {}
    for report in reports:
        groups.setdefault(report.report_key, []).append(report)
    return groups


def index_attached_reports(
    documents: Iterable[Document],
    reports: Iterable[ReportFile],
) -> dict[str, Document]:
    """Map each batch path that already sits in a document slot to that document."""
    paths = {report.file_path for report in reports}
    attached: dict[str, Document] = {}
    for doc in documents:
        for path in (doc.similarity_report_path, doc.ai_report_path):
            if path and path in paths:
                attached[path] = doc
    return attached
