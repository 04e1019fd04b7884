"""Validates the raw report batch payload before any processing."""

from typing import Any

from app.reconciliation.exceptions import InvalidBatchError
from app.reconciliation.models import ReportFile


def parse_batch(raw: Any) -> list[ReportFile]:
    """Validate a ``[{fileName, filePath}, ...]`` payload and build ReportFiles.

    Raises:
        InvalidBatchError: if the batch is empty, an item is malformed, or two
            items reference the same storage path.
    """
    if not isinstance(raw, list):
        raise InvalidBatchError("'reports' must be a list")
    if not raw:
        raise InvalidBatchError("No reports provided")

    reports: list[ReportFile] = []
    seen_paths: set[str] = set()
    for i, item in enumerate(raw):
        report = _build_report(item, i)
        if report.file_path in seen_paths:
            raise InvalidBatchError(
                f"Report at index {i}: duplicate filePath {report.file_path!r}"
            )
        seen_paths.add(report.file_path)
        reports.append(report)
    return reports


def _build_report(raw: Any, index: int) -> ReportFile:
    if not isinstance(raw, dict):
        raise InvalidBatchError(f"Report at index {index} must be an object")
    file_name = _require_string(raw, "fileName", index)
    file_path = _require_string(raw, "filePath", index)
    return ReportFile(file_name=file_name, file_path=file_path)


def _require_string(raw: dict[str, Any], field: str, index: int) -> str:
    value = raw.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InvalidBatchError(
            f"Report at index {index}: '{field}' must be a non-empty string"
        )
    return value
