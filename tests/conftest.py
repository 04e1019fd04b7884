from collections.abc import Callable

import pytest

from app.reconciliation.models import Document, ReportFile


@pytest.fixture()
def make_document() -> Callable[..., Document]:
    """Build an awaiting document; keyword overrides replace any field."""

    def _make(doc_id: str = "doc-1", file_name: str = "essay.docx", **overrides: object) -> Document:
        fields: dict[str, object] = {
            "id": doc_id,
            "file_name": file_name,
            "customer_id": "user-1",
        }
        fields.update(overrides)
        return Document(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def make_reports() -> Callable[..., list[ReportFile]]:
    """Build ReportFiles stored under reports/<file name>."""

    def _make(*file_names: str) -> list[ReportFile]:
        return [ReportFile(file_name=name, file_path=f"reports/{name}") for name in file_names]

    return _make
