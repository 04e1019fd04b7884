from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class BatchJobRecord:
    """Represents a row from the report_batch_jobs table."""

    id: int
    uploaded_by: str
    reports: Any
    status: str
    attempts: int
    error_message: str | None = None
    result: dict[str, Any] = field(default_factory=dict)
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
