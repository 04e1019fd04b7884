import os
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import psycopg
from psycopg.rows import dict_row
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "sql" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "reports_test")
    return Settings(db_pool_timeout_seconds=3.0)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a scratch database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def run_token() -> str:
    """Unique prefix for every file name and path seeded by one test."""
    return f"it-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def integration_cleanup(
    integration_pool: None, run_token: str
) -> Generator[list[tuple[str, Any]], None, None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM unmatched_reports WHERE file_path LIKE %s",
                (f"{run_token}/%",),
            )
            cur.execute(
                "DELETE FROM user_notifications WHERE message LIKE %s",
                (f"%{run_token}%",),
            )
            for table, row_id in cleanup:
                if table == "report_batch_jobs":
                    cur.execute("DELETE FROM report_batch_jobs WHERE id = %s", (row_id,))
            cur.execute(
                "DELETE FROM documents WHERE file_name LIKE %s",
                (f"{run_token}%",),
            )
            for table, row_id in cleanup:
                if table == "user_roles":
                    cur.execute("DELETE FROM user_roles WHERE user_id = %s", (row_id,))
        conn.commit()


def _seed_role(conn: psycopg.Connection[Any], role: str, cleanup: list[tuple[str, Any]]) -> str:
    user_id = str(uuid.uuid4())
    conn.execute(
        "INSERT INTO user_roles (user_id, role) VALUES (%s, %s)",
        (user_id, role),
    )
    conn.commit()
    cleanup.append(("user_roles", user_id))
    return user_id


@pytest.fixture
def seed_staff(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
) -> str:
    return _seed_role(db_conn, "staff", integration_cleanup)


@pytest.fixture
def seed_customer(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
) -> str:
    return _seed_role(db_conn, "customer", integration_cleanup)


@pytest.fixture
def seed_document(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
    run_token: str,
    seed_customer: str,
) -> Callable[..., str]:
    """Insert a document named ``<run_token>-<name>`` and return its id."""

    def _seed(name: str = "essay.docx", **columns: Any) -> str:
        values: dict[str, Any] = {
            "file_name": f"{run_token}-{name}",
            "user_id": seed_customer,
            "status": "pending",
        }
        values.update(columns)
        names = ", ".join(values)
        placeholders = ", ".join(["%s"] * len(values))
        with db_conn.cursor() as cur:
            cur.execute(
                f"INSERT INTO documents ({names}) VALUES ({placeholders}) RETURNING id",
                tuple(values.values()),
            )
            row = cur.fetchone()
            assert row is not None
        db_conn.commit()
        return str(row[0])

    return _seed


@pytest.fixture
def report_item(run_token: str) -> Callable[[str], dict[str, str]]:
    """Build a batch item whose file name and path carry the run token."""

    def _item(name: str) -> dict[str, str]:
        file_name = f"{run_token}-{name}"
        return {"fileName": file_name, "filePath": f"{run_token}/{file_name}"}

    return _item


@pytest.fixture
def fetch_document(integration_pool: None) -> Callable[[str], dict[str, Any]]:
    def _fetch(document_id: str) -> dict[str, Any]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT * FROM documents WHERE id = %s", (document_id,))
                row = cur.fetchone()
        assert row is not None
        return row

    return _fetch
