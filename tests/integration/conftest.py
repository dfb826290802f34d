import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from tutela_intake.config.settings import Settings
from tutela_intake.database.connection import close_pool, get_connection, init_pool
from tutela_intake.intake.models import CaseMetadata, UploadHandle

SCHEMA_PATH = Path(__file__).parents[2] / "tutela_intake" / "database" / "schema.sql"

TEST_ACTOR = "integration-actor"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "tutelas_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[None, None, None]:
    yield
    with get_connection() as conn:
        conn.execute("DELETE FROM tutelas WHERE user_id = %s", (TEST_ACTOR,))
        conn.commit()


@pytest.fixture
def metadata() -> CaseMetadata:
    return CaseMetadata(
        petitioners="Juan Pérez García",
        respondents="EPS Salud Total",
        court="Juzgado Tercero Civil del Circuito de Bogotá",
        court_email="juzgado3civil@cendoj.ramajudicial.gov.co",
        case_number="11001-31-03-001-2024-00123-00",
    )


@pytest.fixture
def document() -> UploadHandle:
    return UploadHandle(
        storage_key=f"{TEST_ACTOR}/1714645800000-abcd1234.pdf",
        blob_url=f"https://blobs.test/tutela-pdfs/{TEST_ACTOR}/1714645800000-abcd1234.pdf",
        file_name="tutela.pdf",
        size_bytes=2048,
    )


@pytest.fixture
def actor_id() -> str:
    return TEST_ACTOR
