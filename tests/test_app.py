# tests/test_app.py
# Application wiring: health check, error envelope, storage backend

import pytest
from sqlalchemy import text

from app.db.session import engine
from app.services import storage_service
from app.services.storage_service import StorageError


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_local_storage_round_trip(storage_dir):
    key = storage_service.upload_bytes(storage_service.EXAM_BUCKET, "exams/1/a.pdf", b"%PDF-1", "application/pdf")

    assert key == "exams/1/a.pdf"
    assert (storage_dir / "exam_files" / "exams" / "1" / "a.pdf").read_bytes() == b"%PDF-1"
    assert storage_service.download_bytes(storage_service.EXAM_BUCKET, key) == b"%PDF-1"


def test_storage_rejects_path_escape():
    with pytest.raises(StorageError):
        storage_service.upload_bytes(storage_service.EXAM_BUCKET, "../../etc/passwd", b"x", "text/plain")


def test_missing_object_is_storage_error():
    with pytest.raises(StorageError):
        storage_service.download_bytes(storage_service.EXAM_BUCKET, "exams/none.pdf")


def test_key_extracted_from_public_url():
    url = "https://storage.googleapis.com/mi-bucket/exams/1/solution.pdf"
    assert storage_service.object_key_from_reference(url, "mi-bucket") == "exams/1/solution.pdf"
    with pytest.raises(StorageError):
        storage_service.object_key_from_reference(url, "otro-bucket")


@pytest.mark.skipif(engine.dialect.name != "sqlite", reason="SQLite-only pragma")
def test_sqlite_engine_enforces_foreign_keys():
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
